# /*
# Copyright 2026 The Automotive Dev Operator Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Local registry container lifecycle."""

from __future__ import annotations

import docker
from docker.models.containers import Container
from rich.panel import Panel

from kind_e2e import console
from kind_e2e.config import RegistryConfig


def get_registry_container(
    docker_client: docker.DockerClient,
    registry_cfg: RegistryConfig,
) -> Container | None:
    """Return the registry container, or None if it does not exist."""
    try:
        return docker_client.containers.get(registry_cfg.registry_name)
    except docker.errors.NotFound:
        return None


def _is_running(container: Container) -> bool:
    return bool(container.attrs.get("State", {}).get("Running"))


def ensure_registry(docker_client: docker.DockerClient, registry_cfg: RegistryConfig) -> bool:
    """Start the local registry unless a same-named container is already running.

    The registry publishes its internal port twice on the host: once on
    ``registry_port`` for direct access and once on the internal port itself,
    which is the port the remote-platform registry address carries.

    Args:
        docker_client: Docker client instance.
        registry_cfg: Registry configuration.

    Returns:
        True if a new container was started, False if one was already running.

    Raises:
        docker.errors.APIError: If the engine rejects the request.
    """
    console.print(Panel.fit("Setting up local registry", style="bold blue"))
    container = get_registry_container(docker_client, registry_cfg)
    if container is not None and _is_running(container):
        console.print(f"[yellow]   Registry '{registry_cfg.registry_name}' already running[/yellow]")
        return False
    if container is not None:
        console.print(f"[yellow]   Removing stopped registry '{registry_cfg.registry_name}'[/yellow]")
        container.remove(force=True)

    bind = registry_cfg.registry_bind_address
    docker_client.containers.run(
        registry_cfg.registry_image,
        name=registry_cfg.registry_name,
        detach=True,
        restart_policy={"Name": "always"},
        ports={
            f"{registry_cfg.registry_internal_port}/tcp": [
                (bind, registry_cfg.registry_port),
                (bind, registry_cfg.registry_internal_port),
            ],
        },
    )
    console.print(f"[green]\u2705 Registry started at {registry_cfg.host_endpoint}[/green]")
    return True


def registry_network_address(
    docker_client: docker.DockerClient,
    registry_cfg: RegistryConfig,
    network: str,
) -> str:
    """Return the registry's address on *network*, or an empty string if none is assigned yet."""
    container = get_registry_container(docker_client, registry_cfg)
    if container is None:
        return ""
    endpoint = container.attrs.get("NetworkSettings", {}).get("Networks", {}).get(network) or {}
    return endpoint.get("IPAddress") or ""


def remove_registry(docker_client: docker.DockerClient, registry_cfg: RegistryConfig) -> None:
    """Force-remove the registry container if it exists."""
    container = get_registry_container(docker_client, registry_cfg)
    if container is None:
        console.print(f"[yellow]\u26a0\ufe0f  Registry '{registry_cfg.registry_name}' not found or already removed[/yellow]")
        return
    container.remove(force=True)
    console.print(f"[green]\u2705 Registry '{registry_cfg.registry_name}' removed[/green]")
