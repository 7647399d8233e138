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

"""In-cluster DNS shim for the OpenShift internal registry hostname.

Builds written for OpenShift push to
``image-registry.openshift-image-registry.svc:5000``. On kind that name does
not exist, so a headless Service with that name, plus an Endpoints object
pointing at the local registry container's address on the kind network,
makes cluster DNS resolve it to the local registry.

The Endpoints address is captured once. If the registry container is
recreated and gets a new address, the shim has to be applied again.
"""

from __future__ import annotations

from typing import Any

import docker
from rich.panel import Panel

from kind_e2e import console
from kind_e2e.config import RegistryConfig
from kind_e2e.constants import (
    LOCAL_REGISTRY_HELP_URL,
    LOCAL_REGISTRY_HOSTING_CONFIGMAP,
    LOCAL_REGISTRY_HOSTING_KEY,
    NS_KUBE_PUBLIC,
    REGISTRY_ENDPOINT_PORT_NAME,
)
from kind_e2e.registry import registry_network_address
from kind_e2e.utils import apply_manifests, ensure_namespace
from kind_e2e.wait import wait_until


def local_registry_hosting_configmap(registry_cfg: RegistryConfig) -> dict[str, Any]:
    """ConfigMap documenting the local registry for cluster tooling (KEP-1755)."""
    hosting = f'host: "{registry_cfg.host_endpoint}"\nhelp: "{LOCAL_REGISTRY_HELP_URL}"\n'
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": LOCAL_REGISTRY_HOSTING_CONFIGMAP, "namespace": NS_KUBE_PUBLIC},
        "data": {LOCAL_REGISTRY_HOSTING_KEY: hosting},
    }


def shim_manifests(registry_cfg: RegistryConfig, address: str) -> list[dict[str, Any]]:
    """Headless Service and Endpoints resolving the registry hostname to *address*.

    Args:
        registry_cfg: Registry configuration with hostname and internal port.
        address: Registry container address on the cluster network.

    Returns:
        The Service and Endpoints objects, in apply order.
    """
    port = registry_cfg.registry_internal_port
    metadata = {"name": registry_cfg.shim_service, "namespace": registry_cfg.shim_namespace}
    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": dict(metadata),
        "spec": {
            "clusterIP": "None",
            "ports": [{"port": port, "protocol": "TCP", "targetPort": port}],
        },
    }
    endpoints = {
        "apiVersion": "v1",
        "kind": "Endpoints",
        "metadata": dict(metadata),
        "subsets": [{
            "addresses": [{"ip": address}],
            "ports": [{"port": port, "name": REGISTRY_ENDPOINT_PORT_NAME, "protocol": "TCP"}],
        }],
    }
    return [service, endpoints]


def publish_local_registry_hosting(registry_cfg: RegistryConfig) -> None:
    """Apply the local-registry-hosting ConfigMap in kube-public."""
    apply_manifests([local_registry_hosting_configmap(registry_cfg)])


def discover_registry_address(
    docker_client: docker.DockerClient,
    registry_cfg: RegistryConfig,
    network: str,
) -> str:
    """Wait until the registry container has an address on *network* and return it.

    Raises:
        WaitTimeoutError: If no address is assigned within the configured bound.
    """
    console.print("[yellow]\u2139\ufe0f  Waiting for registry IP assignment...[/yellow]")
    address = wait_until(
        lambda: registry_network_address(docker_client, registry_cfg, network),
        timeout=registry_cfg.ip_timeout,
        interval=registry_cfg.ip_poll_interval,
        description=f"registry address on network '{network}'",
    )
    console.print(f"[green]\u2705 Registry internal IP found: {address}[/green]")
    return address


def apply_registry_shim(
    docker_client: docker.DockerClient,
    registry_cfg: RegistryConfig,
    network: str,
) -> str:
    """Make the registry hostname resolve, inside the cluster, to the local registry.

    Args:
        docker_client: Docker client instance.
        registry_cfg: Registry configuration.
        network: Name of the cluster's container network.

    Returns:
        The registry address written into the Endpoints object.
    """
    console.print(Panel.fit("Configuring internal registry DNS", style="bold blue"))
    publish_local_registry_hosting(registry_cfg)
    ensure_namespace(registry_cfg.shim_namespace)
    address = discover_registry_address(docker_client, registry_cfg, network)
    apply_manifests(shim_manifests(registry_cfg, address))
    console.print(f"[green]\u2705 {registry_cfg.cluster_route} now resolves to {address}[/green]")
    return address
