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

"""kind cluster lifecycle, registry network attachment, and node annotations."""

from __future__ import annotations

import docker
import sh
from rich.panel import Panel
from tenacity import retry, stop_after_attempt, wait_fixed

from kind_e2e import console
from kind_e2e.config import KindConfig, RegistryConfig
from kind_e2e.constants import CLUSTER_CREATE_RETRY_WAIT_SECONDS, NODE_REGISTRY_ANNOTATION
from kind_e2e.wait import wait_for_nodes


# ============================================================================
# Cluster operations
# ============================================================================

def cluster_exists(kind_cfg: KindConfig) -> bool:
    """Whether kind knows a cluster with the configured name."""
    return kind_cfg.cluster_name in str(sh.kind("get", "clusters")).split()


def delete_cluster(kind_cfg: KindConfig) -> None:
    """Delete the kind cluster.

    Args:
        kind_cfg: kind cluster configuration with the cluster name.
    """
    console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{kind_cfg.cluster_name}'...[/yellow]")
    try:
        sh.kind("delete", "cluster", "--name", kind_cfg.cluster_name)
        console.print(f"[green]\u2705 Cluster '{kind_cfg.cluster_name}' deleted[/green]")
    except sh.ErrorReturnCode_1:
        console.print(f"[yellow]\u26a0\ufe0f  Cluster '{kind_cfg.cluster_name}' not found or already deleted[/yellow]")


def create_cluster(kind_cfg: KindConfig) -> None:
    """Create a fresh kind cluster, deleting any same-named cluster first.

    Args:
        kind_cfg: kind cluster configuration including retry count.

    Raises:
        sh.ErrorReturnCode: If the cluster cannot be created after all retries.
    """
    console.print(Panel.fit("Creating kind cluster", style="bold blue"))

    @retry(
        stop=stop_after_attempt(kind_cfg.max_retries),
        wait=wait_fixed(CLUSTER_CREATE_RETRY_WAIT_SECONDS),
        reraise=True,
    )
    def _attempt() -> None:
        if cluster_exists(kind_cfg):
            console.print("[yellow]   Found existing cluster, deleting...[/yellow]")
            sh.kind("delete", "cluster", "--name", kind_cfg.cluster_name)
        sh.kind(
            "create", "cluster",
            "--name", kind_cfg.cluster_name,
            "--wait", kind_cfg.create_wait,
        )

    _attempt()
    console.print("[green]\u2705 Cluster created successfully[/green]")


def verify_control_plane(kind_cfg: KindConfig) -> None:
    """Check that the API server answers on the cluster's kubectl context."""
    console.print("[yellow]\u2139\ufe0f  Verifying cluster is up...[/yellow]")
    sh.kubectl("cluster-info", "--context", kind_cfg.context)


def label_nodes(kind_cfg: KindConfig) -> None:
    """Stamp every node with the scheduling label later workloads select on."""
    sh.kubectl("label", "nodes", "--all", kind_cfg.node_label, "--overwrite")
    console.print(f"[green]\u2705 Labeled nodes with {kind_cfg.node_label}[/green]")


def ensure_cluster(kind_cfg: KindConfig) -> None:
    """Create a clean cluster, verify the control plane, and label its nodes."""
    create_cluster(kind_cfg)
    verify_control_plane(kind_cfg)
    label_nodes(kind_cfg)


# ============================================================================
# Registry wiring
# ============================================================================

def join_registry_network(
    docker_client: docker.DockerClient,
    registry_cfg: RegistryConfig,
    network: str,
) -> bool:
    """Connect the registry container to the cluster network unless already attached.

    Args:
        docker_client: Docker client instance.
        registry_cfg: Registry configuration with the container name.
        network: Name of the cluster's container network.

    Returns:
        True if the container was connected by this call.
    """
    console.print("[yellow]\u2139\ufe0f  Connecting registry to kind network...[/yellow]")
    container = docker_client.containers.get(registry_cfg.registry_name)
    networks = container.attrs.get("NetworkSettings", {}).get("Networks") or {}
    if networks.get(network) is not None:
        console.print(f"[yellow]   Registry already attached to '{network}'[/yellow]")
        return False
    docker_client.networks.get(network).connect(container)
    console.print(f"[green]\u2705 Registry attached to '{network}'[/green]")
    return True


def list_nodes(kind_cfg: KindConfig) -> list[str]:
    """Names of the cluster's node containers."""
    return str(sh.kind("get", "nodes", "--name", kind_cfg.cluster_name)).split()


def annotate_nodes_with_registry(kind_cfg: KindConfig, registry_cfg: RegistryConfig) -> list[str]:
    """Annotate every node with the host-side registry location, overwriting prior values.

    Returns:
        The annotated node names.
    """
    nodes = list_nodes(kind_cfg)
    for node in nodes:
        sh.kubectl(
            "annotate", "node", node,
            f"{NODE_REGISTRY_ANNOTATION}={registry_cfg.host_endpoint}",
            "--overwrite",
        )
    console.print(f"[green]\u2705 Annotated {len(nodes)} node(s) with registry location[/green]")
    return nodes


def wait_nodes_ready(kind_cfg: KindConfig) -> None:
    """Wait for every node to be Ready within the configured bound."""
    wait_for_nodes(kind_cfg.node_ready_timeout, kind_cfg.poll_interval)
