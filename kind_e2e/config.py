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

"""Configuration classes, run flags, and the environment descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from kind_e2e import console
from kind_e2e.arch import BuildPlatform, resolve_build_platform
from kind_e2e.constants import (
    DEFAULT_API_DEPLOYMENT,
    DEFAULT_API_PORT,
    DEFAULT_API_TIMEOUT_SECONDS,
    DEFAULT_CLUSTER_CREATE_MAX_RETRIES,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_CONTROLLER_DEPLOYMENT,
    DEFAULT_CONTROLLER_TIMEOUT_SECONDS,
    DEFAULT_CREATE_WAIT,
    DEFAULT_HOSTS_FILE,
    DEFAULT_INGRESS_TIMEOUT_SECONDS,
    DEFAULT_INSECURE_REGISTRY_CONF,
    DEFAULT_NETWORK,
    DEFAULT_NODE_LABEL,
    DEFAULT_NODE_READY_TIMEOUT_SECONDS,
    DEFAULT_OPERATOR_IMAGE,
    DEFAULT_OPERATOR_NAMESPACE,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PORT_FORWARD_SETTLE_SECONDS,
    DEFAULT_REGISTRY_BIND_ADDRESS,
    DEFAULT_REGISTRY_HOST,
    DEFAULT_REGISTRY_IMAGE,
    DEFAULT_REGISTRY_INTERNAL_PORT,
    DEFAULT_REGISTRY_IP_POLL_INTERVAL_SECONDS,
    DEFAULT_REGISTRY_IP_TIMEOUT_SECONDS,
    DEFAULT_REGISTRY_NAME,
    DEFAULT_REGISTRY_PASSWORD,
    DEFAULT_REGISTRY_PORT,
    DEFAULT_REGISTRY_USERNAME,
    DEFAULT_SERVICE_ACCOUNT,
    DEFAULT_TEKTON_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_DURATION,
    REL_CLIENT_BIN,
    dep_value,
)


# ============================================================================
# Configuration classes
# ============================================================================

class KindConfig(BaseSettings):
    """kind cluster configuration, auto-loaded from E2E_* env vars.

    Attributes:
        cluster_name: Name of the kind cluster.
        network: Container network kind attaches its nodes to.
        node_label: ``key=value`` label stamped on every node.
        create_wait: Control-plane wait passed to ``kind create cluster``.
        max_retries: Maximum cluster creation attempts.
        node_ready_timeout: Seconds to wait for all nodes to report Ready.
        poll_interval: Seconds between readiness checks.
        host_arch: Host architecture override, or None to detect it.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore")

    cluster_name: str = DEFAULT_CLUSTER_NAME
    network: str = DEFAULT_NETWORK
    node_label: str = Field(default=DEFAULT_NODE_LABEL, pattern=r"^[\w./-]+=[\w.-]*$")
    create_wait: str = Field(default=DEFAULT_CREATE_WAIT, pattern=r"^\d+[smh]$")
    max_retries: int = Field(default=DEFAULT_CLUSTER_CREATE_MAX_RETRIES, ge=1, le=10)
    node_ready_timeout: float = Field(default=DEFAULT_NODE_READY_TIMEOUT_SECONDS, gt=0)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    host_arch: str | None = None

    @property
    def context(self) -> str:
        """kubectl context name kind writes for this cluster."""
        return f"kind-{self.cluster_name}"


class RegistryConfig(BaseSettings):
    """Local registry and host patch configuration, auto-loaded from E2E_* env vars.

    Attributes:
        registry_name: Name of the registry container.
        registry_image: Registry container image.
        registry_port: Host port for direct access (``localhost:<port>``).
        registry_internal_port: Port the registry listens on in its container;
            also published on the host to match the remote-platform address.
        registry_bind_address: Host address the registry ports bind to.
        registry_host: Remote-platform registry hostname
            (``<service>.<namespace>.svc``).
        hosts_file: Host name resolution file.
        insecure_registry_conf: containers-registries.conf drop-in path.
        ip_timeout: Seconds to wait for the registry's cluster-network address.
        ip_poll_interval: Seconds between address checks.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore")

    registry_name: str = DEFAULT_REGISTRY_NAME
    registry_image: str = dep_value("registry", "image", default=DEFAULT_REGISTRY_IMAGE)
    registry_port: int = Field(default=DEFAULT_REGISTRY_PORT, ge=1, le=65535)
    registry_internal_port: int = Field(default=DEFAULT_REGISTRY_INTERNAL_PORT, ge=1, le=65535)
    registry_bind_address: str = DEFAULT_REGISTRY_BIND_ADDRESS
    registry_host: str = Field(default=DEFAULT_REGISTRY_HOST, pattern=r"^[a-z0-9-]+\.[a-z0-9-]+\.svc$")
    hosts_file: Path = Path(DEFAULT_HOSTS_FILE)
    insecure_registry_conf: Path = Path(DEFAULT_INSECURE_REGISTRY_CONF)
    ip_timeout: float = Field(default=DEFAULT_REGISTRY_IP_TIMEOUT_SECONDS, gt=0)
    ip_poll_interval: float = Field(default=DEFAULT_REGISTRY_IP_POLL_INTERVAL_SECONDS, gt=0)

    @property
    def shim_service(self) -> str:
        """Service short name implied by the registry hostname."""
        return self.registry_host.split(".")[0]

    @property
    def shim_namespace(self) -> str:
        """Namespace implied by the registry hostname."""
        return self.registry_host.split(".")[1]

    @property
    def cluster_route(self) -> str:
        """Registry address as seen from inside the cluster."""
        return f"{self.registry_host}:{self.registry_internal_port}"

    @property
    def host_endpoint(self) -> str:
        """Registry address as seen from the host."""
        return f"localhost:{self.registry_port}"


class ComponentConfig(BaseSettings):
    """Operator deployment and client access, auto-loaded from E2E_* env vars.

    Attributes:
        operator_namespace: Namespace the operator is deployed into.
        operator_image: Image tag built and loaded into kind.
        controller_deployment: Operator controller deployment name.
        api_deployment: Build API deployment (and service) name.
        api_port: Build API service port, forwarded to the same host port.
        service_account: Service account the client token is minted for.
        token_duration: Lifetime of the minted token.
        port_forward_settle: Seconds to wait after starting the port-forward.
        registry_username: Placeholder registry user handed to the client.
        registry_password: Placeholder registry password handed to the client.
        tekton_timeout: Seconds to wait for pipeline engine pods.
        ingress_timeout: Seconds to wait for the ingress controller pod.
        controller_timeout: Seconds to wait for the controller deployment.
        api_timeout: Seconds to wait for the build API deployment.
        strict_script_patch: Whether an unmatched script patch is fatal.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore")

    operator_namespace: str = DEFAULT_OPERATOR_NAMESPACE
    operator_image: str = DEFAULT_OPERATOR_IMAGE
    controller_deployment: str = DEFAULT_CONTROLLER_DEPLOYMENT
    api_deployment: str = DEFAULT_API_DEPLOYMENT
    api_port: int = Field(default=DEFAULT_API_PORT, ge=1, le=65535)
    service_account: str = DEFAULT_SERVICE_ACCOUNT
    token_duration: str = Field(default=DEFAULT_TOKEN_DURATION, pattern=r"^\d+[smh]$")
    port_forward_settle: float = Field(default=DEFAULT_PORT_FORWARD_SETTLE_SECONDS, ge=0)
    registry_username: str = DEFAULT_REGISTRY_USERNAME
    registry_password: str = DEFAULT_REGISTRY_PASSWORD
    tekton_timeout: float = Field(default=DEFAULT_TEKTON_TIMEOUT_SECONDS, gt=0)
    ingress_timeout: float = Field(default=DEFAULT_INGRESS_TIMEOUT_SECONDS, gt=0)
    controller_timeout: float = Field(default=DEFAULT_CONTROLLER_TIMEOUT_SECONDS, gt=0)
    api_timeout: float = Field(default=DEFAULT_API_TIMEOUT_SECONDS, gt=0)
    strict_script_patch: bool = True

    @property
    def api_url(self) -> str:
        """Build API base URL on the host side of the port-forward."""
        return f"http://localhost:{self.api_port}"


# ============================================================================
# Run flags and environment descriptor
# ============================================================================

@dataclass(frozen=True)
class RunFlags:
    """Single source of truth for optional steps and run inputs.

    Attributes:
        operator_dir: Root of the operator source tree (holds the Makefile).
        client_bin: Build client binary, relative to *operator_dir* if not absolute.
        run_builds: Whether to drive the build client after provisioning.
        run_e2e_tests: Whether to run ``make test-e2e`` at the end.
    """

    operator_dir: Path
    client_bin: Path = Path(REL_CLIENT_BIN)
    run_builds: bool = True
    run_e2e_tests: bool = False

    @property
    def client_path(self) -> Path:
        """Absolute path of the build client binary."""
        if self.client_bin.is_absolute():
            return self.client_bin
        return self.operator_dir / self.client_bin


@dataclass(frozen=True)
class EnvironmentDescriptor:
    """Immutable configuration resolved once at start.

    Attributes:
        kind: kind cluster configuration.
        registry: Registry and host patch configuration.
        components: Operator and access configuration.
        build: Resolved build platform for the host architecture, or None
            when resolved for teardown only.
    """

    kind: KindConfig
    registry: RegistryConfig
    components: ComponentConfig
    build: BuildPlatform | None


# ============================================================================
# Config resolution
# ============================================================================

def validate_flags(operator_dir: Path, skip_builds: bool, client_bin: Path | None) -> None:
    """Validate CLI input. Raises typer.BadParameter on hard failures."""
    if not (operator_dir / "Makefile").is_file():
        raise typer.BadParameter(f"{operator_dir} has no Makefile; pass --operator-dir")
    if skip_builds and client_bin is not None:
        raise typer.BadParameter("--client-bin has no effect together with --skip-builds")


def resolve_environment(
    *,
    cluster_name: str | None = None,
    registry_port: int | None = None,
    host_arch: str | None = None,
    resolve_platform: bool = True,
) -> EnvironmentDescriptor:
    """Merge CLI > env > defaults and resolve the build platform.

    Args:
        cluster_name: CLI override for the cluster name, or None.
        registry_port: CLI override for the host registry port, or None.
        host_arch: CLI override for the host architecture, or None.
        resolve_platform: Resolve the build platform. Teardown does not
            build anything and skips it.

    Returns:
        The resolved environment descriptor.

    Raises:
        UnsupportedArchitectureError: If the host architecture is unknown.
    """
    kind_cfg = KindConfig()
    registry_cfg = RegistryConfig()
    comp_cfg = ComponentConfig()

    if cluster_name is not None:
        kind_cfg = kind_cfg.model_copy(update={"cluster_name": cluster_name})
    if host_arch is not None:
        kind_cfg = kind_cfg.model_copy(update={"host_arch": host_arch})
    if registry_port is not None:
        registry_cfg = registry_cfg.model_copy(update={"registry_port": registry_port})

    return EnvironmentDescriptor(
        kind=kind_cfg,
        registry=registry_cfg,
        components=comp_cfg,
        build=resolve_build_platform(kind_cfg.host_arch) if resolve_platform else None,
    )


# ============================================================================
# Display
# ============================================================================

def display_config(env: EnvironmentDescriptor, flags: RunFlags) -> None:
    """Print the resolved configuration."""
    console.print(Panel.fit("Configuration", style="bold blue"))

    console.print("[yellow]kind cluster:[/yellow]")
    console.print(f"  cluster_name    : {env.kind.cluster_name}")
    console.print(f"  network         : {env.kind.network}")
    console.print(f"  build_platform  : {env.build.platform} ({env.build.arch})")

    console.print("[yellow]Registry:[/yellow]")
    console.print(f"  container       : {env.registry.registry_name}")
    console.print(f"  host endpoint   : {env.registry.host_endpoint}")
    console.print(f"  cluster route   : {env.registry.cluster_route}")

    console.print("[yellow]Operator:[/yellow]")
    console.print(f"  namespace       : {env.components.operator_namespace}")
    console.print(f"  image           : {env.components.operator_image}")
    console.print(f"  operator_dir    : {flags.operator_dir}")

    if flags.run_builds:
        console.print("[yellow]Build client:[/yellow]")
        console.print(f"  binary          : {flags.client_path}")
        console.print(f"  api_url         : {env.components.api_url}")
