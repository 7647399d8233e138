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

"""Build API port-forward and client credentials."""

from __future__ import annotations

import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass

import sh
from rich.panel import Panel

from kind_e2e import console
from kind_e2e.config import ComponentConfig
from kind_e2e.constants import PORT_FORWARD_STOP_TIMEOUT_SECONDS
from kind_e2e.utils import apply_manifests, shell_join


@dataclass(frozen=True)
class ClientAccess:
    """Connection settings handed to the build client.

    The registry credentials are placeholders: the local registry does not
    authenticate, but the client requires them to be set.
    """

    api_url: str
    token: str
    registry_username: str
    registry_password: str

    def as_env(self) -> dict[str, str]:
        """Environment variables the build client reads."""
        return {
            "CAIB_SERVER": self.api_url,
            "CAIB_TOKEN": self.token,
            "REGISTRY_USERNAME": self.registry_username,
            "REGISTRY_PASSWORD": self.registry_password,
        }


# ============================================================================
# Port-forward
# ============================================================================

def port_forward_args(comp_cfg: ComponentConfig) -> list[str]:
    """Command line forwarding the build API service to the same host port."""
    return [
        "kubectl", "port-forward",
        "-n", comp_cfg.operator_namespace,
        f"svc/{comp_cfg.api_deployment}",
        f"{comp_cfg.api_port}:{comp_cfg.api_port}",
    ]


def port_forward_pattern(comp_cfg: ComponentConfig) -> str:
    """``pkill -f`` pattern matching the build API port-forward."""
    return shell_join(port_forward_args(comp_cfg)[:5])


def kill_stale_port_forwards(comp_cfg: ComponentConfig) -> None:
    """Kill port-forwards left behind by earlier runs; finding none is fine."""
    sh.pkill("-f", port_forward_pattern(comp_cfg), _ok_code=[0, 1])


def start_port_forward(comp_cfg: ComponentConfig) -> subprocess.Popen:
    """Start the build API port-forward in the background, replacing any previous one."""
    kill_stale_port_forwards(comp_cfg)
    return subprocess.Popen(
        port_forward_args(comp_cfg),
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


def stop_port_forward(comp_cfg: ComponentConfig, process: subprocess.Popen | None) -> None:
    """Stop the port-forward.

    Without a process handle (e.g. cleaning up after another run) the
    port-forward is found by its command line instead.
    """
    if process is None:
        kill_stale_port_forwards(comp_cfg)
        return
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=PORT_FORWARD_STOP_TIMEOUT_SECONDS)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


# ============================================================================
# Credentials
# ============================================================================

def ensure_service_account(comp_cfg: ComponentConfig) -> None:
    """Create the client's service account unless it exists."""
    apply_manifests([{
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"name": comp_cfg.service_account, "namespace": comp_cfg.operator_namespace},
    }])


def mint_token(comp_cfg: ComponentConfig) -> str:
    """Mint a time-bounded bearer token for the client's service account."""
    token = sh.kubectl(
        "create", "token", comp_cfg.service_account,
        "-n", comp_cfg.operator_namespace,
        f"--duration={comp_cfg.token_duration}",
    )
    return str(token).strip()


def provision_access(
    comp_cfg: ComponentConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[subprocess.Popen, ClientAccess]:
    """Forward the build API to the host and mint client credentials.

    Args:
        comp_cfg: Component configuration.
        sleep: Sleep used for the port-forward settle delay.

    Returns:
        Tuple of (port-forward process, client access settings).
    """
    console.print(Panel.fit("Forwarding build API", style="bold blue"))
    process = start_port_forward(comp_cfg)
    console.print("[yellow]\u2139\ufe0f  Waiting for port-forward...[/yellow]")
    sleep(comp_cfg.port_forward_settle)

    ensure_service_account(comp_cfg)
    access = ClientAccess(
        api_url=comp_cfg.api_url,
        token=mint_token(comp_cfg),
        registry_username=comp_cfg.registry_username,
        registry_password=comp_cfg.registry_password,
    )
    console.print(f"[green]\u2705 Build API at {access.api_url} (port-forward pid {process.pid})[/green]")
    return process, access
