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

"""Tekton, ingress-nginx, and automotive-dev operator installation."""

from __future__ import annotations

import os
from pathlib import Path

import sh
from rich.panel import Panel

from kind_e2e import console
from kind_e2e.arch import BuildPlatform
from kind_e2e.config import ComponentConfig, EnvironmentDescriptor
from kind_e2e.constants import (
    CONTAINER_TOOL,
    MAKE_BUILD_CLIENT,
    MAKE_DEPLOY,
    MAKE_DOCKER_BUILD,
    MAKE_INSTALL,
    POD_SECURITY_LABEL_PREFIX,
    POD_SECURITY_LEVEL,
    POD_SECURITY_MODES,
    REL_SAMPLE_OPERATOR_CONFIG,
    dep_value,
)
from kind_e2e.utils import ensure_namespace
from kind_e2e.wait import wait_for_deployment, wait_for_pods


# ============================================================================
# Infrastructure
# ============================================================================

def install_tekton() -> None:
    """Apply the Tekton Pipelines release manifest."""
    console.print(Panel.fit("Installing Tekton Pipelines", style="bold blue"))
    sh.kubectl("apply", "--filename", dep_value("tekton_pipelines", "manifest"))
    console.print("[green]\u2705 Tekton Pipelines applied[/green]")


def install_ingress_nginx() -> None:
    """Apply the kind flavour of the ingress-nginx manifest."""
    console.print(Panel.fit("Installing ingress-nginx", style="bold blue"))
    sh.kubectl("apply", "-f", dep_value("ingress_nginx", "manifest"))
    console.print("[green]\u2705 ingress-nginx applied[/green]")


def install_infrastructure(env: EnvironmentDescriptor) -> None:
    """Install Tekton and ingress-nginx, then wait for both to become ready.

    Args:
        env: Resolved environment with wait bounds and poll interval.

    Raises:
        WaitTimeoutError: If either component is not ready in time.
    """
    install_tekton()
    install_ingress_nginx()

    console.print("[yellow]\u2139\ufe0f  Waiting for infrastructure...[/yellow]")
    interval = env.kind.poll_interval
    wait_for_pods(
        dep_value("tekton_pipelines", "namespace"),
        env.components.tekton_timeout,
        interval,
    )
    wait_for_pods(
        dep_value("ingress_nginx", "namespace"),
        env.components.ingress_timeout,
        interval,
        selector=dep_value("ingress_nginx", "selector"),
    )


# ============================================================================
# Operator
# ============================================================================

def _make_env(build: BuildPlatform) -> dict[str, str]:
    """Environment for make targets that build for the host platform."""
    return {
        **os.environ,
        "CONTAINER_TOOL": CONTAINER_TOOL,
        "BUILD_PLATFORM": build.platform,
        "ARCH": build.arch,
    }


def prepare_operator_namespace(comp_cfg: ComponentConfig) -> None:
    """Create the operator namespace and allow privileged pods in it.

    Build steps run privileged containers, so all pod-security modes are set
    to ``privileged``.
    """
    ensure_namespace(comp_cfg.operator_namespace)
    labels = [f"{POD_SECURITY_LABEL_PREFIX}/{mode}={POD_SECURITY_LEVEL}" for mode in POD_SECURITY_MODES]
    sh.kubectl("label", "namespace", comp_cfg.operator_namespace, *labels, "--overwrite")
    console.print(f"[green]\u2705 Namespace {comp_cfg.operator_namespace} allows privileged pods[/green]")


def build_operator_image(comp_cfg: ComponentConfig, build: BuildPlatform, operator_dir: Path) -> None:
    """Build the operator image for the host platform."""
    console.print(f"[yellow]\u2139\ufe0f  Building {comp_cfg.operator_image} for {build.platform}...[/yellow]")
    sh.make(MAKE_DOCKER_BUILD, f"IMG={comp_cfg.operator_image}", _cwd=str(operator_dir), _env=_make_env(build))


def load_operator_image(env: EnvironmentDescriptor) -> None:
    """Load the operator image straight into the kind nodes."""
    sh.kind("load", "docker-image", env.components.operator_image, "--name", env.kind.cluster_name)
    console.print(f"[green]\u2705 Loaded {env.components.operator_image} into kind[/green]")


def apply_sample_operator_config(operator_dir: Path) -> None:
    """Apply the sample OperatorConfig, which brings up the build API."""
    sh.kubectl("apply", "-f", str(operator_dir / REL_SAMPLE_OPERATOR_CONFIG))


def deploy_operator(env: EnvironmentDescriptor, operator_dir: Path) -> None:
    """Build, load, install, and deploy the operator and wait for it.

    Args:
        env: Resolved environment.
        operator_dir: Root of the operator source tree.

    Raises:
        sh.ErrorReturnCode: If any build or deploy command fails.
        WaitTimeoutError: If the controller or build API is not available in time.
    """
    console.print(Panel.fit("Building and deploying operator", style="bold blue"))
    comp_cfg = env.components
    make_env = _make_env(env.build)

    prepare_operator_namespace(comp_cfg)
    build_operator_image(comp_cfg, env.build, operator_dir)
    load_operator_image(env)

    console.print("[yellow]\u2139\ufe0f  Installing CRDs...[/yellow]")
    sh.make(MAKE_INSTALL, _cwd=str(operator_dir), _env=make_env)
    console.print("[yellow]\u2139\ufe0f  Building build client...[/yellow]")
    sh.make(MAKE_BUILD_CLIENT, _cwd=str(operator_dir), _env=make_env)
    console.print("[yellow]\u2139\ufe0f  Deploying operator...[/yellow]")
    sh.make(MAKE_DEPLOY, f"IMG={comp_cfg.operator_image}", _cwd=str(operator_dir), _env=make_env)

    wait_for_deployment(
        comp_cfg.operator_namespace,
        comp_cfg.controller_deployment,
        comp_cfg.controller_timeout,
        env.kind.poll_interval,
    )

    apply_sample_operator_config(operator_dir)
    wait_for_deployment(
        comp_cfg.operator_namespace,
        comp_cfg.api_deployment,
        comp_cfg.api_timeout,
        env.kind.poll_interval,
    )
    console.print("[green]\u2705 Operator deployed[/green]")
