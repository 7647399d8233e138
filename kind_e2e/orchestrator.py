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

"""Step plan and the driver that composes domain modules into a run."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field

import docker
from rich.panel import Panel

from kind_e2e import console, logger
from kind_e2e.access import ClientAccess, port_forward_pattern, provision_access, stop_port_forward
from kind_e2e.builds import run_builds, run_e2e_tests
from kind_e2e.cluster import (
    annotate_nodes_with_registry,
    delete_cluster,
    ensure_cluster,
    join_registry_network,
    wait_nodes_ready,
)
from kind_e2e.components import deploy_operator, install_infrastructure
from kind_e2e.config import EnvironmentDescriptor, RunFlags
from kind_e2e.constants import (
    LOCAL_REGISTRY_HOSTING_CONFIGMAP,
    NS_KUBE_PUBLIC,
    OPERATOR_CONFIG_KIND,
    OPERATOR_CONFIG_NAME,
    PUSH_TASK_KIND,
    PUSH_TASK_NAME,
    dep_value,
)
from kind_e2e.errors import PlanError
from kind_e2e.hosts import (
    ensure_host_resolution,
    ensure_insecure_registry_config,
    remove_host_resolution,
    remove_insecure_registry_config,
)
from kind_e2e.patches import apply_runtime_patches
from kind_e2e.registry import ensure_registry, remove_registry
from kind_e2e.shim import apply_registry_shim
from kind_e2e.teardown import (
    ProvisionedResource,
    TeardownAction,
    TeardownStack,
    cleanup_on_exit,
)
from kind_e2e.utils import require_command

PREREQUISITES = ("kind", "kubectl", "docker", "make", "pkill")


# ============================================================================
# Run context and steps
# ============================================================================

@dataclass
class RunContext:
    """State threaded through every step of a run.

    Attributes:
        env: Immutable environment descriptor.
        flags: Run inputs and optional steps.
        docker_client: Container engine client.
        registry_address: Registry address written into the shim, once known.
        port_forward: Background build API port-forward, once started.
        access: Client connection settings, once minted.
        resources: Side effects created so far.
    """

    env: EnvironmentDescriptor
    flags: RunFlags
    docker_client: docker.DockerClient
    registry_address: str | None = None
    port_forward: subprocess.Popen | None = None
    access: ClientAccess | None = None
    resources: list[ProvisionedResource] = field(default_factory=list)

    def record(self, step: str, kind: str, name: str) -> None:
        self.resources.append(ProvisionedResource(kind=kind, name=name, step=step))


@dataclass(frozen=True)
class Step:
    """A named provisioning step.

    Attributes:
        name: Unique step name.
        title: Heading printed when the step starts.
        action: Performs the step.
        requires: Names of steps that must run before this one.
        teardown: Builds the actions that undo this step.
    """

    name: str
    title: str
    action: Callable[[RunContext], None]
    requires: tuple[str, ...] = ()
    teardown: Callable[[RunContext], list[TeardownAction]] | None = None


# ============================================================================
# Step actions
# ============================================================================

def _check_prerequisites(ctx: RunContext) -> None:
    for cmd in PREREQUISITES:
        require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


def _setup_registry(ctx: RunContext) -> None:
    ensure_registry(ctx.docker_client, ctx.env.registry)
    ctx.record("registry", "container", ctx.env.registry.registry_name)


def _patch_host_resolution(ctx: RunContext) -> None:
    registry_cfg = ctx.env.registry
    ensure_host_resolution(registry_cfg.hosts_file, registry_cfg.registry_host)
    ctx.record("host-resolution", "hosts-entry", f"{registry_cfg.hosts_file}: {registry_cfg.registry_host}")
    ensure_insecure_registry_config(registry_cfg.insecure_registry_conf, registry_cfg.cluster_route)
    ctx.record("host-resolution", "file", str(registry_cfg.insecure_registry_conf))


def _create_cluster(ctx: RunContext) -> None:
    ensure_cluster(ctx.env.kind)
    ctx.record("cluster", "cluster", ctx.env.kind.cluster_name)


def _wire_registry_network(ctx: RunContext) -> None:
    kind_cfg, registry_cfg = ctx.env.kind, ctx.env.registry
    join_registry_network(ctx.docker_client, registry_cfg, kind_cfg.network)
    ctx.record("registry-network", "network-attachment", f"{registry_cfg.registry_name} -> {kind_cfg.network}")
    for node in annotate_nodes_with_registry(kind_cfg, registry_cfg):
        ctx.record("registry-network", "node-annotation", node)
    wait_nodes_ready(kind_cfg)


def _apply_registry_shim(ctx: RunContext) -> None:
    registry_cfg = ctx.env.registry
    ctx.registry_address = apply_registry_shim(ctx.docker_client, registry_cfg, ctx.env.kind.network)
    ctx.record("registry-shim", "configmap", f"{NS_KUBE_PUBLIC}/{LOCAL_REGISTRY_HOSTING_CONFIGMAP}")
    ctx.record("registry-shim", "namespace", registry_cfg.shim_namespace)
    ctx.record("registry-shim", "service", f"{registry_cfg.shim_namespace}/{registry_cfg.shim_service}")
    ctx.record("registry-shim", "endpoints", f"{registry_cfg.shim_namespace}/{registry_cfg.shim_service}")


def _install_infrastructure(ctx: RunContext) -> None:
    install_infrastructure(ctx.env)
    ctx.record("infrastructure", "manifest", dep_value("tekton_pipelines", "manifest"))
    ctx.record("infrastructure", "manifest", dep_value("ingress_nginx", "manifest"))


def _deploy_operator(ctx: RunContext) -> None:
    comp_cfg = ctx.env.components
    deploy_operator(ctx.env, ctx.flags.operator_dir)
    ctx.record("operator", "namespace", comp_cfg.operator_namespace)
    ctx.record("operator", "image", comp_cfg.operator_image)
    ctx.record("operator", "deployment", f"{comp_cfg.operator_namespace}/{comp_cfg.controller_deployment}")
    ctx.record("operator", "deployment", f"{comp_cfg.operator_namespace}/{comp_cfg.api_deployment}")


def _apply_runtime_patches(ctx: RunContext) -> None:
    ns = ctx.env.components.operator_namespace
    apply_runtime_patches(ctx.env)
    ctx.record("runtime-patches", OPERATOR_CONFIG_KIND, f"{ns}/{OPERATOR_CONFIG_NAME}")
    ctx.record("runtime-patches", PUSH_TASK_KIND, f"{ns}/{PUSH_TASK_NAME}")


def _provision_access(ctx: RunContext) -> None:
    comp_cfg = ctx.env.components
    ctx.port_forward, ctx.access = provision_access(comp_cfg)
    ctx.record("access", "process", f"port-forward pid {ctx.port_forward.pid}")
    ctx.record("access", "serviceaccount", f"{comp_cfg.operator_namespace}/{comp_cfg.service_account}")
    console.print(Panel.fit(
        "Cluster Ready!\n"
        f"Registry (Host): {ctx.env.registry.host_endpoint}\n"
        f"Registry (Cluster): {ctx.env.registry.cluster_route}",
        style="bold green",
    ))


def _run_builds(ctx: RunContext) -> None:
    if ctx.access is None:
        raise PlanError("builds need client access; the access step has not run")
    run_builds(ctx.env, ctx.flags, ctx.access)


def _run_e2e_tests(ctx: RunContext) -> None:
    run_e2e_tests(ctx.env, ctx.flags)


# ============================================================================
# Teardown factories
# ============================================================================

def _registry_teardown(ctx: RunContext) -> list[TeardownAction]:
    registry_cfg = ctx.env.registry
    return [TeardownAction(
        resource=f"registry container {registry_cfg.registry_name}",
        manual_command=f"docker rm -f {registry_cfg.registry_name}",
        undo=lambda: remove_registry(ctx.docker_client, registry_cfg),
    )]


def _host_resolution_teardown(ctx: RunContext) -> list[TeardownAction]:
    registry_cfg = ctx.env.registry
    return [
        TeardownAction(
            resource=f"{registry_cfg.registry_host} entry in {registry_cfg.hosts_file}",
            manual_command=f"sed -i '/{registry_cfg.registry_host}/d' {registry_cfg.hosts_file}",
            undo=lambda: remove_host_resolution(registry_cfg.hosts_file, registry_cfg.registry_host),
        ),
        TeardownAction(
            resource=f"insecure registry config {registry_cfg.insecure_registry_conf}",
            manual_command=f"rm -f {registry_cfg.insecure_registry_conf}",
            undo=lambda: remove_insecure_registry_config(registry_cfg.insecure_registry_conf),
        ),
    ]


def _cluster_teardown(ctx: RunContext) -> list[TeardownAction]:
    kind_cfg = ctx.env.kind
    return [TeardownAction(
        resource=f"kind cluster {kind_cfg.cluster_name}",
        manual_command=f"kind delete cluster --name {kind_cfg.cluster_name}",
        undo=lambda: delete_cluster(kind_cfg),
    )]


def _access_teardown(ctx: RunContext) -> list[TeardownAction]:
    comp_cfg = ctx.env.components
    if ctx.port_forward is not None:
        manual = f"kill {ctx.port_forward.pid} 2>/dev/null"
    else:
        manual = f"pkill -f {shlex.quote(port_forward_pattern(comp_cfg))}"
    return [TeardownAction(
        resource="build API port-forward",
        manual_command=manual,
        undo=lambda: stop_port_forward(comp_cfg, ctx.port_forward),
    )]


# ============================================================================
# Plan
# ============================================================================

def build_plan(flags: RunFlags) -> list[Step]:
    """Return the ordered steps for a run.

    Args:
        flags: Run flags selecting optional steps.

    Returns:
        Steps in execution order.
    """
    steps = [
        Step("prerequisites", "Checking prerequisites", _check_prerequisites),
        Step("registry", "Setting up local registry", _setup_registry,
             requires=("prerequisites",), teardown=_registry_teardown),
        Step("host-resolution", "Configuring host registry access", _patch_host_resolution,
             requires=("registry",), teardown=_host_resolution_teardown),
        Step("cluster", "Creating kind cluster", _create_cluster,
             requires=("prerequisites",), teardown=_cluster_teardown),
        Step("registry-network", "Connecting registry to the cluster", _wire_registry_network,
             requires=("registry", "cluster")),
        Step("registry-shim", "Configuring internal registry DNS", _apply_registry_shim,
             requires=("registry-network",)),
        Step("infrastructure", "Installing infrastructure", _install_infrastructure,
             requires=("cluster",)),
        Step("operator", "Building and deploying operator", _deploy_operator,
             requires=("infrastructure",)),
        Step("runtime-patches", "Applying runtime patches", _apply_runtime_patches,
             requires=("operator", "registry-shim")),
        Step("access", "Preparing client access", _provision_access,
             requires=("operator",), teardown=_access_teardown),
    ]
    if flags.run_builds:
        steps.append(Step("builds", "Running builds", _run_builds,
                          requires=("access", "runtime-patches", "host-resolution")))
    if flags.run_e2e_tests:
        steps.append(Step("e2e-tests", "Running E2E tests", _run_e2e_tests,
                          requires=("runtime-patches",)))
    return steps


def validate_plan(steps: list[Step]) -> None:
    """Check that step names are unique and every requirement runs earlier.

    Raises:
        PlanError: If the plan is malformed.
    """
    seen: set[str] = set()
    for step in steps:
        if step.name in seen:
            raise PlanError(f"Duplicate step '{step.name}'")
        missing = [req for req in step.requires if req not in seen]
        if missing:
            raise PlanError(f"Step '{step.name}' requires {', '.join(missing)}, which must run before it")
        seen.add(step.name)


def teardown_actions(steps: list[Step], ctx: RunContext) -> list[TeardownAction]:
    """Every teardown action the plan can produce, in provisioning order."""
    return [action for step in steps if step.teardown for action in step.teardown(ctx)]


def run_plan(ctx: RunContext, steps: list[Step], stack: TeardownStack) -> None:
    """Run *steps* in order, pushing each finished step's teardown onto *stack*.

    Raises:
        PlanError: If the plan is malformed.
        Exception: Whatever the failing step raised; later steps do not run.
    """
    validate_plan(steps)
    total = len(steps)
    for index, step in enumerate(steps, start=1):
        logger.info("[%d/%d] %s (%s)", index, total, step.title, step.name)
        step.action(ctx)
        if step.teardown is not None:
            stack.push(*step.teardown(ctx))


# ============================================================================
# Public API
# ============================================================================

def run_environment(
    env: EnvironmentDescriptor,
    flags: RunFlags,
    docker_client: docker.DockerClient | None = None,
) -> RunContext:
    """Provision the environment, run the requested workloads, and clean up.

    On success everything provisioned is torn down. On failure nothing is
    removed and the manual cleanup commands are printed before the error
    propagates.

    Args:
        env: Resolved environment descriptor.
        flags: Run flags.
        docker_client: Docker client to use, or None to connect from the environment.

    Returns:
        The final run context.
    """
    plan = build_plan(flags)
    validate_plan(plan)

    client = docker_client or docker.from_env()
    ctx = RunContext(env=env, flags=flags, docker_client=client)
    stack = TeardownStack()
    try:
        with cleanup_on_exit(stack, lambda: teardown_actions(plan, ctx), ctx.resources):
            run_plan(ctx, plan, stack)
    finally:
        if docker_client is None:
            client.close()
    return ctx


def teardown_environment(
    env: EnvironmentDescriptor,
    flags: RunFlags,
    *,
    print_only: bool = False,
    docker_client: docker.DockerClient | None = None,
) -> list[TeardownAction]:
    """Remove everything a run can create, without a live run context.

    Args:
        env: Resolved environment descriptor.
        flags: Run flags.
        print_only: Only print the removal commands.
        docker_client: Docker client to use, or None to connect from the environment.

    Returns:
        The actions that failed.
    """
    client = docker_client or docker.from_env()
    try:
        ctx = RunContext(env=env, flags=flags, docker_client=client)
        stack = TeardownStack()
        stack.push(*teardown_actions(build_plan(flags), ctx))
        if print_only:
            console.print("To clean up, run:")
            for action in stack.actions:
                console.print(f"  {action.manual_command}", markup=False)
            return []
        return stack.run_all()
    finally:
        if docker_client is None:
            client.close()
