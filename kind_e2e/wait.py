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

"""Bounded readiness polling and the Kubernetes conditions it gates on."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, TypeVar

import sh
from tenacity import RetryCallState, RetryError, Retrying, retry_if_result

from kind_e2e import console, logger
from kind_e2e.errors import WaitTimeoutError
from kind_e2e.utils import kubectl_json

T = TypeVar("T")


def wait_until(
    check: Callable[[], T],
    *,
    timeout: float,
    interval: float,
    description: str,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Re-evaluate *check* every *interval* seconds until it returns a truthy value.

    The first evaluation happens immediately. Exceptions raised by *check*
    are not retried; they propagate to the caller.

    Args:
        check: Side-effect-free check of external state.
        timeout: Maximum seconds to wait, measured on *clock*.
        interval: Seconds between evaluations.
        description: What is being waited for, used in messages.
        clock: Monotonic clock.
        sleep: Sleep function paired with *clock*.

    Returns:
        The first truthy value returned by *check*.

    Raises:
        WaitTimeoutError: If *check* never returns a truthy value within *timeout*.
    """
    deadline = clock() + timeout

    def _past_deadline(retry_state: RetryCallState) -> bool:
        return clock() >= deadline

    def _next_wait(retry_state: RetryCallState) -> float:
        return max(0.0, min(interval, deadline - clock()))

    def _log_tick(retry_state: RetryCallState) -> None:
        logger.debug("Still waiting for %s (attempt %d)", description, retry_state.attempt_number)

    retrying = Retrying(
        sleep=sleep,
        stop=_past_deadline,
        wait=_next_wait,
        retry=retry_if_result(lambda value: not value),
        before_sleep=_log_tick,
    )
    try:
        return retrying(check)
    except RetryError:
        raise WaitTimeoutError(description, timeout) from None


# ============================================================================
# Readiness checks
# ============================================================================

def condition_is_true(obj: dict[str, Any], condition_type: str) -> bool:
    """Whether a Kubernetes object reports ``condition_type`` with status True."""
    for condition in obj.get("status", {}).get("conditions") or []:
        if condition.get("type") == condition_type:
            return condition.get("status") == "True"
    return False


def nodes_ready() -> bool:
    """Whether the cluster has nodes and all of them are Ready."""
    try:
        nodes = kubectl_json("get", "nodes").get("items", [])
    except sh.ErrorReturnCode:
        return False
    return bool(nodes) and all(condition_is_true(node, "Ready") for node in nodes)


def pods_ready(namespace: str, selector: str | None = None) -> bool:
    """Whether a namespace has running pods and all of them are Ready.

    Pods that ran to completion (e.g. admission webhook jobs) are ignored.
    """
    args = ["get", "pods", "-n", namespace]
    if selector:
        args += ["-l", selector]
    try:
        pods = kubectl_json(*args).get("items", [])
    except sh.ErrorReturnCode:
        return False
    live = [pod for pod in pods if pod.get("status", {}).get("phase") != "Succeeded"]
    return bool(live) and all(condition_is_true(pod, "Ready") for pod in live)


def deployment_available(namespace: str, name: str) -> bool:
    """Whether a deployment exists and reports Available."""
    try:
        deployment = kubectl_json("get", "deployment", name, "-n", namespace)
    except sh.ErrorReturnCode:
        return False
    return condition_is_true(deployment, "Available")


# ============================================================================
# Named waits
# ============================================================================

def wait_for_nodes(timeout: float, interval: float) -> None:
    """Wait for all nodes to be ready."""
    console.print("[yellow]\u2139\ufe0f  Waiting for all nodes to be ready...[/yellow]")
    wait_until(nodes_ready, timeout=timeout, interval=interval, description="nodes to be Ready")
    console.print("[green]\u2705 All nodes are ready[/green]")


def wait_for_pods(namespace: str, timeout: float, interval: float, selector: str | None = None) -> None:
    """Wait for the pods of a namespace (optionally filtered by *selector*) to be ready."""
    target = f"pods in {namespace}" + (f" ({selector})" if selector else "")
    console.print(f"[yellow]\u2139\ufe0f  Waiting for {target} to be ready...[/yellow]")
    wait_until(
        lambda: pods_ready(namespace, selector),
        timeout=timeout,
        interval=interval,
        description=f"{target} to be Ready",
    )
    console.print(f"[green]\u2705 All {target} are ready[/green]")


def wait_for_deployment(namespace: str, name: str, timeout: float, interval: float) -> None:
    """Wait for a deployment to report Available."""
    console.print(f"[yellow]\u2139\ufe0f  Waiting for deployment/{name} to be available...[/yellow]")
    wait_until(
        lambda: deployment_available(namespace, name),
        timeout=timeout,
        interval=interval,
        description=f"deployment/{name} in {namespace} to be Available",
    )
    console.print(f"[green]\u2705 deployment/{name} is available[/green]")
