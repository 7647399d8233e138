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

"""Post-deploy patches to operator-managed objects.

Every patch first marks its target unmanaged so the operator's reconciler
leaves the mutation in place. The marker must land before the mutation;
written afterwards, a reconcile in between can silently revert the patch.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import sh
from rich.panel import Panel

from kind_e2e import console, logger
from kind_e2e.config import ComponentConfig, EnvironmentDescriptor, RegistryConfig
from kind_e2e.constants import (
    OPERATOR_CONFIG_KIND,
    OPERATOR_CONFIG_NAME,
    PUSH_COMMAND,
    PUSH_COMMAND_PLAIN_HTTP,
    PUSH_TASK_KIND,
    PUSH_TASK_NAME,
    UNMANAGED_ANNOTATION,
)
from kind_e2e.errors import PatchIntegrityError
from kind_e2e.utils import kubectl_json


@dataclass(frozen=True)
class PatchRecord:
    """Identity of an object patched out-of-band.

    Attributes:
        kind: Resource kind as kubectl accepts it.
        name: Object name.
        namespace: Object namespace.
    """

    kind: str
    name: str
    namespace: str

    def mark_unmanaged(self) -> None:
        """Annotate the object so the operator stops reconciling it."""
        sh.kubectl(
            "annotate", self.kind, self.name,
            "-n", self.namespace,
            f"{UNMANAGED_ANNOTATION}=true",
            "--overwrite",
        )


# ============================================================================
# Script transforms
# ============================================================================

class ScriptTransform(ABC):
    """Rewrites an embedded step script."""

    @abstractmethod
    def apply(self, script: str) -> str:
        """Return the rewritten script."""

    @abstractmethod
    def is_applied(self, script: str) -> bool:
        """Whether *script* already carries the rewrite."""


class LiteralSubstitution(ScriptTransform):
    """Replace every occurrence of a literal with another.

    When *new* extends *old* (e.g. adding a flag after a command), occurrences
    already followed by the extension are left alone, so applying twice is a
    no-op.
    """

    def __init__(self, old: str, new: str) -> None:
        self.old = old
        self.new = new
        pattern = re.escape(old)
        if new.startswith(old) and new != old:
            pattern += f"(?!{re.escape(new[len(old):])})"
        self._pattern = re.compile(pattern)

    def apply(self, script: str) -> str:
        return self._pattern.sub(lambda _: self.new, script)

    def is_applied(self, script: str) -> bool:
        return self.new in script and self._pattern.search(script) is None

    def __repr__(self) -> str:
        return f"LiteralSubstitution({self.old!r} -> {self.new!r})"


# ============================================================================
# Patch application
# ============================================================================

def apply_merge_patch(record: PatchRecord, body: dict[str, Any]) -> None:
    """Mark *record* unmanaged, then merge-patch it with *body*."""
    record.mark_unmanaged()
    sh.kubectl(
        "patch", record.kind, record.name,
        "-n", record.namespace,
        "--type=merge",
        "-p", json.dumps(body),
    )


def apply_script_transform(
    record: PatchRecord,
    transform: ScriptTransform,
    *,
    step_index: int = 0,
    strict: bool = True,
) -> bool:
    """Mark a Tekton Task unmanaged, rewrite one step's script, and replace the Task.

    Args:
        record: The Task to patch.
        transform: Rewrite applied to the step's ``script`` field.
        step_index: Index of the step in ``spec.steps``.
        strict: Raise when the transform changes nothing and the script is
            not already patched; otherwise only warn.

    Returns:
        True if the Task was replaced.

    Raises:
        PatchIntegrityError: If *strict* and the transform found nothing to change.
    """
    record.mark_unmanaged()
    task = kubectl_json("get", record.kind, record.name, "-n", record.namespace)
    step = task["spec"]["steps"][step_index]
    script = step.get("script", "")
    patched = transform.apply(script)

    if patched == script:
        if transform.is_applied(script):
            console.print(f"[yellow]   {record.kind}/{record.name} already patched[/yellow]")
            return False
        message = f"{transform!r} matched nothing in {record.kind}/{record.name} step {step_index}"
        if strict:
            raise PatchIntegrityError(message)
        logger.warning(message)
        console.print(f"[yellow]\u26a0\ufe0f  {message}[/yellow]")
        return False

    step["script"] = patched
    sh.kubectl("replace", "-f", "-", _in=json.dumps(task))
    return True


def operator_config_record(comp_cfg: ComponentConfig) -> PatchRecord:
    """The cluster-wide OperatorConfig object."""
    return PatchRecord(OPERATOR_CONFIG_KIND, OPERATOR_CONFIG_NAME, comp_cfg.operator_namespace)


def push_task_record(comp_cfg: ComponentConfig) -> PatchRecord:
    """The Tekton Task that pushes build artifacts."""
    return PatchRecord(PUSH_TASK_KIND, PUSH_TASK_NAME, comp_cfg.operator_namespace)


def registry_route_patch(registry_cfg: RegistryConfig) -> dict[str, Any]:
    """Merge patch pointing OS builds at the shimmed registry route."""
    return {"spec": {"osBuilds": {"clusterRegistryRoute": registry_cfg.cluster_route}}}


def apply_runtime_patches(env: EnvironmentDescriptor) -> None:
    """Point the operator at the shimmed registry and force plain-HTTP pushes.

    Args:
        env: Resolved environment.
    """
    console.print(Panel.fit("Applying runtime patches", style="bold blue"))
    comp_cfg = env.components

    apply_merge_patch(operator_config_record(comp_cfg), registry_route_patch(env.registry))
    console.print(f"[green]\u2705 OperatorConfig registry route set to {env.registry.cluster_route}[/green]")

    replaced = apply_script_transform(
        push_task_record(comp_cfg),
        LiteralSubstitution(PUSH_COMMAND, PUSH_COMMAND_PLAIN_HTTP),
        strict=comp_cfg.strict_script_patch,
    )
    if replaced:
        console.print(f"[green]\u2705 {PUSH_TASK_KIND}/{PUSH_TASK_NAME} pushes over plain HTTP[/green]")
