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

"""Utility functions for kubectl, manifests, and command checks."""

from __future__ import annotations

import json
import shlex
import subprocess
from typing import Any

import sh
import yaml


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def run_kubectl(args: list[str], timeout: int = 30) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Used where a non-zero exit is an expected outcome that must be told apart
    by its stderr (e.g. ``AlreadyExists``).

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def kubectl_json(*args: str) -> dict[str, Any]:
    """Run ``kubectl <args> -o json`` and parse the result.

    Raises:
        sh.ErrorReturnCode: If kubectl fails.
    """
    return json.loads(str(sh.kubectl(*args, "-o", "json")))


def apply_manifests(docs: list[dict[str, Any]]) -> None:
    """Apply Kubernetes objects through ``kubectl apply -f -``.

    Args:
        docs: Objects to apply, in order.
    """
    sh.kubectl("apply", "-f", "-", _in=yaml.safe_dump_all(docs, sort_keys=False))


def ensure_namespace(namespace: str) -> None:
    """Create a namespace unless it already exists.

    Raises:
        RuntimeError: If namespace creation fails for another reason.
    """
    ok, _, stderr = run_kubectl(["create", "namespace", namespace])
    if not ok and "AlreadyExists" not in stderr:
        raise RuntimeError(f"Failed to create namespace {namespace}: {stderr}")


def shell_join(args: list[str]) -> str:
    """Render an argument vector as a copy-pasteable shell command."""
    return shlex.join(args)
