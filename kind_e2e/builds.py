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

"""Build client runs and the E2E test suite."""

from __future__ import annotations

import os

import sh
from rich.panel import Panel

from kind_e2e import console
from kind_e2e.access import ClientAccess
from kind_e2e.config import EnvironmentDescriptor, RunFlags
from kind_e2e.constants import (
    ARTIFACT_DISK_TAG,
    ARTIFACT_REPOSITORY,
    ARTIFACT_TAG,
    CONTAINER_TOOL,
    DISK_FORMAT,
    DISK_TARGET,
    MAKE_TEST_E2E,
    REL_DISK_OUTPUT,
    REL_TEST_MANIFEST,
)


def build_client_invocations(env: EnvironmentDescriptor) -> list[list[str]]:
    """Arguments for the two client builds: a container push, then a qcow2 disk.

    Both push through the OpenShift-style registry route the shim resolves.
    """
    route = env.registry.cluster_route
    push = f"{route}/{ARTIFACT_REPOSITORY}:{ARTIFACT_TAG}"
    common = ["build", REL_TEST_MANIFEST, "--arch", env.build.arch, "--push", push]
    return [
        [*common, "--follow"],
        [
            *common,
            "--target", DISK_TARGET,
            "--disk",
            "--format", DISK_FORMAT,
            "--push-disk", f"{route}/{ARTIFACT_REPOSITORY}:{ARTIFACT_DISK_TAG}",
            "--output", f"./{REL_DISK_OUTPUT}",
            "--follow",
        ],
    ]


def run_builds(env: EnvironmentDescriptor, flags: RunFlags, access: ClientAccess) -> None:
    """Drive the build client against the forwarded build API.

    Raises:
        sh.ErrorReturnCode: If a build fails.
    """
    console.print(Panel.fit("Running builds", style="bold blue"))

    client = sh.Command(str(flags.client_path))
    client_env = {**os.environ, **access.as_env()}
    for args in build_client_invocations(env):
        client(*args, _cwd=str(flags.operator_dir), _env=client_env, _fg=True)
    console.print("[green]\u2705 Builds completed[/green]")


def run_e2e_tests(env: EnvironmentDescriptor, flags: RunFlags) -> None:
    """Run ``make test-e2e`` against the kind cluster."""
    console.print(Panel.fit("Running E2E tests", style="bold blue"))
    test_env = {**os.environ, "KIND_CLUSTER": env.kind.cluster_name, "CONTAINER_TOOL": CONTAINER_TOOL}
    sh.make(MAKE_TEST_E2E, _cwd=str(flags.operator_dir), _env=test_env, _fg=True)
    console.print("[green]\u2705 E2E tests complete[/green]")
