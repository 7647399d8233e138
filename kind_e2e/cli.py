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

"""Typer application for the kind E2E environment."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer

from kind_e2e import console
from kind_e2e.config import RunFlags, display_config, resolve_environment, validate_flags
from kind_e2e.constants import REL_CLIENT_BIN
from kind_e2e.errors import exit_status_for
from kind_e2e.orchestrator import run_environment, teardown_environment

app = typer.Typer(help="Ephemeral kind environment for automotive-dev-operator E2E testing.")


@app.callback()
def main() -> None:
    """Ephemeral kind environment for automotive-dev-operator E2E testing.

    Environment Variables:
        All configuration can be overridden via E2E_* environment variables,
        e.g. E2E_CLUSTER_NAME, E2E_REGISTRY_PORT, E2E_OPERATOR_NAMESPACE,
        E2E_STRICT_SCRIPT_PATCH.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(exc: BaseException) -> None:
    console.print(f"[red]\u274c {exc}[/red]")
    sys.exit(exit_status_for(exc))


@app.command()
def run(
    operator_dir: Path = typer.Option(
        Path("."), "--operator-dir", help="Operator source tree holding the Makefile"),
    client_bin: Path | None = typer.Option(
        None, "--client-bin", help=f"Build client binary (default: <operator-dir>/{REL_CLIENT_BIN})"),
    skip_builds: bool = typer.Option(
        False, "--skip-builds", help="Stop after provisioning; do not run the build client"),
    run_e2e_tests: bool = typer.Option(
        False, "--run-e2e-tests", help="Run make test-e2e after the builds"),
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster name (overrides E2E_CLUSTER_NAME)"),
    registry_port: int | None = typer.Option(
        None, "--registry-port", help="Host registry port (overrides E2E_REGISTRY_PORT)"),
    host_arch: str | None = typer.Option(
        None, "--host-arch", help="Host architecture (default: detected)"),
) -> None:
    """Provision the environment, run builds, and tear it down.

    On failure the cluster is kept for debugging and the cleanup commands
    are printed.
    """
    operator_dir = operator_dir.resolve()
    validate_flags(operator_dir, skip_builds, client_bin)
    flags = RunFlags(
        operator_dir=operator_dir,
        client_bin=client_bin if client_bin is not None else Path(REL_CLIENT_BIN),
        run_builds=not skip_builds,
        run_e2e_tests=run_e2e_tests,
    )

    try:
        env = resolve_environment(cluster_name=cluster_name, registry_port=registry_port, host_arch=host_arch)
        display_config(env, flags)
        run_environment(env, flags)
    except (Exception, KeyboardInterrupt) as e:
        _fail(e)
    console.print("[green]\u2705 E2E run complete[/green]")


@app.command()
def teardown(
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster name (overrides E2E_CLUSTER_NAME)"),
    registry_port: int | None = typer.Option(
        None, "--registry-port", help="Host registry port (overrides E2E_REGISTRY_PORT)"),
    print_only: bool = typer.Option(
        False, "--print-only", help="Print the cleanup commands instead of running them"),
) -> None:
    """Remove everything a run can create, e.g. after a failed run."""
    try:
        env = resolve_environment(cluster_name=cluster_name, registry_port=registry_port, resolve_platform=False)
        failed = teardown_environment(env, RunFlags(operator_dir=Path(".")), print_only=print_only)
    except Exception as e:
        _fail(e)
    if failed:
        sys.exit(1)


@app.command("show-config")
def show_config(
    operator_dir: Path = typer.Option(
        Path("."), "--operator-dir", help="Operator source tree holding the Makefile"),
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster name (overrides E2E_CLUSTER_NAME)"),
    registry_port: int | None = typer.Option(
        None, "--registry-port", help="Host registry port (overrides E2E_REGISTRY_PORT)"),
    host_arch: str | None = typer.Option(
        None, "--host-arch", help="Host architecture (default: detected)"),
) -> None:
    """Print the resolved configuration and exit."""
    try:
        env = resolve_environment(cluster_name=cluster_name, registry_port=registry_port, host_arch=host_arch)
    except Exception as e:
        _fail(e)
    display_config(env, RunFlags(operator_dir=operator_dir.resolve()))


if __name__ == "__main__":
    app()
