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

"""Teardown actions and the exit-status driven cleanup policy.

A successful run removes everything it provisioned. A failed run removes
nothing and prints the commands that would, so the cluster can be inspected
first.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from kind_e2e import console, logger
from kind_e2e.errors import exit_status_for


@dataclass(frozen=True)
class TeardownAction:
    """How to remove one provisioned resource.

    Attributes:
        resource: Human-readable resource description.
        manual_command: Shell command a human can run to remove it.
        undo: Removes the resource. Expected to tolerate an already-missing resource.
    """

    resource: str
    manual_command: str
    undo: Callable[[], None]


@dataclass(frozen=True)
class ProvisionedResource:
    """A side effect created by a run, tagged with the step that created it."""

    kind: str
    name: str
    step: str


class TeardownStack:
    """Teardown actions collected in provisioning order."""

    def __init__(self) -> None:
        self._actions: list[TeardownAction] = []

    def push(self, *actions: TeardownAction) -> None:
        self._actions.extend(actions)

    @property
    def actions(self) -> list[TeardownAction]:
        return list(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def run_all(self) -> list[TeardownAction]:
        """Run every action, newest first, continuing past failures.

        Returns:
            The actions that failed.
        """
        console.print("\n[yellow]Cleaning up...[/yellow]")
        failed: list[TeardownAction] = []
        for action in reversed(self._actions):
            try:
                action.undo()
            except Exception as exc:
                logger.warning("Cleanup of %s failed: %s", action.resource, exc)
                console.print(f"[yellow]\u26a0\ufe0f  Could not remove {action.resource}: {exc}[/yellow]")
                failed.append(action)
        if failed:
            console.print(f"[yellow]Cleanup finished with {len(failed)} failure(s).[/yellow]")
        else:
            console.print("[green]\u2705 Cleanup complete.[/green]")
        return failed


def print_manual_cleanup(
    actions: Sequence[TeardownAction],
    resources: Sequence[ProvisionedResource] = (),
) -> None:
    """Print the commands that remove every resource the environment can create."""
    console.print("\n[red]!!! Run failed. Keeping cluster for debugging. !!![/red]")
    if resources:
        console.print("Provisioned before the failure:")
        for res in resources:
            console.print(f"  [{res.step}] {res.kind} {res.name}", markup=False)
    console.print("To clean up, run:")
    for action in actions:
        console.print(f"  {action.manual_command}", markup=False)


def finalize(
    exit_status: int,
    stack: TeardownStack,
    manual_actions: Sequence[TeardownAction],
    resources: Sequence[ProvisionedResource] = (),
) -> list[TeardownAction]:
    """Apply the cleanup policy for *exit_status*.

    Args:
        exit_status: Status the process is about to exit with.
        stack: Actions collected from the steps that completed.
        manual_actions: Complete set of actions to print on failure.
        resources: Resources recorded so far, printed on failure.

    Returns:
        Actions that failed during a success teardown; empty on failure.
    """
    if exit_status != 0:
        print_manual_cleanup(manual_actions, resources)
        return []
    return stack.run_all()


@contextmanager
def cleanup_on_exit(
    stack: TeardownStack,
    manual_actions: Callable[[], Sequence[TeardownAction]],
    resources: Sequence[ProvisionedResource] = (),
) -> Iterator[TeardownStack]:
    """Run :func:`finalize` exactly once when the block exits, however it exits.

    Exceptions are re-raised after the failure branch has printed its
    instructions.
    """
    try:
        yield stack
    except BaseException as exc:
        finalize(exit_status_for(exc), stack, manual_actions(), resources)
        raise
    else:
        finalize(0, stack, manual_actions(), resources)
