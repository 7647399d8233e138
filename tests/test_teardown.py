"""Tests for the cleanup policy."""

from unittest.mock import MagicMock, patch

import pytest

from kind_e2e.teardown import (
    ProvisionedResource,
    TeardownAction,
    TeardownStack,
    cleanup_on_exit,
    finalize,
)


def _action(name, log, fail=False):
    def undo():
        log.append(name)
        if fail:
            raise RuntimeError(f"{name} failed")
    return TeardownAction(resource=name, manual_command=f"rm {name}", undo=undo)


def _printed(mock_console):
    return [str(c.args[0]) for c in mock_console.print.call_args_list if c.args]


@pytest.fixture
def mock_console():
    with patch("kind_e2e.teardown.console") as console:
        yield console


class TestTeardownStack:
    """Tests for TeardownStack.run_all."""

    def test_runs_newest_first(self, mock_console):
        log = []
        stack = TeardownStack()
        stack.push(_action("registry", log))
        stack.push(_action("hosts", log), _action("conf", log))

        assert stack.run_all() == []
        assert log == ["conf", "hosts", "registry"]

    def test_failure_does_not_short_circuit(self, mock_console):
        log = []
        failing = _action("cluster", log, fail=True)
        stack = TeardownStack()
        stack.push(_action("registry", log), failing, _action("port-forward", log))

        assert stack.run_all() == [failing]
        assert log == ["port-forward", "cluster", "registry"]


class TestFinalize:
    """Tests for finalize."""

    def test_failure_keeps_everything_and_prints_all_commands(self, mock_console):
        log = []
        stack = TeardownStack()
        stack.push(_action("registry", log))
        manual = [_action("registry", log), _action("hosts", log), _action("cluster", log)]
        resources = [ProvisionedResource("container", "kind-registry", "registry")]

        assert finalize(2, stack, manual, resources) == []

        assert log == []
        printed = _printed(mock_console)
        assert any("Keeping cluster for debugging" in line for line in printed)
        for command in ("rm registry", "rm hosts", "rm cluster"):
            assert f"  {command}" in printed
        assert "  [registry] container kind-registry" in printed

    def test_success_runs_teardown(self, mock_console):
        log = []
        stack = TeardownStack()
        stack.push(_action("registry", log))

        finalize(0, stack, [])

        assert log == ["registry"]


class TestCleanupOnExit:
    """Tests for cleanup_on_exit."""

    def test_success_tears_down(self, mock_console):
        log = []
        stack = TeardownStack()
        manual = MagicMock(return_value=[])

        with cleanup_on_exit(stack, manual):
            stack.push(_action("registry", log))

        assert log == ["registry"]

    def test_failure_reraises_without_teardown(self, mock_console):
        log = []
        stack = TeardownStack()
        manual = MagicMock(return_value=[_action("cluster", log)])

        with pytest.raises(RuntimeError, match="step failed"):
            with cleanup_on_exit(stack, manual):
                stack.push(_action("registry", log))
                raise RuntimeError("step failed")

        assert log == []
        manual.assert_called_once_with()
        assert "  rm cluster" in _printed(mock_console)

    def test_keyboard_interrupt_counts_as_failure(self, mock_console):
        log = []
        stack = TeardownStack()
        stack.push(_action("registry", log))

        with pytest.raises(KeyboardInterrupt):
            with cleanup_on_exit(stack, lambda: []):
                raise KeyboardInterrupt

        assert log == []

    def test_clean_system_exit_tears_down(self, mock_console):
        log = []
        stack = TeardownStack()
        stack.push(_action("registry", log))

        with pytest.raises(SystemExit):
            with cleanup_on_exit(stack, lambda: []):
                raise SystemExit(0)

        assert log == ["registry"]
