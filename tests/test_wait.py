"""Tests for the readiness poller and checks."""

from unittest.mock import patch

import pytest

from kind_e2e.errors import WaitTimeoutError
from kind_e2e.wait import (
    condition_is_true,
    deployment_available,
    nodes_ready,
    pods_ready,
    wait_until,
)


class FakeClock:
    """Monotonic clock advanced only by its own sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _ready(status="True"):
    return {"status": {"conditions": [{"type": "Ready", "status": status}]}}


class TestWaitUntil:
    """Tests for wait_until."""

    def test_returns_first_truthy_value(self):
        clock = FakeClock()
        results = iter(["", "", "10.89.0.7"])

        value = wait_until(
            lambda: next(results),
            timeout=30, interval=2, description="address",
            clock=clock, sleep=clock.sleep,
        )

        assert value == "10.89.0.7"
        assert clock.sleeps == [2, 2]

    def test_first_evaluation_is_immediate(self):
        clock = FakeClock()

        assert wait_until(lambda: True, timeout=5, interval=1, description="x",
                          clock=clock, sleep=clock.sleep) is True
        assert clock.sleeps == []

    def test_times_out(self):
        clock = FakeClock()
        calls = []

        def check():
            calls.append(clock.now)
            return False

        with pytest.raises(WaitTimeoutError, match="Timed out after 5s waiting for nodes") as excinfo:
            wait_until(check, timeout=5, interval=2, description="nodes",
                       clock=clock, sleep=clock.sleep)

        assert excinfo.value.timeout == 5
        assert calls == [0, 2, 4, 5]
        assert clock.now == 5

    def test_check_errors_propagate(self):
        clock = FakeClock()

        def check():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            wait_until(check, timeout=5, interval=1, description="x",
                       clock=clock, sleep=clock.sleep)
        assert clock.sleeps == []


class TestReadinessChecks:
    """Tests for the Kubernetes readiness checks."""

    def test_condition_is_true(self):
        assert condition_is_true(_ready(), "Ready") is True
        assert condition_is_true(_ready("False"), "Ready") is False
        assert condition_is_true({}, "Ready") is False

    def test_nodes_ready_requires_nodes(self):
        with patch("kind_e2e.wait.kubectl_json", return_value={"items": []}):
            assert nodes_ready() is False

    def test_nodes_ready_all_nodes(self):
        with patch("kind_e2e.wait.kubectl_json", return_value={"items": [_ready(), _ready("False")]}):
            assert nodes_ready() is False
        with patch("kind_e2e.wait.kubectl_json", return_value={"items": [_ready(), _ready()]}):
            assert nodes_ready() is True

    def test_pods_ready_ignores_completed_pods(self):
        completed = {"status": {"phase": "Succeeded", "conditions": [{"type": "Ready", "status": "False"}]}}
        with patch("kind_e2e.wait.kubectl_json", return_value={"items": [_ready(), completed]}) as mock_get:
            assert pods_ready("ingress-nginx", "app.kubernetes.io/component=controller") is True
        mock_get.assert_called_once_with(
            "get", "pods", "-n", "ingress-nginx", "-l", "app.kubernetes.io/component=controller",
        )

    def test_pods_ready_only_completed(self):
        completed = {"status": {"phase": "Succeeded"}}
        with patch("kind_e2e.wait.kubectl_json", return_value={"items": [completed]}):
            assert pods_ready("tekton-pipelines") is False

    def test_deployment_available(self):
        available = {"status": {"conditions": [{"type": "Available", "status": "True"}]}}
        with patch("kind_e2e.wait.kubectl_json", return_value=available) as mock_get:
            assert deployment_available("ns", "ado-build-api") is True
        mock_get.assert_called_once_with("get", "deployment", "ado-build-api", "-n", "ns")
