"""Tests for exit status mapping."""

import pytest
import sh

from kind_e2e.errors import PatchIntegrityError, WaitTimeoutError, exit_status_for


class TestExitStatusFor:
    """Tests for exit_status_for."""

    def test_command_failure_keeps_exit_code(self):
        exc = sh.ErrorReturnCode_2("make deploy", b"", b"boom")

        assert exit_status_for(exc) == 2

    def test_command_killed_by_signal_reports_like_a_shell(self):
        exc = sh.SignalException_SIGKILL("make deploy", b"", b"")

        assert exit_status_for(exc) == 137

    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (SystemExit(3), 3),
            (SystemExit(None), 0),
            (SystemExit("message"), 1),
            (KeyboardInterrupt(), 130),
            (WaitTimeoutError("nodes", 60), 1),
            (PatchIntegrityError("nothing matched"), 1),
        ],
    )
    def test_other_exceptions(self, exc, status):
        assert exit_status_for(exc) == status


class TestErrorMessages:
    """Tests for error message formatting."""

    def test_wait_timeout_message(self):
        assert str(WaitTimeoutError("deployment/ado-build-api", 480.0)) == (
            "Timed out after 480s waiting for deployment/ado-build-api"
        )
