"""Tests for the Typer application."""

from unittest.mock import patch

from typer.testing import CliRunner

from kind_e2e.cli import app
from kind_e2e.errors import WaitTimeoutError

runner = CliRunner()


def _operator_dir(tmp_path):
    (tmp_path / "Makefile").write_text("all:\n")
    return tmp_path


class TestRunCommand:
    """Tests for the run command."""

    def test_missing_makefile_is_a_usage_error(self, tmp_path):
        with patch("kind_e2e.cli.run_environment") as mock_run:
            result = runner.invoke(app, ["run", "--operator-dir", str(tmp_path), "--host-arch", "x86_64"])

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_flags_reach_the_run(self, tmp_path):
        operator_dir = _operator_dir(tmp_path)
        with patch("kind_e2e.cli.run_environment") as mock_run:
            result = runner.invoke(app, [
                "run", "--operator-dir", str(operator_dir), "--host-arch", "aarch64",
                "--skip-builds", "--run-e2e-tests", "--cluster-name", "ci",
            ])

        assert result.exit_code == 0
        env, flags = mock_run.call_args.args
        assert env.kind.cluster_name == "ci"
        assert env.build.arch == "arm64"
        assert flags.operator_dir == operator_dir.resolve()
        assert flags.run_builds is False
        assert flags.run_e2e_tests is True

    def test_failure_sets_exit_status(self, tmp_path):
        operator_dir = _operator_dir(tmp_path)
        with patch("kind_e2e.cli.run_environment", side_effect=WaitTimeoutError("nodes", 60)):
            result = runner.invoke(app, ["run", "--operator-dir", str(operator_dir), "--host-arch", "x86_64"])

        assert result.exit_code == 1

    def test_unsupported_architecture(self, tmp_path):
        operator_dir = _operator_dir(tmp_path)
        with patch("kind_e2e.cli.run_environment") as mock_run:
            result = runner.invoke(app, ["run", "--operator-dir", str(operator_dir), "--host-arch", "riscv64"])

        assert result.exit_code == 1
        mock_run.assert_not_called()


class TestTeardownCommand:
    """Tests for the teardown command."""

    def test_print_only(self):
        with patch("kind_e2e.cli.teardown_environment", return_value=[]) as mock_teardown:
            result = runner.invoke(app, ["teardown", "--print-only", "--cluster-name", "ci"])

        assert result.exit_code == 0
        env, _ = mock_teardown.call_args.args
        assert env.kind.cluster_name == "ci"
        assert mock_teardown.call_args.kwargs == {"print_only": True}

    def test_unknown_host_architecture_does_not_block_cleanup(self, monkeypatch):
        monkeypatch.setenv("E2E_HOST_ARCH", "riscv64")
        with patch("kind_e2e.cli.teardown_environment", return_value=[]) as mock_teardown:
            result = runner.invoke(app, ["teardown"])

        assert result.exit_code == 0
        env, _ = mock_teardown.call_args.args
        assert env.build is None

    def test_failed_cleanup_exits_nonzero(self):
        with patch("kind_e2e.cli.teardown_environment", return_value=["registry"]):
            result = runner.invoke(app, ["teardown"])

        assert result.exit_code == 1


class TestShowConfigCommand:
    """Tests for the show-config command."""

    def test_shows_config(self, tmp_path):
        result = runner.invoke(app, ["show-config", "--operator-dir", str(tmp_path), "--host-arch", "x86_64"])

        assert result.exit_code == 0
