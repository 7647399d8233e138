"""Tests for host architecture resolution."""

from unittest.mock import patch

import pytest

from kind_e2e.arch import BuildPlatform, resolve_build_platform
from kind_e2e.errors import UnsupportedArchitectureError


class TestResolveBuildPlatform:
    """Tests for resolve_build_platform."""

    def test_x86_64(self):
        assert resolve_build_platform("x86_64") == BuildPlatform("linux/amd64", "amd64")

    @pytest.mark.parametrize("arch", ["arm64", "aarch64"])
    def test_arm_aliases(self, arch):
        assert resolve_build_platform(arch) == BuildPlatform("linux/arm64", "arm64")

    def test_unsupported_architecture(self):
        with pytest.raises(UnsupportedArchitectureError, match="riscv64") as excinfo:
            resolve_build_platform("riscv64")
        assert excinfo.value.arch == "riscv64"
        assert "x86_64" in str(excinfo.value)

    def test_detects_host_architecture(self):
        with patch("kind_e2e.arch.platform.machine", return_value="aarch64"):
            assert resolve_build_platform().arch == "arm64"
