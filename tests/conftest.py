"""Shared fixtures for kind_e2e tests."""

import os

import pytest

from kind_e2e.arch import BuildPlatform
from kind_e2e.config import (
    ComponentConfig,
    EnvironmentDescriptor,
    KindConfig,
    RegistryConfig,
)


@pytest.fixture(autouse=True)
def clean_e2e_env(monkeypatch):
    """Keep E2E_* variables from the developer's shell out of the settings."""
    for name in list(os.environ):
        if name.startswith("E2E_"):
            monkeypatch.delenv(name)


@pytest.fixture
def env(tmp_path):
    """Environment descriptor whose host files live under tmp_path."""
    return EnvironmentDescriptor(
        kind=KindConfig(poll_interval=0.01, node_ready_timeout=1),
        registry=RegistryConfig(
            hosts_file=tmp_path / "hosts",
            insecure_registry_conf=tmp_path / "registries.conf.d" / "kind-e2e-registry.conf",
            ip_timeout=1,
            ip_poll_interval=0.01,
        ),
        components=ComponentConfig(port_forward_settle=0),
        build=BuildPlatform(platform="linux/amd64", arch="amd64"),
    )
