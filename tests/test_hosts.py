"""Tests for host name resolution and insecure-registry patches."""

from kind_e2e.hosts import (
    ensure_host_resolution,
    ensure_insecure_registry_config,
    remove_host_resolution,
    remove_insecure_registry_config,
)

HOST = "image-registry.openshift-image-registry.svc"


class TestHostResolution:
    """Tests for the hosts-file entry."""

    def test_appends_single_entry_across_repeated_calls(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text("127.0.0.1 localhost\n")

        assert ensure_host_resolution(hosts, HOST) is True
        assert ensure_host_resolution(hosts, HOST) is False
        assert ensure_host_resolution(hosts, HOST) is False

        lines = hosts.read_text().splitlines()
        assert lines == ["127.0.0.1 localhost", f"127.0.0.1 {HOST}"]

    def test_adds_missing_trailing_newline(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text("127.0.0.1 localhost")

        ensure_host_resolution(hosts, HOST)

        assert hosts.read_text() == f"127.0.0.1 localhost\n127.0.0.1 {HOST}\n"

    def test_creates_missing_file(self, tmp_path):
        hosts = tmp_path / "hosts"

        ensure_host_resolution(hosts, HOST)

        assert hosts.read_text() == f"127.0.0.1 {HOST}\n"

    def test_remove_keeps_other_lines(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text(f"127.0.0.1 localhost\n127.0.0.1 {HOST}\n::1 localhost\n")

        remove_host_resolution(hosts, HOST)

        assert hosts.read_text() == "127.0.0.1 localhost\n::1 localhost\n"

    def test_remove_tolerates_missing_file(self, tmp_path):
        remove_host_resolution(tmp_path / "hosts", HOST)


class TestInsecureRegistryConfig:
    """Tests for the containers-registries.conf drop-in."""

    def test_writes_registry_entry(self, tmp_path):
        conf = tmp_path / "registries.conf.d" / "kind-e2e-registry.conf"

        ensure_insecure_registry_config(conf, f"{HOST}:5000")

        assert conf.read_text() == (
            "[[registry]]\n"
            f'location = "{HOST}:5000"\n'
            "insecure = true\n"
        )

    def test_rewrite_is_stable(self, tmp_path):
        conf = tmp_path / "kind-e2e-registry.conf"

        ensure_insecure_registry_config(conf, "a.b.svc:5000")
        first = conf.read_text()
        ensure_insecure_registry_config(conf, "a.b.svc:5000")

        assert conf.read_text() == first

    def test_remove(self, tmp_path):
        conf = tmp_path / "kind-e2e-registry.conf"
        ensure_insecure_registry_config(conf, "a.b.svc:5000")

        remove_insecure_registry_config(conf)
        remove_insecure_registry_config(conf)

        assert not conf.exists()
