"""Tests for post-deploy patches."""

import json
from unittest.mock import patch

import pytest

from kind_e2e.config import ComponentConfig, RegistryConfig
from kind_e2e.errors import PatchIntegrityError
from kind_e2e.patches import (
    LiteralSubstitution,
    PatchRecord,
    apply_merge_patch,
    apply_runtime_patches,
    apply_script_transform,
    operator_config_record,
    push_task_record,
    registry_route_patch,
)

RECORD = PatchRecord("task", "push-artifact-registry", "automotive-dev-operator-system")
PLAIN_HTTP = LiteralSubstitution("oras push ", "oras push --plain-http ")


def _task(script):
    return {"kind": "Task", "spec": {"steps": [{"name": "push", "script": script}]}}


class TestLiteralSubstitution:
    """Tests for LiteralSubstitution."""

    def test_rewrites_every_occurrence(self):
        script = "oras push a\noras push b\n"

        assert PLAIN_HTTP.apply(script) == "oras push --plain-http a\noras push --plain-http b\n"

    def test_idempotent(self):
        once = PLAIN_HTTP.apply("set -e\noras push $REF file\n")

        assert PLAIN_HTTP.apply(once) == once
        assert PLAIN_HTTP.is_applied(once) is True

    def test_partially_patched_script(self):
        script = "oras push --plain-http a\noras push b\n"

        assert PLAIN_HTTP.is_applied(script) is False
        assert PLAIN_HTTP.apply(script) == "oras push --plain-http a\noras push --plain-http b\n"

    def test_not_applied_without_target(self):
        assert PLAIN_HTTP.is_applied("echo nothing\n") is False


class TestApplyMergePatch:
    """Tests for apply_merge_patch."""

    def test_marks_unmanaged_before_patching(self):
        record = PatchRecord("operatorconfig", "config", "ns")
        body = registry_route_patch(RegistryConfig())
        with patch("kind_e2e.patches.sh") as mock_sh:
            apply_merge_patch(record, body)

        annotate, merge = mock_sh.kubectl.call_args_list
        assert annotate.args == (
            "annotate", "operatorconfig", "config", "-n", "ns",
            "automotive.sdv.cloud.redhat.com/unmanaged=true", "--overwrite",
        )
        assert merge.args[:5] == ("patch", "operatorconfig", "config", "-n", "ns")
        assert json.loads(merge.args[-1]) == {
            "spec": {"osBuilds": {"clusterRegistryRoute": "image-registry.openshift-image-registry.svc:5000"}},
        }


class TestApplyScriptTransform:
    """Tests for apply_script_transform."""

    def _run(self, script, **kwargs):
        events = []
        task = _task(script)

        def fake_kubectl(*args, **kw):
            events.append((args[0], kw.get("_in")))

        def fake_get(*args):
            events.append(("get", None))
            return task

        with patch("kind_e2e.patches.sh") as mock_sh, \
                patch("kind_e2e.patches.kubectl_json", side_effect=fake_get):
            mock_sh.kubectl.side_effect = fake_kubectl
            result = apply_script_transform(RECORD, PLAIN_HTTP, **kwargs)
        return result, events

    def test_marks_unmanaged_then_replaces(self):
        replaced, events = self._run("oras push $REF disk.qcow2\n")

        assert replaced is True
        assert [name for name, _ in events] == ["annotate", "get", "replace"]
        new_task = json.loads(events[-1][1])
        assert new_task["spec"]["steps"][0]["script"] == "oras push --plain-http $REF disk.qcow2\n"

    def test_already_patched_is_a_noop(self):
        replaced, events = self._run("oras push --plain-http $REF disk.qcow2\n")

        assert replaced is False
        assert [name for name, _ in events] == ["annotate", "get"]

    def test_missing_target_is_an_integrity_error(self):
        with pytest.raises(PatchIntegrityError, match="push-artifact-registry"):
            self._run("skopeo copy $SRC $DST\n")

    def test_missing_target_warns_when_not_strict(self):
        replaced, events = self._run("skopeo copy $SRC $DST\n", strict=False)

        assert replaced is False
        assert "replace" not in [name for name, _ in events]


class TestPatchRecords:
    """Tests for the patched-object identities."""

    def test_records_live_in_operator_namespace(self):
        comp_cfg = ComponentConfig(operator_namespace="ado")

        assert operator_config_record(comp_cfg) == PatchRecord("operatorconfig", "config", "ado")
        assert push_task_record(comp_cfg) == PatchRecord("task", "push-artifact-registry", "ado")

    def test_records_are_documented(self):
        assert operator_config_record.__doc__
        assert push_task_record.__doc__


class TestApplyRuntimePatches:
    """Tests for apply_runtime_patches."""

    def test_applies_both_patches(self, env):
        with patch("kind_e2e.patches.apply_merge_patch") as mock_merge, \
                patch("kind_e2e.patches.apply_script_transform", return_value=True) as mock_script:
            apply_runtime_patches(env)

        record, body = mock_merge.call_args.args
        assert (record.kind, record.name) == ("operatorconfig", "config")
        assert body == registry_route_patch(env.registry)
        assert mock_script.call_args.args[0] == RECORD
        assert mock_script.call_args.kwargs == {"strict": True}
