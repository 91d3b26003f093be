"""
Tests for the adapter protocol, the mock, and the subsystem shell adapter.
"""

import logging
import shutil
from pathlib import Path

import pytest

from subsysbuild.adapters.base import ExecutionContext
from subsysbuild.adapters.mock import MockAdapter
from subsysbuild.adapters.shell.command import SubsystemShellAdapter
from subsysbuild.core.models.action import Action, Receipt

SH = shutil.which("sh")
needs_sh = pytest.mark.skipif(SH is None, reason="no POSIX shell available")

# ── Protocol Tests ───────────────────────────────────────────────────


class TestExecutionContext:
    def test_command_from_params(self):
        ctx = ExecutionContext(
            action=Action(id="configure", adapter="subsystem", params={"command": "./configure"}),
        )
        assert ctx.command == "./configure"

    def test_command_missing(self):
        ctx = ExecutionContext(action=Action(id="x", adapter="subsystem"))
        assert ctx.command == ""


class TestReceipt:
    def test_return_code(self):
        r = Receipt.failure(adapter="a", action_id="b", error="e", metadata={"return_code": 2})
        assert r.return_code == 2
        assert Receipt.success(adapter="a", action_id="b").return_code is None


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter(adapter_name="test-mock")
        receipt = mock.run("op-1", "true")
        assert receipt.ok
        assert receipt.return_code == 0
        assert mock.call_count == 1

    def test_custom_response(self):
        mock = MockAdapter()
        mock.set_response(
            "op-1",
            Receipt.success(adapter="mock", action_id="op-1", output="custom"),
        )
        assert mock.run("op-1", "true").output == "custom"

    def test_set_failure(self):
        mock = MockAdapter()
        mock.set_failure("op-fail", error="Intentional failure", return_code=7)
        receipt = mock.run("op-fail", "false")
        assert receipt.failed
        assert receipt.return_code == 7
        assert "Intentional failure" in receipt.error

    def test_call_log(self):
        mock = MockAdapter()
        for i in range(3):
            mock.run(f"op-{i}", f"echo {i}")
        assert mock.called_ids == ["op-0", "op-1", "op-2"]
        assert mock.commands()["op-2"] == "echo 2"

    def test_dry_run_skips(self):
        mock = MockAdapter()
        mock.set_failure("op-1")
        receipt = mock.run("op-1", "false", dry_run=True)
        assert receipt.status == "skipped"

    def test_reset(self):
        mock = MockAdapter()
        mock.run("op-1", "true")
        mock.reset()
        assert mock.call_count == 0

# ── Subsystem Shell Adapter Tests ────────────────────────────────────


class TestSubsystemShellAdapter:
    @needs_sh
    def test_success(self):
        adapter = SubsystemShellAdapter(SH)
        receipt = adapter.run("echo", "echo hello && echo warn 1>&2")
        assert receipt.ok
        assert receipt.output == "hello\nwarn"
        assert receipt.return_code == 0
        assert "stderr" not in receipt.metadata

    @needs_sh
    def test_nonzero_exit(self):
        adapter = SubsystemShellAdapter(SH)
        receipt = adapter.run("configure", "echo 'configure: error: no fuse' 1>&2; exit 3")
        assert receipt.failed
        assert receipt.return_code == 3
        assert "no fuse" in receipt.error

    @needs_sh
    def test_exit_without_stderr(self):
        receipt = SubsystemShellAdapter(SH).run("x", "exit 4")
        assert receipt.error == "Command exited with code 4"

    @needs_sh
    def test_timeout(self):
        receipt = SubsystemShellAdapter(SH, timeout=1).run("slow", "sleep 5")
        assert receipt.failed
        assert "timed out" in receipt.error

    @needs_sh
    def test_output_logged(self, caplog, monkeypatch):
        monkeypatch.setattr(logging.getLogger("subsysbuild.output"), "propagate", True)
        with caplog.at_level("INFO", logger="subsysbuild.output"):
            SubsystemShellAdapter(SH).run("echo", "echo checking for gcc... yes")
        assert "checking for gcc... yes" in caplog.text

    @needs_sh
    def test_output_streamed_line_by_line(self, caplog, monkeypatch):
        monkeypatch.setattr(logging.getLogger("subsysbuild.output"), "propagate", True)
        with caplog.at_level("INFO", logger="subsysbuild.output"):
            SubsystemShellAdapter(SH).run("build", "echo compiling; echo linking 1>&2; echo done")
        lines = [r.getMessage() for r in caplog.records if r.name == "subsysbuild.output"]
        assert lines == ["compiling", "linking", "done"]

    @needs_sh
    def test_receipt_keeps_output_tail(self):
        receipt = SubsystemShellAdapter(SH).run("build", "i=0; while [ $i -lt 500 ]; do echo line-$i; i=$((i+1)); done")
        assert receipt.ok
        assert receipt.output.endswith("line-499")
        assert "line-0\n" not in receipt.output
        assert len(receipt.output) <= 2000

    def test_dry_run_never_spawns(self, tmp_path: Path):
        adapter = SubsystemShellAdapter(str(tmp_path / "missing-bash.exe"))
        receipt = adapter.run("build", "make -j4", dry_run=True)
        assert receipt.status == "skipped"
        assert receipt.metadata["command"] == "make -j4"

    def test_missing_shell(self, tmp_path: Path):
        adapter = SubsystemShellAdapter(str(tmp_path / "missing-bash.exe"))
        receipt = adapter.run("build", "make")
        assert receipt.failed
        assert "Cannot start" in receipt.error
        assert receipt.return_code is None

    def test_empty_command(self, tmp_path: Path):
        receipt = SubsystemShellAdapter(str(tmp_path / "bash")).run("x", "")
        assert receipt.failed
        assert "command" in receipt.error

    def test_repr(self):
        assert repr(SubsystemShellAdapter("bash")) == "<SubsystemShellAdapter name='subsystem'>"
