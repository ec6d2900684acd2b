"""
Unit tests for ProcessBuilder.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from rustprobe.toolchain.process import ProcessBuilder, ProcessError, ProcessOutput


class TestProcessBuilder:
    """Test suite for building and running processes."""

    def test_fluent_args(self):
        cmd = ProcessBuilder("rustc").arg("-").args(["--crate-name", "___"])
        assert cmd.get_args() == ["-", "--crate-name", "___"]
        assert cmd.command_line() == ["rustc", "-", "--crate-name", "___"]

    def test_clone_is_independent(self):
        base = ProcessBuilder("rustc").arg("--print=file-names").env("A", "1")
        copy = base.clone().arg("--crate-type").arg("bin").env("B", "2")

        assert base.get_args() == ["--print=file-names"]
        assert base.get_envs() == {"A": "1"}
        assert copy.get_args() == ["--print=file-names", "--crate-type", "bin"]
        assert copy.get_envs() == {"A": "1", "B": "2"}

    def test_clone_keeps_subclass(self):
        class Custom(ProcessBuilder):
            pass

        assert isinstance(Custom("x").clone(), Custom)

    def test_str_quotes_arguments(self):
        cmd = ProcessBuilder("rustc").arg("-").arg("--cfg").arg('feature="a b"').env("X", "y z")
        assert str(cmd) == "X='y z' rustc - --cfg 'feature=\"a b\"'"

    def test_str_omits_removed_env(self):
        cmd = ProcessBuilder("rustc").env_remove("RUSTC_LOG").arg("-vV")
        assert str(cmd) == "rustc -vV"

    def test_exec_success(self):
        completed = Mock(returncode=0, stdout="out\n", stderr="")
        with patch("subprocess.run", return_value=completed) as run:
            output = ProcessBuilder("rustc").arg("-vV").exec_with_output()

        assert output == ProcessOutput(status=0, stdout="out\n", stderr="")
        args, kwargs = run.call_args
        assert args[0] == ["rustc", "-vV"]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert kwargs["env"] is None

    def test_exec_env_remove(self, monkeypatch):
        monkeypatch.setenv("RUSTC_LOG", "debug")
        monkeypatch.setenv("KEEP_ME", "1")
        completed = Mock(returncode=0, stdout="", stderr="")
        with patch("subprocess.run", return_value=completed) as run:
            ProcessBuilder("rustc").env_remove("RUSTC_LOG").env("NEW", "v").exec_with_output()

        env = run.call_args.kwargs["env"]
        assert "RUSTC_LOG" not in env
        assert env["KEEP_ME"] == "1"
        assert env["NEW"] == "v"

    def test_exec_failure_status(self):
        completed = Mock(returncode=1, stdout="", stderr="error: bad\n")
        with patch("subprocess.run", return_value=completed):
            with pytest.raises(ProcessError, match="exit status: 1") as excinfo:
                ProcessBuilder("rustc").arg("--bogus").exec_with_output()

        assert excinfo.value.status == 1
        assert excinfo.value.stderr == "error: bad\n"
        assert excinfo.value.command == "rustc --bogus"
        assert "--- stderr\nerror: bad" in str(excinfo.value)

    def test_exec_launch_failure(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("no such file")):
            with pytest.raises(ProcessError, match="could not execute process") as excinfo:
                ProcessBuilder("missing-rustc").exec_with_output()

        assert excinfo.value.status is None
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)
