"""Tests for the rustprobe CLI commands."""

import sys
from unittest.mock import patch

import pytest

from rustprobe.build import CompileKind, FlagResolver, RustcTargetData, TargetInfoError
from rustprobe.cli import ProbeArgs, load_target_data, main
from rustprobe.config import CargoConfig

WASM = "wasm32-unknown-emscripten"
WASM_NAMING = {
    "bin": ("", ".js"),
    "rlib": ("lib", ".rlib"),
    "dylib": None,
    "cdylib": ("", ".wasm"),
    "staticlib": ("lib", ".a"),
    "proc-macro": None,
}


class TestCLI:
    """Tests for the cfg, info and file-names commands."""

    @pytest.fixture
    def target_data(self, fake_rustc, simulator):
        """Patch load_target_data to probe the simulator."""
        simulator.add_target(WASM, WASM_NAMING, ['target_os="emscripten"'])
        config = CargoConfig.from_mapping({"build": {"rustflags": ["-Copt-level=2"]}})
        resolver = FlagResolver(config, env={})

        def load(args):
            kind = CompileKind.host() if args.target is None else CompileKind.target(args.target)
            return RustcTargetData.new(config, fake_rustc, kind, resolver)

        with patch("rustprobe.cli.load_target_data", side_effect=load) as mock_load:
            yield mock_load

    def test_no_command_prints_help(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 0
        assert "usage: rustprobe" in capsys.readouterr().out

    def test_cfg(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe", "cfg"])

        main()

        lines = capsys.readouterr().out.splitlines()
        assert "unix" in lines
        assert 'target_os="linux"' in lines
        assert "debug_assertions" in lines
        assert "proc_macro" not in lines

    def test_cfg_for_target(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe", "cfg", "--target", WASM])

        main()

        assert capsys.readouterr().out.splitlines() == ['target_os="emscripten"']
        args = target_data.call_args.args[0]
        assert isinstance(args, ProbeArgs)
        assert args.target == WASM

    def test_info(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe", "info"])

        main()

        out = capsys.readouterr().out
        assert "platform:       x86_64-unknown-linux-gnu" in out
        assert "sysroot:        /opt/rust" in out
        assert "target libdir:  /opt/rust/lib/rustlib/x86_64-unknown-linux-gnu/lib" in out
        assert "rustflags:      -Copt-level=2" in out
        assert "bitcode-in-rlib: yes" in out

    def test_info_for_target_omits_bitcode(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe", "info", "--target", WASM])

        main()

        out = capsys.readouterr().out
        assert f"platform:       {WASM}" in out
        assert "bitcode-in-rlib" not in out

    def test_file_names(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(
            sys, "argv", ["rustprobe", "file-names", "bin", "--target", WASM, "--stem", "my-app"]
        )

        main()

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            f"{'normal':<12} my-app.js",
            f"{'auxiliary':<12} my_app.wasm",
        ]

    def test_file_names_unsupported(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe", "file-names", "dylib", "--target", WASM])

        main()

        assert f"crate type `dylib` is not supported for `{WASM}`" in capsys.readouterr().out

    def test_file_names_bad_kind(self, target_data, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["rustprobe", "file-names", "bin", "--kind", "widget"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert "unknown target kind `widget`" in capsys.readouterr().err

    def test_probe_error_shows_cause(self, monkeypatch, capsys):
        error = TargetInfoError("failed to run `rustc` to learn about target-specific information")
        error.__cause__ = OSError("No such file or directory: 'rustc'")
        monkeypatch.setattr(sys, "argv", ["rustprobe", "cfg"])

        with patch("rustprobe.cli.load_target_data", side_effect=error):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "target-specific information" in err
        assert "Caused by:" in err
        assert "No such file or directory" in err


class TestLoadTargetData:
    """Tests for wiring configuration and rustc together."""

    def test_reads_project_config(self, fake_rustc, tmp_path, monkeypatch):
        project = tmp_path / "project"
        (project / ".cargo").mkdir(parents=True)
        (project / ".cargo" / "config.toml").write_text('[build]\nrustflags = ["-Cproject"]\n')
        monkeypatch.setenv("CARGO_HOME", str(tmp_path / "cargo-home"))
        monkeypatch.delenv("RUSTFLAGS", raising=False)
        monkeypatch.delenv("CARGO_BUILD_RUSTFLAGS", raising=False)

        with patch("rustprobe.cli.Rustc.from_env", return_value=fake_rustc):
            data = load_target_data(ProbeArgs(cwd=project))

        assert data.host_info.rustflags == ["-Cproject"]
        assert data.rustc is fake_rustc
