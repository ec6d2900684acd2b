"""
Pytest configuration for rustprobe test suite.

This configuration enables the --full flag to run integration tests and
provides a scripted stand-in for rustc so probes can be tested without a
Rust toolchain installed.
"""

from typing import Dict, List, Optional, Tuple

import pytest

from rustprobe.toolchain import ProcessBuilder, ProcessError, ProcessOutput, Rustc

HOST = "x86_64-unknown-linux-gnu"

LINUX_NAMING = {
    "bin": ("", ""),
    "rlib": ("lib", ".rlib"),
    "dylib": ("lib", ".so"),
    "cdylib": ("lib", ".so"),
    "staticlib": ("lib", ".a"),
    "proc-macro": ("lib", ".so"),
    "lib": ("lib", ".rlib"),
}

LINUX_CFG = [
    "debug_assertions",
    'target_arch="x86_64"',
    'target_endian="little"',
    'target_env="gnu"',
    'target_family="unix"',
    'target_os="linux"',
    'target_pointer_width="64"',
    'target_vendor="unknown"',
    "unix",
]


class ScriptedProcessBuilder(ProcessBuilder):
    """ProcessBuilder that answers from a RustcSimulator instead of running."""

    def __init__(self, program, simulator: "RustcSimulator"):
        super().__init__(program)
        self.simulator = simulator

    def exec_with_output(self) -> ProcessOutput:
        return self.simulator.run(self)


class RustcSimulator:
    """Imitates the output of `rustc --print=file-names/sysroot/cfg`."""

    def __init__(
        self,
        host: str = HOST,
        naming: Optional[Dict[str, Optional[Tuple[str, str]]]] = None,
        cfg: Optional[List[str]] = None,
        sysroot: str = "/opt/rust",
        supports_bitcode: bool = True,
    ):
        self.host = host
        self.sysroot = sysroot
        self.supports_bitcode = supports_bitcode
        self.platforms: Dict[str, Tuple[Dict[str, Optional[Tuple[str, str]]], List[str]]] = {
            host: (dict(LINUX_NAMING if naming is None else naming), list(LINUX_CFG if cfg is None else cfg))
        }
        self.calls: List[List[str]] = []
        self.stdout_override: Optional[str] = None

    def add_target(self, triple: str, naming, cfg) -> None:
        self.platforms[triple] = (dict(naming), list(cfg))

    def run(self, cmd: ProcessBuilder) -> ProcessOutput:
        args = cmd.get_args()
        self.calls.append(args)

        if "-Cbitcode-in-rlib" in args and not self.supports_bitcode:
            raise ProcessError(
                "process didn't exit successfully",
                command=str(cmd),
                status=1,
                stderr="error: unknown codegen option: `bitcode-in-rlib`\n",
            )

        triple = args[args.index("--target") + 1] if "--target" in args else self.host
        if triple not in self.platforms:
            raise ProcessError(
                "process didn't exit successfully",
                command=str(cmd),
                status=1,
                stderr=f"error: Error loading target specification: Could not find specification for target \"{triple}\"\n",
            )
        naming, cfg = self.platforms[triple]

        crate_types = [args[i + 1] for i, arg in enumerate(args) if arg == "--crate-type"]
        stdout: List[str] = []
        stderr: List[str] = []
        for crate_type in crate_types:
            if crate_type not in naming:
                raise ProcessError(
                    "process didn't exit successfully",
                    command=str(cmd),
                    status=1,
                    stderr=f"error: unknown crate type: `{crate_type}`\n",
                )
            info = naming[crate_type]
            if info is None:
                stderr.append(
                    f"warning: dropping unsupported crate type `{crate_type}` for target `{triple}`"
                )
            else:
                stdout.append(f"{info[0]}___{info[1]}")

        if "--print=sysroot" in args:
            stdout.append(self.sysroot)
        if "--print=cfg" in args:
            stdout.extend(cfg)
            if "proc-macro" in crate_types:
                stdout.append("proc_macro")

        if self.stdout_override is not None:
            text = self.stdout_override
        else:
            text = "\n".join(stdout) + "\n" if stdout else ""
        return ProcessOutput(status=0, stdout=text, stderr="\n".join(stderr) + "\n" if stderr else "")


class FakeRustc(Rustc):
    """Rustc whose processes are answered by a RustcSimulator."""

    def __init__(self, simulator: RustcSimulator):
        super().__init__("rustc", host=simulator.host, version="1.44.0")
        self.simulator = simulator

    def process(self) -> ProcessBuilder:
        return ScriptedProcessBuilder(self.path, self.simulator)


@pytest.fixture
def simulator():
    """A rustc simulator for an x86_64 Linux host."""
    return RustcSimulator()


@pytest.fixture
def fake_rustc(simulator):
    """Rustc wired to the simulator fixture."""
    return FakeRustc(simulator)


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    if config.getoption("--full"):
        # Remove the default marker expression that excludes integration tests
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            # Clear the marker expression to run all tests
            config.option.markexpr = ""
