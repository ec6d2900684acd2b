"""Target Information.

This module queries rustc for everything the build planner needs to know
about a platform before compiling anything: output file naming per crate
type, the `cfg` predicates, the sysroot layout and the extra flags.

Design:
    - One batch probe per platform learns naming for the well-known crate
      types, the sysroot and the cfg list
    - Other crate types are discovered lazily, one probe each, and memoized
    - rustc's textual output is a contract that can change between
      releases, so every parse failure reports the command and raw output

Probe output layout (stdout, one item per line):
    <prefix>___<suffix>     one line per supported crate type, in order
    <sysroot path>
    <cfg>...                all remaining lines
Unsupported crate types print nothing on stdout and a warning on stderr.
"""

import logging
import sys
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..config.cargo_config import CargoConfig
from ..config.cfg_expr import Cfg, CfgParseError
from ..toolchain.process import ProcessBuilder, ProcessError
from ..toolchain.rustc import Rustc
from .compile_kind import CompileKind, TargetKind
from .flag_resolver import FlagResolver

KNOWN_CRATE_TYPES = ("bin", "rlib", "dylib", "cdylib", "staticlib", "proc-macro")

CrateTypeInfo = Optional[Tuple[str, str]]


class TargetInfoError(Exception):
    """Raised when rustc cannot be run or its output cannot be parsed."""

    pass


class FileFlavor(Enum):
    """Kind of each file generated by a compilation unit."""

    NORMAL = "normal"
    # Like NORMAL, but not directly executable
    AUXILIARY = "auxiliary"
    LINKABLE = "linkable"
    LINKABLE_RMETA = "linkable-rmeta"
    # External debug information (.dSYM / .pdb)
    DEBUG_INFO = "debug-info"

    @property
    def is_linkable(self) -> bool:
        return self in (FileFlavor.LINKABLE, FileFlavor.LINKABLE_RMETA)

    @property
    def rmeta(self) -> bool:
        return self is FileFlavor.LINKABLE_RMETA


@dataclass(frozen=True)
class FileType:
    """One output file of a compilation unit.

    Attributes:
        flavor: Role of the file
        suffix: File suffix (e.g. ".rlib"); empty for Unix executables
        prefix: File prefix (e.g. "lib"); empty for executables
        should_replace_hyphens: Whether the stem has "-" rewritten to "_".
            wasm bin targets produce "web-stuff.js" next to "web_stuff.wasm".
    """

    flavor: FileFlavor
    suffix: str
    prefix: str
    should_replace_hyphens: bool = False

    def filename(self, stem: str) -> str:
        if self.should_replace_hyphens:
            stem = stem.replace("-", "_")
        return f"{self.prefix}{stem}{self.suffix}"


def output_err_info(cmd: ProcessBuilder, stdout: str, stderr: str) -> str:
    """Build the diagnostic block appended to every probe parse error."""
    result = f"command was: {cmd}\n"
    if stdout:
        result += "\n--- stdout\n"
        result += stdout
    if stderr:
        result += "\n--- stderr\n"
        result += stderr
    if not stdout and not stderr:
        result += "(no output received)"
    return result


def parse_crate_type(
    crate_type: str,
    cmd: ProcessBuilder,
    output: str,
    error: str,
    lines: Iterator[str],
) -> CrateTypeInfo:
    """Decode the file name prefix and suffix for one crate type.

    For a library like `libcargo.rlib` this returns ("lib", ".rlib").

    The caller must position `lines` on the line for this crate type; exactly
    one line is consumed when the type is supported, none otherwise.

    Args:
        crate_type: Crate type name (e.g. "cdylib")
        cmd: Command that produced the output, for diagnostics
        output: Full stdout of the probe
        error: Full stderr of the probe
        lines: Iterator over the remaining stdout lines

    Returns:
        (prefix, suffix), or None if the platform does not support the type

    Raises:
        TargetInfoError: If the output is missing or cannot be split
    """
    marker = f"crate type `{crate_type}`"
    not_supported = any(
        ("unsupported crate type" in line or "unknown crate type" in line) and marker in line
        for line in error.splitlines()
    )
    if not_supported:
        return None

    line = next(lines, None)
    if line is None:
        raise TargetInfoError(
            f"malformed output when learning about crate-type {crate_type} information\n"
            + output_err_info(cmd, output, error)
        )

    parts = line.strip().split("___")
    if len(parts) < 2:
        raise TargetInfoError(
            "output of --print=file-names has changed in the compiler, cannot parse\n"
            + output_err_info(cmd, output, error)
        )
    return parts[0], parts[1]


class TargetInfo:
    """Information about one platform gleaned from querying rustc.

    Instances are built with TargetInfo.new(). Everything except the crate
    type naming cache is fixed after construction; the cache only grows.
    """

    def __init__(
        self,
        crate_type_process: ProcessBuilder,
        crate_types: Dict[str, CrateTypeInfo],
        cfg: Sequence[Cfg],
        sysroot: Path,
        sysroot_host_libdir: Path,
        sysroot_target_libdir: Path,
        rustflags: List[str],
        rustdocflags: List[str],
        supports_bitcode_in_rlib: Optional[bool] = None,
    ):
        """Initialize target info.

        Args:
            crate_type_process: Base probe used to discover other crate types
            crate_types: Known naming, crate type -> (prefix, suffix) or None
            cfg: Predicates reported by `--print=cfg`
            sysroot: Toolchain root from `--print=sysroot`
            sysroot_host_libdir: Directory rustc loads its dynamic libraries from
            sysroot_target_libdir: Directory of the target's standard libraries
            rustflags: Extra flags for rustc
            rustdocflags: Extra flags for rustdoc
            supports_bitcode_in_rlib: Whether -Cbitcode-in-rlib is accepted
                (only probed for the host, None otherwise)
        """
        self.crate_type_process = crate_type_process
        self._crate_types: Dict[str, CrateTypeInfo] = dict(crate_types)
        self._lock = threading.Lock()
        self._discovery_locks: Dict[str, threading.Lock] = {}
        self._cfg: Tuple[Cfg, ...] = tuple(cfg)
        self.sysroot = sysroot
        self.sysroot_host_libdir = sysroot_host_libdir
        self.sysroot_target_libdir = sysroot_target_libdir
        self.rustflags = rustflags
        self.rustdocflags = rustdocflags
        self.supports_bitcode_in_rlib = supports_bitcode_in_rlib

    @classmethod
    def new(
        cls,
        config: CargoConfig,
        requested_kind: CompileKind,
        rustc: Rustc,
        kind: CompileKind,
        resolver: Optional[FlagResolver] = None,
    ) -> "TargetInfo":
        """Probe rustc for a platform.

        Args:
            config: Configuration store
            requested_kind: Platform the build was requested for
            rustc: Compiler to probe
            kind: Platform being probed
            resolver: Flag resolver (default: one over `config` and os.environ)

        Returns:
            Fully populated TargetInfo

        Raises:
            TargetInfoError: If rustc fails or its output cannot be parsed
            ConfigError: If the configuration cannot be read
        """
        resolver = resolver or FlagResolver(config)

        # cfg is not known yet, so cfg-conditional flags cannot apply here
        rustflags = resolver.resolve(requested_kind, rustc.host, None, kind, "RUSTFLAGS")
        process = rustc.process()
        process.arg("-").arg("--crate-name").arg("___").arg("--print=file-names")
        process.args(rustflags)
        process.env_remove("RUSTC_LOG")

        supports_bitcode_in_rlib = None
        if kind.is_host():
            bitcode_in_rlib_test = process.clone().arg("-Cbitcode-in-rlib")
            try:
                rustc.cached_output(bitcode_in_rlib_test)
                supports_bitcode_in_rlib = True
            except ProcessError:
                supports_bitcode_in_rlib = False

        if not kind.is_host():
            process.arg("--target").arg(kind.compile_target.rustc_target())

        crate_type_process = process.clone()
        for crate_type in KNOWN_CRATE_TYPES:
            process.arg("--crate-type").arg(crate_type)
        process.arg("--print=sysroot")
        process.arg("--print=cfg")

        logging.debug(f"Probing rustc for {kind}: {process}")
        try:
            output, error = rustc.cached_output(process)
        except ProcessError as e:
            raise TargetInfoError(
                "failed to run `rustc` to learn about target-specific information"
            ) from e

        lines = iter(output.splitlines())
        crate_types: Dict[str, CrateTypeInfo] = {}
        for crate_type in KNOWN_CRATE_TYPES:
            crate_types[crate_type] = parse_crate_type(crate_type, process, output, error, lines)

        line = next(lines, None)
        if line is None:
            raise TargetInfoError(
                "output of --print=sysroot missing when learning about "
                "target-specific information from rustc\n"
                + output_err_info(process, output, error)
            )
        sysroot = Path(line)
        if sys.platform == "win32":
            sysroot_host_libdir = sysroot / "bin"
        else:
            sysroot_host_libdir = sysroot / "lib"
        short_name = rustc.host if kind.is_host() else kind.compile_target.short_name()
        sysroot_target_libdir = sysroot / "lib" / "rustlib" / short_name / "lib"

        cfg: List[Cfg] = []
        for line in lines:
            try:
                parsed = Cfg.parse(line)
            except CfgParseError as e:
                raise TargetInfoError(
                    f"failed to parse the cfg from `rustc --print=cfg`: {e}\n"
                    + output_err_info(process, output, error)
                ) from e
            if cls.not_user_specific_cfg(parsed):
                cfg.append(parsed)

        logging.info(f"rustc target info for {kind}: sysroot={sysroot}, {len(cfg)} cfg values")

        return cls(
            crate_type_process=crate_type_process,
            crate_types=crate_types,
            cfg=cfg,
            sysroot=sysroot,
            sysroot_host_libdir=sysroot_host_libdir,
            sysroot_target_libdir=sysroot_target_libdir,
            # recalculated now that cfg information is available
            rustflags=resolver.resolve(requested_kind, rustc.host, cfg, kind, "RUSTFLAGS"),
            rustdocflags=resolver.resolve(requested_kind, rustc.host, cfg, kind, "RUSTDOCFLAGS"),
            supports_bitcode_in_rlib=supports_bitcode_in_rlib,
        )

    @staticmethod
    def not_user_specific_cfg(cfg: Cfg) -> bool:
        """Whether a probed cfg is a real platform fact.

        `proc_macro` shows up only because the probe asks for a proc-macro
        crate type. `debug_assertions` would belong here as well but
        filtering it caused regressions, so it is kept.
        """
        if cfg.value is None and cfg.name == "proc_macro":
            return False
        return True

    def cfg(self) -> Tuple[Cfg, ...]:
        """All the target `cfg` settings."""
        return self._cfg

    def crate_type_info(self, crate_type: str) -> CrateTypeInfo:
        """Naming for a crate type, discovering and memoizing it on first use.

        Concurrent requests for the same crate type run one probe; requests
        for different crate types do not wait on each other's probes.
        """
        with self._lock:
            if crate_type in self._crate_types:
                return self._crate_types[crate_type]
            type_lock = self._discovery_locks.setdefault(crate_type, threading.Lock())

        with type_lock:
            with self._lock:
                if crate_type in self._crate_types:
                    return self._crate_types[crate_type]
            value = self.discover_crate_type(crate_type)
            with self._lock:
                self._crate_types[crate_type] = value
            return value

    def file_types(
        self,
        crate_type: str,
        flavor: FileFlavor,
        kind: TargetKind,
        target_triple: str,
    ) -> Optional[List[FileType]]:
        """Returns the list of file types generated by the given crate type.

        Args:
            crate_type: Crate type (e.g. "bin", "cdylib")
            flavor: Flavor of the primary file
            kind: Kind of build target being compiled
            target_triple: Full triple of the platform

        Returns:
            Files in order, primary first, or None if the target does not
            support the crate type
        """
        info = self.crate_type_info(crate_type)
        if info is None:
            return None
        prefix, suffix = info

        ret = [FileType(flavor=flavor, suffix=suffix, prefix=prefix)]

        # Import library for a DLL
        if target_triple.endswith("-windows-msvc") and crate_type.endswith("dylib") and suffix == ".dll":
            ret.append(FileType(flavor=FileFlavor.NORMAL, suffix=".dll.lib", prefix=prefix))

        # emscripten writes the JS loader and the wasm module side by side
        if target_triple.startswith("wasm32-") and crate_type == "bin" and suffix == ".js":
            ret.append(
                FileType(
                    flavor=FileFlavor.AUXILIARY,
                    suffix=".wasm",
                    prefix=prefix,
                    should_replace_hyphens=True,
                )
            )

        # Debug info is only uplifted for binaries. Tests run from deps/
        # with the hash in the name. Examples only on Apple, where the
        # symbol bundle must match the executable name to be found.
        is_apple = "-apple-" in target_triple
        if kind == TargetKind.BIN or (kind == TargetKind.EXAMPLE_BIN and is_apple):
            if is_apple:
                ret.append(FileType(flavor=FileFlavor.DEBUG_INFO, suffix=".dSYM", prefix=prefix))
            elif target_triple.endswith("-msvc"):
                # the linker is called with underscores and the pdb path is
                # embedded in the executable
                ret.append(
                    FileType(
                        flavor=FileFlavor.DEBUG_INFO,
                        suffix=".pdb",
                        prefix=prefix,
                        should_replace_hyphens=True,
                    )
                )

        return ret

    def discover_crate_type(self, crate_type: str) -> CrateTypeInfo:
        """Run a dedicated probe for one crate type.

        Raises:
            TargetInfoError: If rustc fails or its output cannot be parsed
        """
        process = self.crate_type_process.clone()
        process.arg("--crate-type").arg(crate_type)

        logging.debug(f"Discovering crate type {crate_type}: {process}")
        try:
            output = process.exec_with_output()
        except ProcessError as e:
            raise TargetInfoError(
                f"failed to run `rustc` to learn about crate-type {crate_type} information"
            ) from e

        return parse_crate_type(
            crate_type, process, output.stdout, output.stderr, iter(output.stdout.splitlines())
        )
