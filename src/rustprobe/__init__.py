"""rustprobe - learn what rustc will produce for a platform.

Queries rustc for output file naming, cfg values, sysroot layout and the
extra flags configured for a host or target platform, without compiling.
"""

from .build import (
    CompileKind,
    CompileTarget,
    Dependency,
    FileFlavor,
    FileType,
    FlagResolver,
    RustcTargetData,
    TargetInfo,
    TargetInfoError,
    TargetKind,
)
from .config import CargoConfig, Cfg, CfgExpr, ConfigError, Platform
from .toolchain import ProcessBuilder, ProcessError, Rustc, RustcError

__version__ = "0.1.0"

__all__ = [
    "CompileKind",
    "CompileTarget",
    "Dependency",
    "FileFlavor",
    "FileType",
    "FlagResolver",
    "RustcTargetData",
    "TargetInfo",
    "TargetInfoError",
    "TargetKind",
    "CargoConfig",
    "Cfg",
    "CfgExpr",
    "ConfigError",
    "Platform",
    "ProcessBuilder",
    "ProcessError",
    "Rustc",
    "RustcError",
    "__version__",
]
