"""
Platform probing for build planning.

This module provides:
- Compile kinds (host or an explicit target)
- Extra flag resolution (RUSTFLAGS / RUSTDOCFLAGS)
- Per-platform target information learned from rustc
- The planner-facing RustcTargetData collection
"""

from .compile_kind import CompileKind, CompileTarget, TargetKind
from .flag_resolver import FLAG_FAMILIES, FlagResolver
from .target_data import Dependency, RustcTargetData
from .target_info import (
    KNOWN_CRATE_TYPES,
    FileFlavor,
    FileType,
    TargetInfo,
    TargetInfoError,
    output_err_info,
    parse_crate_type,
)

__all__ = [
    "CompileKind",
    "CompileTarget",
    "TargetKind",
    "FLAG_FAMILIES",
    "FlagResolver",
    "Dependency",
    "RustcTargetData",
    "KNOWN_CRATE_TYPES",
    "FileFlavor",
    "FileType",
    "TargetInfo",
    "TargetInfoError",
    "output_err_info",
    "parse_crate_type",
]
