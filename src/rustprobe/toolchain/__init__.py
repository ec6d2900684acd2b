"""Toolchain invocation for rustprobe.

This module handles building and running rustc processes and caching
their output for the duration of one session.
"""

from .process import ProcessBuilder, ProcessError, ProcessOutput
from .rustc import Rustc, RustcError

__all__ = [
    "ProcessBuilder",
    "ProcessError",
    "ProcessOutput",
    "Rustc",
    "RustcError",
]
