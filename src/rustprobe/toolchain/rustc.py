"""Rust compiler wrapper.

This module locates the `rustc` binary to use, learns its host triple and
version, and memoizes the output of probe invocations for the lifetime of
one session.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

from .process import ProcessBuilder, ProcessError


class RustcError(Exception):
    """Raised when rustc cannot be queried for its version information."""

    pass


CacheKey = Tuple[str, Tuple[str, ...], Tuple[Tuple[str, Optional[str]], ...], str]


class Rustc:
    """Information about the `rustc` executable.

    The host triple and release are read from `rustc -vV` on construction
    unless given explicitly.
    """

    def __init__(
        self,
        path: Union[str, Path],
        wrapper: Optional[Union[str, Path]] = None,
        host: Optional[str] = None,
        version: Optional[str] = None,
    ):
        """Initialize rustc wrapper.

        Args:
            path: Path or name of the rustc executable
            wrapper: Optional wrapper program (RUSTC_WRAPPER) placed before rustc
            host: Host triple; queried from `rustc -vV` when omitted
            version: Release string; queried from `rustc -vV` when omitted

        Raises:
            RustcError: If `rustc -vV` fails or lacks a host line
        """
        self.path = Path(path)
        self.wrapper = Path(wrapper) if wrapper else None
        self._lock = threading.Lock()
        self._cache: Dict[CacheKey, Tuple[str, str]] = {}

        if host is None:
            host, queried_version = self._query_version()
            version = version or queried_version
        self.host = host
        self.version = version

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Rustc":
        """Create a Rustc from RUSTC and RUSTC_WRAPPER environment variables."""
        env = os.environ if env is None else env
        return cls(env.get("RUSTC") or "rustc", wrapper=env.get("RUSTC_WRAPPER") or None)

    def _query_version(self) -> Tuple[str, Optional[str]]:
        cmd = ProcessBuilder(self.path).arg("-vV")
        try:
            verbose_version, _ = self.cached_output(cmd)
        except ProcessError as e:
            raise RustcError(f"could not execute `{cmd}` to learn about the compiler") from e

        host = None
        release = None
        for line in verbose_version.splitlines():
            if line.startswith("host: "):
                host = line[len("host: "):].strip()
            elif line.startswith("release: "):
                release = line[len("release: "):].strip()

        if not host:
            raise RustcError(
                f"rustc -vV didn't have a line for `host:`, got:\n{verbose_version}"
            )
        logging.debug(f"rustc {release} host={host}")
        return host, release

    def process(self) -> ProcessBuilder:
        """Return a fresh process builder invoking rustc."""
        if self.wrapper:
            return ProcessBuilder(self.wrapper).arg(self.path)
        return ProcessBuilder(self.path)

    @staticmethod
    def _cache_key(cmd: ProcessBuilder) -> CacheKey:
        envs = tuple(
            sorted(cmd.get_envs().items(), key=lambda item: item[0])
        )
        cwd = str(cmd.get_cwd()) if cmd.get_cwd() else ""
        return (cmd.program, tuple(cmd.get_args()), envs, cwd)

    def cached_output(self, cmd: ProcessBuilder) -> Tuple[str, str]:
        """Run a command, memoizing (stdout, stderr) in memory.

        Failed invocations are not cached.

        Raises:
            ProcessError: If the command fails
        """
        key = self._cache_key(cmd)
        with self._lock:
            if key in self._cache:
                logging.debug(f"rustc output cache hit: {cmd}")
                return self._cache[key]

            logging.debug(f"running {cmd}")
            output = cmd.exec_with_output()
            result = (output.stdout, output.stderr)
            self._cache[key] = result
            return result
