"""Process Builder.

This module wraps subprocess execution for toolchain probes.

Design:
    - Builds argument lists and environment overrides fluently
    - Clones cheaply so a base invocation can be extended several ways
    - Renders a shell-quoted command line for diagnostics
    - Raises ProcessError with captured output on failure
"""

import copy
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union


@dataclass
class ProcessOutput:
    """Captured result of a finished process."""
    status: int
    stdout: str
    stderr: str


class ProcessError(Exception):
    """Raised when a process cannot be launched or exits unsuccessfully."""

    def __init__(
        self,
        message: str,
        command: str = "",
        status: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.status = status
        self.stdout = stdout
        self.stderr = stderr


class ProcessBuilder:
    """Describes a single process invocation.

    Environment overrides map a name to a value, or to None to remove the
    variable from the inherited environment.
    """

    def __init__(self, program: Union[str, Path]):
        self.program = str(program)
        self._args: List[str] = []
        self._env: Dict[str, Optional[str]] = {}
        self._cwd: Optional[Path] = None

    def arg(self, arg: Union[str, Path]) -> "ProcessBuilder":
        self._args.append(str(arg))
        return self

    def args(self, args: Iterable[Union[str, Path]]) -> "ProcessBuilder":
        self._args.extend(str(a) for a in args)
        return self

    def env(self, key: str, value: str) -> "ProcessBuilder":
        self._env[key] = value
        return self

    def env_remove(self, key: str) -> "ProcessBuilder":
        self._env[key] = None
        return self

    def cwd(self, path: Union[str, Path]) -> "ProcessBuilder":
        self._cwd = Path(path)
        return self

    def get_args(self) -> List[str]:
        return list(self._args)

    def get_envs(self) -> Dict[str, Optional[str]]:
        return dict(self._env)

    def get_cwd(self) -> Optional[Path]:
        return self._cwd

    def clone(self) -> "ProcessBuilder":
        """Return an independent copy of this builder."""
        other = copy.copy(self)
        other._args = list(self._args)
        other._env = dict(self._env)
        return other

    def command_line(self) -> List[str]:
        return [self.program, *self._args]

    def __str__(self) -> str:
        parts = [
            f"{key}={shlex.quote(value)}"
            for key, value in sorted(self._env.items())
            if value is not None
        ]
        parts.extend(shlex.quote(part) for part in self.command_line())
        return " ".join(parts)

    def _build_env(self) -> Optional[Dict[str, str]]:
        if not self._env:
            return None
        env = os.environ.copy()
        for key, value in self._env.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value
        return env

    def exec_with_output(self) -> ProcessOutput:
        """Run the process and capture its output.

        Returns:
            ProcessOutput of a successful (exit status 0) run

        Raises:
            ProcessError: If the process cannot be started or exits non-zero
        """
        try:
            result = subprocess.run(
                self.command_line(),
                cwd=str(self._cwd) if self._cwd else None,
                env=self._build_env(),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ProcessError(
                f"could not execute process `{self}`: {e}", command=str(self)
            ) from e

        if result.returncode != 0:
            message = f"process didn't exit successfully: `{self}` (exit status: {result.returncode})"
            if result.stdout:
                message += f"\n--- stdout\n{result.stdout}"
            if result.stderr:
                message += f"\n--- stderr\n{result.stderr}"
            raise ProcessError(
                message,
                command=str(self),
                status=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return ProcessOutput(status=result.returncode, stdout=result.stdout, stderr=result.stderr)
