"""
Compilation kinds and build target kinds.

A CompileKind says which platform a unit is compiled for: the host (build
scripts, proc-macros, or everything when no --target is given) or one
explicitly requested target triple.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class CompileTarget:
    """A target triple, or the path of a custom `.json` target spec."""

    name: str

    def __post_init__(self):
        if not self.name or any(c.isspace() for c in self.name):
            raise ValueError(f"target was empty or contained whitespace: `{self.name}`")

    def rustc_target(self) -> str:
        """Value passed to `rustc --target`."""
        return self.name

    def short_name(self) -> str:
        """Name used for configuration keys and directory names.

        For custom target specs this is the file stem of the `.json` file.
        """
        if self.name.endswith(".json"):
            return Path(self.name).stem
        return self.name

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class CompileKind:
    """Either the host platform or a specific CompileTarget."""

    compile_target: Optional[CompileTarget] = None

    @classmethod
    def host(cls) -> "CompileKind":
        return cls(None)

    @classmethod
    def target(cls, target: Union[str, CompileTarget]) -> "CompileKind":
        if isinstance(target, str):
            target = CompileTarget(target)
        return cls(target)

    def is_host(self) -> bool:
        return self.compile_target is None

    def __str__(self) -> str:
        return "host" if self.compile_target is None else str(self.compile_target)


class TargetKind(Enum):
    """Kind of build target within a package."""

    LIB = "lib"
    BIN = "bin"
    TEST = "test"
    BENCH = "bench"
    EXAMPLE_LIB = "example-lib"
    EXAMPLE_BIN = "example-bin"
    CUSTOM_BUILD = "custom-build"
