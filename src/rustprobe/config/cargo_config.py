"""
Layered Cargo configuration store.

This module discovers and merges `.cargo/config.toml` files and exposes
typed lookups by dotted key path.

Discovery order (highest precedence first):
    <cwd>/.cargo/config.toml
    <cwd>/../.cargo/config.toml
    ...
    /.cargo/config.toml
    $CARGO_HOME/config.toml

Merging:
    - Tables merge key by key
    - Arrays are joined, higher precedence items placed later
    - Strings, numbers and booleans take the highest precedence value

Environment variables of the form CARGO_<KEY> (e.g. CARGO_BUILD_RUSTFLAGS,
CARGO_TARGET_X86_64_UNKNOWN_LINUX_GNU_RUSTFLAGS) override file values.
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ConfigError(Exception):
    """Raised when configuration files cannot be read or hold bad values."""

    pass


@dataclass
class TargetConfig:
    """Settings from a `[target.<triple>]` or `[target.'cfg(..)']` section."""

    rustflags: Optional[List[str]] = None
    rustdocflags: Optional[List[str]] = None
    linker: Optional[str] = None
    runner: Optional[List[str]] = None


@dataclass
class BuildConfig:
    """Settings from the `[build]` section."""

    rustflags: Optional[List[str]] = None
    rustdocflags: Optional[List[str]] = None
    target: Optional[str] = None


def split_key(key: str) -> List[str]:
    """Split a dotted key, ignoring dots inside parentheses or quotes.

    Example:
        >>> split_key('target.cfg(target_env = "gnu.x").rustflags')
        ['target', 'cfg(target_env = "gnu.x")', 'rustflags']
    """
    parts: List[str] = []
    current = []
    depth = 0
    in_string = False
    for c in key:
        if c == '"':
            in_string = not in_string
        elif not in_string and c == "(":
            depth += 1
        elif not in_string and c == ")":
            depth -= 1
        if c == "." and depth == 0 and not in_string:
            parts.append("".join(current))
            current = []
        else:
            current.append(c)
    parts.append("".join(current))
    return parts


def env_key(key: str) -> str:
    """Environment variable name that overrides a config key."""
    return "CARGO_" + key.upper().replace(".", "_").replace("-", "_")


def merge_values(base: Any, overlay: Any) -> Any:
    """Merge a higher precedence value (overlay) onto a lower one (base)."""
    if isinstance(base, Mapping) and isinstance(overlay, Mapping):
        result: Dict[str, Any] = dict(base)
        for key, value in overlay.items():
            if key in result:
                result[key] = merge_values(result[key], value)
            else:
                result[key] = value
        return result
    if isinstance(base, list) and isinstance(overlay, list):
        return base + overlay
    return overlay


class CargoConfig:
    """Configuration store backed by merged TOML tables.

    Usage:
        config = CargoConfig.discover(Path.cwd())
        config.get_string_list("build.rustflags")
        config.target_cfgs()
    """

    CONFIG_NAMES = ("config", "config.toml")

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        env: Optional[Mapping[str, str]] = None,
        sources: Optional[List[Path]] = None,
    ):
        """Initialize configuration store.

        Args:
            values: Merged configuration tables
            env: Environment used for CARGO_* overrides (default: os.environ)
            sources: Files the values were loaded from, for error messages
        """
        self.values: Dict[str, Any] = dict(values or {})
        self.env: Dict[str, str] = dict(os.environ if env is None else env)
        self.sources: List[Path] = list(sources or [])

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], env: Optional[Mapping[str, str]] = None
    ) -> "CargoConfig":
        """Build a store from an in-memory mapping."""
        return cls(values=data, env=env if env is not None else {})

    @classmethod
    def discover(
        cls,
        cwd: Path,
        home: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "CargoConfig":
        """Load and merge every config file visible from a directory.

        Args:
            cwd: Directory to start the upward search from
            home: Cargo home directory (default: $CARGO_HOME or ~/.cargo)
            env: Environment mapping (default: os.environ)

        Returns:
            Merged CargoConfig

        Raises:
            ConfigError: If a config file cannot be read or parsed
        """
        env = dict(os.environ if env is None else env)
        if home is None:
            cargo_home = env.get("CARGO_HOME")
            home = Path(cargo_home) if cargo_home else Path.home() / ".cargo"
        home = Path(home).resolve()

        files: List[Path] = []
        for directory in [Path(cwd).resolve(), *Path(cwd).resolve().parents]:
            config_dir = directory / ".cargo"
            if config_dir.resolve() == home:
                continue
            path = cls._config_file_in(config_dir)
            if path is not None:
                files.append(path)
        home_file = cls._config_file_in(home)
        if home_file is not None:
            files.append(home_file)

        merged: Dict[str, Any] = {}
        # lowest precedence first so later files win
        for path in reversed(files):
            merged = merge_values(merged, cls._load_file(path))
        logging.debug(f"Loaded {len(files)} cargo config file(s): {[str(f) for f in files]}")
        return cls(values=merged, env=env, sources=files)

    @classmethod
    def _config_file_in(cls, directory: Path) -> Optional[Path]:
        legacy = directory / "config"
        modern = directory / "config.toml"
        if legacy.is_file():
            if modern.is_file():
                logging.warning(
                    f"Both `{legacy}` and `{modern}` exist. Using `{legacy}`"
                )
            return legacy
        if modern.is_file():
            return modern
        return None

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "rb") as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"could not parse TOML configuration in `{path}`: {e}") from e
        except OSError as e:
            raise ConfigError(f"failed to read configuration file `{path}`: {e}") from e

    def _describe_sources(self) -> str:
        if not self.sources:
            return "in-memory configuration"
        return ", ".join(str(p) for p in self.sources)

    def get(self, key: str) -> Any:
        """Look up a dotted key.

        An environment override (CARGO_<KEY>) takes precedence over file
        values. Keys with cfg(...) segments have no environment form.

        Returns:
            The value, or None if absent
        """
        parts = split_key(key)
        if not any("(" in part for part in parts):
            env_value = self.env.get(env_key(key))
            if env_value is not None:
                return env_value

        value: Any = self.values
        for part in parts:
            if not isinstance(value, Mapping) or part not in value:
                return None
            value = value[part]
        return value

    def get_string_list(self, key: str) -> Optional[List[str]]:
        """Look up a key holding a list of strings.

        Accepts a TOML array of strings or a whitespace-separated string.

        Raises:
            ConfigError: If the value has any other type
        """
        return self._to_string_list(key, self.get(key))

    def get_string(self, key: str) -> Optional[str]:
        value = self.get(key)
        if value is None or isinstance(value, str):
            return value
        raise ConfigError(
            f"invalid configuration for key `{key}`\n"
            f"expected a string, but found {type(value).__name__} in {self._describe_sources()}"
        )

    def _to_string_list(self, key: str, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            return value.split()
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
        raise ConfigError(
            f"invalid configuration for key `{key}`\n"
            f"expected a string or array of strings, but found "
            f"{type(value).__name__} in {self._describe_sources()}"
        )

    def target_cfgs(self) -> List[Tuple[str, TargetConfig]]:
        """All `[target.'cfg(..)']` sections, sorted by key."""
        targets = self.values.get("target") or {}
        if not isinstance(targets, Mapping):
            raise ConfigError(
                f"expected a table for `target`, found {type(targets).__name__} "
                f"in {self._describe_sources()}"
            )
        result = []
        for key in sorted(targets):
            if not key.startswith("cfg("):
                continue
            table = targets[key]
            if not isinstance(table, Mapping):
                raise ConfigError(f"expected a table for `target.{key}`")
            prefix = f"target.{key}"
            result.append(
                (
                    key,
                    TargetConfig(
                        rustflags=self._to_string_list(f"{prefix}.rustflags", table.get("rustflags")),
                        rustdocflags=self._to_string_list(
                            f"{prefix}.rustdocflags", table.get("rustdocflags")
                        ),
                        linker=table.get("linker"),
                        runner=self._to_string_list(f"{prefix}.runner", table.get("runner")),
                    ),
                )
            )
        return result

    def target_cfg_triple(self, name: str) -> TargetConfig:
        """Configuration snapshot for a specific target triple."""
        prefix = f"target.{name}"
        return TargetConfig(
            rustflags=self.get_string_list(f"{prefix}.rustflags"),
            rustdocflags=self.get_string_list(f"{prefix}.rustdocflags"),
            linker=self.get_string(f"{prefix}.linker"),
            runner=self.get_string_list(f"{prefix}.runner"),
        )

    def build_config(self) -> BuildConfig:
        """Configuration snapshot for the `[build]` section."""
        return BuildConfig(
            rustflags=self.get_string_list("build.rustflags"),
            rustdocflags=self.get_string_list("build.rustdocflags"),
            target=self.get_string("build.target"),
        )
