"""Extra Compiler Flag Resolver.

This module decides which extra flags are passed to rustc and rustdoc for a
given platform.

Design:
    Locations are consulted in order and the first one that yields flags wins:
    1. Nothing at all for host units when an explicit --target was requested
       (build scripts and proc-macros must not receive target flags, even if
       the target triple equals the host triple)
    2. The RUSTFLAGS / RUSTDOCFLAGS environment variable, if set
    3. `target.<triple>.rustflags` plus every matching
       `target.'cfg(..)'.rustflags` (only once the cfg list is known)
    4. `build.rustflags`
"""

import logging
import os
from typing import List, Mapping, Optional, Sequence

from ..config.cargo_config import CargoConfig
from ..config.cfg_expr import Cfg, CfgExpr
from .compile_kind import CompileKind

FLAG_FAMILIES = ("RUSTFLAGS", "RUSTDOCFLAGS")


class FlagResolver:
    """Resolves extra flags from the environment and configuration."""

    def __init__(self, config: CargoConfig, env: Optional[Mapping[str, str]] = None):
        """Initialize flag resolver.

        Args:
            config: Layered configuration store
            env: Environment to read RUSTFLAGS/RUSTDOCFLAGS from (default: os.environ)
        """
        self.config = config
        self.env = os.environ if env is None else env

    @staticmethod
    def split_env_flags(value: str) -> List[str]:
        """Split an environment flag string on single spaces.

        No quoting or escaping is supported.

        Example:
            >>> FlagResolver.split_env_flags("-C a  -C b ")
            ['-C', 'a', '-C', 'b']
        """
        return [part.strip() for part in value.split(" ") if part.strip()]

    def resolve(
        self,
        requested_kind: CompileKind,
        host_triple: str,
        target_cfg: Optional[Sequence[Cfg]],
        kind: CompileKind,
        name: str,
    ) -> List[str]:
        """Resolve the extra flags of one flag family for one platform.

        Args:
            requested_kind: Platform the user asked to build for
            host_triple: Host triple of the compiler
            target_cfg: Predicates of the platform, or None before they are known
            kind: Platform being resolved
            name: "RUSTFLAGS" or "RUSTDOCFLAGS"

        Returns:
            Ordered list of flag tokens

        Raises:
            ValueError: If name is not a known flag family
            ConfigError: If the configuration holds invalid values
        """
        if name not in FLAG_FAMILIES:
            raise ValueError(f"unknown flag family `{name}`, expected one of {FLAG_FAMILIES}")

        if not requested_kind.is_host() and kind.is_host():
            logging.debug(f"{name} for host: none, --target {requested_kind} was requested")
            return []

        env_value = self.env.get(name)
        if env_value is not None:
            flags = self.split_env_flags(env_value)
            logging.debug(f"{name} for {kind}: from environment {flags}")
            return flags

        key_name = name.lower()
        target = host_triple if kind.is_host() else kind.compile_target.short_name()

        flags: List[str] = []
        target_flags = self.config.get_string_list(f"target.{target}.{key_name}")
        if target_flags:
            flags.extend(target_flags)

        if target_cfg is not None:
            for key, target_config in self.config.target_cfgs():
                cfg_flags = getattr(target_config, key_name)
                if cfg_flags is None:
                    continue
                if CfgExpr.matches_key(key, target_cfg):
                    flags.extend(cfg_flags)

        if flags:
            logging.debug(f"{name} for {kind}: from target config {flags}")
            return flags

        build = self.config.build_config()
        build_flags = build.rustflags if key_name == "rustflags" else build.rustdocflags
        if build_flags is not None:
            logging.debug(f"{name} for {kind}: from build config {build_flags}")
            return list(build_flags)

        return []
