"""
Collection of information about rustc, the host and the requested target.

RustcTargetData is the entry point used by a build planner: it probes the
host once and, when a --target was requested, the target once, and then
answers platform queries from memory.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..config.cargo_config import CargoConfig, TargetConfig
from ..config.cfg_expr import Cfg, Platform
from ..toolchain.rustc import Rustc
from .compile_kind import CompileKind, CompileTarget
from .flag_resolver import FlagResolver
from .target_info import TargetInfo


@dataclass(frozen=True)
class Dependency:
    """A dependency as seen by platform activation.

    Attributes:
        name: Package name
        platform: Platform restriction (`[target.'cfg(unix)'.dependencies]`),
            None if the dependency applies everywhere
    """

    name: str
    platform: Optional[Platform] = None


class RustcTargetData:
    """Build information for the host and the requested targets.

    The host entry describes rustc invoked without --target and is used for
    proc-macros and build scripts. The target maps are empty when no
    --target is requested and currently hold at most one entry.
    """

    def __init__(
        self,
        rustc: Rustc,
        host_config: TargetConfig,
        host_info: TargetInfo,
        target_config: Dict[CompileTarget, TargetConfig],
        target_info: Dict[CompileTarget, TargetInfo],
    ):
        if set(target_config) != set(target_info):
            raise ValueError("target config and target info must cover the same targets")
        self.rustc = rustc
        self.host_config = host_config
        self.host_info = host_info
        self._target_config = dict(target_config)
        self._target_info = dict(target_info)

    @classmethod
    def new(
        cls,
        config: CargoConfig,
        rustc: Rustc,
        requested_kind: CompileKind,
        resolver: Optional[FlagResolver] = None,
    ) -> "RustcTargetData":
        """Probe the host and, if requested, the target platform.

        Raises:
            TargetInfoError: If probing rustc fails
            ConfigError: If the configuration cannot be read
        """
        resolver = resolver or FlagResolver(config)
        host_config = config.target_cfg_triple(rustc.host)
        host_info = TargetInfo.new(config, requested_kind, rustc, CompileKind.host(), resolver)

        target_config: Dict[CompileTarget, TargetConfig] = {}
        target_info: Dict[CompileTarget, TargetInfo] = {}
        if not requested_kind.is_host():
            target = requested_kind.compile_target
            target_config[target] = config.target_cfg_triple(target.short_name())
            target_info[target] = TargetInfo.new(config, requested_kind, rustc, requested_kind, resolver)

        logging.debug(f"Target data ready: host={rustc.host}, targets={[str(t) for t in target_info]}")
        return cls(rustc, host_config, host_info, target_config, target_info)

    def short_name(self, kind: CompileKind) -> str:
        """Name of a platform for configuration keys and user display."""
        if kind.is_host():
            return self.rustc.host
        return kind.compile_target.short_name()

    def dep_platform_activated(self, dep: Dependency, kind: CompileKind) -> bool:
        """Whether a dependency applies when compiling for `kind`."""
        if dep.platform is None:
            return True
        return dep.platform.matches(self.short_name(kind), self.cfg(kind))

    def cfg(self, kind: CompileKind) -> Tuple[Cfg, ...]:
        """The cfg list printed by the compiler for a platform."""
        return self.info(kind).cfg()

    def info(self, kind: CompileKind) -> TargetInfo:
        """Information about a platform, learned by querying rustc.

        Raises:
            KeyError: If the target was not requested
        """
        if kind.is_host():
            return self.host_info
        return self._target_info[kind.compile_target]

    def target_config(self, kind: CompileKind) -> TargetConfig:
        """Configuration snapshot for a platform.

        Raises:
            KeyError: If the target was not requested
        """
        if kind.is_host():
            return self.host_config
        return self._target_config[kind.compile_target]
