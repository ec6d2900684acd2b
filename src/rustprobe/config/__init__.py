"""Configuration modules for rustprobe."""

from .cargo_config import BuildConfig, CargoConfig, ConfigError, TargetConfig
from .cfg_expr import Cfg, CfgExpr, CfgParseError, Platform

__all__ = [
    "CargoConfig",
    "ConfigError",
    "TargetConfig",
    "BuildConfig",
    "Cfg",
    "CfgExpr",
    "CfgParseError",
    "Platform",
]
