"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: ConfigProvider protocol, EnvConfigProvider, per-concern dataclasses
Hidden: Environment parsing, defaults

Every module receives its configuration as a dataclass at construction time;
nothing below this package reads the environment directly.
"""

from .provider import (
    APIConfig,
    ChallengeConfig,
    ConfigProvider,
    EnvConfigProvider,
    PartnerConfig,
    SecurityConfig,
    StorageConfig,
    TokenConfig,
)

__all__ = [
    "APIConfig",
    "ChallengeConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "PartnerConfig",
    "SecurityConfig",
    "StorageConfig",
    "TokenConfig",
]
