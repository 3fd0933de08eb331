"""Configuration models and parser for codexbridge.yaml."""

from codexbridge.config.models import (
    AuthConfig,
    BridgeConfig,
    CodexConfig,
    SandboxMode,
)
from codexbridge.config.parser import ConfigError, load_config

__all__ = [
    "AuthConfig",
    "BridgeConfig",
    "CodexConfig",
    "ConfigError",
    "SandboxMode",
    "load_config",
]
