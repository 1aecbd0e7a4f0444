"""
Configuration Module
====================

Validated configuration for arangolink connections.

Key Components:
- BaseConfig: Abstract configuration foundation with Pydantic validation
- ConnectionConfig: URLs, credentials, load balancing and retry policy
- resolve_connection_config: explicit arguments > environment > defaults
"""

from .config_base import BaseConfig, ConfigError, ConfigValidationError
from .connection_config import (
    DEFAULT_ARANGO_VERSION,
    DEFAULT_URL,
    AgentOptions,
    BasicAuth,
    BearerAuth,
    ConnectionConfig,
    LoadBalancingStrategy,
    resolve_connection_config,
)

__all__ = [
    'AgentOptions',
    'BaseConfig',
    'BasicAuth',
    'BearerAuth',
    'ConfigError',
    'ConfigValidationError',
    'ConnectionConfig',
    'DEFAULT_ARANGO_VERSION',
    'DEFAULT_URL',
    'LoadBalancingStrategy',
    'resolve_connection_config',
]
