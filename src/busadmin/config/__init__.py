"""Application configuration helpers."""

from __future__ import annotations

from .broker import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_VHOST,
    BrokerConfig,
    get_broker_config,
    get_default_vhost,
)
from .env import positive_int_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_VHOST",
    "BrokerConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_broker_config",
    "get_default_vhost",
    "positive_int_env",
    "require_env_vars",
]
