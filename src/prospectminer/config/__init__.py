"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .loader import deep_merge, find_config_file, load_config, normalize_keys
from .logging import configure_logging
from .places import GooglePlacesConfig, get_places_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "GooglePlacesConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "deep_merge",
    "find_config_file",
    "get_database_config",
    "get_places_config",
    "get_storage_config",
    "load_config",
    "normalize_keys",
    "require_env_var",
    "require_env_vars",
]
