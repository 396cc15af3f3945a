"""Application configuration helpers."""

from __future__ import annotations

from .audit import AuditStoreConfig, get_audit_store_config
from .env import env_log_level, env_seconds, env_value, require_env_vars
from .errors import ConfigurationError, InvalidSettingError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryablePayloadError, RetryPolicy
from .logging import configure_logging
from .rpc import RpcConfig, get_rpc_config

__all__ = [
    "AuditStoreConfig",
    "ConfigurationError",
    "InvalidSettingError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "RetryablePayloadError",
    "RpcConfig",
    "configure_logging",
    "env_log_level",
    "env_seconds",
    "env_value",
    "get_audit_store_config",
    "get_rpc_config",
    "require_env_vars",
]
