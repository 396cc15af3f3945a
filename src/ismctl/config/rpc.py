"""Configuration for the module RPC gateway."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_seconds, env_value, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_RPC_TIMEOUT_SECONDS = 30.0
DEFAULT_RPC_CALLS_PER_SECOND = 10


@dataclass(frozen=True, slots=True)
class RpcConfig:
    resilience: ResilienceConfig


def get_rpc_config() -> RpcConfig:
    values = require_env_vars(("ISMCTL_RPC_URL",))
    headers = {"Accept": "application/json"}
    token = env_value("ISMCTL_RPC_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    resilience = ResilienceConfig(
        name="rpc",
        base_url=values["ISMCTL_RPC_URL"].rstrip("/"),
        timeout_seconds=env_seconds("ISMCTL_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT_SECONDS),
        ratelimit=RateLimit(max_calls=DEFAULT_RPC_CALLS_PER_SECOND, per_seconds=1.0),
        retry=RetryPolicy(total=4),
        default_headers=headers,
    )
    return RpcConfig(resilience=resilience)
