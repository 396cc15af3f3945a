"""Shared fixtures for RPC gateway adapter tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pytest

from ismctl.adapters.http_resilience import ResilientClient
from ismctl.adapters.rpc import RpcClient
from ismctl.config.http_resilience import ResilienceConfig, RetryPolicy
from ismctl.config.rpc import RpcConfig

if TYPE_CHECKING:
    from collections.abc import Callable

type RpcPayload = dict[str, object]
type Handler = Callable[[httpx.Request], httpx.Response]
FIXTURES = Path("tests/data/rpc")


@pytest.fixture
def module_payload() -> RpcPayload:
    return json.loads((FIXTURES / "module.json").read_text())


@pytest.fixture
def rpc_config() -> RpcConfig:
    return RpcConfig(
        resilience=ResilienceConfig(
            name="rpc",
            base_url="http://gateway.test",
            retry=RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0),
            default_headers={"Authorization": "Bearer secret"},
        )
    )


@pytest.fixture
def make_client(rpc_config: RpcConfig) -> Callable[[Handler], RpcClient]:
    """Build a gateway client whose requests are answered by ``handler``."""

    def factory(handler: Handler) -> RpcClient:
        transport = httpx.MockTransport(handler)
        return RpcClient(
            config=rpc_config,
            client_factory=lambda resilience: ResilientClient(resilience, transport=transport),
        )

    return factory
