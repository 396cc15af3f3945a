"""Module RPC gateway adapter."""

from __future__ import annotations

from ismctl.config.rpc import get_rpc_config

from .client import RpcAPIError, RpcClient
from .executor import HttpNetwork
from .reader import HttpStateReader


def build_http_adapters(client: RpcClient | None = None) -> tuple[HttpStateReader, HttpNetwork]:
    """Return a reader and a network sharing one gateway client."""

    effective = client or RpcClient(config=get_rpc_config())
    return HttpStateReader(effective), HttpNetwork(effective)


__all__ = [
    "HttpNetwork",
    "HttpStateReader",
    "RpcAPIError",
    "RpcClient",
    "build_http_adapters",
]
