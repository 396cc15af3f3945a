from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from ismctl.adapters.rpc import RpcAPIError, RpcClient
from ismctl.adapters.rpc.schema import (
    DeploymentRequest,
    RoutingNode,
    TransactionRequest,
)
from ismctl.config.http_resilience import ResilienceConfig
from ismctl.config.rpc import RpcConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    ClientFactory = Callable[[Callable[[httpx.Request], httpx.Response]], RpcClient]


def test_fetch_module_reads_target_tree(
    make_client: ClientFactory,
    module_payload: dict[str, object],
) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=module_payload)

    response = make_client(handler).fetch_module("arbitrum")

    assert response.target == "arbitrum"
    assert isinstance(response.module, RoutingNode)
    assert set(response.module.domains) == {"ethereum", "base"}
    [request] = requests
    assert request.method == "GET"
    assert request.url == "http://gateway.test/targets/arbitrum/module"
    assert request.headers["Authorization"] == "Bearer secret"


def test_reads_are_retried_on_transient_status(
    make_client: ClientFactory,
    module_payload: dict[str, object],
) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=module_payload)

    response = make_client(handler).fetch_module("arbitrum")

    assert calls == 2
    assert response.target == "arbitrum"


def test_submissions_are_never_retried(make_client: ClientFactory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503)

    client = make_client(handler)
    request = TransactionRequest(
        target="arbitrum", kind="set_threshold", path=["ethereum"], payload={"threshold": 2}
    )

    with pytest.raises(httpx.HTTPStatusError):
        client.submit_transaction("arbitrum", request)

    assert calls == 1


def test_submit_transaction_posts_to_network(make_client: ClientFactory) -> None:
    bodies: list[bytes] = []
    urls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        urls.append(str(request.url))
        return httpx.Response(200, json={"hash": "0xabc", "status": "success"})

    request = TransactionRequest(
        target="arbitrum", kind="set_threshold", path=["ethereum", 0], payload={"threshold": 2}
    )
    response = make_client(handler).submit_transaction("ethereum", request)

    assert response.reference == "0xabc"
    assert response.status == "success"
    assert urls == ["http://gateway.test/networks/ethereum/transactions"]
    assert b'"path":["ethereum",0]' in bodies[0].replace(b" ", b"")


def test_deploy_module_sends_constructor_args(make_client: ClientFactory) -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(201, json={"address": "0xDEAD"})

    request = DeploymentRequest(
        module={"type": "trustedRelayer", "relayer": "0xcc"},
        constructor_args={"anchor": "0xa001"},
    )
    response = make_client(handler).deploy_module("arbitrum", request)

    assert response.address == "0xDEAD"
    assert b'"constructorArgs":{"anchor":"0xa001"}' in bodies[0].replace(b" ", b"")


@pytest.mark.parametrize("payload", [["not", "an", "object"], {"target": "arbitrum"}])
def test_unexpected_payloads_raise_api_error(
    make_client: ClientFactory,
    payload: object,
) -> None:
    client = make_client(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(RpcAPIError, match="ModuleResponse"):
        client.fetch_module("arbitrum")


def test_missing_base_url_is_rejected() -> None:
    client = RpcClient(config=RpcConfig(resilience=ResilienceConfig(name="rpc")))

    with pytest.raises(RpcAPIError, match="base_url"):
        client.fetch_module("arbitrum")
