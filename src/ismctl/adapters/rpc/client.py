"""Module RPC gateway client."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ismctl.adapters.http_resilience import ResilientClient

from .schema import DeploymentResponse, ModuleResponse, TransactionResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx
    from pydantic import BaseModel

    from ismctl.config.http_resilience import ResilienceConfig
    from ismctl.config.rpc import RpcConfig

    from .schema import DeploymentRequest, TransactionRequest

log = getLogger(__name__)


class RpcAPIError(RuntimeError):
    """Raised when the gateway returns an unexpected response."""


class RpcClient:
    """Low-level HTTP client for the module RPC gateway."""

    def __init__(
        self,
        *,
        config: RpcConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def fetch_module(self, target: str) -> ModuleResponse:
        return asyncio.run(self._fetch_module_async(target))

    def submit_transaction(self, network: str, request: TransactionRequest) -> TransactionResponse:
        return asyncio.run(
            self._post_async(
                path=f"networks/{network}/transactions",
                body=request.model_dump(mode="json", by_alias=True),
                response_model=TransactionResponse,
            )
        )

    def deploy_module(self, network: str, request: DeploymentRequest) -> DeploymentResponse:
        return asyncio.run(
            self._post_async(
                path=f"networks/{network}/deployments",
                body=request.model_dump(mode="json", by_alias=True),
                response_model=DeploymentResponse,
            )
        )

    async def _fetch_module_async(self, target: str) -> ModuleResponse:
        self._require_base_url()
        async with self._client_factory(self._resilience) as client:
            response = await client.get(f"targets/{target}/module")
            response.raise_for_status()
            return self._parse(self._json(response), ModuleResponse)

    async def _post_async[M: BaseModel](
        self,
        *,
        path: str,
        body: dict[str, object],
        response_model: type[M],
    ) -> M:
        self._require_base_url()
        async with self._client_factory(self._resilience) as client:
            response = await client.post(path, json=body)
            response.raise_for_status()
            return self._parse(self._json(response), response_model)

    def _require_base_url(self) -> None:
        if self._resilience.base_url is None:
            raise RpcAPIError("Missing RPC base_url in resilience configuration")

    @staticmethod
    def _json(response: httpx.Response) -> object:
        try:
            return response.json()
        except ValueError as exc:
            raise RpcAPIError(f"Gateway returned a non-JSON body for {response.url}") from exc

    @staticmethod
    def _parse[M: BaseModel](payload: object, model: type[M]) -> M:
        if not isinstance(payload, dict):
            raise RpcAPIError(f"Unexpected {model.__name__} payload")
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise RpcAPIError(f"Malformed {model.__name__} payload: {exc}") from exc
