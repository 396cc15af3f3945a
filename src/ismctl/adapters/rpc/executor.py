"""Transaction executor and deploy primitive backed by the RPC gateway."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from ismctl.domain.model import normalize_address
from ismctl.domain.ports import ApplyFailure, Receipt

from .client import RpcAPIError
from .translator import build_deployment_request, build_transaction_request

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ismctl.domain.model import Address, DomainId, ModuleConfig
    from ismctl.domain.reconciliation.plan import UpdateOperation

    from .client import RpcClient

log = getLogger(__name__)


class HttpNetwork:
    """Submit operations and deployments, one request per transaction."""

    def __init__(self, client: RpcClient) -> None:
        self._client = client

    def submit(self, network: DomainId, operation: UpdateOperation) -> Receipt:
        request = build_transaction_request(operation)
        try:
            response = self._client.submit_transaction(network, request)
        except (httpx.HTTPError, RpcAPIError) as exc:
            raise ApplyFailure(f"{operation.describe()} on {network}: {exc}") from exc
        if response.status == "reverted":
            raise ApplyFailure(
                f"{operation.describe()} reverted on {network}: {response.reason or 'no reason'}"
            )
        return Receipt(
            network=network,
            reference=response.reference,
            description=operation.describe(),
        )

    def deploy(
        self,
        network: DomainId,
        config: ModuleConfig,
        constructor_args: Mapping[str, object] | None = None,
    ) -> Address:
        request = build_deployment_request(config, constructor_args)
        try:
            response = self._client.deploy_module(network, request)
        except (httpx.HTTPError, RpcAPIError) as exc:
            raise ApplyFailure(f"Deploying {config.kind} on {network}: {exc}") from exc
        address = normalize_address(response.address)
        log.info("Deployed %s on %s at %s", config.kind, network, address)
        return address
