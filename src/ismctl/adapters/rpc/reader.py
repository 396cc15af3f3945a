"""State reader backed by the RPC gateway."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from ismctl.domain.ports import ReadFailure

from .client import RpcAPIError
from .translator import translate_node

if TYPE_CHECKING:
    from ismctl.domain.model import DeployedModule, TargetId

    from .client import RpcClient

log = getLogger(__name__)


class HttpStateReader:
    """Read the deployed module tree of a target through the gateway."""

    def __init__(self, client: RpcClient) -> None:
        self._client = client

    def __call__(self, target: TargetId) -> DeployedModule:
        try:
            response = self._client.fetch_module(target)
        except httpx.HTTPStatusError as exc:
            raise ReadFailure(target, f"gateway returned {exc.response.status_code}") from exc
        except (httpx.HTTPError, RpcAPIError) as exc:
            raise ReadFailure(target, str(exc) or type(exc).__name__) from exc
        if response.target != target:
            raise ReadFailure(target, f"gateway answered for {response.target}")
        log.debug("Read module tree of %s at %s", target, response.module.address)
        return translate_node(response.module)
