"""Wire schemas of the module RPC gateway."""

from __future__ import annotations

import logging
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

type HexAddress = str


class RpcBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "RPC %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class _DeployedNodeBase(RpcBaseModel):
    address: HexAddress
    anchor: HexAddress | None = None
    code_hash: str | None = Field(default=None, alias="codeHash")


class MultisigNode(_DeployedNodeBase):
    type: Literal["multisig"]
    threshold: int
    validators: list[HexAddress]


class RoutingNode(_DeployedNodeBase):
    type: Literal["routing"]
    owner: HexAddress
    domains: dict[str, DeployedNode] = Field(default_factory=dict)
    fallback: bool = False


class AggregationNode(_DeployedNodeBase):
    type: Literal["aggregation"]
    threshold: int
    modules: list[DeployedNode]


class TrustedRelayerNode(_DeployedNodeBase):
    type: Literal["trustedRelayer"]
    relayer: HexAddress


DeployedNode = Annotated[
    MultisigNode | RoutingNode | AggregationNode | TrustedRelayerNode,
    Field(discriminator="type"),
]


class ModuleResponse(RpcBaseModel):
    target: str
    module: DeployedNode


class TransactionRequest(RpcBaseModel):
    target: str
    kind: str
    path: list[str | int]
    payload: dict[str, object]


class TransactionResponse(RpcBaseModel):
    reference: str = Field(alias="hash")
    status: Literal["success", "reverted"] = "success"
    reason: str | None = None


class DeploymentRequest(RpcBaseModel):
    module: dict[str, object]
    constructor_args: dict[str, object] = Field(default_factory=dict, alias="constructorArgs")


class DeploymentResponse(RpcBaseModel):
    address: HexAddress


RoutingNode.model_rebuild()
AggregationNode.model_rebuild()
ModuleResponse.model_rebuild()
