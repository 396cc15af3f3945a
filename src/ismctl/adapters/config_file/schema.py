"""Pydantic schema of the desired-state config file."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class MultisigSpec(ConfigFileModel):
    type: Literal["multisig"]
    threshold: int
    validators: list[str]


class RoutingSpec(ConfigFileModel):
    type: Literal["routing"]
    owner: str
    domains: dict[str, ModuleSpec] = Field(default_factory=dict)
    fallback: bool = False


class AggregationSpec(ConfigFileModel):
    type: Literal["aggregation"]
    threshold: int
    modules: list[ModuleSpec]


class TrustedRelayerSpec(ConfigFileModel):
    type: Literal["trustedRelayer"]
    relayer: str


ModuleSpec = Annotated[
    MultisigSpec | RoutingSpec | AggregationSpec | TrustedRelayerSpec,
    Field(discriminator="type"),
]


class TargetSpec(ConfigFileModel):
    module: ModuleSpec
    owner: str | None = None
    anchor: str | None = None
    network: str | None = None
    admin_network: str | None = Field(default=None, alias="adminNetwork")
    remove: bool = False
    recorded_hashes: dict[str, str] = Field(default_factory=dict, alias="recordedHashes")
    pinned_addresses: dict[str, str] = Field(default_factory=dict, alias="pinnedAddresses")


class RunConfigFile(ConfigFileModel):
    targets: dict[str, TargetSpec]
    domains: list[str] | None = None


RoutingSpec.model_rebuild()
AggregationSpec.model_rebuild()
TargetSpec.model_rebuild()
RunConfigFile.model_rebuild()
