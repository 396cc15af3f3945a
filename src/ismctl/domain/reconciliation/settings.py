"""Explicit run configuration shared by the checker and the governor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ismctl.domain.model import ConfigValidationError, validate_module_config

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ismctl.domain.model import Address, DomainId, DomainPath, ModuleConfig, TargetId


@dataclass(frozen=True, slots=True, kw_only=True)
class TargetConfig:
    """Desired state and governance settings for one target.

    ``owner`` is the declared identity that signs governance transactions for
    the target. ``admin_network`` redirects administrative calls to another
    network. ``recorded_hashes`` pins code hashes of nodes that should not
    have changed; ``pinned_addresses`` pins the expected address of routed
    counterparts.
    """

    target: TargetId
    module: ModuleConfig
    owner: Address | None = None
    anchor: Address | None = None
    network: DomainId | None = None
    admin_network: DomainId | None = None
    remove: bool = False
    recorded_hashes: Mapping[DomainPath, str] = field(default_factory=dict["DomainPath", "str"])
    pinned_addresses: Mapping[DomainPath, Address] = field(
        default_factory=dict["DomainPath", "Address"]
    )

    @property
    def home_network(self) -> DomainId:
        return self.network or self.target

    @property
    def submit_network(self) -> DomainId:
        return self.admin_network or self.home_network


@dataclass(frozen=True, slots=True)
class RunConfig:
    """All targets of one reconciliation run.

    ``domains`` declares the universe of reachable networks; when omitted the
    universe is the set of declared targets.
    """

    targets: Mapping[TargetId, TargetConfig]
    domains: frozenset[DomainId] | None = None

    @property
    def universe(self) -> frozenset[DomainId]:
        if self.domains is not None:
            return self.domains
        return frozenset(self.targets)

    def target(self, target: TargetId) -> TargetConfig:
        try:
            return self.targets[target]
        except KeyError as exc:
            raise ValueError(f"Unknown target: {target}") from exc

    def active_targets(self) -> tuple[TargetId, ...]:
        return tuple(name for name, config in self.targets.items() if not config.remove)

    def validate(self) -> None:
        """Validate every desired tree, raising one error listing all problems."""

        problems: list[str] = []
        for name, config in self.targets.items():
            if config.target != name:
                problems.append(f"{name}: target config is registered as {config.target}")
            try:
                validate_module_config(config.module)
            except ConfigValidationError as exc:
                problems.extend(f"{name} {problem}" for problem in exc.problems)
        if problems:
            raise ConfigValidationError(problems)
