from __future__ import annotations

import logging

import pytest

from ismctl.domain.model import OpKind, ViolationKind
from ismctl.domain.reconciliation import TargetConfig, Violation, derive_plan
from ismctl.domain.reconciliation.derive import covers
from ismctl.domain.reconciliation.plan import EnrollPayload, OwnerPayload, UpdateOperation
from tests.helpers.modules import NEW_OWNER, OWNER, deployed, multisig, routing


def _violation(kind: ViolationKind, path: tuple[str | int, ...]) -> Violation:
    return Violation(target="base", kind=kind, path=path, expected=None, actual=None)


def test_derived_plan_keeps_only_operations_covering_violations() -> None:
    desired = routing({"ethereum": multisig(2, "A", "B")}, owner=NEW_OWNER)
    observed = deployed(routing({"ethereum": multisig(1, "A", "B")}))
    config = TargetConfig(target="base", module=desired)

    plan, unremediated = derive_plan(
        [_violation(ViolationKind.THRESHOLD, ("ethereum",))],
        config=config,
        observed=observed,
    )

    assert plan.kinds() == [OpKind.SET_THRESHOLD]
    assert unremediated == ()


def test_violations_without_remediation_are_logged_and_returned(
    caplog: pytest.LogCaptureFixture,
) -> None:
    desired = routing({"ethereum": multisig(1, "A")})
    observed = deployed(desired)
    config = TargetConfig(target="base", module=desired)
    violation = _violation(ViolationKind.BYTECODE_HASH, ("ethereum",))

    with caplog.at_level(logging.WARNING):
        plan, unremediated = derive_plan([violation], config=config, observed=observed)

    assert plan.is_empty
    assert unremediated == (violation,)
    assert "Ignoring bytecode_hash violation at /ethereum" in caplog.text


def test_structural_operation_covers_its_subtree() -> None:
    enroll = UpdateOperation(
        target="base",
        kind=OpKind.ENROLL_DOMAIN,
        path=("ethereum",),
        payload=EnrollPayload(domain="ethereum", address=OWNER),
    )

    assert covers(enroll, _violation(ViolationKind.THRESHOLD, ("ethereum", 0)))
    assert covers(enroll, _violation(ViolationKind.MODULE_TYPE, ("ethereum",)))
    assert not covers(enroll, _violation(ViolationKind.THRESHOLD, ("polygon",)))


def test_setter_only_covers_matching_kind_on_its_node() -> None:
    transfer = UpdateOperation(
        target="base",
        kind=OpKind.TRANSFER_OWNER,
        path=(),
        payload=OwnerPayload(owner=NEW_OWNER),
    )

    assert covers(transfer, _violation(ViolationKind.OWNER, ()))
    assert not covers(transfer, _violation(ViolationKind.OWNER, ("ethereum",)))
    assert not covers(transfer, _violation(ViolationKind.BYTECODE_HASH, ()))
