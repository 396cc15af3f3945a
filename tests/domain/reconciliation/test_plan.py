from __future__ import annotations

import pytest

from ismctl.domain.model import ROOT_PATH, OpKind
from ismctl.domain.reconciliation import (
    EnrollPayload,
    OwnerPayload,
    PlanInvariantError,
    ReconciliationPlan,
    RedeployPayload,
    ThresholdPayload,
    UnenrollPayload,
    UpdateOperation,
)
from tests.helpers.modules import NEW_OWNER, multisig


def _threshold(path: tuple[str | int, ...], threshold: int = 2) -> UpdateOperation:
    return UpdateOperation(
        target="base",
        kind=OpKind.SET_THRESHOLD,
        path=path,
        payload=ThresholdPayload(threshold=threshold),
    )


def test_plan_rejects_second_operation_with_same_path_and_kind() -> None:
    plan = ReconciliationPlan(target="base")
    plan.add(_threshold(("ethereum",)))

    with pytest.raises(PlanInvariantError, match="Duplicate set_threshold at /ethereum"):
        plan.add(_threshold(("ethereum",), threshold=3))

    assert len(plan) == 1


def test_plan_accepts_different_kinds_on_same_node() -> None:
    plan = ReconciliationPlan(target="base")
    plan.extend(
        [
            _threshold(()),
            UpdateOperation(
                target="base",
                kind=OpKind.TRANSFER_OWNER,
                path=(),
                payload=OwnerPayload(owner=NEW_OWNER),
            ),
        ]
    )

    assert plan.kinds() == [OpKind.SET_THRESHOLD, OpKind.TRANSFER_OWNER]
    assert plan.address_preserved


def test_root_redeploy_does_not_preserve_address() -> None:
    plan = ReconciliationPlan(target="base")
    plan.add(
        UpdateOperation(
            target="base",
            kind=OpKind.REDEPLOY,
            path=ROOT_PATH,
            payload=RedeployPayload(module=multisig(1, "A"), reason="anchor changed"),
        )
    )

    assert not plan.address_preserved
    assert plan.operations[0].describe() == "Redeploy / (anchor changed)"


def test_route_operations_are_authorised_by_the_parent() -> None:
    enroll = UpdateOperation(
        target="base",
        kind=OpKind.ENROLL_DOMAIN,
        path=("ethereum", "polygon"),
        payload=EnrollPayload(domain="polygon", module=multisig(1, "A")),
    )
    unenroll = UpdateOperation(
        target="base",
        kind=OpKind.UNENROLL_DOMAIN,
        path=("optimism",),
        payload=UnenrollPayload(domain="optimism"),
    )

    assert enroll.authority_path == ("ethereum",)
    assert unenroll.authority_path == ROOT_PATH
    assert _threshold(("ethereum", 0)).authority_path == ("ethereum", 0)
    assert enroll.describe() == "Enroll polygon -> multisig at /ethereum/polygon"
    assert unenroll.describe() == "Unenroll optimism at /optimism"
