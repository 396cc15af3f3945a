from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from ismctl.domain.model import ROOT_PATH, DeployedRouting, OpKind
from ismctl.domain.reconciliation import (
    EnrollPayload,
    OwnerPayload,
    RedeployPayload,
    ThresholdPayload,
    ValidatorsPayload,
    diff_module,
)
from tests.helpers.modules import (
    MAILBOX_1,
    MAILBOX_2,
    NEW_OWNER,
    addr,
    aggregation,
    deployed,
    multisig,
    relayer,
    routing,
)


def test_multisig_validator_change_yields_single_set_validators() -> None:
    observed = deployed(multisig(2, "A", "B", "D"))

    plan = diff_module(multisig(2, "A", "B", "C"), observed, target="ethereum")

    assert plan.kinds() == [OpKind.SET_VALIDATORS]
    payload = plan.operations[0].payload
    assert isinstance(payload, ValidatorsPayload)
    assert payload.validators == frozenset({addr("A"), addr("B"), addr("C")})


def test_validator_diff_ignores_input_order() -> None:
    observed = deployed(multisig(2, "C", "B", "A"))

    assert diff_module(multisig(2, "A", "B", "C"), observed, target="ethereum").is_empty


def test_validators_change_before_threshold_when_raising_threshold() -> None:
    observed = deployed(multisig(1, "A", "B"))

    plan = diff_module(multisig(3, "A", "B", "C", "D"), observed, target="ethereum")

    assert plan.kinds() == [OpKind.SET_VALIDATORS, OpKind.SET_THRESHOLD]


def test_threshold_lowered_first_when_validator_set_shrinks_below_it() -> None:
    observed = deployed(multisig(3, "A", "B", "C"))

    plan = diff_module(multisig(1, "A", "B"), observed, target="ethereum")

    assert plan.kinds() == [OpKind.SET_THRESHOLD, OpKind.SET_VALIDATORS]
    payload = plan.operations[0].payload
    assert isinstance(payload, ThresholdPayload)
    assert payload.threshold == 1


def test_routing_enrolls_new_domain_with_module_payload() -> None:
    desired = routing({"ethereum": multisig(1, "A"), "base": multisig(1, "B")})
    observed = deployed(routing({"ethereum": multisig(1, "A")}))

    plan = diff_module(desired, observed, target="arbitrum")

    assert plan.kinds() == [OpKind.ENROLL_DOMAIN]
    operation = plan.operations[0]
    assert operation.path == ("base",)
    assert operation.authority_path == ROOT_PATH
    assert isinstance(operation.payload, EnrollPayload)
    assert operation.payload.module == multisig(1, "B")
    assert operation.payload.address is None


def test_routing_enrolls_domain_inside_declared_universe() -> None:
    desired = routing({"ethereum": multisig(1, "A"), "base": multisig(1, "B")})
    observed = deployed(routing({"ethereum": multisig(1, "A")}))

    plan = diff_module(desired, observed, target="arbitrum", universe={"ethereum", "base"})

    assert plan.kinds() == [OpKind.ENROLL_DOMAIN]
    assert plan.skipped == []


def test_routing_unenrolls_observed_only_domain_still_in_universe() -> None:
    desired = routing({"ethereum": multisig(1, "A")})
    observed = deployed(routing({"ethereum": multisig(1, "A"), "polygon": multisig(1, "P")}))

    plan = diff_module(desired, observed, target="arbitrum", universe={"ethereum", "polygon"})

    assert plan.kinds() == [OpKind.UNENROLL_DOMAIN]
    assert plan.operations[0].path == ("polygon",)


def test_domain_dropped_from_universe_is_skipped_not_unenrolled(
    caplog: pytest.LogCaptureFixture,
) -> None:
    desired = routing({"ethereum": multisig(1, "A")})
    observed = deployed(routing({"ethereum": multisig(1, "A"), "polygon": multisig(1, "P")}))

    with caplog.at_level(logging.WARNING):
        plan = diff_module(desired, observed, target="arbitrum", universe={"ethereum"})

    assert plan.is_empty
    assert plan.skipped == [("polygon",)]
    assert "not in the declared universe" in caplog.text


def test_desired_domain_outside_universe_is_skipped() -> None:
    desired = routing({"ethereum": multisig(1, "A"), "mars": multisig(1, "M")})
    observed = deployed(routing({"ethereum": multisig(1, "A")}))

    plan = diff_module(desired, observed, target="arbitrum", universe={"ethereum"})

    assert plan.is_empty
    assert plan.skipped == [("mars",)]


def test_shared_domain_changes_are_spliced_in_place() -> None:
    desired = routing({"ethereum": multisig(2, "A", "B")})
    observed = deployed(routing({"ethereum": multisig(1, "A", "B")}))

    plan = diff_module(desired, observed, target="arbitrum")

    assert plan.kinds() == [OpKind.SET_THRESHOLD]
    assert plan.operations[0].path == ("ethereum",)


def test_variant_change_under_routing_becomes_enroll_replacing_old_module() -> None:
    desired = routing({"ethereum": relayer()})
    observed = deployed(routing({"ethereum": multisig(1, "A")}))
    assert isinstance(observed, DeployedRouting)
    old_child = observed.domains["ethereum"]

    plan = diff_module(desired, observed, target="arbitrum")

    assert plan.kinds() == [OpKind.ENROLL_DOMAIN]
    payload = plan.operations[0].payload
    assert isinstance(payload, EnrollPayload)
    assert payload.module == relayer()
    assert payload.replaces == old_child.address


def test_owner_change_alone_yields_transfer_owner() -> None:
    desired = routing({"ethereum": multisig(1, "A")}, owner=NEW_OWNER)
    observed = deployed(routing({"ethereum": multisig(1, "A")}))

    plan = diff_module(desired, observed, target="arbitrum")

    assert plan.kinds() == [OpKind.TRANSFER_OWNER]
    assert plan.address_preserved
    payload = plan.operations[0].payload
    assert isinstance(payload, OwnerPayload)
    assert payload.owner == NEW_OWNER


def test_transfer_owner_comes_after_structural_changes_of_the_node() -> None:
    desired = routing({"ethereum": multisig(1, "A"), "base": relayer()}, owner=NEW_OWNER)
    observed = deployed(routing({"ethereum": multisig(1, "A"), "polygon": relayer()}))

    plan = diff_module(desired, observed, target="arbitrum")

    assert plan.kinds() == [OpKind.ENROLL_DOMAIN, OpKind.UNENROLL_DOMAIN, OpKind.TRANSFER_OWNER]


def test_nested_owner_transfer_stays_after_nested_structural_ops() -> None:
    inner_desired = routing({"base": multisig(1, "B")}, owner=NEW_OWNER)
    desired = routing({"ethereum": inner_desired})
    observed = deployed(routing({"ethereum": routing({})}))

    plan = diff_module(desired, observed, target="arbitrum")

    assert [(op.kind, op.path) for op in plan.operations] == [
        (OpKind.ENROLL_DOMAIN, ("ethereum", "base")),
        (OpKind.TRANSFER_OWNER, ("ethereum",)),
    ]


def test_aggregation_threshold_change_forces_redeploy() -> None:
    members = (multisig(1, "A"), relayer())
    observed = deployed(aggregation(1, *members))

    plan = diff_module(aggregation(2, *members), observed, target="ethereum")

    assert plan.kinds() == [OpKind.REDEPLOY]
    assert not plan.address_preserved
    payload = plan.operations[0].payload
    assert isinstance(payload, RedeployPayload)
    assert payload.previous_address == observed.address
    assert payload.reason == "aggregation threshold changed"


@pytest.mark.parametrize(
    ("desired_members", "reason"),
    [
        ((relayer(), multisig(1, "A")), "aggregation member order changed"),
        ((multisig(1, "A"),), "aggregation member count changed"),
        ((multisig(1, "A"), relayer("0x00000000000000000000000000000000000000dd")), "member 1"),
    ],
)
def test_aggregation_shape_changes_force_redeploy(
    desired_members: tuple[object, ...],
    reason: str,
) -> None:
    observed = deployed(aggregation(1, multisig(1, "A"), relayer()))

    plan = diff_module(
        aggregation(1, *desired_members),  # pyright: ignore[reportArgumentType]
        observed,
        target="ethereum",
    )

    assert plan.kinds() == [OpKind.REDEPLOY]
    assert plan.operations[0].path == ROOT_PATH
    payload = plan.operations[0].payload
    assert isinstance(payload, RedeployPayload)
    assert reason in payload.reason


def test_aggregation_member_setter_is_spliced_with_index_path() -> None:
    observed = deployed(aggregation(1, multisig(1, "A"), multisig(1, "B")))

    plan = diff_module(
        aggregation(1, multisig(1, "A", "C"), multisig(1, "B", "C")),
        observed,
        target="ethereum",
    )

    assert [(op.kind, op.path) for op in plan.operations] == [
        (OpKind.SET_VALIDATORS, (0,)),
        (OpKind.SET_VALIDATORS, (1,)),
    ]


def test_swapping_same_kind_aggregation_members_forces_redeploy() -> None:
    observed = deployed(aggregation(1, multisig(1, "A"), multisig(2, "B", "C")))

    plan = diff_module(
        aggregation(1, multisig(2, "B", "C"), multisig(1, "A")),
        observed,
        target="ethereum",
    )

    assert plan.kinds() == [OpKind.REDEPLOY]
    assert plan.operations[0].path == ROOT_PATH
    payload = plan.operations[0].payload
    assert isinstance(payload, RedeployPayload)
    assert payload.reason == "aggregation member order changed"


def test_repeated_identical_aggregation_members_are_not_a_reorder() -> None:
    members = (multisig(1, "A"), multisig(1, "A"))
    observed = deployed(aggregation(1, *members))

    assert diff_module(aggregation(1, *members), observed, target="ethereum").is_empty


def test_trusted_relayer_change_forces_redeploy() -> None:
    observed = deployed(relayer())

    plan = diff_module(
        relayer("0x00000000000000000000000000000000000000dd"), observed, target="ethereum"
    )

    assert plan.kinds() == [OpKind.REDEPLOY]


def test_anchor_change_redeploys_bound_fallback_routing() -> None:
    desired = routing({"ethereum": multisig(1, "A")}, fallback=True)
    observed = deployed(desired, anchor=MAILBOX_1)

    plan = diff_module(desired, observed, target="arbitrum", anchor=MAILBOX_2)

    assert plan.kinds() == [OpKind.REDEPLOY]
    assert plan.operations[0].path == ROOT_PATH
    assert not plan.address_preserved


def test_same_anchor_keeps_bound_node() -> None:
    desired = routing({"ethereum": multisig(1, "A")}, fallback=True)
    observed = deployed(desired, anchor=MAILBOX_1)

    assert diff_module(desired, observed, target="arbitrum", anchor=MAILBOX_1).is_empty


def test_anchor_change_ignores_unbound_nodes() -> None:
    desired = routing({"ethereum": multisig(1, "A")})
    observed = deployed(desired, anchor=MAILBOX_1)

    assert diff_module(desired, observed, target="arbitrum", anchor=MAILBOX_2).is_empty


def test_fallback_flip_forces_replacement() -> None:
    observed = deployed(routing({"ethereum": multisig(1, "A")}))

    plan = diff_module(
        routing({"ethereum": multisig(1, "A")}, fallback=True), observed, target="arbitrum"
    )

    assert plan.kinds() == [OpKind.REDEPLOY]


def test_identical_trees_yield_empty_plan() -> None:
    desired = routing(
        {
            "ethereum": aggregation(1, multisig(2, "A", "B"), relayer()),
            "base": routing({"optimism": multisig(1, "C")}),
        }
    )

    assert diff_module(desired, deployed(desired), target="arbitrum").is_empty


def test_plan_has_unique_path_kind_keys() -> None:
    desired = routing(
        {
            "ethereum": aggregation(1, multisig(1, "A", "B"), multisig(1, "C", "D")),
            "base": multisig(2, "A", "B", "C"),
        },
        owner=NEW_OWNER,
    )
    observed = deployed(
        routing(
            {
                "ethereum": aggregation(1, multisig(1, "A"), multisig(1, "C")),
                "base": multisig(1, "A", "B"),
            }
        )
    )

    plan = diff_module(desired, observed, target="arbitrum")

    keys = [operation.key for operation in plan.operations]
    assert len(keys) == len(set(keys))
    assert len(plan) == 5


def test_differ_does_not_mutate_inputs() -> None:
    desired = routing({"ethereum": multisig(2, "A", "B")})
    observed = deployed(routing({"polygon": multisig(1, "A")}))
    snapshot = replace(observed)

    diff_module(desired, observed, target="arbitrum")

    assert observed == snapshot
    assert desired == routing({"ethereum": multisig(2, "A", "B")})
