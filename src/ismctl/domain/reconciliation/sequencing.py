"""Ordering and dependency rules for applying a plan."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ismctl.domain.model import is_prefix

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .plan import UpdateOperation


def sequence_operations(operations: Iterable[UpdateOperation]) -> list[UpdateOperation]:
    """Move every ownership transfer behind all other operations, keeping relative order.

    A transfer may revoke the signer's authority over the structural changes
    that still have to happen.
    """

    ordered = list(operations)
    return [op for op in ordered if not op.kind.is_ownership] + [
        op for op in ordered if op.kind.is_ownership
    ]


def depends_on(later: UpdateOperation, earlier: UpdateOperation) -> bool:
    """Whether ``later`` must not run once ``earlier`` failed.

    Operations on the same node, or on an ancestor/descendant of it, are
    causally linked. Operations on sibling subtrees are independent.
    """

    return is_prefix(earlier.path, later.path) or is_prefix(later.path, earlier.path)
