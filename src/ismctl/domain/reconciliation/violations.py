"""Typed violations and the run-wide violation sink."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ismctl.domain.model import format_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ismctl.domain.model import DomainPath, TargetId, ViolationKind


@dataclass(frozen=True, slots=True, kw_only=True)
class Violation:
    """Divergence between desired and observed state at one node."""

    target: TargetId
    kind: ViolationKind
    path: DomainPath
    expected: object
    actual: object
    check: str | None = None
    detail: str | None = None

    def describe(self) -> str:
        text = (
            f"{self.target} {format_path(self.path)} {self.kind}: "
            f"expected {self.expected!r}, actual {self.actual!r}"
        )
        if self.detail:
            text = f"{text} ({self.detail})"
        return text


@dataclass(slots=True)
class ViolationSink:
    """Append-only violation collection shared by concurrent checks."""

    _violations: list[Violation] = field(default_factory=list["Violation"])
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, violation: Violation) -> None:
        with self._lock:
            self._violations.append(violation)

    def extend(self, violations: Iterable[Violation]) -> None:
        batch = list(violations)
        with self._lock:
            self._violations.extend(batch)

    @property
    def violations(self) -> tuple[Violation, ...]:
        with self._lock:
            return tuple(self._violations)

    def for_target(self, target: TargetId) -> tuple[Violation, ...]:
        return tuple(violation for violation in self.violations if violation.target == target)

    def counts(self) -> Counter[ViolationKind]:
        return Counter(violation.kind for violation in self.violations)

    def __len__(self) -> int:
        with self._lock:
            return len(self._violations)
