"""Domain primitives: scalar aliases + small helpers.

Scalar aliases may be promoted to proper value objects later without changing imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

type Address = str
type DomainId = str
type TargetId = str
type PathSegment = str | int
type DomainPath = tuple[PathSegment, ...]

ROOT_PATH: DomainPath = ()


def normalize_address(address: Address) -> Address:
    return address.strip().lower()


def eq_address(left: Address | None, right: Address | None) -> bool:
    if left is None or right is None:
        return left is right
    return normalize_address(left) == normalize_address(right)


def normalize_addresses(addresses: Iterable[Address]) -> frozenset[Address]:
    return frozenset(normalize_address(address) for address in addresses)


def is_prefix(prefix: DomainPath, path: DomainPath) -> bool:
    """Return whether ``prefix`` addresses ``path`` itself or one of its ancestors."""

    return len(prefix) <= len(path) and path[: len(prefix)] == prefix


def format_path(path: DomainPath) -> str:
    if not path:
        return "/"
    return "/" + "/".join(
        f"[{segment}]" if isinstance(segment, int) else segment for segment in path
    )


def parse_path(text: str) -> DomainPath:
    """Inverse of ``format_path``: ``"/a/[0]"`` -> ``("a", 0)``."""

    if not text.startswith("/"):
        raise ValueError(f"Domain path must start with '/': {text!r}")
    segments: list[PathSegment] = []
    for part in text.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("[") and part.endswith("]"):
            segments.append(int(part[1:-1]))
        else:
            segments.append(part)
    return tuple(segments)
