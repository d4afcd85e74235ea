"""Tiered matching of partial references.

Categories are resolved against the roster keys; members against the live
guild directory. Both return a :class:`Resolution` so handlers can treat the
outcomes uniformly.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence, TypeVar

from .errors import AmbiguousReferenceError, NotFoundError
from .models import Resolution


class DirectoryEntry(Protocol):
    """Anything with a display name and a username, e.g. ``discord.Member``."""

    display_name: str
    name: str


M = TypeVar("M", bound=DirectoryEntry)


def resolve_fragment(fragment: str, candidates: Iterable[str]) -> Resolution[str]:
    """Resolve ``fragment`` by exact, then prefix, then substring match.

    Matching is case-insensitive and stops at the first tier with a hit.
    """

    if not fragment:
        return Resolution.none()
    names = list(candidates)
    needle = fragment.lower()
    tiers = (
        lambda c: c == needle,
        lambda c: c.startswith(needle),
        lambda c: needle in c,
    )
    for matcher in tiers:
        matches = [name for name in names if matcher(name.lower())]
        if len(matches) == 1:
            return Resolution.ok(matches[0])
        if matches:
            return Resolution.ambiguous(matches)
    return Resolution.none()


def category_hints(categories: Iterable[str], min_length: int = 3) -> List[str]:
    """Shortest lowercase prefix (at least ``min_length``) that resolves to each category."""

    names = list(categories)
    hints = []
    for name in names:
        lowered = name.lower()
        hint = lowered
        for size in range(min_length, len(lowered)):
            if resolve_fragment(lowered[:size], names).value == name:
                hint = lowered[:size]
                break
        hints.append(hint)
    return hints


def require_fragment(fragment: str, candidates: Iterable[str]) -> str:
    """Like :func:`resolve_fragment` but raising on anything but a unique match."""

    resolution = resolve_fragment(fragment, candidates)
    if resolution.is_ambiguous:
        raise AmbiguousReferenceError(fragment, resolution.matches)
    if resolution.is_none:
        raise NotFoundError(f"Category fragment '{fragment}' does not match any category.")
    return resolution.value  # type: ignore[return-value]


def _fields(entry: DirectoryEntry) -> tuple[str, str]:
    return (entry.display_name or "").lower(), (entry.name or "").lower()


def locate_member(query: str, directory: Iterable[M]) -> Resolution[M]:
    """Find a guild member by partial display name or username."""

    needle = query.strip().lower()
    if not needle:
        return Resolution.none()
    pool: List[M] = [
        entry for entry in directory if any(needle in value for value in _fields(entry))
    ]
    if not pool:
        return Resolution.none()

    exact = [entry for entry in pool if needle in _fields(entry)]
    if len(exact) == 1:
        return Resolution.ok(exact[0])
    starts = [
        entry for entry in pool if any(value.startswith(needle) for value in _fields(entry))
    ]
    if len(starts) == 1:
        return Resolution.ok(starts[0])
    if len(pool) == 1:
        return Resolution.ok(pool[0])
    return Resolution.ambiguous(pool)


def describe_members(members: Sequence[DirectoryEntry], limit: int = 5) -> List[str]:
    """Short labels for an ambiguous member sample."""

    return [str(getattr(member, "name", member)) for member in members[:limit]]


__all__ = [
    "DirectoryEntry",
    "category_hints",
    "describe_members",
    "locate_member",
    "require_fragment",
    "resolve_fragment",
]
