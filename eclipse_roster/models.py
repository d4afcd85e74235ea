"""Core data models for the Eclipse roster bot."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class ResolutionStatus(str, Enum):
    OK = "ok"
    AMBIGUOUS = "ambiguous"
    NONE = "none"


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Outcome of resolving a partial reference against known candidates."""

    status: ResolutionStatus
    value: Optional[T] = None
    matches: Tuple[T, ...] = ()

    @classmethod
    def ok(cls, value: T) -> "Resolution[T]":
        return cls(ResolutionStatus.OK, value=value, matches=(value,))

    @classmethod
    def ambiguous(cls, matches) -> "Resolution[T]":
        return cls(ResolutionStatus.AMBIGUOUS, matches=tuple(matches))

    @classmethod
    def none(cls) -> "Resolution[T]":
        return cls(ResolutionStatus.NONE)

    @property
    def is_ok(self) -> bool:
        return self.status is ResolutionStatus.OK

    @property
    def is_ambiguous(self) -> bool:
        return self.status is ResolutionStatus.AMBIGUOUS

    @property
    def is_none(self) -> bool:
        return self.status is ResolutionStatus.NONE

    def sample(self, limit: int = 5) -> Tuple[T, ...]:
        """First ``limit`` matches, for display in warnings."""

        return self.matches[:limit]


@dataclass(frozen=True)
class AddResult:
    """Result of placing a member into a category."""

    name: str
    category: str
    previous: Optional[str] = None
    unchanged: bool = False

    @property
    def moved(self) -> bool:
        return self.previous is not None and not self.unchanged


@dataclass(frozen=True)
class RemoveResult:
    found: bool
    name: str
    category: Optional[str] = None


@dataclass(frozen=True)
class RoleRecipe:
    """A fixed set of role additions and removals applied by one command."""

    name: str
    description: str
    add: Tuple[int, ...]
    remove: Tuple[int, ...]
    required: Tuple[int, ...] = ()
    reset_nickname: bool = False
    emoji: str = "✅"
    colour: str = "#FFA500"
    summary: str = "Changed roles for {member}: {changes}"
    no_change: str = "No changes to apply for that user."


@dataclass
class RoleDiff:
    """Planned role changes for one member."""

    add: list[int] = field(default_factory=list)
    remove: list[int] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.add and not self.remove


__all__ = [
    "AddResult",
    "RemoveResult",
    "Resolution",
    "ResolutionStatus",
    "RoleDiff",
    "RoleRecipe",
]
