"""Roster error taxonomy.

Every error carries a message suitable for a warning reply in the channel.
"""

from __future__ import annotations

from typing import Iterable, Sequence


class RosterError(Exception):
    """Base class for errors reported back to the command author."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.user_message = message


class ValidationError(RosterError):
    """Empty or over-length names, missing arguments, unknown styles."""


class NotFoundError(RosterError):
    """No candidate matched at any resolution tier."""


class DuplicateError(RosterError):
    """A category with the requested name already exists."""


class PermissionDeniedError(RosterError):
    """The author or the bot lacks the permission a command needs."""


class ExternalCollaboratorError(RosterError):
    """A Discord call (fetch, send, edit, role change) failed."""


class AmbiguousReferenceError(RosterError):
    """A fragment or query matched more than one candidate."""

    def __init__(self, fragment: str, matches: Iterable[str], *, total: int | None = None) -> None:
        self.fragment = fragment
        self.matches: Sequence[str] = tuple(matches)
        self.total = total if total is not None else len(self.matches)
        super().__init__(
            f"Ambiguous reference '{fragment}' ({self.total} matches). "
            f"Be more specific. Matches: {', '.join(self.matches)}"
        )


__all__ = [
    "AmbiguousReferenceError",
    "DuplicateError",
    "ExternalCollaboratorError",
    "NotFoundError",
    "PermissionDeniedError",
    "RosterError",
    "ValidationError",
]
