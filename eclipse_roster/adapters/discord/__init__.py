"""Discord adapter: embed builders and text command handlers."""

from __future__ import annotations

from .builders import build_roster_embed, build_warn_embed
from .handlers import RosterCommands

__all__ = ["RosterCommands", "build_roster_embed", "build_warn_embed"]
