"""Roster service owning the state, display style and persistence timer."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .config import Settings, get_settings
from .models import AddResult, RemoveResult
from .rendering import MemberStyle, RosterDocument, parse_style, render_roster
from .state import RosterState, load_roster, save_roster
from .telemetry import get_telemetry

logger = logging.getLogger(__name__)


class RosterService:
    """Coordinates roster mutations with debounced persistence.

    All mutations happen synchronously on the event loop thread; only the
    write to disk is deferred. A burst of mutations cancels and restarts the
    single pending write, so one write lands per quiet period.
    """

    def __init__(
        self,
        state_path: Optional[Path] = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.state_path = state_path
        self.state = self._default_state()
        self.style = parse_style(self.settings.default_style)
        self._save_handle: Optional[asyncio.TimerHandle] = None
        self._telemetry = get_telemetry()

    @classmethod
    def from_file(cls, state_path: Path, settings: Settings | None = None) -> "RosterService":
        service = cls(state_path, settings)
        service.init(load_roster(state_path, service.state))
        return service

    def _default_state(self) -> RosterState:
        return RosterState.with_categories(
            self.settings.default_categories,
            max_name_length=self.settings.max_name_length,
        )

    def init(self, initial: RosterState | Mapping[str, List[str]] | None = None) -> None:
        """Replace the in-memory roster with ``initial`` (or the defaults)."""

        if initial is None:
            self.state = self._default_state()
        elif isinstance(initial, RosterState):
            self.state = initial
        else:
            self.state = RosterState.from_dict(
                dict(initial), max_name_length=self.settings.max_name_length
            )

    def shutdown(self) -> None:
        """Flush a pending write, if any, and any buffered telemetry."""

        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
            self.flush()
        self._telemetry.flush()

    # ------------------------------------------------------------------
    # Persistence

    @property
    def save_pending(self) -> bool:
        return self._save_handle is not None

    def schedule_save(self) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
        loop = asyncio.get_running_loop()
        self._save_handle = loop.call_later(self.settings.save_delay_seconds, self._run_save)

    def _run_save(self) -> None:
        self._save_handle = None
        self.flush()

    def flush(self) -> bool:
        """Write the roster now. Failures are logged and reported as ``False``."""

        if self.state_path is None:
            return False
        try:
            save_roster(self.state_path, self.state)
        except OSError as exc:
            logger.warning("Could not save roster to %s: %s", self.state_path, exc)
            self._telemetry.track_error("roster_save_failed", error_details=str(exc))
            return False
        logger.info("Roster saved to %s", self.state_path)
        self._telemetry.track_system_event("roster_saved", source="persistence")
        return True

    # ------------------------------------------------------------------
    # Mutations

    def add_member(self, category: str, raw_name: str) -> AddResult:
        result = self.state.add_member(category, raw_name)
        if not result.unchanged:
            self.schedule_save()
        return result

    def remove_member(self, raw_name: str) -> RemoveResult:
        result = self.state.remove_member(raw_name)
        if result.found:
            self.schedule_save()
        return result

    def add_category(self, name: str, position: Optional[int] = None) -> int:
        placed = self.state.add_category(name, position)
        self.schedule_save()
        return placed

    def delete_category(self, name: str) -> List[str]:
        removed = self.state.delete_category(name)
        self.schedule_save()
        return removed

    def rename_category(self, old_name: str, new_name: str) -> None:
        self.state.rename_category(old_name, new_name)
        self.schedule_save()

    # ------------------------------------------------------------------
    # Display

    def categories(self) -> List[str]:
        return self.state.categories()

    def snapshot(self) -> Dict[str, List[str]]:
        return self.state.snapshot()

    def set_style(self, style: MemberStyle) -> None:
        self.style = style

    def render(self) -> RosterDocument:
        return render_roster(
            self.state.snapshot(),
            self.style,
            title=self.settings.roster_title,
            colour=self.settings.roster_colour,
            image_url=self.settings.roster_image_url,
            empty_placeholder=self.settings.empty_placeholder,
        )


__all__ = ["RosterService"]
