"""In-memory roster and its JSON file persistence."""
from __future__ import annotations

import json
import logging
import unicodedata
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import DuplicateError, NotFoundError, ValidationError
from .models import AddResult, RemoveResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_NAME_LENGTH = 32


def normalize_display_name(raw: str) -> str:
    """Title-case every whitespace-delimited word and collapse spacing."""

    return " ".join(word[:1].upper() + word[1:].lower() for word in raw.split())


# Sorts after every other letter following "n", so "ñ" stays its own letter.
_ENYE_KEY = "n\U0010ffff"


def sort_key(name: str) -> str:
    """Case- and accent-insensitive ordering key using Spanish letter order.

    Accents are ignored except on ``ñ``, which sorts between ``n`` and ``o``.
    """

    composed = unicodedata.normalize("NFC", name.casefold()).replace("ñ", _ENYE_KEY)
    decomposed = unicodedata.normalize("NFKD", composed)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


class RosterState:
    """Ordered mapping of category name to sorted member names.

    A member name appears in at most one category. Category order is the
    display order and is preserved across renames.
    """

    def __init__(
        self,
        categories: Optional[Mapping[str, Iterable[str]]] = None,
        *,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
    ) -> None:
        self.max_name_length = max_name_length
        self._data: Dict[str, List[str]] = {}
        for name, members in (categories or {}).items():
            self._data[name] = sorted(members, key=sort_key)

    # ------------------------------------------------------------------
    # Queries

    def categories(self) -> List[str]:
        return list(self._data)

    def members(self, category: str) -> List[str]:
        if category not in self._data:
            raise NotFoundError(f"Category '{category}' does not exist.")
        return list(self._data[category])

    def find_member(self, raw_name: str) -> Optional[str]:
        """Return the category holding ``raw_name`` (case-insensitive), if any."""

        needle = raw_name.strip().lower()
        for category, members in self._data.items():
            if any(member.lower() == needle for member in members):
                return category
        return None

    def total_members(self) -> int:
        return sum(len(members) for members in self._data.values())

    def snapshot(self) -> Dict[str, List[str]]:
        """Deep copy of the roster, safe to hand to renderers and tests."""

        return {category: list(members) for category, members in self._data.items()}

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, category: object) -> bool:
        return category in self._data

    # ------------------------------------------------------------------
    # Member mutations

    def add_member(self, category: str, raw_name: str) -> AddResult:
        if category not in self._data:
            raise NotFoundError(f"Category '{category}' does not exist.")
        name = normalize_display_name(raw_name)
        if not name:
            raise ValidationError("Empty name.")
        if len(name) > self.max_name_length:
            raise ValidationError(f"Name too long (max {self.max_name_length} chars).")

        lowered = name.lower()
        previous: Optional[str] = None
        for current, members in self._data.items():
            for index, member in enumerate(members):
                if member.lower() != lowered:
                    continue
                if current == category:
                    return AddResult(name=member, category=category, previous=current, unchanged=True)
                del members[index]
                previous = current
                break
            if previous is not None:
                break

        target = self._data[category]
        target.append(name)
        target.sort(key=sort_key)
        return AddResult(name=name, category=category, previous=previous)

    def remove_member(self, raw_name: str) -> RemoveResult:
        name = normalize_display_name(raw_name)
        lowered = raw_name.strip().lower()
        for category, members in self._data.items():
            for index, member in enumerate(members):
                if member.lower() == lowered:
                    del members[index]
                    return RemoveResult(found=True, name=member, category=category)
        return RemoveResult(found=False, name=name)

    # ------------------------------------------------------------------
    # Category mutations

    def add_category(self, name: str, position: Optional[int] = None) -> int:
        """Insert an empty category; ``position`` is 1-based.

        Out-of-range positions append. Returns the 1-based position used.
        """

        name = name.strip()
        if not name:
            raise ValidationError("Category name cannot be empty.")
        if name in self._data:
            raise DuplicateError(f"Category '{name}' already exists.")
        entries = list(self._data.items())
        if position is not None and 1 <= position <= len(entries) + 1:
            index = position - 1
        else:
            index = len(entries)
        entries.insert(index, (name, []))
        self._data = dict(entries)
        return index + 1

    def delete_category(self, name: str) -> List[str]:
        """Drop a category and return the members it held."""

        if name not in self._data:
            raise NotFoundError(f"Category '{name}' does not exist.")
        return self._data.pop(name)

    def rename_category(self, old_name: str, new_name: str) -> None:
        new_name = new_name.strip()
        if old_name not in self._data:
            raise NotFoundError(f"Category '{old_name}' does not exist.")
        if not new_name:
            raise ValidationError("Category name cannot be empty.")
        if new_name in self._data:
            raise DuplicateError(f"Category '{new_name}' already exists.")
        self._data = {
            (new_name if key == old_name else key): members
            for key, members in self._data.items()
        }

    # ------------------------------------------------------------------
    # Serialization

    def to_dict(self) -> Dict[str, List[str]]:
        return self.snapshot()

    @classmethod
    def from_dict(cls, data: object, *, max_name_length: int = DEFAULT_MAX_NAME_LENGTH) -> "RosterState":
        if not isinstance(data, dict):
            raise ValueError("Roster snapshot must be a JSON object")
        for category, members in data.items():
            if not isinstance(category, str):
                raise ValueError(f"Invalid category key {category!r}")
            if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
                raise ValueError(f"Category {category!r} must hold a list of names")

        seen: set[str] = set()
        cleaned: Dict[str, List[str]] = {}
        for category, members in data.items():
            kept = cleaned.setdefault(category, [])
            for member in members:
                lowered = member.lower()
                if lowered in seen:
                    logger.warning("Dropping duplicate roster entry %r in %r", member, category)
                    continue
                seen.add(lowered)
                kept.append(member)
        return cls(cleaned, max_name_length=max_name_length)

    @classmethod
    def with_categories(cls, names: Iterable[str], **kwargs) -> "RosterState":
        return cls({name: [] for name in names}, **kwargs)


def save_roster(path: Path, state: RosterState) -> None:
    """Write the whole roster as pretty-printed UTF-8 JSON."""

    payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)
    path.write_text(payload, encoding="utf-8")


def load_roster(path: Path, default: RosterState) -> RosterState:
    """Load a roster from ``path``; missing or malformed files yield ``default``."""

    if not path.exists():
        return default
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = RosterState.from_dict(data, max_name_length=default.max_name_length)
    except (OSError, ValueError) as exc:
        logger.warning("Could not load roster from %s: %s", path, exc)
        return default
    logger.info("Roster loaded from %s", path)
    return state


__all__ = [
    "RosterState",
    "load_roster",
    "normalize_display_name",
    "save_roster",
    "sort_key",
]
