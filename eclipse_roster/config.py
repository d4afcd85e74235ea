"""Configuration loading utilities for the Eclipse roster bot."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .models import RoleRecipe

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "data" / "settings.yaml"


def _parse_recipe(name: str, data: Dict[str, Any], roles: Dict[str, int]) -> RoleRecipe:
    def _ids(key: str) -> tuple[int, ...]:
        resolved = []
        for entry in data.get(key, []) or []:
            if isinstance(entry, int):
                resolved.append(entry)
            elif entry in roles:
                resolved.append(roles[entry])
            else:
                raise ValueError(f"Recipe {name!r} references unknown role {entry!r}")
        return tuple(resolved)

    return RoleRecipe(
        name=name,
        description=str(data.get("description", name)),
        add=_ids("add"),
        remove=_ids("remove"),
        required=_ids("required"),
        reset_nickname=bool(data.get("reset_nickname", False)),
        emoji=str(data.get("emoji", "✅")),
        colour=str(data.get("colour", "#FFA500")),
        summary=str(data.get("summary", "Changed roles for {member}: {changes}")),
        no_change=str(data.get("no_change", "No changes to apply for that user.")),
    )


@dataclass(frozen=True)
class Settings:
    """Typed view over the settings YAML file."""

    roster_title: str
    roster_colour: str
    roster_image_url: str
    empty_placeholder: str
    default_categories: List[str]
    default_style: str
    max_name_length: int
    save_delay_seconds: float
    scan_limit: int
    confirmation_delete_seconds: float
    style_delete_seconds: float
    warning_delete_seconds: float
    help_role_ids: List[int]
    roles: Dict[str, int]
    recipes: Dict[str, RoleRecipe]

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Settings":
        roster_cfg = data.get("roster", {})
        timing_cfg = data.get("timing", {})
        roles = {str(key): int(value) for key, value in (data.get("roles") or {}).items()}
        recipes = {
            str(name): _parse_recipe(str(name), cfg or {}, roles)
            for name, cfg in (data.get("recipes") or {}).items()
        }
        return Settings(
            roster_title=str(roster_cfg.get("title", "🌘 Eclipse Official Roster")),
            roster_colour=str(roster_cfg.get("colour", "#9B59B6")),
            roster_image_url=str(roster_cfg.get("image_url", "")),
            empty_placeholder=str(roster_cfg.get("empty_placeholder", "*Vacío*")),
            default_categories=[str(c) for c in roster_cfg.get("default_categories", [])],
            default_style=str(roster_cfg.get("default_style", "estrella")),
            max_name_length=int(roster_cfg.get("max_name_length", 32)),
            save_delay_seconds=float(timing_cfg.get("save_delay_seconds", 0.5)),
            scan_limit=int(timing_cfg.get("scan_limit", 10)),
            confirmation_delete_seconds=float(timing_cfg.get("confirmation_delete_seconds", 0.5)),
            style_delete_seconds=float(timing_cfg.get("style_delete_seconds", 0.8)),
            warning_delete_seconds=float(timing_cfg.get("warning_delete_seconds", 4)),
            help_role_ids=[int(r) for r in data.get("help_role_ids", []) or []],
            roles=roles,
            recipes=recipes,
        )


class SettingsLoader:
    """Loads and caches settings from YAML configuration files."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH
        self._cache: Settings | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> Settings:
        if self._cache is not None and not force:
            return self._cache
        with self._path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        self._cache = Settings.from_dict(data or {})
        return self._cache


def get_settings() -> Settings:
    """Convenience accessor for default settings, honouring the env override."""

    override = os.environ.get("ECLIPSE_ROSTER_SETTINGS")
    return SettingsLoader(Path(override) if override else None).load()


def _parse_int_env(env_key: str) -> Optional[int]:
    value = os.environ.get(env_key)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer %s for %s", value, env_key)
        return None


@dataclass(frozen=True)
class RuntimeConfig:
    """Process-level configuration read from the environment."""

    token: Optional[str]
    guild_id: Optional[int]
    roster_channel_id: Optional[int]
    state_file: Path
    health_port: int

    @staticmethod
    def from_env() -> "RuntimeConfig":
        port = _parse_int_env("PORT")
        return RuntimeConfig(
            token=os.environ.get("DISCORD_TOKEN") or None,
            guild_id=_parse_int_env("GUILD_ID"),
            roster_channel_id=_parse_int_env("ROSTER_CHANNEL_ID"),
            state_file=Path(os.environ.get("ROSTER_STATE_FILE", "state.json")),
            health_port=8080 if port is None else port,
        )


__all__ = ["RuntimeConfig", "Settings", "SettingsLoader", "get_settings"]
