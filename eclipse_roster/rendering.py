"""Roster display styles and the pure roster document renderer."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Sequence, Tuple

from .errors import ValidationError


class MemberStyle(str, Enum):
    ESTRELLA = "estrella"
    FLECHA = "flecha"
    DIAMANTE = "diamante"
    SPARKLE = "sparkle"
    FANCY = "fancy"
    BRACKET = "bracket"
    CORONA = "corona"


_STYLE_TEMPLATES: Dict[MemberStyle, str] = {
    MemberStyle.ESTRELLA: "✦ {name}",
    MemberStyle.FLECHA: "➤ {name}",
    MemberStyle.DIAMANTE: "◆ {name}",
    MemberStyle.SPARKLE: "✨ {name}",
    MemberStyle.FANCY: "✧彡 {name}",
    MemberStyle.BRACKET: "【{name}】",
    MemberStyle.CORONA: "👑 {name}",
}

# Mathematical bold script capitals, U+1D4D0 onwards.
_SCRIPT_CAPITALS: Dict[str, str] = {
    chr(ord("A") + offset): chr(0x1D4D0 + offset) for offset in range(26)
}


def style_names() -> List[str]:
    return [style.value for style in MemberStyle]


def parse_style(text: str) -> MemberStyle:
    """Map user input to a style, raising ``ValidationError`` on unknown keys."""

    try:
        return MemberStyle(text.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid style. Use one of: {', '.join(style_names())}"
        ) from None


def decorate(name: str, style: MemberStyle) -> str:
    return _STYLE_TEMPLATES[style].format(name=name)


def fancy_category_name(name: str) -> str:
    """Swap the first letter for its script glyph; other characters pass through."""

    if not name:
        return name
    mapped = _SCRIPT_CAPITALS.get(name[0].upper())
    if mapped is None:
        return name
    return mapped + name[1:]


@dataclass(frozen=True)
class RosterField:
    name: str
    value: str


@dataclass(frozen=True)
class RosterDocument:
    """Platform-neutral description of the roster message."""

    title: str
    colour: str
    fields: Tuple[RosterField, ...]
    footer: str
    image_url: str
    total: int


def render_roster(
    roster: Mapping[str, Sequence[str]],
    style: MemberStyle,
    *,
    title: str,
    colour: str = "#9B59B6",
    image_url: str = "",
    empty_placeholder: str = "*Vacío*",
) -> RosterDocument:
    fields: List[RosterField] = []
    for category, members in roster.items():
        if members:
            listing = "\n".join(decorate(member, style) for member in members)
            value = f"\n\n```\n{listing}\n```"
        else:
            value = empty_placeholder
        fields.append(RosterField(name=f"**{fancy_category_name(category)}**", value=value))
    total = sum(len(members) for members in roster.values())
    return RosterDocument(
        title=title,
        colour=colour,
        fields=tuple(fields),
        footer=f"Member Count: {total}",
        image_url=image_url,
        total=total,
    )


__all__ = [
    "MemberStyle",
    "RosterDocument",
    "RosterField",
    "decorate",
    "fancy_category_name",
    "parse_style",
    "render_roster",
    "style_names",
]
