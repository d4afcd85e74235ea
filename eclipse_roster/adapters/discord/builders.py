"""Discord embed builders.

Pure construction helpers for Discord UI objects. Keeping these in a
separate module makes them easy to unit test and reuse across handlers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

import discord

from ...models import RoleRecipe
from ...rendering import RosterDocument, style_names
from ...resolver import category_hints

WARN_COLOUR = "#E67E22"
NOTICE_COLOUR = "#2ECC71"


def _colour(value: str) -> discord.Colour:
    return discord.Colour.from_str(value)


def build_roster_embed(
    document: RosterDocument, *, timestamp: Optional[datetime] = None
) -> discord.Embed:
    """Turn a rendered roster into the embed posted in the roster channel."""

    embed = discord.Embed(
        title=document.title,
        colour=_colour(document.colour),
        timestamp=timestamp or datetime.now(timezone.utc),
    )
    for field in document.fields:
        embed.add_field(name=field.name, value=field.value, inline=False)
    embed.set_footer(text=document.footer)
    if document.image_url:
        embed.set_image(url=document.image_url)
    return embed


def build_warn_embed(text: str) -> discord.Embed:
    return discord.Embed(colour=_colour(WARN_COLOUR), description=f"⚠️ {text}")


def build_notice_embed(text: str) -> discord.Embed:
    return discord.Embed(colour=_colour(NOTICE_COLOUR), description=text)


def build_role_change_embed(recipe: RoleRecipe, member_mention: str, changes: Iterable[str]) -> discord.Embed:
    description = recipe.summary.format(member=member_mention, changes=", ".join(changes))
    return discord.Embed(colour=_colour(recipe.colour), description=description)


def build_help_embed(categories: Iterable[str]) -> discord.Embed:
    names = list(categories)
    partials = ", ".join(category_hints(names))
    embed = discord.Embed(
        title="📋 Roster Commands",
        colour=_colour("#00FF00"),
        description="Editable roster management:",
    )
    embed.add_field(
        name="`+name category`",
        value="Add member (category can be partial). Ex: `+Shamu ecli` -> Eclipse",
        inline=False,
    )
    embed.add_field(
        name="`+category name`",
        value="Inverse order also works. Ex: `+tri Atlas` -> Trial",
        inline=False,
    )
    embed.add_field(name="`-name`", value="Remove member. Ex: `-Camsita`", inline=False)
    embed.add_field(name="`!roster`", value="Create or refresh roster message", inline=False)
    embed.add_field(
        name="`!addcat name [position]` / `!delcat name` / `!editcat old new`",
        value="Add, delete or rename categories",
        inline=False,
    )
    embed.add_field(name="`+estilo name`", value="Change style. Ex: +estilo sparkle", inline=False)
    embed.add_field(name="Styles", value=", ".join(style_names()), inline=False)
    if names:
        embed.add_field(
            name="Categories",
            value=f"{', '.join(names)} (partials ok: {partials})",
            inline=False,
        )
    return embed


__all__ = [
    "build_help_embed",
    "build_notice_embed",
    "build_role_change_embed",
    "build_roster_embed",
    "build_warn_embed",
]
