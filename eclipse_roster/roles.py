"""Role recipes: planning and applying a member's role diff."""
from __future__ import annotations

import logging
from typing import Collection, Mapping, Protocol

import discord

from .errors import ExternalCollaboratorError, PermissionDeniedError, ValidationError
from .models import RoleDiff, RoleRecipe

logger = logging.getLogger(__name__)


class RoleLike(Protocol):
    name: str
    position: int


def plan_role_diff(
    recipe: RoleRecipe,
    member_role_ids: Collection[int],
    guild_roles: Mapping[int, RoleLike],
    bot_top_position: int,
) -> RoleDiff:
    """Work out which roles ``recipe`` adds and removes for one member.

    Roles the guild does not have are skipped unless the recipe requires
    them. Every role involved must sit below the bot's highest role.
    """

    missing = [role_id for role_id in recipe.required if role_id not in guild_roles]
    if missing:
        raise ValidationError(
            "One or more role IDs are invalid (check configuration): "
            + ", ".join(str(role_id) for role_id in missing)
        )

    involved = [
        guild_roles[role_id]
        for role_id in dict.fromkeys((*recipe.add, *recipe.remove))
        if role_id in guild_roles
    ]
    for role in involved:
        if role.position >= bot_top_position:
            raise PermissionDeniedError(
                f"Role {role.name} is above (or equal to) my highest role."
            )

    held = set(member_role_ids)
    diff = RoleDiff()
    for role_id in recipe.add:
        role = guild_roles.get(role_id)
        if role is not None and role_id not in held and role_id not in diff.add:
            diff.add.append(role_id)
            diff.changes.append(f"+{role.name}")
    for role_id in recipe.remove:
        if role_id in held and role_id not in diff.remove:
            role = guild_roles.get(role_id)
            diff.remove.append(role_id)
            diff.changes.append(f"-{role.name if role is not None else role_id}")
    return diff


async def apply_role_diff(member: discord.Member, diff: RoleDiff, *, reason: str) -> None:
    try:
        if diff.add:
            await member.add_roles(*(discord.Object(id=i) for i in diff.add), reason=reason)
        if diff.remove:
            await member.remove_roles(*(discord.Object(id=i) for i in diff.remove), reason=reason)
    except discord.HTTPException as exc:
        logger.exception("Failed to apply role changes to %s", member)
        raise ExternalCollaboratorError("Error applying role changes (see console).") from exc


async def reset_nickname(member: discord.Member, *, reason: str) -> bool:
    """Best-effort nickname reset; returns whether it happened."""

    if not member.nick:
        return False
    try:
        await member.edit(nick=None, reason=reason)
    except discord.HTTPException as exc:
        logger.warning("Could not reset nickname of %s: %s", member, exc)
        return False
    return True


__all__ = ["apply_role_diff", "plan_role_diff", "reset_nickname"]
