"""Text command handling for the roster channel.

Argument parsing lives in plain functions so it can be tested without a
gateway connection; :class:`RosterCommands` wires them to Discord messages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import discord

from ...config import Settings
from ...errors import (
    AmbiguousReferenceError,
    ExternalCollaboratorError,
    NotFoundError,
    PermissionDeniedError,
    RosterError,
    ValidationError,
)
from ...models import RoleRecipe
from ...rendering import parse_style, style_names
from ...resolver import (
    category_hints,
    describe_members,
    locate_member,
    require_fragment,
    resolve_fragment,
)
from ...roles import apply_role_diff, plan_role_diff, reset_nickname
from ...service import RosterService
from ...state import normalize_display_name
from ...sync import RosterMessageSync
from ...telemetry import get_telemetry
from .builders import (
    build_help_embed,
    build_notice_embed,
    build_role_change_embed,
    build_warn_embed,
)

logger = logging.getLogger(__name__)

STYLE_COMMANDS = {"+estilo", "+estilos", "+styles"}
SYNC_COMMANDS = {"+roster", "!roster"}


# ----------------------------------------------------------------------
# Argument parsing


def parse_add_args(args: Sequence[str], categories: Iterable[str]) -> Tuple[str, str]:
    """Split ``+`` arguments into (category, name).

    The last token is tried as a category fragment first, then the first.
    """

    names = list(categories)
    if len(args) < 2:
        raise ValidationError(
            "Usage: +name category OR +category name. Category can be partial."
        )
    for index, rest in ((-1, args[:-1]), (0, args[1:])):
        token = args[index]
        resolution = resolve_fragment(token, names)
        if resolution.is_ok:
            return resolution.value, " ".join(rest)  # type: ignore[return-value]
        if resolution.is_ambiguous:
            raise AmbiguousReferenceError(token, resolution.matches)
    hints = ", ".join(category_hints(names))
    raise NotFoundError(f"Invalid or missing category fragment. Try: {hints}.")


def parse_remove_args(
    raw: str, categories: Iterable[str], has_member: Callable[[str], bool]
) -> str:
    """Return the member name targeted by a ``-`` command.

    A leading category fragment is dropped unless the full text already
    names a roster member.
    """

    raw = raw.strip()
    if not raw:
        raise ValidationError("Usage: -name OR -category name")
    tokens = raw.split()
    if len(tokens) > 1 and not has_member(raw):
        if resolve_fragment(tokens[0], categories).is_ok:
            return " ".join(tokens[1:])
    return raw


def parse_addcat_args(content: str) -> Tuple[str, Optional[int]]:
    parts = content.strip().split()
    if len(parts) < 2:
        raise ValidationError("Usage: !addcat <name> [position]")
    if len(parts) > 2 and parts[-1].isdigit():
        return " ".join(parts[1:-1]), int(parts[-1])
    return " ".join(parts[1:]), None


def parse_delcat_args(content: str) -> str:
    parts = content.strip().split()
    if len(parts) < 2:
        raise ValidationError("Usage: !delcat <name>")
    return " ".join(parts[1:])


def parse_editcat_args(content: str) -> Tuple[str, str]:
    parts = content.strip().split()
    if len(parts) < 3:
        raise ValidationError("Usage: !editcat <oldName> <newName>")
    return parts[1], " ".join(parts[2:])


# ----------------------------------------------------------------------
# Best-effort side effects; failures here never reach the author.


async def _react(message: discord.Message, emoji: str) -> None:
    try:
        await message.add_reaction(emoji)
    except discord.DiscordException as exc:
        logger.debug("Could not react with %s: %s", emoji, exc)


async def _delete_later(message: discord.Message, delay: float) -> None:
    try:
        await message.delete(delay=delay)
    except discord.DiscordException as exc:
        logger.debug("Could not delete message %s: %s", message.id, exc)


async def _send_embed(
    channel: discord.abc.Messageable,
    embed: discord.Embed,
    *,
    purpose: str,
) -> None:
    try:
        await channel.send(embed=embed)
    except discord.HTTPException:
        logger.exception("Failed to send %s message", purpose)


async def _reply_warning(
    message: discord.Message, text: str, *, delete_after: Optional[float] = None
) -> None:
    try:
        await message.reply(
            embed=build_warn_embed(text),
            mention_author=False,
            delete_after=delete_after,
        )
    except discord.HTTPException:
        logger.exception("Failed to send warning reply")


# ----------------------------------------------------------------------
# Role recipes


@dataclass
class RecipeOutcome:
    changes: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


def is_admin(member: object) -> bool:
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


async def run_recipe(
    recipe: RoleRecipe,
    target: discord.Member,
    guild: discord.Guild,
    *,
    reason: str,
) -> RecipeOutcome:
    """Apply ``recipe`` to ``target``; raises :class:`RosterError` subclasses."""

    me = guild.me
    if not me.guild_permissions.manage_roles:
        raise PermissionDeniedError("Bot lacks Manage Roles permission.")
    guild_roles = {role.id: role for role in guild.roles}
    diff = plan_role_diff(
        recipe,
        [role.id for role in target.roles],
        guild_roles,
        me.top_role.position,
    )
    await apply_role_diff(target, diff, reason=reason)
    outcome = RecipeOutcome(changes=list(diff.changes))
    if recipe.reset_nickname and target.nick:
        if not me.guild_permissions.manage_nicknames:
            logger.warning("Cannot reset nickname of %s: missing Manage Nicknames", target)
        elif await reset_nickname(target, reason=reason):
            outcome.changes.append("reset-nick")
    return outcome


# ----------------------------------------------------------------------
# Dispatcher


class RosterCommands:
    """Routes roster text commands to the service and the sync coordinator."""

    def __init__(
        self,
        service: RosterService,
        sync: RosterMessageSync,
        settings: Settings,
        *,
        roster_channel_id: Optional[int] = None,
    ) -> None:
        self.service = service
        self.sync = sync
        self.settings = settings
        self.roster_channel_id = roster_channel_id

    def in_roster_channel(self, message: discord.Message) -> bool:
        return self.roster_channel_id is None or message.channel.id == self.roster_channel_id

    async def handle_message(self, message: discord.Message) -> bool:
        """Handle ``message`` if it is a roster command; returns whether it was."""

        if message.author.bot:
            return False
        content = (message.content or "").strip()
        if not content:
            return False
        head = content.split()[0].lower()

        route = self._route(content, head)
        if route is None:
            return False
        command_name, handler, roster_only = route
        if roster_only and not self.in_roster_channel(message):
            await _reply_warning(message, "Roster commands only allowed in the designated channel.")
            return True

        telemetry = get_telemetry()
        start_time = time.time()
        success = False
        try:
            await handler(message, content)
            success = True
        except RosterError as exc:
            await self._report(message, exc)
        finally:
            telemetry.track_command(
                command_name,
                str(message.author.id),
                str(message.guild.id) if message.guild else "dm",
                success=success,
                duration_ms=(time.time() - start_time) * 1000,
                channel_id=str(message.channel.id),
            )
        return True

    def _route(self, content: str, head: str):
        if head.startswith("+") and head[1:] in self.settings.recipes:
            recipe = self.settings.recipes[head[1:]]

            async def _recipe(message: discord.Message, text: str) -> None:
                await self._apply_recipe(message, text, recipe)

            return recipe.name, _recipe, False
        if head in STYLE_COMMANDS:
            return "style", self._change_style, True
        if content.lower() == "+help":
            return "help", self._help, True
        if content.lower() in SYNC_COMMANDS:
            return "roster", self._force_sync, True
        if head == "!addcat":
            return "addcat", self._add_category, True
        if head == "!delcat":
            return "delcat", self._delete_category, True
        if head == "!editcat":
            return "editcat", self._rename_category, True
        if content.startswith("+"):
            return "add", self._add_member, True
        if content.startswith("-"):
            return "remove", self._remove_member, True
        return None

    async def _report(self, message: discord.Message, exc: RosterError) -> None:
        if isinstance(exc, ExternalCollaboratorError):
            get_telemetry().track_error(
                type(exc).__name__, user_id=str(message.author.id), error_details=str(exc)
            )
        await _send_embed(message.channel, build_warn_embed(exc.user_message), purpose="warning")

    async def _sync(self, channel: discord.abc.Messageable) -> None:
        await self.sync.sync(channel)

    # ------------------------------------------------------------------

    async def _add_member(self, message: discord.Message, content: str) -> None:
        args = content[1:].split()
        category, name = parse_add_args(args, self.service.categories())
        result = self.service.add_member(category, name)
        if result.unchanged:
            await _react(message, "⚠️")
            await _delete_later(message, self.settings.confirmation_delete_seconds)
            return
        await _react(message, "🔁" if result.moved else "✅")
        await self._sync(message.channel)
        await _delete_later(message, self.settings.confirmation_delete_seconds)

    async def _remove_member(self, message: discord.Message, content: str) -> None:
        name = parse_remove_args(
            content[1:],
            self.service.categories(),
            lambda raw: self.service.state.find_member(raw) is not None,
        )
        result = self.service.remove_member(name)
        if not result.found:
            raise NotFoundError(f"{normalize_display_name(name)} not found in roster.")
        await _react(message, "❌")
        await self._sync(message.channel)
        await _delete_later(message, self.settings.confirmation_delete_seconds)

    async def _force_sync(self, message: discord.Message, content: str) -> None:
        await self._sync(message.channel)

    async def _change_style(self, message: discord.Message, content: str) -> None:
        parts = content.split()
        if len(parts) < 2:
            raise ValidationError(
                f"Available styles: {', '.join(style_names())} | "
                "Usage: +estilo name (alias: +styles name)"
            )
        self.service.set_style(parse_style(parts[1]))
        await _react(message, "🎨")
        await self._sync(message.channel)
        await _delete_later(message, self.settings.style_delete_seconds)

    async def _help(self, message: discord.Message, content: str) -> None:
        author_roles = {role.id for role in getattr(message.author, "roles", [])}
        allowed = is_admin(message.author) or bool(
            author_roles.intersection(self.settings.help_role_ids)
        )
        if not allowed:
            raise PermissionDeniedError(
                "Help command restricted: need Administrator or required role."
            )
        await _send_embed(
            message.channel, build_help_embed(self.service.categories()), purpose="help"
        )

    async def _add_category(self, message: discord.Message, content: str) -> None:
        name, position = parse_addcat_args(content)
        self.service.add_category(name, position)
        await self._sync(message.channel)
        suffix = f" at position {position}" if position is not None else ""
        await _send_embed(
            message.channel,
            build_notice_embed(f"✅ Category '{name}' added{suffix}."),
            purpose="addcat",
        )

    async def _delete_category(self, message: discord.Message, content: str) -> None:
        fragment = parse_delcat_args(content)
        match = require_fragment(fragment, self.service.categories())
        self.service.delete_category(match)
        await self._sync(message.channel)
        await _send_embed(
            message.channel,
            build_notice_embed(f"🗑️ Category '{match}' and its members deleted."),
            purpose="delcat",
        )

    async def _rename_category(self, message: discord.Message, content: str) -> None:
        fragment, new_name = parse_editcat_args(content)
        match = require_fragment(fragment, self.service.categories())
        self.service.rename_category(match, new_name)
        await self._sync(message.channel)
        await _send_embed(
            message.channel,
            build_notice_embed(f"✏️ Category '{match}' renamed to '{new_name}'."),
            purpose="editcat",
        )

    # ------------------------------------------------------------------

    async def _resolve_target(self, message: discord.Message, content: str, recipe: RoleRecipe) -> discord.Member:
        mentioned = [m for m in message.mentions if isinstance(m, discord.Member)]
        if mentioned:
            return mentioned[0]
        query = " ".join(content.split()[1:])
        if not query:
            raise ValidationError(f"Usage: +{recipe.name} @user OR +{recipe.name} partialName")
        guild = message.guild
        if not guild.chunked:
            try:
                await guild.chunk()
            except discord.HTTPException as exc:
                logger.warning("Could not fetch guild members: %s", exc)
        resolution = locate_member(query, guild.members)
        if resolution.is_none:
            raise NotFoundError(f'No user found matching "{query}"')
        if resolution.is_ambiguous:
            raise AmbiguousReferenceError(
                query,
                describe_members(resolution.matches),
                total=len(resolution.matches),
            )
        return resolution.value  # type: ignore[return-value]

    async def _apply_recipe(self, message: discord.Message, content: str, recipe: RoleRecipe) -> None:
        if message.guild is None:
            return
        if not is_admin(message.author):
            await _reply_warning(message, "You lack Administrator permission.")
            return
        try:
            target = await self._resolve_target(message, content, recipe)
            outcome = await run_recipe(
                recipe, target, message.guild, reason=f"+{recipe.name} by {message.author}"
            )
        except RosterError as exc:
            await _reply_warning(message, exc.user_message)
            return
        if not outcome.changed:
            await _react(message, "⚠️")
            await _reply_warning(
                message, recipe.no_change, delete_after=self.settings.warning_delete_seconds
            )
            return
        await _react(message, recipe.emoji)
        await _send_embed(
            message.channel,
            build_role_change_embed(recipe, target.mention, outcome.changes),
            purpose=recipe.name,
        )


__all__ = [
    "RecipeOutcome",
    "RosterCommands",
    "is_admin",
    "parse_add_args",
    "parse_addcat_args",
    "parse_delcat_args",
    "parse_editcat_args",
    "parse_remove_args",
    "run_recipe",
]
