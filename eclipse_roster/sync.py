"""Keeps exactly one live roster message per roster.

The message is looked up lazily: the cached (channel, message) pair first,
then a scan of recent messages in the trigger channel for one of ours with
the roster title, and finally a fresh message in the trigger channel.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import discord

from .errors import ExternalCollaboratorError
from .telemetry import get_telemetry

logger = logging.getLogger(__name__)


class RosterMessageSync:
    def __init__(
        self,
        client: discord.Client,
        build_embed: Callable[[], discord.Embed],
        *,
        title: str,
        scan_limit: int = 10,
    ) -> None:
        self._client = client
        self._build_embed = build_embed
        self._title = title
        self._scan_limit = scan_limit
        self.channel_id: Optional[int] = None
        self.message_id: Optional[int] = None

    def forget(self) -> None:
        self.channel_id = None
        self.message_id = None

    def _remember(self, message: discord.Message) -> None:
        self.channel_id = message.channel.id
        self.message_id = message.id

    async def _fetch_cached(self) -> Optional[discord.Message]:
        if self.channel_id is None or self.message_id is None:
            return None
        try:
            channel = self._client.get_channel(self.channel_id)
            if channel is None:
                channel = await self._client.fetch_channel(self.channel_id)
            return await channel.fetch_message(self.message_id)
        except discord.DiscordException as exc:
            logger.info(
                "Cached roster message %s/%s unavailable: %s",
                self.channel_id,
                self.message_id,
                exc,
            )
            self.forget()
            return None

    def _is_roster_message(self, message: discord.Message) -> bool:
        user = self._client.user
        if user is None or message.author.id != user.id:
            return False
        return bool(message.embeds) and message.embeds[0].title == self._title

    async def _scan_recent(self, channel: discord.abc.Messageable) -> Optional[discord.Message]:
        try:
            async for message in channel.history(limit=self._scan_limit):
                if self._is_roster_message(message):
                    return message
        except discord.DiscordException as exc:
            logger.info("Could not scan recent messages for the roster: %s", exc)
        return None

    async def _try_edit(self, message: discord.Message, embed: discord.Embed) -> bool:
        try:
            await message.edit(embed=embed)
        except discord.DiscordException as exc:
            logger.info("Editing roster message %s failed: %s", message.id, exc)
            return False
        self._remember(message)
        return True

    async def sync(self, channel: discord.abc.Messageable) -> discord.Message:
        """Render the roster and push it into the single roster message."""

        embed = self._build_embed()

        cached = await self._fetch_cached()
        if cached is not None and await self._try_edit(cached, embed):
            return cached
        self.forget()

        found = await self._scan_recent(channel)
        if found is not None and await self._try_edit(found, embed):
            logger.info("Re-attached roster message %s", found.id)
            return found

        try:
            sent = await channel.send(embed=embed)
        except discord.DiscordException as exc:
            logger.exception("Failed to create roster message")
            get_telemetry().track_error("roster_sync_failed", error_details=str(exc))
            raise ExternalCollaboratorError("Could not update the roster message.") from exc
        self._remember(sent)
        get_telemetry().track_system_event("roster_message_created", source="sync")
        logger.info("Created roster message %s in channel %s", sent.id, sent.channel.id)
        return sent


__all__ = ["RosterMessageSync"]
