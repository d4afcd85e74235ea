"""Tests for the single-roster-message sync protocol."""
from __future__ import annotations

import itertools
from types import SimpleNamespace
from unittest.mock import MagicMock

import discord
import pytest

from eclipse_roster.errors import ExternalCollaboratorError
from eclipse_roster.sync import RosterMessageSync

TITLE = "🌘 Eclipse Official Roster"
BOT_USER = SimpleNamespace(id=999)
_ids = itertools.count(1000)


def _not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Message")


class FakeMessage:
    def __init__(self, channel, author, embed=None):
        self.id = next(_ids)
        self.channel = channel
        self.author = author
        self.embeds = [embed] if embed is not None else []
        self.edits = 0
        self.fail_edit = False

    async def edit(self, *, embed):
        if self.fail_edit:
            raise _not_found()
        self.edits += 1
        self.embeds = [embed]


class FakeChannel:
    def __init__(self, channel_id=1):
        self.id = channel_id
        self.messages: list[FakeMessage] = []
        self.sent = 0
        self.fail_send = False

    async def send(self, *, embed):
        if self.fail_send:
            raise discord.HTTPException(MagicMock(status=500, reason="Server Error"), "boom")
        self.sent += 1
        message = FakeMessage(self, BOT_USER, embed)
        self.messages.append(message)
        return message

    async def fetch_message(self, message_id):
        for message in self.messages:
            if message.id == message_id:
                return message
        raise _not_found()

    async def history(self, *, limit):
        for message in list(reversed(self.messages))[:limit]:
            yield message

    def delete(self, message):
        self.messages.remove(message)


class FakeClient:
    def __init__(self, *channels):
        self.user = BOT_USER
        self.channels = {channel.id: channel for channel in channels}

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)

    async def fetch_channel(self, channel_id):
        raise _not_found()


def _sync(client, scan_limit=10):
    return RosterMessageSync(
        client, lambda: discord.Embed(title=TITLE), title=TITLE, scan_limit=scan_limit
    )


@pytest.mark.asyncio
async def test_first_sync_creates_then_edits():
    channel = FakeChannel()
    sync = _sync(FakeClient(channel))

    first = await sync.sync(channel)
    second = await sync.sync(channel)

    assert first is second
    assert channel.sent == 1
    assert first.edits == 1
    assert (sync.channel_id, sync.message_id) == (channel.id, first.id)


@pytest.mark.asyncio
async def test_deleted_message_is_recreated_once():
    channel = FakeChannel()
    sync = _sync(FakeClient(channel))
    original = await sync.sync(channel)
    channel.delete(original)

    replacement = await sync.sync(channel)
    again = await sync.sync(channel)
    third = await sync.sync(channel)

    assert replacement is not original
    assert again is replacement and third is replacement
    assert channel.sent == 2
    assert replacement.edits == 2


@pytest.mark.asyncio
async def test_scan_reattaches_existing_message():
    channel = FakeChannel()
    existing = FakeMessage(channel, BOT_USER, discord.Embed(title=TITLE))
    channel.messages.append(existing)
    channel.messages.append(FakeMessage(channel, SimpleNamespace(id=5), discord.Embed(title=TITLE)))
    sync = _sync(FakeClient(channel))

    result = await sync.sync(channel)

    assert result is existing
    assert existing.edits == 1
    assert channel.sent == 0
    assert sync.message_id == existing.id


@pytest.mark.asyncio
async def test_scan_ignores_other_titles_and_old_messages():
    channel = FakeChannel()
    old = FakeMessage(channel, BOT_USER, discord.Embed(title=TITLE))
    channel.messages.append(old)
    for _ in range(3):
        channel.messages.append(FakeMessage(channel, BOT_USER, discord.Embed(title="Other")))
    sync = _sync(FakeClient(channel), scan_limit=3)

    result = await sync.sync(channel)

    assert result is not old
    assert channel.sent == 1


@pytest.mark.asyncio
async def test_cached_channel_gone_falls_back_to_trigger_channel():
    gone = FakeChannel(channel_id=1)
    here = FakeChannel(channel_id=2)
    client = FakeClient(gone)
    sync = _sync(client)
    await sync.sync(gone)
    del client.channels[1]

    result = await sync.sync(here)

    assert result.channel is here
    assert sync.channel_id == 2


@pytest.mark.asyncio
async def test_failed_edit_creates_new_message():
    channel = FakeChannel()
    sync = _sync(FakeClient(channel))
    first = await sync.sync(channel)
    first.fail_edit = True

    second = await sync.sync(channel)

    assert second is not first
    assert channel.sent == 2


@pytest.mark.asyncio
async def test_send_failure_raises_collaborator_error():
    channel = FakeChannel()
    channel.fail_send = True
    sync = _sync(FakeClient(channel))

    with pytest.raises(ExternalCollaboratorError):
        await sync.sync(channel)
    assert sync.message_id is None
