from __future__ import annotations

from types import SimpleNamespace

import discord
import pytest

from gateway.messaging import DiscordMessagingGateway, snapshot_message
from services.errors import SourceUnavailable


def _http_error(kind, status: int):
    return kind(SimpleNamespace(status=status, reason="error"), "error")


class _FakeUsers:
    def __init__(self, user_ids):
        self._user_ids = list(user_ids)

    def __aiter__(self):
        self._iter = iter(self._user_ids)
        return self

    async def __anext__(self):
        try:
            return SimpleNamespace(id=next(self._iter))
        except StopIteration:
            raise StopAsyncIteration


class _FakeReaction:
    def __init__(self, emoji: str, user_ids):
        self.emoji = emoji
        self.count = len(user_ids)
        self._user_ids = user_ids

    def users(self):
        return _FakeUsers(self._user_ids)


class _FakePartial:
    def __init__(self, channel, message_id):
        self.channel = channel
        self.message_id = message_id

    async def delete(self):
        if self.channel.delete_error is not None:
            raise self.channel.delete_error
        self.channel.deleted.append(self.message_id)

    async def edit(self, **fields):
        self.channel.edited.append((self.message_id, fields))


class _FakeChannel:
    def __init__(self, channel_id: int, message=None):
        self.id = channel_id
        self.message = message
        self.delete_error = None
        self.deleted = []
        self.edited = []

    def get_partial_message(self, message_id):
        return _FakePartial(self, message_id)

    async def fetch_message(self, message_id):
        if self.message is None:
            raise _http_error(discord.NotFound, 404)
        return self.message


def _poll_message(channel):
    embed = discord.Embed(description="Was essen wir?")
    embed.add_field(name="Antwortmöglichkeiten", value="🍕 Pizza\n🍔 Burger")
    return SimpleNamespace(
        id=10,
        channel=channel,
        embeds=[embed],
        reactions=[_FakeReaction("🍕", [1, 42]), _FakeReaction("🍔", [1, 42, 43])],
    )


def _client(channel):
    return SimpleNamespace(get_channel=lambda channel_id: channel if channel_id == channel.id else None)


def test_snapshot_message_reads_first_embed_and_counts():
    channel = _FakeChannel(77)

    snapshot = snapshot_message(_poll_message(channel))

    assert snapshot.channel_id == 77
    assert snapshot.embed_description == "Was essen wir?"
    assert snapshot.field_value("Antwortmöglichkeiten") == "🍕 Pizza\n🍔 Burger"
    assert snapshot.reaction_counts == {"🍕": 2, "🍔": 3}


@pytest.mark.asyncio
async def test_fetch_message_wraps_missing_message():
    gateway = DiscordMessagingGateway(_client(_FakeChannel(77)))

    with pytest.raises(SourceUnavailable):
        await gateway.fetch_message(77, 10)


@pytest.mark.asyncio
async def test_count_user_reactions_only_counts_given_markers():
    channel = _FakeChannel(77)
    channel.message = _poll_message(channel)
    gateway = DiscordMessagingGateway(_client(channel))

    snapshot = await gateway.fetch_message(77, 10)

    assert await gateway.fetch_reaction_count(snapshot, "🍔") == 3
    assert await gateway.count_user_reactions(snapshot, 42, ["🍕", "🍔"]) == 2
    assert await gateway.count_user_reactions(snapshot, 43, ["🍕"]) == 0


@pytest.mark.asyncio
async def test_delete_treats_missing_message_as_deleted():
    channel = _FakeChannel(77)
    gateway = DiscordMessagingGateway(_client(channel))

    channel.delete_error = _http_error(discord.NotFound, 404)
    assert await gateway.delete_message(77, 10) is True

    channel.delete_error = _http_error(discord.Forbidden, 403)
    assert await gateway.delete_message(77, 10) is False

    channel.delete_error = None
    assert await gateway.delete_message(77, 10) is True
    assert channel.deleted == [10]


class _FakeMember:
    def __init__(self, error=None):
        self.error = error
        self.added = []
        self.removed = []

    async def add_roles(self, *roles, reason=None):
        if self.error is not None:
            raise self.error
        self.added.extend(role.id for role in roles)

    async def remove_roles(self, *roles, reason=None):
        self.removed.extend(role.id for role in roles)


class _FakeGuild:
    def __init__(self, member):
        self.member = member
        self.fetched = 0

    def get_member(self, user_id):
        return None

    async def fetch_member(self, user_id):
        self.fetched += 1
        return self.member


@pytest.mark.asyncio
async def test_member_roles_are_changed_on_fetched_member():
    member = _FakeMember()
    guild = _FakeGuild(member)
    gateway = DiscordMessagingGateway(SimpleNamespace(get_guild=lambda guild_id: guild if guild_id == 5 else None))

    assert await gateway.add_member_role(5, 9, 1141372038368477254) is True
    assert await gateway.remove_member_role(5, 9, 1141364800828481677) is True

    assert member.added == [1141372038368477254]
    assert member.removed == [1141364800828481677]
    assert guild.fetched == 2


@pytest.mark.asyncio
async def test_forbidden_role_change_reports_failure():
    guild = _FakeGuild(_FakeMember(error=_http_error(discord.Forbidden, 403)))
    gateway = DiscordMessagingGateway(SimpleNamespace(get_guild=lambda guild_id: guild))

    assert await gateway.add_member_role(5, 9, 1) is False
