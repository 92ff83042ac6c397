from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

import discord

from services.errors import SourceUnavailable


log = logging.getLogger("yippie.gateway")


@dataclass(slots=True)
class MessageSnapshot:
    """Plain view of a fetched message: first embed plus reaction counts by marker."""

    channel_id: int
    message_id: int
    embed_description: str | None = None
    embed_fields: list[tuple[str, str]] = field(default_factory=list)
    reaction_counts: dict[str, int] = field(default_factory=dict)
    raw: Any = None

    def field_value(self, name: str) -> str | None:
        for field_name, value in self.embed_fields:
            if field_name == name:
                return value
        return None


class MessagingGateway(Protocol):
    async def send_channel_message(
        self,
        channel_id: int,
        *,
        content: str | None = None,
        embed: Any = None,
        view: Any = None,
    ) -> MessageSnapshot | None: ...

    async def edit_message(self, channel_id: int, message_id: int, **fields: Any) -> bool: ...

    async def delete_message(self, channel_id: int, message_id: int) -> bool: ...

    async def send_direct_message(self, user_id: int, *, content: str | None = None, embed: Any = None) -> bool: ...

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageSnapshot: ...

    async def fetch_reaction_count(self, message: MessageSnapshot, marker: str) -> int: ...

    async def count_user_reactions(self, message: MessageSnapshot, user_id: int, markers: Iterable[str]) -> int: ...

    async def remove_user_reaction(self, message: MessageSnapshot, marker: str, user_id: int) -> bool: ...

    async def add_reaction(self, message: MessageSnapshot, marker: str) -> bool: ...

    async def add_member_role(self, guild_id: int, user_id: int, role_id: int) -> bool: ...

    async def remove_member_role(self, guild_id: int, user_id: int, role_id: int) -> bool: ...


def snapshot_message(message: Any) -> MessageSnapshot:
    embeds = list(getattr(message, "embeds", None) or [])
    first = embeds[0] if embeds else None
    fields = [(str(item.name or ""), str(item.value or "")) for item in first.fields] if first is not None else []
    counts: dict[str, int] = {}
    for reaction in getattr(message, "reactions", None) or []:
        counts[str(reaction.emoji)] = int(reaction.count)
    channel = getattr(message, "channel", None)
    return MessageSnapshot(
        channel_id=int(getattr(channel, "id", 0) or 0),
        message_id=int(message.id),
        embed_description=first.description if first is not None else None,
        embed_fields=fields,
        reaction_counts=counts,
        raw=message,
    )


class DiscordMessagingGateway:
    """MessagingGateway on top of a connected discord.py client."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _resolve_channel(self, channel_id: int) -> Any:
        channel = self.client.get_channel(int(channel_id))
        if channel is None:
            channel = await self.client.fetch_channel(int(channel_id))
        return channel

    async def _raw_message(self, message: MessageSnapshot) -> Any:
        if message.raw is not None:
            return message.raw
        channel = await self._resolve_channel(message.channel_id)
        message.raw = await channel.fetch_message(message.message_id)
        return message.raw

    async def send_channel_message(
        self,
        channel_id: int,
        *,
        content: str | None = None,
        embed: Any = None,
        view: Any = None,
    ) -> MessageSnapshot | None:
        kwargs: dict[str, Any] = {}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed
        if view is not None:
            kwargs["view"] = view
        try:
            channel = await self._resolve_channel(channel_id)
            sent = await channel.send(**kwargs)
        except (discord.HTTPException, discord.InvalidData) as exc:
            log.warning("Send to channel_id=%s failed: %s", channel_id, exc)
            return None
        return snapshot_message(sent)

    async def edit_message(self, channel_id: int, message_id: int, **fields: Any) -> bool:
        try:
            channel = await self._resolve_channel(channel_id)
            await channel.get_partial_message(int(message_id)).edit(**fields)
        except (discord.HTTPException, discord.InvalidData) as exc:
            log.warning("Edit of message_id=%s in channel_id=%s failed: %s", message_id, channel_id, exc)
            return False
        return True

    async def delete_message(self, channel_id: int, message_id: int) -> bool:
        try:
            channel = await self._resolve_channel(channel_id)
            await channel.get_partial_message(int(message_id)).delete()
        except discord.NotFound:
            log.info("Message message_id=%s was already deleted", message_id)
            return True
        except (discord.HTTPException, discord.InvalidData) as exc:
            log.warning("Delete of message_id=%s in channel_id=%s failed: %s", message_id, channel_id, exc)
            return False
        return True

    async def send_direct_message(self, user_id: int, *, content: str | None = None, embed: Any = None) -> bool:
        kwargs: dict[str, Any] = {}
        if content is not None:
            kwargs["content"] = content
        if embed is not None:
            kwargs["embed"] = embed
        try:
            user = self.client.get_user(int(user_id))
            if user is None:
                user = await self.client.fetch_user(int(user_id))
            await user.send(**kwargs)
        except discord.HTTPException as exc:
            log.warning("Direct message to user_id=%s failed: %s", user_id, exc)
            return False
        return True

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageSnapshot:
        try:
            channel = await self._resolve_channel(channel_id)
            message = await channel.fetch_message(int(message_id))
        except (discord.HTTPException, discord.InvalidData) as exc:
            raise SourceUnavailable(channel_id, message_id, str(exc)) from exc
        return snapshot_message(message)

    async def fetch_reaction_count(self, message: MessageSnapshot, marker: str) -> int:
        return int(message.reaction_counts.get(marker, 0))

    async def count_user_reactions(self, message: MessageSnapshot, user_id: int, markers: Iterable[str]) -> int:
        wanted = set(markers)
        count = 0
        try:
            raw = await self._raw_message(message)
            for reaction in raw.reactions:
                if str(reaction.emoji) not in wanted:
                    continue
                async for user in reaction.users():
                    if user.id == int(user_id):
                        count += 1
                        break
        except discord.HTTPException as exc:
            log.warning("Reaction lookup on message_id=%s failed: %s", message.message_id, exc)
        return count

    async def remove_user_reaction(self, message: MessageSnapshot, marker: str, user_id: int) -> bool:
        try:
            raw = await self._raw_message(message)
            await raw.remove_reaction(marker, discord.Object(id=int(user_id)))
        except discord.HTTPException as exc:
            log.warning("Removing reaction %s of user_id=%s failed: %s", marker, user_id, exc)
            return False
        return True

    async def add_reaction(self, message: MessageSnapshot, marker: str) -> bool:
        try:
            raw = await self._raw_message(message)
            await raw.add_reaction(marker)
        except discord.HTTPException as exc:
            log.warning("Adding reaction %s to message_id=%s failed: %s", marker, message.message_id, exc)
            return False
        return True

    async def _resolve_member(self, guild_id: int, user_id: int) -> Any:
        guild = self.client.get_guild(int(guild_id))
        if guild is None:
            guild = await self.client.fetch_guild(int(guild_id))
        member = guild.get_member(int(user_id))
        if member is None:
            member = await guild.fetch_member(int(user_id))
        return member

    async def add_member_role(self, guild_id: int, user_id: int, role_id: int) -> bool:
        try:
            member = await self._resolve_member(guild_id, user_id)
            await member.add_roles(discord.Object(id=int(role_id)), reason="Reaction role")
        except (discord.HTTPException, discord.InvalidData) as exc:
            log.warning("Adding role_id=%s to user_id=%s failed: %s", role_id, user_id, exc)
            return False
        return True

    async def remove_member_role(self, guild_id: int, user_id: int, role_id: int) -> bool:
        try:
            member = await self._resolve_member(guild_id, user_id)
            await member.remove_roles(discord.Object(id=int(role_id)), reason="Reaction role")
        except (discord.HTTPException, discord.InvalidData) as exc:
            log.warning("Removing role_id=%s from user_id=%s failed: %s", role_id, user_id, exc)
            return False
        return True
