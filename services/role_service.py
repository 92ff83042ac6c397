from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Iterable

from db.repository import InMemoryRepository, RoleMessage
from gateway.messaging import MessagingGateway


log = logging.getLogger("yippie.roles")

CUSTOM_EMOJI_ID_PATTERN = re.compile(r"<a?:\w+:(\d+)>")


def emoji_key(marker: str) -> str:
    """Custom emoji are matched by id, unicode emoji by their text."""
    match = CUSTOM_EMOJI_ID_PATTERN.fullmatch(marker.strip())
    if match is not None:
        return match.group(1)
    return marker.strip()


def reaction_key(emoji: Any) -> str:
    emoji_id = getattr(emoji, "id", None)
    if emoji_id:
        return str(emoji_id)
    name = getattr(emoji, "name", None)
    return str(name if name is not None else emoji)


class ReactionRoleController:
    """Grants and removes roles for reactions on the stored role message."""

    def __init__(
        self,
        repo: InMemoryRepository,
        gateway: MessagingGateway,
        roles: Iterable[tuple[str, int]],
        *,
        persist: Callable[[], Awaitable[Any]] | None = None,
    ) -> None:
        self.repo = repo
        self.gateway = gateway
        self.markers = [marker for marker, _role_id in roles]
        self._roles = {emoji_key(marker): int(role_id) for marker, role_id in roles}
        self._persist_cb = persist

    @property
    def configured(self) -> bool:
        return bool(self._roles)

    def role_for(self, key: str) -> int | None:
        return self._roles.get(key)

    async def set_role_message(self, *, channel_id: int, message_id: int) -> RoleMessage:
        """Store the role message and seed one reaction per configured emoji.

        Raises SourceUnavailable when the message cannot be fetched; nothing is stored then.
        """
        message = await self.gateway.fetch_message(channel_id, message_id)
        row = self.repo.set_role_message(channel_id=channel_id, message_id=message_id)
        if self._persist_cb is not None:
            await self._persist_cb()
        for marker in self.markers:
            await self.gateway.add_reaction(message, marker)
        log.info("Reaction role message set channel_id=%s message_id=%s roles=%s", channel_id, message_id, len(self.markers))
        return row

    async def handle_reaction(
        self,
        *,
        guild_id: int | None,
        message_id: int,
        user_id: int,
        key: str,
        added: bool,
        is_bot: bool = False,
    ) -> bool:
        if is_bot or guild_id is None:
            return False
        stored = self.repo.get_role_message()
        if stored is None or stored.message_id != int(message_id):
            return False
        role_id = self.role_for(key)
        if role_id is None:
            return False

        if added:
            changed = await self.gateway.add_member_role(guild_id, user_id, role_id)
        else:
            changed = await self.gateway.remove_member_role(guild_id, user_id, role_id)
        log.info(
            "%s role_id=%s %s user_id=%s ok=%s",
            "Gave" if added else "Removed",
            role_id,
            "to" if added else "from",
            user_id,
            changed,
        )
        return changed
