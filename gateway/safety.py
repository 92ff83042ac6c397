from __future__ import annotations

import logging
from typing import Any

import discord


log = logging.getLogger("yippie.gateway")

_RESPONSE_ERRORS = (discord.InteractionResponded, discord.HTTPException)


async def safe_defer(interaction: Any, *, ephemeral: bool = False) -> bool:
    response = getattr(interaction, "response", None)
    if response is None:
        return False
    is_done = getattr(response, "is_done", None)
    if callable(is_done) and is_done():
        return False

    try:
        await response.defer(ephemeral=ephemeral)
        return True
    except _RESPONSE_ERRORS as exc:
        log.debug("Defer failed: %s", exc)
        return False


async def safe_send_initial(
    interaction: Any,
    content: str | None = None,
    *,
    ephemeral: bool = False,
    **kwargs: Any,
) -> bool:
    response = getattr(interaction, "response", None)
    if response is None:
        return False

    is_done = getattr(response, "is_done", None)
    if callable(is_done) and is_done():
        return await safe_followup(interaction, content, ephemeral=ephemeral, **kwargs)

    try:
        await response.send_message(content, ephemeral=ephemeral, **kwargs)
        return True
    except discord.InteractionResponded:
        return await safe_followup(interaction, content, ephemeral=ephemeral, **kwargs)
    except discord.HTTPException as exc:
        log.debug("Initial response failed: %s", exc)
        return await safe_followup(interaction, content, ephemeral=ephemeral, **kwargs)


async def safe_followup(interaction: Any, content: str | None = None, *, ephemeral: bool = False, **kwargs: Any) -> bool:
    followup = getattr(interaction, "followup", None)
    if followup is None:
        return False

    try:
        await followup.send(content, ephemeral=ephemeral, **kwargs)
        return True
    except _RESPONSE_ERRORS as exc:
        log.debug("Followup failed: %s", exc)
        return False


async def safe_send_modal(interaction: Any, modal: Any) -> bool:
    response = getattr(interaction, "response", None)
    if response is None:
        return False
    try:
        await response.send_modal(modal)
        return True
    except _RESPONSE_ERRORS as exc:
        log.debug("Modal response failed: %s", exc)
        return False


async def safe_edit_message(message: Any, **kwargs: Any) -> bool:
    try:
        await message.edit(**kwargs)
        return True
    except _RESPONSE_ERRORS as exc:
        log.debug("Message edit failed: %s", exc)
        return False


async def safe_delete_message(message: Any) -> bool:
    try:
        await message.delete()
        return True
    except _RESPONSE_ERRORS as exc:
        log.debug("Message delete failed: %s", exc)
        return False
