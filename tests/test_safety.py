from __future__ import annotations

import discord
import pytest

from gateway.safety import safe_defer, safe_edit_message, safe_followup, safe_send_initial, safe_send_modal


class _FakeResponse:
    def __init__(self, done: bool = False, fail_with: Exception | None = None):
        self._done = done
        self._fail_with = fail_with
        self.deferred = 0
        self.sent = []
        self.modals = []

    def is_done(self) -> bool:
        return self._done

    async def defer(self, *, ephemeral: bool = False):
        self.deferred += 1
        self._done = True

    async def send_message(self, content, *, ephemeral: bool = False, **kwargs):
        if self._fail_with is not None:
            raise self._fail_with
        self.sent.append((content, ephemeral, kwargs))
        self._done = True

    async def send_modal(self, modal):
        if self._fail_with is not None:
            raise self._fail_with
        self.modals.append(modal)


class _FakeFollowup:
    def __init__(self):
        self.sent = []

    async def send(self, content, *, ephemeral: bool = False, **kwargs):
        self.sent.append((content, ephemeral, kwargs))


class _FakeInteraction:
    def __init__(self, done: bool = False, fail_with: Exception | None = None):
        self.response = _FakeResponse(done=done, fail_with=fail_with)
        self.followup = _FakeFollowup()


class _FakeMessage:
    def __init__(self, should_fail: bool):
        self.should_fail = should_fail
        self.edits = []

    async def edit(self, **kwargs):
        if self.should_fail:
            raise discord.InteractionResponded(None)
        self.edits.append(kwargs)


@pytest.mark.asyncio
async def test_safe_defer_is_idempotent():
    interaction = _FakeInteraction(done=False)

    first = await safe_defer(interaction, ephemeral=True)
    second = await safe_defer(interaction, ephemeral=True)

    assert first is True
    assert second is False
    assert interaction.response.deferred == 1


@pytest.mark.asyncio
async def test_safe_send_initial_falls_back_to_followup_when_done():
    interaction = _FakeInteraction(done=True)

    ok = await safe_send_initial(interaction, "hello", ephemeral=True)

    assert ok is True
    assert interaction.followup.sent == [("hello", True, {})]
    assert interaction.response.sent == []


@pytest.mark.asyncio
async def test_safe_send_initial_falls_back_when_already_responded():
    interaction = _FakeInteraction(fail_with=discord.InteractionResponded(None))

    ok = await safe_send_initial(interaction, "hello")

    assert ok is True
    assert interaction.followup.sent == [("hello", False, {})]


@pytest.mark.asyncio
async def test_safe_helpers_without_response_objects_return_false():
    assert await safe_followup(object(), "x") is False
    assert await safe_send_modal(object(), object()) is False


@pytest.mark.asyncio
async def test_safe_send_modal_reports_failure():
    interaction = _FakeInteraction(fail_with=discord.InteractionResponded(None))

    assert await safe_send_modal(interaction, object()) is False


@pytest.mark.asyncio
async def test_safe_edit_message_handles_discord_errors():
    assert await safe_edit_message(_FakeMessage(should_fail=True), content="x") is False

    message = _FakeMessage(should_fail=False)
    assert await safe_edit_message(message, view=None) is True
    assert message.edits == [{"view": None}]
