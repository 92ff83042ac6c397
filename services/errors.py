from __future__ import annotations


class YippieError(Exception):
    """Base class for feature errors that are contained per round or per poll."""


class InfeasibleMatching(YippieError):
    pass


class InvalidScheduleState(YippieError):
    pass


class NotificationFailure(YippieError):
    def __init__(self, user_id: int, reason: str) -> None:
        super().__init__(f"Direct message to {user_id} failed: {reason}")
        self.user_id = user_id
        self.reason = reason


class SourceUnavailable(YippieError):
    def __init__(self, channel_id: int, message_id: int, reason: str) -> None:
        super().__init__(f"Message {message_id} in channel {channel_id} unavailable: {reason}")
        self.channel_id = channel_id
        self.message_id = message_id
        self.reason = reason


class UserInputError(ValueError):
    """Rejected command input; ``key`` names the localized message shown to the user."""

    def __init__(self, key: str, **params: object) -> None:
        super().__init__(key)
        self.key = key
        self.params = params


class PollInputError(UserInputError):
    pass


class WichtelInputError(UserInputError):
    pass
