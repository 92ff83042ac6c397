from gateway.messaging import DiscordMessagingGateway, MessageSnapshot, MessagingGateway
from gateway.safety import (
    safe_defer,
    safe_delete_message,
    safe_edit_message,
    safe_followup,
    safe_send_initial,
    safe_send_modal,
)
from gateway.task_registry import PeriodicHandle, Scheduler, SingletonTaskRegistry

__all__ = [
    "DiscordMessagingGateway",
    "MessageSnapshot",
    "MessagingGateway",
    "safe_defer",
    "safe_delete_message",
    "safe_edit_message",
    "safe_followup",
    "safe_send_initial",
    "safe_send_modal",
    "PeriodicHandle",
    "Scheduler",
    "SingletonTaskRegistry",
]
