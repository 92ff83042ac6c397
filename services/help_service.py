from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class CommandHelp:
    category: str
    usage: str
    examples: str = ""


# ``category`` is a localization key.
COMMAND_HELP: dict[str, CommandHelp] = {
    "wichteln": CommandHelp(
        "help_cat_wichteln",
        "/wichteln <wichtel-date> <participating-time>",
        "`/wichteln wichtel-date:24.12.2026, 18:00 participating-time:7`",
    ),
    "endwichteln": CommandHelp("help_cat_wichteln", "/endwichteln", "`/endwichteln`"),
    "poll": CommandHelp(
        "help_cat_polls",
        "/poll <question> <time> <answer1> <answer2> [max_votes] [answer3..answer15]",
        "`/poll question:Was essen wir? time:2h answer1:🍕 Pizza answer2:🍔 Burger max_votes:1`",
    ),
    "teams": CommandHelp(
        "help_cat_random",
        "/teams <team-number> <participants>",
        "`/teams team-number:2 participants:anna ben carl dora`",
    ),
    "random": CommandHelp(
        "help_cat_random",
        "/random <objects>",
        "`/random objects:Frechheit, Geschichte, Fantasy, Romantik` | `/random objects:1,2,3,4,5`",
    ),
    "randomuser": CommandHelp("help_cat_random", "/randomuser <user1> <user2> [user3..user10]", "`/randomuser user1:@anna user2:@ben`"),
    "roll": CommandHelp("help_cat_random", "/roll <prompt>", "`/roll prompt:r4d20kh2+5 r2d4kl`"),
    "rollhelp": CommandHelp("help_cat_random", "/rollhelp", "`/rollhelp`"),
    "rolemessage": CommandHelp("help_cat_admin", "/rolemessage <message-id>", "`/rolemessage message-id:1175173441989656626`"),
    "status": CommandHelp("help_cat_admin", "/status", "`/status`"),
    "help": CommandHelp("help_cat_general", "/help [command]", "`/help` | `/help command:poll`"),
}
DEFAULT_HELP = CommandHelp("help_cat_general", "")


def help_for(name: str) -> CommandHelp:
    return COMMAND_HELP.get(name, DEFAULT_HELP)


def group_commands(commands: Iterable[Any]) -> dict[str, list[tuple[str, str]]]:
    """Registered commands as ``(name, description)`` grouped by category key, sorted by name."""
    grouped: dict[str, list[tuple[str, str]]] = {}
    for command in sorted(commands, key=lambda item: item.name):
        grouped.setdefault(help_for(command.name).category, []).append((command.name, command.description))
    return grouped


def command_options(command: Any) -> list[tuple[str, str, bool]]:
    options: list[tuple[str, str, bool]] = []
    for parameter in getattr(command, "parameters", None) or []:
        name = getattr(parameter, "display_name", None) or parameter.name
        options.append((str(name), str(parameter.description or ""), bool(parameter.required)))
    return options
