"""Localization system für Deutsch/English."""
from __future__ import annotations

from typing import Literal

Language = Literal["de", "en"]

# Alle Bot-Nachrichten zentralisiert
STRINGS: dict[Language, dict[str, str]] = {
    "de": {
        # Allgemein
        "guild_only": "Nur im Server nutzbar.",
        "no_permission": "Dazu hast du keine Berechtigung!",
        "persist_failed": "Speichern fehlgeschlagen. Bitte Logs prüfen.",

        # Wichteln: Start
        "wichtel_starting": "Wichteln wird gestartet",
        "wichtel_started": "Das Wichteln wurde gestartet.",
        "wichtel_bad_date": 'Du hast das "wichtel-date" falsch angegeben! Format: DD.MM.YYYY, HH:mm',
        "wichtel_bad_days": "Die Anmeldezeit muss mindestens 1 Tag betragen.",
        "wichtel_channel_missing": "Der Wichtel-Channel konnte nicht gefunden werden!",
        "wichtel_already_running": "Es läuft bereits ein Wichteln. Beende es zuerst mit /endwichteln.",
        "wichtel_title": "Wichteln",
        "wichtel_announcement": (
            "Es ist wieder so weit. Wir wichteln dieses Jahr wieder mit **Schrottspielen**!\n"
            "Es geht also darum möglichst beschissene Spiele zu verschenken.\n\n"
            "Wir treffen uns am **{event}**. Dann werden wir zusammen die Spiele 2 Stunden lang spielen "
            "und uns gegenseitig beim Leiden zuschauen können.\n"
            "Wer an diesem Tag nicht kann, muss sich keine Sorgen machen. Man kann das Spiel gerne auch "
            "zu einem anderen Zeitpunkt spielen. Es macht aber am meisten Spaß, wenn die Person, die einem "
            "das Spiel geschenkt hat, dabei ist.\n\n"
            "Ihr habt bis zum **{end_date} um {end_time} Uhr** Zeit, um euch anzumelden. "
            "Dazu müsst ihr einfach nur den Knopf drücken!"
        ),
        "wichtel_event_label": "{date} um {time} Uhr",

        # Wichteln: Anmeldung
        "wichtel_btn_participate": "Teilnehmen",
        "wichtel_btn_participants": "Teilnehmer anzeigen",
        "wichtel_modal_title": "Steam-Daten",
        "wichtel_modal_platform_name": "Steam Name",
        "wichtel_modal_friend_code": "Steam Freundes-Code",
        "wichtel_joined": "Du bist dem Wichteln beigetreten.",
        "wichtel_join_closed": "Gerade läuft keine Anmeldephase für das Wichteln.",
        "wichtel_no_participants": "Noch nimmt niemand am Wichteln teil.",
        "wichtel_participants_header": "Teilnehmer:",

        # Wichteln: Ende
        "wichtel_ending": "Das Wichteln wird beendet...",
        "wichtel_ended": "Das Wichteln wurde beendet!",
        "wichtel_not_running": "Es läuft gerade kein Wichteln.",
        "wichtel_invalid_state": "Das Wichteln wurde zurückgesetzt, weil kein gültiges Anmeldeende gespeichert war.",
        "wichtel_not_enough": "Leider haben nicht genug Personen am Schrottwichteln teilgenommen.",
        "wichtel_dm_title": "Wichtel-Post",
        "wichtel_dm_body": (
            "Hallo,\ndein\\*e Wichtel-Partner\\*in ist <@{user_id}>\n"
            "Discord: `{display_name}`\nSteam: `{platform_name}`\n"
            "Steam Friend-Code: `{friend_code}`\n\n"
            "Überlege dir ein schönes Spiel für deine\\*n Partner\\*in und kaufe es auf Steam und lege es "
            "als Geschenk für den **{event}** oder früher fest.\n"
            "Falls du nicht weißt wie das geht, ist Google deine beste Anlaufstelle, "
            "oder frag einfach jemanden aus der Runde."
        ),
        "wichtel_checklist_title": "Checkliste",
        "wichtel_checklist": (
            "- Bist du mit deinem\\*r Partner\\*in auf Steam befreundet?\n"
            "- Ist deine **Spielbibliothek** auf `Öffentlich` oder auf `Für Freunde`?\n"
            "- Lege dein Geschenk vielleicht schon etwas früher fest, damit dein\\*e Partner\\*in genug "
            "Zeit hat das Spiel herunterzuladen (vor allem bei großen Spielen)"
        ),
        "wichtel_summary": (
            "Die Anmeldephase für das Schrottwichteln ist vorbei. Wir treffen uns am **{event}**.\n\n"
            "__Diese Dinge solltest du nochmal überprüfen:__\n{checklist}\n\nTeilnehmer*innen:\n{participants}"
        ),
        "wichtel_summary_line": "<@{user_id}>, `Friend-Code: {friend_code}`",

        # Umfragen
        "poll_starting": "Abstimmung wird gestartet!",
        "poll_started": "Abstimmung gestartet.",
        "poll_invalid_input": "Deine Eingaben waren ungültig. Details findest du in deinen Direktnachrichten.",
        "poll_send_failed": "Die Umfrage konnte nicht gesendet werden.",
        "poll_title": "Umfrage",
        "poll_field_answers": "Antwortmöglichkeiten",
        "poll_field_info": "Infos",
        "poll_info": ":alarm_clock: Ende: <t:{timestamp}:R>\n:ballot_box_with_check: Anzahl an Stimmen: {max_votes}",
        "poll_results_title": "Umfrage-Ergebnisse",
        "poll_results_field": "Ergebnis",
        "poll_input_title": "Deine Eingaben",
        "poll_err_question": "Die Frage darf nicht leer sein.",
        "poll_err_answer_count": "Es werden mindestens {min} und höchstens {max} Antworten benötigt.",
        "poll_err_format": (
            "Bei deinem Poll hast du bei Antwort {index} nicht das richtige Format befolgt. "
            "Bitte stelle sicher, dass die Antwort folgende Form hat: (emoji) (text)"
        ),
        "poll_err_duplicate": "Das Emoji für Antwort {index} wurde bereits verwendet. Bitte wähle ein anderes Emoji.",
        "poll_err_time": "Bei deinem Poll hast du die Zeit falsch angegeben. Erlaubt ist nur dieses Format: 7d, 10h oder 33m",
        "poll_err_max_votes": "Die Anzahl an Stimmen muss mindestens 1 sein.",
        "poll_err_too_long": "Die Antworten sind zu lang. Zusammen dürfen sie höchstens {limit} Zeichen haben.",

        # Teams
        "teams_title": "Das sind die Teams:",
        "teams_description": "Zufällig generierte Teams für {count} Teilnehmer in {teams} Teams.",
        "teams_field": "Team {index}",
        "teams_invalid": (
            "Die Anzahl an Teams muss größer als 0 sein und es müssen mindestens so viele Mitglieder "
            "angegeben werden, wie es Teams gibt!"
        ),
        "teams_btn_reshuffle": "Teams neu mischen",
        "teams_reshuffle_failed": "Die Teams konnten nicht neu gemischt werden.",
        "teams_too_long": "Die Namen sind zu lang. Zusammen dürfen sie höchstens {limit} Zeichen haben.",

        # Würfeln und Zufall
        "roll_err_input": "Bitte überprüfe deine Eingabe. Falls du Hilfe brauchst, verwende bitte `/rollhelp`",
        "roll_err_limits": "Pro Wurf sind höchstens {dice} Würfel mit 1 bis {sides} Seiten erlaubt.",
        "roll_err_terms": "Es sind höchstens {max} Würfe auf einmal erlaubt.",
        "roll_title": "Würfelergebnisse",
        "roll_description": "Du hast `{prompt}` gewürfelt.",
        "roll_roll": "Wurf",
        "roll_rolls": "Würfe",
        "roll_kept": "Gehalten",
        "roll_result": "Ergebnis",
        "rollhelp_title": "Würfel-Hilfe",
        "rollhelp_description": "Hier sind die Optionen für den `/roll` Befehl:",
        "rollhelp_single_name": "__Einzelner Würfelwurf__",
        "rollhelp_single_value": "`/roll prompt: rd6`\nWürfelt einen 6-seitigen Würfel.",
        "rollhelp_multiple_name": "__Mehrere Würfelwürfe__",
        "rollhelp_multiple_value": "`/roll prompt: r2d6 r3d8`\nWürfelt zwei 6-seitige Würfel und drei 8-seitige Würfel.",
        "rollhelp_modifier_name": "__Modifikator__",
        "rollhelp_modifier_value": "`/roll prompt: r2d6+3`\nWürfelt zwei 6-seitige Würfel und addiert 3 zum Ergebnis.",
        "rollhelp_keep_high_name": "__Höchste Würfe behalten (kh)__",
        "rollhelp_keep_high_value": "`/roll prompt: r4d6kh`\nWürfelt vier 6-seitige Würfel und behält den höchsten.",
        "rollhelp_keep_low_name": "__Niedrigste Würfe behalten (kl)__",
        "rollhelp_keep_low_value": "`/roll prompt: r4d6kl2`\nWürfelt vier 6-seitige Würfel und behält die zwei niedrigsten.",
        "rollhelp_combined_name": "__Kombinationen__",
        "rollhelp_combined_value": (
            "`/roll prompt: r4d20kh2+5 r2d4kl`\nWürfelt vier 20-seitige Würfel, behält die zwei höchsten und "
            "addiert 5. Würfelt zwei 4-seitige Würfel und behält den niedrigsten."
        ),
        "random_empty": "Es wurden keine Objekte zum Auswählen angegeben.",
        "random_title": "Das Ergebnis der Ziehung ist...",
        "random_description": "Aus den folgenden Einträgen wurde zufällig ausgewählt:\n{entries}",
        "random_field_count": "Anzahl Einträge:",
        "random_field_probability": "Wahrscheinlichkeit:",
        "random_field_winner": "Gewinner:",
        "randomuser_description": "<@{winner}> wurde ausgewählt! :tada:\n\nZur Auswahl standen: {users}",

        # Hilfe
        "help_title": "Alle Befehle",
        "help_description": "Hier ist eine Liste aller Befehle:",
        "help_unknown": "Den Befehl `/{name}` gibt es nicht.",
        "help_command_title": "Hilfe für /{name}",
        "help_usage": "Benutzung:",
        "help_examples": "Beispiel:",
        "help_arguments": "Argumente:",
        "help_option": "**{name}**: {description} - (**Erforderlich**: {required})",
        "help_yes": "Ja",
        "help_no": "Nein",
        "help_cat_general": "Allgemein",
        "help_cat_wichteln": "Wichteln",
        "help_cat_polls": "Umfragen",
        "help_cat_random": "Zufall",
        "help_cat_admin": "Verwaltung",

        # Reaktionsrollen
        "roles_not_configured": "Es sind keine Reaktionsrollen konfiguriert (REACTION_ROLES).",
        "roles_bad_message_id": "Die Nachrichten-ID ist ungültig.",
        "roles_message_missing": "Die Nachricht wurde in diesem Channel nicht gefunden.",
        "roles_message_set": "Die Rollen-Nachricht wurde gesetzt.",

        # Status
        "status_title": "Bot Status",
        "status_wichteln_open": "Wichteln: Anmeldung offen bis `{end}` ({count} Teilnehmer)",
        "status_wichteln_idle": "Wichteln: keine Runde aktiv",
        "status_polls": "Aktive Umfragen: `{count}`",
        "status_commands": "Commands: `{registered}` registriert, fehlend: `{missing}`",
    },
    "en": {
        # General
        "guild_only": "Only usable inside a server.",
        "no_permission": "You are not allowed to do that!",
        "persist_failed": "Saving failed. Please check the logs.",

        # Wichteln: start
        "wichtel_starting": "Starting the gift exchange",
        "wichtel_started": "The gift exchange has been started.",
        "wichtel_bad_date": 'The "wichtel-date" is invalid! Format: DD.MM.YYYY, HH:mm',
        "wichtel_bad_days": "The signup time must be at least 1 day.",
        "wichtel_channel_missing": "The gift exchange channel could not be found!",
        "wichtel_already_running": "A gift exchange is already running. End it first with /endwichteln.",
        "wichtel_title": "Gift exchange",
        "wichtel_announcement": (
            "It's that time again. This year we exchange **terrible games**!\n\n"
            "We meet on **{event}** to play the games together for 2 hours.\n"
            "If you can't make it that day, no worries, you can play your game later.\n\n"
            "You have until **{end_date} at {end_time}** to sign up. Just press the button!"
        ),
        "wichtel_event_label": "{date} at {time}",

        # Wichteln: signup
        "wichtel_btn_participate": "Participate",
        "wichtel_btn_participants": "Show participants",
        "wichtel_modal_title": "Steam data",
        "wichtel_modal_platform_name": "Steam name",
        "wichtel_modal_friend_code": "Steam friend code",
        "wichtel_joined": "You joined the gift exchange.",
        "wichtel_join_closed": "There is no open signup for the gift exchange right now.",
        "wichtel_no_participants": "Nobody has joined the gift exchange yet.",
        "wichtel_participants_header": "Participants:",

        # Wichteln: end
        "wichtel_ending": "Ending the gift exchange...",
        "wichtel_ended": "The gift exchange has ended!",
        "wichtel_not_running": "No gift exchange is running.",
        "wichtel_invalid_state": "The gift exchange was reset because no valid signup end was stored.",
        "wichtel_not_enough": "Unfortunately not enough people joined the gift exchange.",
        "wichtel_dm_title": "Gift exchange mail",
        "wichtel_dm_body": (
            "Hello,\nyour partner is <@{user_id}>\n"
            "Discord: `{display_name}`\nSteam: `{platform_name}`\n"
            "Steam friend code: `{friend_code}`\n\n"
            "Pick a nice game for your partner, buy it on Steam and schedule it as a gift for **{event}** or earlier."
        ),
        "wichtel_checklist_title": "Checklist",
        "wichtel_checklist": (
            "- Are you friends with your partner on Steam?\n"
            "- Is your **game library** set to `Public` or `Friends only`?\n"
            "- Schedule your gift a bit early so your partner has time to download it"
        ),
        "wichtel_summary": (
            "The signup for the gift exchange is over. We meet on **{event}**.\n\n"
            "__Please double-check:__\n{checklist}\n\nParticipants:\n{participants}"
        ),
        "wichtel_summary_line": "<@{user_id}>, `Friend code: {friend_code}`",

        # Polls
        "poll_starting": "Starting the poll!",
        "poll_started": "Poll started.",
        "poll_invalid_input": "Your input was invalid. See your direct messages for details.",
        "poll_send_failed": "The poll could not be sent.",
        "poll_title": "Poll",
        "poll_field_answers": "Options",
        "poll_field_info": "Info",
        "poll_info": ":alarm_clock: Ends: <t:{timestamp}:R>\n:ballot_box_with_check: Votes per user: {max_votes}",
        "poll_results_title": "Poll results",
        "poll_results_field": "Result",
        "poll_input_title": "Your input",
        "poll_err_question": "The question must not be empty.",
        "poll_err_answer_count": "At least {min} and at most {max} answers are required.",
        "poll_err_format": "Answer {index} does not follow the format: (emoji) (text)",
        "poll_err_duplicate": "The emoji of answer {index} is already used. Please pick another one.",
        "poll_err_time": "The poll time is invalid. Allowed formats: 7d, 10h or 33m",
        "poll_err_max_votes": "The number of votes must be at least 1.",
        "poll_err_too_long": "The answers are too long. Together they may have at most {limit} characters.",

        # Teams
        "teams_title": "These are the teams:",
        "teams_description": "Randomly generated teams for {count} participants in {teams} teams.",
        "teams_field": "Team {index}",
        "teams_invalid": "The number of teams must be greater than 0 and there must be at least as many members as teams!",
        "teams_btn_reshuffle": "Reshuffle teams",
        "teams_reshuffle_failed": "The teams could not be reshuffled.",
        "teams_too_long": "The names are too long. Together they may have at most {limit} characters.",

        # Dice and random picks
        "roll_err_input": "Please check your input. If you need help, use `/rollhelp`",
        "roll_err_limits": "Each roll allows at most {dice} dice with 1 to {sides} sides.",
        "roll_err_terms": "At most {max} rolls are allowed at once.",
        "roll_title": "Dice results",
        "roll_description": "You rolled `{prompt}`.",
        "roll_roll": "Roll",
        "roll_rolls": "Rolls",
        "roll_kept": "Kept",
        "roll_result": "Result",
        "rollhelp_title": "Dice help",
        "rollhelp_description": "These are the options of the `/roll` command:",
        "rollhelp_single_name": "__Single roll__",
        "rollhelp_single_value": "`/roll prompt: rd6`\nRolls one 6-sided die.",
        "rollhelp_multiple_name": "__Multiple rolls__",
        "rollhelp_multiple_value": "`/roll prompt: r2d6 r3d8`\nRolls two 6-sided dice and three 8-sided dice.",
        "rollhelp_modifier_name": "__Modifier__",
        "rollhelp_modifier_value": "`/roll prompt: r2d6+3`\nRolls two 6-sided dice and adds 3 to the result.",
        "rollhelp_keep_high_name": "__Keep highest (kh)__",
        "rollhelp_keep_high_value": "`/roll prompt: r4d6kh`\nRolls four 6-sided dice and keeps the highest.",
        "rollhelp_keep_low_name": "__Keep lowest (kl)__",
        "rollhelp_keep_low_value": "`/roll prompt: r4d6kl2`\nRolls four 6-sided dice and keeps the two lowest.",
        "rollhelp_combined_name": "__Combinations__",
        "rollhelp_combined_value": (
            "`/roll prompt: r4d20kh2+5 r2d4kl`\nRolls four 20-sided dice, keeps the two highest and adds 5. "
            "Rolls two 4-sided dice and keeps the lowest."
        ),
        "random_empty": "No entries were given to pick from.",
        "random_title": "And the winner is...",
        "random_description": "Picked at random from these entries:\n{entries}",
        "random_field_count": "Entries:",
        "random_field_probability": "Probability:",
        "random_field_winner": "Winner:",
        "randomuser_description": "<@{winner}> was picked! :tada:\n\nCandidates: {users}",

        # Help
        "help_title": "All commands",
        "help_description": "This is a list of all commands:",
        "help_unknown": "There is no `/{name}` command.",
        "help_command_title": "Help for /{name}",
        "help_usage": "Usage:",
        "help_examples": "Example:",
        "help_arguments": "Arguments:",
        "help_option": "**{name}**: {description} - (**Required**: {required})",
        "help_yes": "Yes",
        "help_no": "No",
        "help_cat_general": "General",
        "help_cat_wichteln": "Gift exchange",
        "help_cat_polls": "Polls",
        "help_cat_random": "Random",
        "help_cat_admin": "Administration",

        # Reaction roles
        "roles_not_configured": "No reaction roles are configured (REACTION_ROLES).",
        "roles_bad_message_id": "The message id is invalid.",
        "roles_message_missing": "The message was not found in this channel.",
        "roles_message_set": "The role message has been set.",

        # Status
        "status_title": "Bot status",
        "status_wichteln_open": "Gift exchange: signup open until `{end}` ({count} participants)",
        "status_wichteln_idle": "Gift exchange: no active round",
        "status_polls": "Active polls: `{count}`",
        "status_commands": "Commands: `{registered}` registered, missing: `{missing}`",
    },
}


def get_string(language: Language, key: str, **kwargs) -> str:
    """Holt einen String in der gewünschten Sprache mit optionalen Platzhaltern."""
    text = STRINGS.get(language, {}).get(key, STRINGS["de"].get(key, f"[{key}]"))
    if kwargs:
        return text.format(**kwargs)
    return text


def normalize_language(value: str | None) -> Language:
    return "en" if (value or "").strip().lower() == "en" else "de"


__all__ = ["Language", "STRINGS", "get_string", "normalize_language"]
