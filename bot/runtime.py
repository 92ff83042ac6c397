from __future__ import annotations

import asyncio
from collections import deque
import logging
import os
import random
from typing import Any

import discord
from discord import app_commands

from bot.config import BotConfig, load_config
from bot.logging import QueueForwardHandler, attach_handler, setup_logging
from db.repository import InMemoryRepository
from db.schema_guard import ensure_required_schema, fetch_public_tables, validate_required_tables
from gateway.embeds import (
    FIELD_VALUE_LIMIT,
    help_command_embed,
    help_overview_embed,
    poll_input_embed,
    random_embed,
    random_user_embed,
    roll_embed,
    roll_help_embed,
    teams_embed,
)
from gateway.messaging import DiscordMessagingGateway
from gateway.safety import safe_defer, safe_edit_message, safe_followup, safe_send_initial, safe_send_modal
from gateway.task_registry import Scheduler
from services.dice_service import parse_roll_prompt, roll_dice, roll_field_name, roll_field_value
from services.errors import InvalidScheduleState, PollInputError, SourceUnavailable, UserInputError
from services.help_service import command_options, group_commands, help_for
from services.persistence_service import RepositoryPersistence
from services.poll_service import MAX_ANSWERS, PollController
from services.random_service import draw_random, split_objects, unique_by_id
from services.role_service import ReactionRoleController, reaction_key
from services.startup_service import BootSmokeStats, command_registry_health, run_boot_smoke_checks
from services.team_service import fits_team_fields, names_from_team_fields, randomize_teams
from services.wichtel_service import WichtelController, WichtelSettings
from utils.localization import Language, get_string, normalize_language
from utils.text import clip, short_list, split_names


log = logging.getLogger("yippie.runtime")

WICHTEL_PARTICIPATE_ID = "yippie:wichteln:participate"
WICHTEL_PARTICIPANTS_ID = "yippie:wichteln:participants"
TEAMS_RESHUFFLE_ID = "yippie:teams:reshuffle"
LOG_FORWARD_MESSAGE_LIMIT = 1800
MESSAGE_LIMIT = 2000
PERSIST_RETRY_TASK_NAME = "persist_retry"


def _member_name(member: Any) -> str | None:
    for attr in ("nick", "display_name", "global_name", "name"):
        value = getattr(member, attr, None)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _input_error_text(language: Language, exc: UserInputError) -> str:
    return get_string(language, exc.key, **exc.params)


class WichtelSignupModal(discord.ui.Modal):
    def __init__(self, bot: "YippieBot") -> None:
        language = bot.language
        super().__init__(title=get_string(language, "wichtel_modal_title"), custom_id="yippie:wichteln:signup")
        self.bot = bot
        self.platform_name = discord.ui.TextInput(
            label=get_string(language, "wichtel_modal_platform_name"),
            required=True,
            max_length=100,
        )
        self.friend_code = discord.ui.TextInput(
            label=get_string(language, "wichtel_modal_friend_code"),
            required=True,
            max_length=64,
        )
        self.add_item(self.platform_name)
        self.add_item(self.friend_code)

    async def on_submit(self, interaction):
        user = interaction.user
        display_name = _member_name(user) or str(user.id)
        try:
            async with self.bot._state_lock:
                await self.bot.wichtel.join(
                    user_id=user.id,
                    display_name=display_name,
                    platform_name=str(self.platform_name.value),
                    platform_friend_code=str(self.friend_code.value),
                )
        except UserInputError as exc:
            await self.bot._reply(interaction, _input_error_text(self.bot.language, exc))
            return
        await self.bot._reply(interaction, get_string(self.bot.language, "wichtel_joined"))


class WichtelSignupView(discord.ui.View):
    def __init__(self, bot: "YippieBot") -> None:
        super().__init__(timeout=None)
        self.bot = bot

        participate = discord.ui.Button(
            label=get_string(bot.language, "wichtel_btn_participate"),
            style=discord.ButtonStyle.primary,
            custom_id=WICHTEL_PARTICIPATE_ID,
        )
        participate.callback = self._on_participate
        self.add_item(participate)

        participants = discord.ui.Button(
            label=get_string(bot.language, "wichtel_btn_participants"),
            style=discord.ButtonStyle.secondary,
            custom_id=WICHTEL_PARTICIPANTS_ID,
        )
        participants.callback = self._on_participants
        self.add_item(participants)

    async def _on_participate(self, interaction):
        log.info("%s pressed participate button", getattr(interaction.user, "id", None))
        if not self.bot.wichtel.active:
            await self.bot._reply(interaction, get_string(self.bot.language, "wichtel_join_closed"))
            return
        if not await safe_send_modal(interaction, WichtelSignupModal(self.bot)):
            await self.bot._reply(interaction, get_string(self.bot.language, "wichtel_join_closed"))

    async def _on_participants(self, interaction):
        log.info("%s pressed participants button", getattr(interaction.user, "id", None))
        rows = self.bot.wichtel.participants()
        if not rows:
            await self.bot._reply(interaction, get_string(self.bot.language, "wichtel_no_participants"))
            return
        lines = [f"<@{row.user_id}>" for row in rows]
        text = get_string(self.bot.language, "wichtel_participants_header") + "\n" + short_list(lines, limit=80)
        await self.bot._reply(interaction, clip(text, MESSAGE_LIMIT))


class TeamsView(discord.ui.View):
    def __init__(self, bot: "YippieBot") -> None:
        super().__init__(timeout=None)
        self.bot = bot
        reshuffle = discord.ui.Button(
            label=get_string(bot.language, "teams_btn_reshuffle"),
            style=discord.ButtonStyle.primary,
            custom_id=TEAMS_RESHUFFLE_ID,
        )
        reshuffle.callback = self._on_reshuffle
        self.add_item(reshuffle)

    async def _on_reshuffle(self, interaction):
        language = self.bot.language
        embeds = list(getattr(interaction.message, "embeds", None) or [])
        if not embeds:
            await self.bot._reply(interaction, get_string(language, "teams_reshuffle_failed"))
            return
        fields = [(str(item.name or ""), str(item.value or "")) for item in embeds[0].fields]
        names, team_count = names_from_team_fields(fields)
        teams = randomize_teams(names, team_count)
        if teams is None:
            await self.bot._reply(interaction, get_string(language, "teams_invalid"))
            return
        try:
            await interaction.response.edit_message(embed=teams_embed(teams, language=language), view=self)
        except (discord.InteractionResponded, discord.HTTPException):
            await safe_edit_message(interaction.message, embed=teams_embed(teams, language=language), view=self)
        log.info("%s reshuffled teams", getattr(interaction.user, "id", None))


class YippieBot(discord.Client):
    persist_retry_seconds = 5.0

    def __init__(self, repo: InMemoryRepository, config: BotConfig) -> None:
        intents = discord.Intents.default()
        super().__init__(intents=intents)

        self.repo = repo
        self.config = config
        self.language: Language = normalize_language(config.language)
        self.persistence = RepositoryPersistence(config)
        self.tree = app_commands.CommandTree(self)
        self.scheduler = Scheduler()
        self.messaging = DiscordMessagingGateway(self)
        self.wichtel = WichtelController(
            repo,
            self.messaging,
            self.scheduler,
            settings=WichtelSettings.from_config(config),
            persist=self._persist,
            view_factory=lambda: WichtelSignupView(self),
        )
        self.poll_controller = PollController(
            repo,
            self.messaging,
            self.scheduler,
            persist=self._persist,
            check_interval_seconds=float(config.poll_check_interval_seconds),
            language=self.language,
        )
        self.roles = ReactionRoleController(repo, self.messaging, config.reaction_roles, persist=self._persist)
        self.rng = random.Random()

        self.boot_smoke_stats: BootSmokeStats | None = None
        self.log_channel = None
        self.log_forward_queue: asyncio.Queue[str] = asyncio.Queue()
        self.pending_log_buffer: deque[str] = deque(maxlen=250)
        self.log_forwarder_active = False

        self._state_loaded = False
        self._commands_registered = False
        self._commands_synced = False
        self._runtime_restored = False
        self._state_lock = asyncio.Lock()
        self._discord_log_handler = QueueForwardHandler(
            self.enqueue_discord_log,
            level=getattr(logging, config.discord_log_level, logging.INFO),
        )
        self._discord_loggers = attach_handler(self._discord_log_handler)

    async def setup_hook(self) -> None:
        if not self._state_loaded:
            await self._bootstrap_repository()
            self._state_loaded = True
        if not self._commands_registered:
            self._register_commands()
            registered, missing, unexpected = command_registry_health(cmd.name for cmd in self.tree.get_commands())
            if missing:
                log.error("Slash commands missing after registration: %s", ", ".join(missing))
            if unexpected:
                log.warning("Unexpected slash commands registered: %s", ", ".join(unexpected))
            log.info("Registered slash commands: %s", ", ".join(registered))
            self._commands_registered = True
        self.add_view(WichtelSignupView(self))
        self.add_view(TeamsView(self))

    async def _bootstrap_repository(self) -> None:
        if not await self.persistence.session_manager.try_acquire_singleton_lock():
            log.warning("Another instance holds singleton lock. Exiting.")
            raise SystemExit(0)

        async with self.persistence.session_manager.engine.begin() as connection:
            changes = await ensure_required_schema(connection)
            await validate_required_tables(connection)
            existing_tables = await fetch_public_tables(connection)
            if changes:
                log.info("Applied DB schema changes: %s", ", ".join(changes))

        await self.persistence.load(self.repo)
        self.boot_smoke_stats = run_boot_smoke_checks(self.repo, existing_tables)
        log.info(
            "Boot smoke checks ok tables=%s participants=%s polls=%s wichteln_active=%s",
            self.boot_smoke_stats.required_tables,
            self.boot_smoke_stats.participants,
            self.boot_smoke_stats.active_polls,
            self.boot_smoke_stats.wichteln_active,
        )

    async def on_ready(self) -> None:
        if not self._commands_synced:
            try:
                if self.config.guild_id > 0:
                    guild = discord.Object(id=self.config.guild_id)
                    self.tree.copy_global_to(guild=guild)
                    await self.tree.sync(guild=guild)
                else:
                    await self.tree.sync()
                self._commands_synced = True
                log.info("Command sync completed (guild_id=%s)", self.config.guild_id or "global")
            except Exception:
                log.exception("Command sync failed")

        if not self._runtime_restored:
            self.poll_controller.start()
            if self.wichtel.resume():
                log.info("Wichteln round restored from database")
            self.scheduler.registry.start_once("log_forwarder_worker", self._log_forwarder_worker)
            self._runtime_restored = True

        if self.log_channel is None:
            self.log_channel = await self._resolve_log_channel()
        self.log_forwarder_active = True
        self._flush_pending_logs()

        log.info("Yippie bot ready as %s", self.user)

    async def on_raw_reaction_add(self, payload) -> None:
        if self.user is not None and payload.user_id == self.user.id:
            return
        member = getattr(payload, "member", None)
        is_bot = bool(getattr(member, "bot", False))
        try:
            await self.poll_controller.enforce_vote_limit(
                channel_id=payload.channel_id,
                message_id=payload.message_id,
                user_id=payload.user_id,
                marker=str(payload.emoji),
                is_bot=is_bot,
            )
        except Exception:
            log.exception("Vote limit check failed for message_id=%s", payload.message_id)
        await self._handle_role_reaction(payload, added=True, is_bot=is_bot)

    async def on_raw_reaction_remove(self, payload) -> None:
        if self.user is not None and payload.user_id == self.user.id:
            return
        await self._handle_role_reaction(payload, added=False)

    async def _handle_role_reaction(self, payload, *, added: bool, is_bot: bool = False) -> None:
        try:
            await self.roles.handle_reaction(
                guild_id=getattr(payload, "guild_id", None),
                message_id=payload.message_id,
                user_id=payload.user_id,
                key=reaction_key(payload.emoji),
                added=added,
                is_bot=is_bot,
            )
        except Exception:
            log.exception("Reaction role update failed for message_id=%s", payload.message_id)

    def enqueue_discord_log(self, message: str) -> None:
        if not message:
            return
        text = clip(message, LOG_FORWARD_MESSAGE_LIMIT)
        if self.log_forwarder_active:
            self.log_forward_queue.put_nowait(text)
            return
        self.pending_log_buffer.append(text)

    def _flush_pending_logs(self) -> None:
        while self.pending_log_buffer:
            self.log_forward_queue.put_nowait(self.pending_log_buffer.popleft())

    async def _resolve_log_channel(self):
        if self.config.log_guild_id <= 0 or self.config.log_channel_id <= 0:
            return None
        guild = self.get_guild(self.config.log_guild_id)
        if guild is None:
            return None
        channel = guild.get_channel(self.config.log_channel_id)
        if isinstance(channel, discord.TextChannel):
            return channel
        return None

    async def _log_forwarder_worker(self) -> None:
        await self.wait_until_ready()
        while not self.is_closed():
            message = await self.log_forward_queue.get()
            channel = self.log_channel
            if channel is None:
                continue
            try:
                await channel.send(content=f"```\n{message}\n```")
            except discord.HTTPException:
                # Logging here would feed the queue again.
                continue

    async def _reply(self, interaction: Any, content: str, *, ephemeral: bool = True) -> None:
        await safe_send_initial(interaction, content, ephemeral=ephemeral)

    async def _persist(self) -> bool:
        try:
            await self.persistence.flush(self.repo)
        except Exception:
            # The in-memory repository stays authoritative; reloading would undo claimed rounds and polls.
            log.exception("Failed to flush state. Retrying every %ss.", self.persist_retry_seconds)
            self.scheduler.run_every(PERSIST_RETRY_TASK_NAME, self.persist_retry_seconds, self._retry_persist)
            return False
        if self.scheduler.is_running(PERSIST_RETRY_TASK_NAME):
            self.scheduler.cancel(PERSIST_RETRY_TASK_NAME)
        return True

    async def _retry_persist(self) -> None:
        try:
            await self.persistence.flush(self.repo)
        except Exception as exc:
            log.warning("Retrying state flush failed: %s", exc)
            return
        self.scheduler.cancel(PERSIST_RETRY_TASK_NAME)
        log.info("Pending state flushed after earlier failure")

    def _is_admin(self, interaction: Any) -> bool:
        user = getattr(interaction, "user", None)
        user_id = getattr(user, "id", None)
        if self.config.admin_user_id > 0 and user_id == self.config.admin_user_id:
            return True
        perms = getattr(user, "guild_permissions", None)
        return bool(perms and getattr(perms, "administrator", False))

    async def _require_admin(self, interaction: Any) -> bool:
        if self._is_admin(interaction):
            return True
        log.info(
            "Admin command denied user_id=%s command=%s",
            getattr(getattr(interaction, "user", None), "id", None),
            getattr(getattr(interaction, "command", None), "name", None),
        )
        await self._reply(interaction, get_string(self.language, "no_permission"))
        return False

    def status_text(self) -> str:
        language = self.language
        state = self.repo.get_wichtel_state()
        if state.active:
            wichteln = get_string(
                language,
                "status_wichteln_open",
                end=state.end_text,
                count=len(self.repo.list_participants()),
            )
        else:
            wichteln = get_string(language, "status_wichteln_idle")
        registered, missing, _unexpected = command_registry_health(cmd.name for cmd in self.tree.get_commands())
        return "\n".join(
            [
                f"**{get_string(language, 'status_title')}**",
                wichteln,
                get_string(language, "status_polls", count=len(self.repo.polls)),
                get_string(
                    language,
                    "status_commands",
                    registered=len(registered),
                    missing=", ".join(missing) or "-",
                ),
            ]
        )

    async def _send_poll_input_feedback(self, interaction: Any, text: str, embed: Any) -> None:
        user = getattr(interaction, "user", None)
        delivered = False
        if user is not None:
            delivered = await self.messaging.send_direct_message(user.id, content=text, embed=embed)
        await safe_followup(
            interaction,
            get_string(self.language, "poll_invalid_input") if delivered else text,
            ephemeral=True,
        )

    def _register_commands(self) -> None:
        language = self.language

        @self.tree.command(name="wichteln", description="Startet das Wichteln")
        @app_commands.describe(
            wichtel_date="Datum und Uhrzeit an dem das Wichteln starten soll (DD.MM.YYYY, HH:mm)",
            participating_time="Anzahl an Tagen, die Allen zum Teilnehmen zur Verfügung steht",
        )
        @app_commands.rename(wichtel_date="wichtel-date", participating_time="participating-time")
        async def wichteln_cmd(interaction, wichtel_date: str, participating_time: int):
            log.info("Handling wichteln command used by user_id=%s", interaction.user.id)
            if not await self._require_admin(interaction):
                return
            await safe_defer(interaction, ephemeral=True)
            try:
                async with self._state_lock:
                    result = await self.wichtel.start_round(wichtel_date, participating_time)
            except UserInputError as exc:
                await safe_followup(interaction, _input_error_text(language, exc), ephemeral=True)
                return
            except InvalidScheduleState:
                await safe_followup(interaction, get_string(language, "wichtel_already_running"), ephemeral=True)
                return
            except SourceUnavailable:
                log.warning("Wichtel channel_id=%s unavailable", self.config.wichtel_channel_id)
                await safe_followup(interaction, get_string(language, "wichtel_channel_missing"), ephemeral=True)
                return
            log.info("Wichteln was started by user_id=%s end=%s", interaction.user.id, result.end_at.isoformat())
            await safe_followup(interaction, get_string(language, "wichtel_started"), ephemeral=True)

        @self.tree.command(name="endwichteln", description="Beendet das Wichteln")
        async def endwichteln_cmd(interaction):
            log.info("Handling endwichteln command used by user_id=%s", interaction.user.id)
            if not await self._require_admin(interaction):
                return
            await safe_defer(interaction, ephemeral=False)
            result = await self.wichtel.end_round(reason="manual")
            if result.status == "not_running":
                await safe_followup(interaction, get_string(language, "wichtel_not_running"))
                return
            await safe_followup(interaction, get_string(language, "wichtel_ended"))

        @self.tree.command(name="poll", description="Startet eine Abstimmung in diesem Channel")
        @app_commands.describe(
            question="Die Frage, über die abgestimmt werden soll",
            time="Zeit für die Abstimmung (d, h oder m)",
            answer1="(emoji) (text)",
            answer2="(emoji) (text)",
            max_votes="Anzahl der Stimmen pro Person",
        )
        async def poll_cmd(
            interaction,
            question: str,
            time: str,
            answer1: str,
            answer2: str,
            max_votes: app_commands.Range[int, 1, MAX_ANSWERS] | None = None,
            answer3: str | None = None,
            answer4: str | None = None,
            answer5: str | None = None,
            answer6: str | None = None,
            answer7: str | None = None,
            answer8: str | None = None,
            answer9: str | None = None,
            answer10: str | None = None,
            answer11: str | None = None,
            answer12: str | None = None,
            answer13: str | None = None,
            answer14: str | None = None,
            answer15: str | None = None,
        ):
            log.info("Handling poll command used by user_id=%s", interaction.user.id)
            if interaction.channel is None:
                await self._reply(interaction, get_string(language, "guild_only"))
                return
            await safe_defer(interaction, ephemeral=True)
            answer_list = [
                answer1, answer2, answer3, answer4, answer5, answer6, answer7, answer8,
                answer9, answer10, answer11, answer12, answer13, answer14, answer15,
            ]
            try:
                result = await self.poll_controller.create_poll(
                    channel_id=interaction.channel.id,
                    guild_id=getattr(interaction.guild, "id", None),
                    question=question,
                    duration_text=time,
                    answers=answer_list,
                    max_votes=max_votes,
                )
            except PollInputError as exc:
                log.info("user_id=%s entered invalid poll input: %s", interaction.user.id, exc.key)
                embed = poll_input_embed(
                    question=question,
                    time_text=time,
                    max_votes=max_votes,
                    answers=answer_list,
                    language=language,
                )
                await self._send_poll_input_feedback(interaction, _input_error_text(language, exc), embed)
                return
            except SourceUnavailable:
                await safe_followup(interaction, get_string(language, "poll_send_failed"), ephemeral=True)
                return
            log.info("user_id=%s started a poll with %s answers", interaction.user.id, len(result.options))
            await safe_followup(interaction, get_string(language, "poll_started"), ephemeral=True)

        @self.tree.command(name="teams", description="Erstelle zufällig generierte Teams")
        @app_commands.describe(
            team_number="Anzahl an Teams",
            participants="Alle Mitglieder, die in die Teams sortiert werden sollen (Leerzeichen oder Komma getrennt)",
        )
        @app_commands.rename(team_number="team-number")
        async def teams_cmd(interaction, team_number: int, participants: str):
            log.info("Handling teams command used by user_id=%s", interaction.user.id)
            names = split_names(participants)
            if not fits_team_fields(names):
                log.info("user_id=%s requested teams with too many names", interaction.user.id)
                await self._reply(interaction, get_string(language, "teams_too_long", limit=FIELD_VALUE_LIMIT))
                return
            teams = randomize_teams(names, team_number)
            if teams is None:
                log.info("user_id=%s requested infeasible teams", interaction.user.id)
                await self._reply(interaction, get_string(language, "teams_invalid"))
                return
            await safe_send_initial(
                interaction,
                None,
                ephemeral=False,
                embed=teams_embed(teams, language=language),
                view=TeamsView(self),
            )

        @self.tree.command(name="status", description="Zeigt den aktuellen Bot-Status")
        async def status_cmd(interaction):
            await self._reply(interaction, self.status_text())

        @self.tree.command(name="roll", description="Lässt dich einen Würfel würfeln")
        @app_commands.describe(prompt="Ein Text, der angibt was gewürfelt werden soll")
        async def roll_cmd(interaction, prompt: str):
            log.info("Handling roll command used by user_id=%s", interaction.user.id)
            try:
                rolls = roll_dice(parse_roll_prompt(prompt), rng=self.rng)
            except UserInputError as exc:
                await self._reply(interaction, _input_error_text(language, exc))
                return
            fields = [(roll_field_name(roll), roll_field_value(roll, language)) for roll in rolls]
            await safe_send_initial(
                interaction,
                None,
                ephemeral=False,
                embed=roll_embed(prompt=prompt, fields=fields, language=language),
            )
            log.info("Dice were rolled by user_id=%s totals=%s", interaction.user.id, [roll.total for roll in rolls])

        @self.tree.command(name="rollhelp", description="Gibt dir Infos über den Würfelbefehl an")
        async def rollhelp_cmd(interaction):
            await safe_send_initial(interaction, None, ephemeral=False, embed=roll_help_embed(language=language))

        @self.tree.command(name="random", description="Wählt aus einer Eingabe zufällig einen Eintrag aus")
        @app_commands.describe(
            objects='Alle möglichen Einträge, aus denen eines zufällig gewählt werden soll (mit "," getrennt)',
        )
        async def random_cmd(interaction, objects: str):
            log.info("Handling random command used by user_id=%s", interaction.user.id)
            draw = draw_random(split_objects(objects), rng=self.rng)
            if draw is None:
                await self._reply(interaction, get_string(language, "random_empty"))
                return
            await safe_send_initial(
                interaction,
                None,
                ephemeral=False,
                embed=random_embed(
                    entries=draw.entries,
                    winner=draw.winner,
                    probability_percent=draw.probability_percent,
                    language=language,
                    rng=self.rng,
                ),
            )

        @self.tree.command(name="randomuser", description="Wählt aus einer Eingabe zufällig einen User aus")
        @app_commands.describe(user1="Ein User der ausgewählt werden könnte", user2="Ein User der ausgewählt werden könnte")
        async def randomuser_cmd(
            interaction,
            user1: discord.User,
            user2: discord.User,
            user3: discord.User | None = None,
            user4: discord.User | None = None,
            user5: discord.User | None = None,
            user6: discord.User | None = None,
            user7: discord.User | None = None,
            user8: discord.User | None = None,
            user9: discord.User | None = None,
            user10: discord.User | None = None,
        ):
            log.info("Handling randomuser command used by user_id=%s", interaction.user.id)
            users = unique_by_id([user1, user2, user3, user4, user5, user6, user7, user8, user9, user10])
            winner = self.rng.choice(users)
            avatar = getattr(winner, "display_avatar", None)
            await safe_send_initial(
                interaction,
                None,
                ephemeral=False,
                embed=random_user_embed(
                    user_ids=[user.id for user in users],
                    winner_id=winner.id,
                    avatar_url=str(avatar.url) if avatar is not None else None,
                    language=language,
                    rng=self.rng,
                ),
            )
            log.info("user_id=%s got user_id=%s as a random user", interaction.user.id, winner.id)

        @self.tree.command(
            name="help",
            description="Gibt dir eine Liste aller Befehle an, oder spezifische Hilfe zu einem bestimmten Befehl",
        )
        @app_commands.describe(command="Der Command zu dem du Hilfe erhalten willst")
        async def help_cmd(interaction, command: str | None = None):
            log.info("Handling help command used by user_id=%s", interaction.user.id)
            commands = {cmd.name: cmd for cmd in self.tree.get_commands()}
            if not command:
                await safe_send_initial(
                    interaction,
                    None,
                    ephemeral=True,
                    embed=help_overview_embed(group_commands(commands.values()), language=language),
                )
                return
            name = command.strip().lstrip("/").lower()
            target = commands.get(name)
            if target is None:
                await self._reply(interaction, get_string(language, "help_unknown", name=name))
                return
            entry = help_for(name)
            await safe_send_initial(
                interaction,
                None,
                ephemeral=True,
                embed=help_command_embed(
                    name=name,
                    description=target.description,
                    usage=entry.usage,
                    examples=entry.examples,
                    options=command_options(target),
                    language=language,
                ),
            )

        @self.tree.command(name="rolemessage", description="Setzt die Nachricht für Reaktionsrollen")
        @app_commands.describe(message_id="ID der Nachricht in diesem Channel")
        @app_commands.rename(message_id="message-id")
        async def rolemessage_cmd(interaction, message_id: str):
            log.info("Handling rolemessage command used by user_id=%s", interaction.user.id)
            if not await self._require_admin(interaction):
                return
            if not self.roles.configured:
                await self._reply(interaction, get_string(language, "roles_not_configured"))
                return
            if interaction.channel is None:
                await self._reply(interaction, get_string(language, "guild_only"))
                return
            try:
                target_id = int(message_id.strip())
            except ValueError:
                await self._reply(interaction, get_string(language, "roles_bad_message_id"))
                return
            await safe_defer(interaction, ephemeral=True)
            try:
                await self.roles.set_role_message(channel_id=interaction.channel.id, message_id=target_id)
            except SourceUnavailable as exc:
                log.warning("Role message unavailable: %s", exc)
                await safe_followup(interaction, get_string(language, "roles_message_missing"), ephemeral=True)
                return
            await safe_followup(interaction, get_string(language, "roles_message_set"), ephemeral=True)

    async def close(self) -> None:
        try:
            await self.scheduler.close()
        except Exception:
            log.exception("Failed to stop background tasks during shutdown.")
        if self._state_loaded:
            try:
                await self.persistence.flush(self.repo)
            except Exception:
                log.exception("Final state flush failed during shutdown.")
        for logger in self._discord_loggers:
            logger.removeHandler(self._discord_log_handler)
        try:
            await self.persistence.session_manager.dispose()
        except Exception:
            log.exception("Failed to dispose database engine during shutdown.")
        await super().close()


def run() -> int:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config()
    except ValueError as exc:
        log.error("Config error: %s", exc)
        return 1

    setup_logging(config.log_level)
    if not config.discord_token:
        log.error("DISCORD_TOKEN missing")
        return 1

    repo = InMemoryRepository()
    bot = YippieBot(repo=repo, config=config)

    try:
        bot.run(config.discord_token, log_handler=None)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
