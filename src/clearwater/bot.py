from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .config import Settings
from .database import initialize_database
from .error_handlers import setup_error_handlers
from .security.directory import DiscordMembershipDirectory
from .security.gate import AccessGate
from .security.roles import RoleResolver
from .services.activity import ActivityRecorder
from .services.escalation import EscalationEngine
from .services.log_store import LogStore
from .services.portal import StaffPortal

log = logging.getLogger("clearwater.bot")

EXTENSIONS = ("clearwater.cogs.staff_logs",)


class _CommandSyncManager:
    def __init__(self, bot: "ClearwaterBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        if self.bot.settings.sync_guild_id:
            await self.sync_guild(self.bot.settings.sync_guild_id)
        else:
            await self.sync_global()

    async def sync_global(self) -> None:
        async with self._lock:
            synced = await self.bot.tree.sync()
            log.info("Commands synced globally: %s", ", ".join(f"/{c.name}" for c in synced))

    async def sync_guild(self, guild_id: int) -> None:
        async with self._lock:
            guild = discord.Object(id=guild_id)
            self.bot.tree.copy_global_to(guild=guild)
            synced = await self.bot.tree.sync(guild=guild)
            log.info("Commands synced to guild %d: %s", guild_id, ", ".join(f"/{c.name}" for c in synced))


class ClearwaterBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        # Role checks read the member cache; without this intent every check is a REST call.
        intents.members = True
        intents.message_content = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self._sync_mgr = _CommandSyncManager(self)

        self.role_resolver = RoleResolver(
            DiscordMembershipDirectory(self),
            guild_id=settings.guild_id,
            role_map=settings.role_map(),
            timeout_seconds=settings.role_check_timeout_seconds,
            cache_ttl_seconds=settings.role_cache_ttl_seconds,
        )
        self.access_gate = AccessGate(self.role_resolver)

        self.log_store = LogStore(settings.sqlite_path)
        self.activity_recorder = ActivityRecorder(settings.sqlite_path)
        self.escalation_engine = EscalationEngine(self.log_store)
        self.staff_portal = StaffPortal(
            self.access_gate,
            self.log_store,
            self.escalation_engine,
            self.activity_recorder,
            log_list_limit=settings.log_list_limit,
            activity_list_limit=settings.activity_list_limit,
        )

    async def setup_hook(self) -> None:
        await initialize_database(self.settings.sqlite_path, [self.log_store, self.activity_recorder])
        await setup_error_handlers(self)

        failed = []
        for extension in EXTENSIONS:
            try:
                await self.load_extension(extension)
            except commands.ExtensionError:
                log.exception("Failed to load extension %s", extension)
                failed.append(extension)
        log.info("Loaded %d of %d extensions", len(EXTENSIONS) - len(failed), len(EXTENSIONS))

        await self._sync_mgr.sync_startup()

        if not self.settings.guild_id:
            log.warning("GUILD_ID is not set; every portal access check will be denied")

    async def on_ready(self) -> None:
        self.role_resolver.mark_ready()
        log.info("Logged in as %s (%s)", self.user, getattr(self.user, "id", "?"))

    async def on_resumed(self) -> None:
        self.role_resolver.mark_ready()

    async def on_disconnect(self) -> None:
        self.role_resolver.mark_initializing()
