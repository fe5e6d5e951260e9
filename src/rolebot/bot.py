from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

import discord
from discord.ext import commands

from .config import Settings
from .database import initialize_database
from .error_handlers import setup_error_handlers
from .migration import import_legacy_file
from .services.config_store import ConfigStore
from .services.directory import DiscordDirectory
from .services.pacing import FixedIntervalPacer
from .sync import (
    ButtonToggle,
    LiveReactionHandler,
    ReactionCollector,
    ReconciliationEngine,
    SweepOrchestrator,
)

log = logging.getLogger("rolebot.bot")


class _CommandSyncManager:
    def __init__(self, bot: "RoleBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        if self.bot.settings.sync_guild_id:
            await self.sync_guild(self.bot.settings.sync_guild_id)
        else:
            await self.sync_global()

    async def sync_global(self) -> None:
        async with self._lock:
            await self.bot.tree.sync()
            log.info("Commands synced globally")
            self._log_tree()

    async def sync_guild(self, guild_id: int) -> None:
        async with self._lock:
            guild = discord.Object(id=guild_id)
            self.bot.tree.copy_global_to(guild=guild)
            await self.bot.tree.sync(guild=guild)
            log.info("Commands synced to guild %d", guild_id)
            self._log_tree()

    def _log_tree(self) -> None:
        cmds = self.bot.tree.get_commands()
        log.info("Tree commands loaded: %d", len(cmds))
        for c in cmds:
            log.info(" - /%s", c.name)


class RoleBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.members = True
        intents.reactions = True

        log.info("INTENTS: guilds=%s members=%s reactions=%s", intents.guilds, intents.members, intents.reactions)

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self.config_store = ConfigStore(settings.sqlite_path, settings.cache_default_ttl_seconds)

        self.pacer = FixedIntervalPacer()
        self.directory = DiscordDirectory(self)
        self.engine = ReconciliationEngine(self.directory, self.pacer)
        self.collector = ReactionCollector(self.directory, self.pacer)
        self.sweeper = SweepOrchestrator(self.config_store, self.directory, self.collector, self.engine, self.pacer)
        self.live_reactions = LiveReactionHandler(self.config_store, self.directory, self.engine)
        self.button_toggle = ButtonToggle(self.config_store, self.directory, self.engine)

        self._sync_mgr = _CommandSyncManager(self)
        self._startup_sweep: Optional[asyncio.Task[None]] = None

    async def setup_hook(self) -> None:
        await initialize_database(self.settings.sqlite_path, [self.config_store])
        await self._import_legacy_data()
        await setup_error_handlers(self)

        loaded: list[str] = []
        failed: list[str] = []

        # One bad cog must not prevent the others from registering their commands.
        async def _load_cog(import_path: str, class_name: str) -> None:
            try:
                log.info("Loading cog: %s.%s", import_path, class_name)
                mod = __import__(import_path, fromlist=[class_name])
                cls = getattr(mod, class_name)
                await self.add_cog(cls(self))
                loaded.append(f"{import_path}.{class_name}")
            except Exception as e:
                log.exception("Failed to load cog: %s.%s", import_path, class_name)
                failed.append(f"{import_path}.{class_name} ({type(e).__name__})")

        await _load_cog("rolebot.cogs.roles", "RolesCog")
        await _load_cog("rolebot.cogs.autorole", "AutoroleCog")
        await _load_cog("rolebot.cogs.panels", "PanelsCog")

        log.info("Startup cog load summary: loaded=%d failed=%d", len(loaded), len(failed))
        for name in failed:
            log.warning("Startup cog failed: %s", name)

        await self._sync_mgr.sync_startup()
        log.info("Command sync complete")

    async def _import_legacy_data(self) -> None:
        path = self.settings.legacy_data_file
        if not path:
            return
        if not os.path.exists(path):
            log.warning("LEGACY_DATA_FILE %s does not exist; skipping import", path)
            return
        try:
            await import_legacy_file(path, self.config_store)
        except (OSError, ValueError):
            log.exception("Legacy import from %s failed", path)

    async def on_ready(self) -> None:
        log.info("Logged in as %s (%s) in %d guild(s)", self.user, self.user.id if self.user else "?", len(self.guilds))

        # on_ready fires again after reconnects; the startup sweep runs once per process.
        if not self.settings.resync_on_startup or self._startup_sweep is not None:
            return
        guild_ids = [g.id for g in self.guilds]
        self._startup_sweep = asyncio.create_task(self._run_startup_sweep(guild_ids), name="rolebot-startup-sweep")

    async def _run_startup_sweep(self, guild_ids: list[int]) -> None:
        report = await self.sweeper.sweep_all(guild_ids)
        log.info("Startup sweep complete: %s", report.summary())
