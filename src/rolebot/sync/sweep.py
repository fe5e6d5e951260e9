from __future__ import annotations

import logging
import time
from typing import Iterable

from ..errors import DirectoryError
from ..interfaces import Pacer, PanelSource, RoleDirectory
from ..models import Panel, SyncReport
from ..services import pacing
from .collector import ReactionCollector
from .engine import ReconciliationEngine

log = logging.getLogger("rolebot.sweep")


class SweepOrchestrator:
    """Re-collects and reconciles every reaction panel of a guild."""

    def __init__(
        self,
        panels: PanelSource,
        directory: RoleDirectory,
        collector: ReactionCollector,
        engine: ReconciliationEngine,
        pacer: Pacer,
    ) -> None:
        self.panels = panels
        self.directory = directory
        self.collector = collector
        self.engine = engine
        self.pacer = pacer

    async def sync_panel(self, guild_id: int, panel: Panel) -> SyncReport:
        """Collect + reconcile one panel. A missing channel or message skips it."""
        if not panel.channel_id:
            log.warning("Panel %s in guild %s has no channel; skipping", panel.message_id, guild_id)
            return SyncReport(panels=1, panels_failed=1, errors=[f"panel {panel.message_id}: no channel"])

        try:
            message = await self.directory.fetch_message(guild_id, panel.channel_id, panel.message_id)
        except DirectoryError as e:
            log.warning("Panel %s in guild %s unavailable; skipping: %s", panel.message_id, guild_id, e)
            return SyncReport(panels=1, panels_failed=1, errors=[f"panel {panel.message_id}: {e}"])

        state = await self.collector.collect(message, panel)
        return await self.engine.reconcile(guild_id, panel, state, cleanup=True)

    async def sweep_guild(self, guild_id: int) -> SyncReport:
        """Sync every stored reaction panel of ``guild_id``.

        Failures are isolated per panel; the stored panel is left in place.
        """
        started = time.monotonic()
        total = SyncReport()

        panels = await self.panels.get_all_reaction_panels(guild_id)
        for message_id, panel in panels.items():
            try:
                total.merge(await self.sync_panel(guild_id, panel))
            except Exception as e:
                log.exception("Sync of panel %s in guild %s failed", message_id, guild_id)
                total.panels += 1
                total.panels_failed += 1
                total.errors.append(f"panel {message_id}: {type(e).__name__}")
            await self.pacer.pause(pacing.PANEL)

        log.info(
            "Sweep of guild %s finished in %.1fs: %s",
            guild_id,
            time.monotonic() - started,
            total.summary(),
        )
        return total

    async def sweep_all(self, guild_ids: Iterable[int]) -> SyncReport:
        total = SyncReport()
        for guild_id in guild_ids:
            try:
                total.merge(await self.sweep_guild(guild_id))
            except Exception:
                log.exception("Sweep of guild %s failed", guild_id)
        return total
