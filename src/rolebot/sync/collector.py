from __future__ import annotations

import logging
from typing import Any, Optional

from ..constants import REACTOR_PAGE_SIZE
from ..errors import DirectoryError
from ..interfaces import Pacer, RoleDirectory, validate_directory, validate_pacer
from ..models import DesiredState, Panel
from ..services import pacing

log = logging.getLogger("rolebot.collector")


class ReactionCollector:
    """Builds a DesiredState from the reactions currently on a panel message."""

    def __init__(self, directory: RoleDirectory, pacer: Pacer, page_size: int = REACTOR_PAGE_SIZE) -> None:
        self.directory = validate_directory(directory)
        self.pacer = validate_pacer(pacer)
        self.page_size = max(1, min(REACTOR_PAGE_SIZE, int(page_size)))

    async def collect(self, message: Any, panel: Panel) -> DesiredState:
        """Collect non-bot reactors for every emoji of ``panel``.

        A failed lookup or page only truncates that emoji's result; the other
        emojis are still collected.
        """
        state = DesiredState.for_panel(panel)

        for emoji, role_id in panel.mapping.items():
            try:
                reaction = await self.directory.resolve_reaction(message, emoji)
            except DirectoryError as e:
                log.warning("Could not resolve %s on message %s: %s", emoji, panel.message_id, e)
                reaction = None

            if reaction is None:
                continue

            collected = await self._collect_reaction(reaction, emoji, role_id, state, panel)
            log.debug("Collected %d reactor(s) for %s on message %s", collected, emoji, panel.message_id)
            await self.pacer.pause(pacing.EMOJI)

        return state

    async def _collect_reaction(
        self,
        reaction: Any,
        emoji: str,
        role_id: int,
        state: DesiredState,
        panel: Panel,
    ) -> int:
        after: Optional[int] = None
        collected = 0

        while True:
            try:
                users = await self.directory.fetch_reactors(reaction, self.page_size, after)
            except DirectoryError as e:
                log.warning(
                    "Reactor page for %s on message %s failed after %d user(s); keeping partial result: %s",
                    emoji,
                    panel.message_id,
                    collected,
                    e,
                )
                break

            if not users:
                break

            for user in users:
                if user.bot:
                    continue
                state.add(role_id, user.id)
                collected += 1

            if len(users) < self.page_size:
                break

            after = users[-1].id
            await self.pacer.pause(pacing.PAGE)

        return collected
