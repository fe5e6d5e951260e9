from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..constants import REASON_REACTION_REMOVE
from ..errors import DirectoryError
from ..interfaces import PanelSource, RoleDirectory
from ..models import Panel, PanelKind
from ..services import pacing
from .engine import REACTION_LIVE, Reasons, ReconciliationEngine
from .policy import RolePlan

log = logging.getLogger("rolebot.live")

REACTION_REMOVE = Reasons(add=REASON_REACTION_REMOVE, remove=REASON_REACTION_REMOVE)


@dataclass(frozen=True)
class ReactionEvent:
    """A single reaction add/remove, reduced to ids.

    ``user_is_bot`` is None when the gateway did not include the member.
    """
    guild_id: Optional[int]
    channel_id: int
    message_id: int
    user_id: int
    emoji: str
    user_is_bot: Optional[bool] = None


class LiveReactionHandler:
    """Applies single reaction events without a full collection pass."""

    def __init__(self, panels: PanelSource, directory: RoleDirectory, engine: ReconciliationEngine) -> None:
        self.panels = panels
        self.directory = directory
        self.engine = engine

    async def _resolve(self, event: ReactionEvent) -> tuple[Optional[Panel], Optional[int]]:
        if event.guild_id is None or event.user_is_bot:
            return None, None

        panel = await self.panels.get_panel(event.guild_id, event.message_id, PanelKind.REACTION)
        if panel is None:
            return None, None

        return panel, panel.role_for_emoji(event.emoji)

    async def _fetch_message(self, event: ReactionEvent) -> Optional[Any]:
        try:
            return await self.directory.fetch_message(event.guild_id, event.channel_id, event.message_id)
        except DirectoryError as e:
            log.debug("Dropping reaction event on %s, message unavailable: %s", event.message_id, e)
            return None

    async def _fetch_member(self, event: ReactionEvent) -> Optional[Any]:
        try:
            member = await self.directory.fetch_member(event.guild_id, event.user_id)
        except DirectoryError as e:
            log.debug("Dropping reaction event for %s on %s: %s", event.user_id, event.message_id, e)
            return None
        if getattr(member, "bot", False):
            return None
        return member

    async def on_reaction_added(self, event: ReactionEvent) -> Optional[RolePlan]:
        """Grant the role bound to the emoji; on exclusive panels drop the others.

        Returns the applied plan, or None when the event was ignored or dropped.
        """
        panel, role_id = await self._resolve(event)
        if panel is None or role_id is None:
            return None

        message = await self._fetch_message(event)
        if message is None:
            return None

        member = await self._fetch_member(event)
        if member is None:
            return None

        plan = await self.engine.converge_member(member, panel, [role_id], REACTION_LIVE)

        if panel.exclusive:
            await self._retract_other_reactions(message, panel, event)

        log.info(
            "Reaction %s on %s by %s: +%s -%s",
            event.emoji,
            event.message_id,
            event.user_id,
            list(plan.add),
            list(plan.remove),
        )
        return plan

    async def _retract_other_reactions(self, message: Any, panel: Panel, event: ReactionEvent) -> None:
        for emoji in panel.mapping:
            if emoji == event.emoji:
                continue
            try:
                if not await self.directory.has_reacted(message, emoji, event.user_id):
                    continue
                await self.directory.remove_reaction(message, emoji, event.user_id)
            except DirectoryError as e:
                log.debug("Could not retract %s from %s on %s: %s", emoji, event.user_id, event.message_id, e)
            await self.engine.pacer.pause(pacing.MUTATION)

    async def on_reaction_removed(self, event: ReactionEvent) -> bool:
        """Remove the role bound to the emoji if the member holds it.

        Independent of exclusivity. Returns True when a role was removed.
        """
        panel, role_id = await self._resolve(event)
        if panel is None or role_id is None:
            return False

        if await self._fetch_message(event) is None:
            return False

        member = await self._fetch_member(event)
        if member is None:
            return False

        if not self.directory.member_has_role(member, role_id):
            return False

        removed = await self.engine.apply_plan(member, RolePlan(remove=(role_id,)), REACTION_REMOVE)
        if removed:
            log.info("Reaction %s removed on %s by %s: -%s", event.emoji, event.message_id, event.user_id, role_id)
        return removed
