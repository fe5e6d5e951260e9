from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import DirectoryError
from ..interfaces import PanelSource, RoleDirectory
from ..models import PanelKind
from .engine import BUTTON_EXCLUSIVE, BUTTON_TOGGLE, ReconciliationEngine
from .policy import RolePlan, plan_toggle

log = logging.getLogger("rolebot.buttons")


class ClickStatus(str, Enum):
    STALE = "stale"
    ROLE_MISSING = "role_missing"
    SELECTED = "selected"
    ADDED = "added"
    REMOVED = "removed"
    FAILED = "failed"


@dataclass(frozen=True)
class ClickResult:
    status: ClickStatus
    role_id: int
    plan: Optional[RolePlan] = None


class ButtonToggle:
    """Stateless handler for clicks on "rr:<role_id>" panel buttons."""

    def __init__(self, panels: PanelSource, directory: RoleDirectory, engine: ReconciliationEngine) -> None:
        self.panels = panels
        self.directory = directory
        self.engine = engine

    async def click(self, guild_id: int, message_id: int, user_id: int, role_id: int) -> ClickResult:
        panel = await self.panels.get_panel(guild_id, message_id, PanelKind.BUTTON)
        if panel is None or not panel.contains_role(role_id):
            return ClickResult(ClickStatus.STALE, role_id)

        try:
            if not await self.directory.role_exists(guild_id, role_id):
                return ClickResult(ClickStatus.ROLE_MISSING, role_id)
            member = await self.directory.fetch_member(guild_id, user_id)
        except DirectoryError as e:
            log.warning("Button click on %s by %s failed: %s", message_id, user_id, e)
            return ClickResult(ClickStatus.FAILED, role_id)

        held = self.engine.held_roles(member, panel.role_ids)
        plan = plan_toggle(panel.role_ids, role_id, held, panel.exclusive)
        reasons = BUTTON_EXCLUSIVE if panel.exclusive else BUTTON_TOGGLE

        if not await self.engine.apply_plan(member, plan, reasons):
            return ClickResult(ClickStatus.FAILED, role_id, plan)

        if panel.exclusive:
            status = ClickStatus.SELECTED
        elif role_id in plan.remove:
            status = ClickStatus.REMOVED
        else:
            status = ClickStatus.ADDED
        return ClickResult(status, role_id, plan)
