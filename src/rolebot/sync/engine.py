from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from ..constants import (
    REASON_BUTTON_ADD,
    REASON_BUTTON_SWITCH,
    REASON_BUTTON_TOGGLE,
    REASON_REACTION_ADD,
    REASON_REACTION_SWITCH,
    REASON_SYNC_CLEANUP,
    REASON_SYNC_EXCLUSIVE,
    REASON_SYNC_EXCLUSIVE_CLEANUP,
    REASON_SYNC_MULTI,
)
from ..errors import DirectoryError, PermissionDeniedError
from ..interfaces import Pacer, RoleDirectory, validate_directory, validate_pacer
from ..models import DesiredState, Panel, SyncReport
from ..services import pacing
from .policy import RolePlan, plan_cleanup, plan_member

log = logging.getLogger("rolebot.engine")


@dataclass(frozen=True)
class Reasons:
    """Audit reasons for the adds and removes of one kind of trigger."""
    add: str
    remove: str


SYNC_EXCLUSIVE = Reasons(add=REASON_SYNC_EXCLUSIVE, remove=REASON_SYNC_EXCLUSIVE_CLEANUP)
SYNC_MULTI = Reasons(add=REASON_SYNC_MULTI, remove=REASON_SYNC_MULTI)
SYNC_CLEANUP = Reasons(add=REASON_SYNC_CLEANUP, remove=REASON_SYNC_CLEANUP)
REACTION_LIVE = Reasons(add=REASON_REACTION_ADD, remove=REASON_REACTION_SWITCH)
BUTTON_EXCLUSIVE = Reasons(add=REASON_BUTTON_ADD, remove=REASON_BUTTON_SWITCH)
BUTTON_TOGGLE = Reasons(add=REASON_BUTTON_TOGGLE, remove=REASON_BUTTON_TOGGLE)


class ReconciliationEngine:
    """Converges members' panel roles toward a desired state.

    Every role mutation goes through ``apply_plan``: failures are logged and
    counted, never raised, so one bad member or role cannot stop a pass.
    """

    def __init__(self, directory: RoleDirectory, pacer: Pacer) -> None:
        self.directory = validate_directory(directory)
        self.pacer = validate_pacer(pacer)

    def held_roles(self, member: Any, role_ids: Iterable[int]) -> List[int]:
        return [rid for rid in role_ids if self.directory.member_has_role(member, rid)]

    async def reconcile(
        self,
        guild_id: int,
        panel: Panel,
        state: DesiredState,
        *,
        cleanup: bool = True,
    ) -> SyncReport:
        """Run one reconciliation pass for ``panel``.

        Each member in ``state`` is handled once. With ``cleanup`` (sweeps),
        holders of panel roles who signal nothing lose those roles afterwards.
        """
        report = SyncReport(panels=1)
        reasons = SYNC_EXCLUSIVE if panel.exclusive else SYNC_MULTI
        handled: set[int] = set()

        for member_id in state.members():
            if member_id in handled:
                continue
            handled.add(member_id)

            try:
                member = await self.directory.fetch_member(guild_id, member_id)
            except DirectoryError as e:
                log.info("Skipping member %s in guild %s: %s", member_id, guild_id, e)
                report.failures += 1
                continue

            await self.converge_member(member, panel, state.desired_roles(member_id), reasons, report)
            report.members += 1
            await self.pacer.pause(pacing.MEMBER)

        if cleanup:
            await self.cleanup(guild_id, panel, state, report)

        log.info(
            "Reconciled panel %s in guild %s (%s): %s",
            panel.message_id,
            guild_id,
            "exclusive" if panel.exclusive else "multi",
            report.summary(),
        )
        return report

    async def converge_member(
        self,
        member: Any,
        panel: Panel,
        desired: Iterable[int],
        reasons: Reasons,
        report: Optional[SyncReport] = None,
    ) -> RolePlan:
        """Apply the panel policy for one member and return the plan used."""
        held = self.held_roles(member, panel.role_ids)
        plan = plan_member(panel.role_ids, desired, held, panel.exclusive)
        await self.apply_plan(member, plan, reasons, report)
        return plan

    async def cleanup(self, guild_id: int, panel: Panel, state: DesiredState, report: SyncReport) -> None:
        try:
            members = await self.directory.fetch_members(guild_id)
        except DirectoryError as e:
            log.warning("Cleanup for panel %s skipped, member list unavailable: %s", panel.message_id, e)
            report.errors.append(f"cleanup {panel.message_id}: {e}")
            return

        report.cleanup_ran = True
        for member in members:
            if state.wants_any(member.id):
                continue
            held = self.held_roles(member, panel.role_ids)
            if not held:
                continue
            await self.apply_plan(member, plan_cleanup(panel.role_ids, held), SYNC_CLEANUP, report)

    async def apply_plan(
        self,
        member: Any,
        plan: RolePlan,
        reasons: Reasons,
        report: Optional[SyncReport] = None,
    ) -> bool:
        """Apply adds, then removes. Returns False if any mutation failed."""
        ok = True
        for role_id in plan.add:
            if await self._mutate(self.directory.add_role, member, role_id, reasons.add):
                if report is not None:
                    report.roles_added += 1
            else:
                ok = False
                if report is not None:
                    report.failures += 1
            await self.pacer.pause(pacing.MUTATION)

        for role_id in plan.remove:
            if await self._mutate(self.directory.remove_role, member, role_id, reasons.remove):
                if report is not None:
                    report.roles_removed += 1
            else:
                ok = False
                if report is not None:
                    report.failures += 1
            await self.pacer.pause(pacing.MUTATION)

        return ok

    async def _mutate(
        self,
        call: Callable[[Any, int, str], Awaitable[None]],
        member: Any,
        role_id: int,
        reason: str,
    ) -> bool:
        try:
            await call(member, role_id, reason)
            return True
        except PermissionDeniedError as e:
            log.warning("Missing permission for role %s on member %s (%s): %s", role_id, member.id, reason, e)
        except DirectoryError as e:
            log.warning("Role %s on member %s failed (%s): %s", role_id, member.id, reason, e)
        return False
