from __future__ import annotations

import pytest

from conftest import BLUE, CHANNEL, GREEN, GUILD, RED
from rolebot.constants import REASON_SYNC_CLEANUP, REASON_SYNC_EXCLUSIVE, REASON_SYNC_EXCLUSIVE_CLEANUP
from rolebot.models import DesiredState, Panel
from rolebot.services import pacing
from rolebot.sync.engine import ReconciliationEngine


def _setup(directory, exclusive: bool):
    panel = Panel.reactions(GUILD, 500, CHANNEL, {"🔴": RED, "🔵": BLUE}, exclusive=exclusive)
    directory.add_member(1)
    directory.add_member(2, roles=[RED])
    directory.add_member(3, roles=[RED])
    directory.add_member(4, roles=[GREEN])

    state = DesiredState.for_panel(panel)
    state.add(RED, 1)
    state.add(BLUE, 1)
    state.add(BLUE, 2)
    return panel, state


@pytest.mark.asyncio
async def test_exclusive_pass_converges_and_cleans_up(directory, pacer):
    panel, state = _setup(directory, exclusive=True)
    engine = ReconciliationEngine(directory, pacer)

    report = await engine.reconcile(GUILD, panel, state)

    assert directory.roles_of(1) == {RED}
    assert directory.roles_of(2) == {BLUE}
    assert directory.roles_of(3) == set()
    assert directory.roles_of(4) == {GREEN}
    assert directory.mutations == [
        ("add", 1, RED, REASON_SYNC_EXCLUSIVE),
        ("add", 2, BLUE, REASON_SYNC_EXCLUSIVE),
        ("remove", 2, RED, REASON_SYNC_EXCLUSIVE_CLEANUP),
        ("remove", 3, RED, REASON_SYNC_CLEANUP),
    ]
    assert report.members == 2
    assert report.roles_added == 2
    assert report.roles_removed == 2
    assert report.cleanup_ran
    assert pacer.steps.count(pacing.MEMBER) == 2
    assert pacer.steps.count(pacing.MUTATION) == 4


@pytest.mark.asyncio
async def test_second_pass_on_same_snapshot_is_a_no_op(directory, pacer):
    panel, state = _setup(directory, exclusive=True)
    engine = ReconciliationEngine(directory, pacer)

    await engine.reconcile(GUILD, panel, state)
    before = len(directory.mutations)
    report = await engine.reconcile(GUILD, panel, state)

    assert len(directory.mutations) == before
    assert report.mutations == 0


@pytest.mark.asyncio
async def test_exclusive_members_hold_at_most_one_panel_role(directory, pacer):
    panel, state = _setup(directory, exclusive=True)
    directory.members[1].roles.update({RED, BLUE})

    await ReconciliationEngine(directory, pacer).reconcile(GUILD, panel, state)

    for member in directory.members.values():
        assert len(member.roles & {RED, BLUE}) <= 1


@pytest.mark.asyncio
async def test_inclusive_adds_everything_desired_and_keeps_extras(directory, pacer):
    panel, state = _setup(directory, exclusive=False)

    report = await ReconciliationEngine(directory, pacer).reconcile(GUILD, panel, state)

    assert directory.roles_of(1) == {RED, BLUE}
    # member 2 still reacts on the panel, so the extra role survives the cleanup
    assert directory.roles_of(2) == {RED, BLUE}
    assert directory.roles_of(3) == set()
    assert report.roles_added == 3
    assert report.roles_removed == 1


@pytest.mark.asyncio
async def test_without_cleanup_non_reactors_keep_roles(directory, pacer):
    panel, state = _setup(directory, exclusive=False)

    report = await ReconciliationEngine(directory, pacer).reconcile(GUILD, panel, state, cleanup=False)

    assert directory.roles_of(3) == {RED}
    assert not report.cleanup_ran


@pytest.mark.asyncio
async def test_member_fetch_failure_skips_only_that_member(directory, pacer):
    panel, state = _setup(directory, exclusive=True)
    directory.fail_members.add(1)

    report = await ReconciliationEngine(directory, pacer).reconcile(GUILD, panel, state)

    assert report.failures == 1
    assert report.members == 1
    assert directory.roles_of(2) == {BLUE}


@pytest.mark.asyncio
async def test_member_list_failure_aborts_cleanup_only(directory, pacer):
    panel, state = _setup(directory, exclusive=True)
    directory.fail_member_list = True

    report = await ReconciliationEngine(directory, pacer).reconcile(GUILD, panel, state)

    assert directory.roles_of(2) == {BLUE}
    assert directory.roles_of(3) == {RED}
    assert not report.cleanup_ran
    assert len(report.errors) == 1


@pytest.mark.asyncio
async def test_permission_failure_is_counted_not_raised(directory, pacer):
    panel, state = _setup(directory, exclusive=True)
    directory.forbidden_roles.add(BLUE)

    report = await ReconciliationEngine(directory, pacer).reconcile(GUILD, panel, state)

    assert report.failures == 1
    assert directory.roles_of(1) == {RED}
