from __future__ import annotations

import pytest

from conftest import BLUE, CHANNEL, GREEN, GUILD, RED
from rolebot.models import Panel
from rolebot.services import pacing
from rolebot.sync.collector import ReactionCollector
from rolebot.sync.engine import ReconciliationEngine
from rolebot.sync.sweep import SweepOrchestrator


class ExplodingCollector(ReactionCollector):
    def __init__(self, *args, explode_on: int, **kwargs):
        super().__init__(*args, **kwargs)
        self.explode_on = explode_on

    async def collect(self, message, panel):
        if panel.message_id == self.explode_on:
            raise RuntimeError("boom")
        return await super().collect(message, panel)


def _sweeper(panels, directory, pacer, collector=None) -> SweepOrchestrator:
    collector = collector or ReactionCollector(directory, pacer)
    return SweepOrchestrator(panels, directory, collector, ReconciliationEngine(directory, pacer), pacer)


@pytest.mark.asyncio
async def test_sweep_strips_role_from_member_without_reaction(panels, directory, pacer):
    panel = panels.add(Panel.reactions(GUILD, 700, CHANNEL, {"✅": GREEN}))
    directory.add_member(5, roles=[GREEN])
    directory.add_member(6)
    directory.add_message(panel, {"✅": [6]})

    report = await _sweeper(panels, directory, pacer).sweep_guild(GUILD)

    assert directory.roles_of(5) == set()
    assert directory.roles_of(6) == {GREEN}
    assert report.panels == 1
    assert report.panels_failed == 0
    # the sweep fixes roles only; reactions on the message are left alone
    assert directory.retracted == []


@pytest.mark.asyncio
async def test_reactor_keeps_role_after_sweep(panels, directory, pacer):
    panel = panels.add(Panel.reactions(GUILD, 700, CHANNEL, {"✅": GREEN}))
    directory.add_member(5, roles=[GREEN])
    directory.add_message(panel, {"✅": [5]})

    report = await _sweeper(panels, directory, pacer).sweep_guild(GUILD)

    assert directory.roles_of(5) == {GREEN}
    assert report.mutations == 0


@pytest.mark.asyncio
async def test_failing_panels_do_not_stop_the_sweep(panels, directory, pacer):
    missing = panels.add(Panel.reactions(GUILD, 701, CHANNEL, {"🔴": RED}))
    exploding = panels.add(Panel.reactions(GUILD, 702, CHANNEL, {"🔵": BLUE}))
    healthy = panels.add(Panel.reactions(GUILD, 703, CHANNEL, {"✅": GREEN}))
    no_channel = panels.add(Panel.reactions(GUILD, 704, None, {"🔴": RED}))
    directory.add_member(6)
    directory.add_message(exploding, {"🔵": [6]})
    directory.add_message(healthy, {"✅": [6]})

    collector = ExplodingCollector(directory, pacer, explode_on=exploding.message_id)
    report = await _sweeper(panels, directory, pacer, collector).sweep_guild(GUILD)

    assert directory.roles_of(6) == {GREEN}
    assert report.panels == 4
    assert report.panels_failed == 3
    assert len(report.errors) == 3
    assert pacer.steps.count(pacing.PANEL) == 4
    # failed panels stay stored
    assert {missing.message_id, no_channel.message_id} <= set(panels.panels)


@pytest.mark.asyncio
async def test_button_panels_and_other_guilds_are_not_swept(panels, directory, pacer):
    panels.add(Panel.buttons(GUILD, 710, CHANNEL, [RED]))
    other = panels.add(Panel.reactions(GUILD + 1, 711, CHANNEL, {"🔴": RED}))
    directory.add_member(5, roles=[RED])
    directory.add_message(other, {})

    report = await _sweeper(panels, directory, pacer).sweep_guild(GUILD)

    assert report.panels == 0
    assert directory.roles_of(5) == {RED}


@pytest.mark.asyncio
async def test_sweep_all_merges_guild_reports(panels, directory, pacer):
    first = panels.add(Panel.reactions(GUILD, 720, CHANNEL, {"🔴": RED}))
    second = panels.add(Panel.reactions(GUILD + 1, 721, CHANNEL, {"🔵": BLUE}))
    directory.add_member(5)
    directory.add_message(first, {"🔴": [5]})
    directory.add_message(second, {"🔵": [5]})

    report = await _sweeper(panels, directory, pacer).sweep_all([GUILD, GUILD + 1])

    assert report.panels == 2
    assert report.roles_added == 2
    assert directory.roles_of(5) == {RED, BLUE}


@pytest.mark.asyncio
async def test_failed_reactor_page_for_one_emoji_still_grants_the_others(panels, directory, pacer):
    panel = panels.add(Panel.reactions(GUILD, 730, CHANNEL, {"🔴": RED, "🔵": BLUE}))
    directory.add_member(5)
    directory.add_member(6)
    directory.add_message(panel, {"🔴": [5], "🔵": [6]})
    directory.fail_pages.add(("🔴", 0))

    report = await _sweeper(panels, directory, pacer).sweep_guild(GUILD)

    assert directory.roles_of(6) == {BLUE}
    assert directory.roles_of(5) == set()
    assert report.panels_failed == 0
    assert report.roles_added == 1
