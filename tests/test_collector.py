from __future__ import annotations

import pytest

from conftest import BLUE, CHANNEL, GUILD, RED
from rolebot.models import Panel
from rolebot.services import pacing
from rolebot.sync.collector import ReactionCollector


def _panel(message_id: int = 500) -> Panel:
    return Panel.reactions(GUILD, message_id, CHANNEL, {"🔴": RED, "🔵": BLUE})


@pytest.mark.asyncio
async def test_collects_every_page_and_skips_bots(directory, pacer):
    directory.add_member(99, bot=True)
    panel = _panel()
    message = directory.add_message(panel, {"🔴": [1, 2, 3, 4, 5, 99], "🔵": [2]})

    state = await ReactionCollector(directory, pacer, page_size=2).collect(message, panel)

    assert state.members_for(RED) == {1, 2, 3, 4, 5}
    assert state.members_for(BLUE) == {2}
    red_cursors = [after for emoji, after in directory.page_calls if emoji == "🔴"]
    assert red_cursors == [None, 2, 4, 99]
    assert pacing.PAGE in pacer.steps
    assert pacer.steps.count(pacing.EMOJI) == 2


@pytest.mark.asyncio
async def test_full_last_page_ends_on_empty_page(directory, pacer):
    panel = _panel()
    message = directory.add_message(panel, {"🔴": [1, 2, 3, 4]})

    state = await ReactionCollector(directory, pacer, page_size=2).collect(message, panel)

    assert state.members_for(RED) == {1, 2, 3, 4}
    assert [after for _, after in directory.page_calls] == [None, 2, 4]


@pytest.mark.asyncio
async def test_failed_page_keeps_partial_result_for_that_emoji_only(directory, pacer):
    panel = _panel()
    message = directory.add_message(panel, {"🔴": [1, 2, 3, 4, 5], "🔵": [6, 7]})
    directory.fail_pages.add(("🔴", 1))

    state = await ReactionCollector(directory, pacer, page_size=2).collect(message, panel)

    assert state.members_for(RED) == {1, 2}
    assert state.members_for(BLUE) == {6, 7}


@pytest.mark.asyncio
async def test_unresolvable_emoji_is_skipped(directory, pacer):
    panel = _panel()
    message = directory.add_message(panel, {"🔴": [1], "🔵": [2]})
    directory.fail_resolve.add("🔴")

    state = await ReactionCollector(directory, pacer).collect(message, panel)

    assert state.members_for(RED) == set()
    assert state.members_for(BLUE) == {2}


@pytest.mark.asyncio
async def test_missing_reaction_yields_empty_set(directory, pacer):
    panel = _panel()
    message = directory.add_message(panel, {"🔵": [2]})

    state = await ReactionCollector(directory, pacer).collect(message, panel)

    assert state.as_dict() == {RED: set(), BLUE: {2}}
    assert state.members() == [2]
