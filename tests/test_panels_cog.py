from __future__ import annotations

from types import SimpleNamespace

from rolebot.cogs.panels import CLICK_REPLIES, PanelsCog, _unique_roles
from rolebot.sync import ClickStatus
from rolebot.utils import unmanageable_roles


def _payload(user_id: int, member=None):
    return SimpleNamespace(
        guild_id=1000,
        channel_id=2000,
        message_id=3000,
        user_id=user_id,
        emoji="🔴",
        member=member,
    )


def test_reaction_payload_becomes_event():
    cog = PanelsCog(SimpleNamespace(user=SimpleNamespace(id=1)))

    event = cog._reaction_event(_payload(7, member=SimpleNamespace(bot=False)))

    assert event is not None
    assert (event.guild_id, event.message_id, event.user_id, event.emoji) == (1000, 3000, 7, "🔴")
    assert event.user_is_bot is False
    assert cog._reaction_event(_payload(7)).user_is_bot is None


def test_own_reactions_are_dropped():
    cog = PanelsCog(SimpleNamespace(user=SimpleNamespace(id=1)))
    assert cog._reaction_event(_payload(1)) is None


def test_every_click_status_has_a_reply():
    assert set(CLICK_REPLIES) == set(ClickStatus)
    assert CLICK_REPLIES[ClickStatus.ADDED].format(role="<@&10>") == "Added <@&10>."


def test_role_helpers():
    a = SimpleNamespace(id=1, is_assignable=lambda: True)
    b = SimpleNamespace(id=2, is_assignable=lambda: False)

    assert _unique_roles(a, None, b, a) == [a, b]
    assert unmanageable_roles([a, b]) == [b]
