from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from ..constants import (
    EMOJI_DELAY,
    MEMBER_DELAY,
    PANEL_DELAY,
    REACTOR_PAGE_DELAY,
    ROLE_MUTATION_DELAY,
)

log = logging.getLogger("rolebot.pacing")

# Pacing steps
PAGE = "page"
EMOJI = "emoji"
MUTATION = "mutation"
MEMBER = "member"
PANEL = "panel"


@dataclass(frozen=True)
class PacingPolicy:
    """Fixed delays (seconds) inserted after each kind of remote call."""
    page: float = REACTOR_PAGE_DELAY
    emoji: float = EMOJI_DELAY
    mutation: float = ROLE_MUTATION_DELAY
    member: float = MEMBER_DELAY
    panel: float = PANEL_DELAY

    def delay_for(self, step: str) -> float:
        delays: Dict[str, float] = {
            PAGE: self.page,
            EMOJI: self.emoji,
            MUTATION: self.mutation,
            MEMBER: self.member,
            PANEL: self.panel,
        }
        try:
            return max(0.0, float(delays[step]))
        except KeyError:
            raise ValueError(f"unknown pacing step: {step}") from None


class FixedIntervalPacer:
    """Fixed-interval gate for Discord API calls.

    Backpressure is a flat sleep per step rather than an adaptive scheme;
    discord.py still handles 429 responses on its own.
    """

    def __init__(
        self,
        policy: PacingPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.policy = policy or PacingPolicy()
        self._sleep = sleep

    async def pause(self, step: str) -> None:
        delay = self.policy.delay_for(step)
        if delay <= 0:
            return
        await self._sleep(delay)


class NoPacer:
    """Pacer that never waits."""

    async def pause(self, step: str) -> None:
        return None
