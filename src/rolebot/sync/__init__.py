"""
Sync Package

Reaction-panel reconciliation: collection, role policy, live events, sweeps
and the button toggle.
"""

from .buttons import ButtonToggle, ClickResult, ClickStatus
from .collector import ReactionCollector
from .engine import ReconciliationEngine
from .live import LiveReactionHandler, ReactionEvent
from .policy import RolePlan, plan_cleanup, plan_member, plan_toggle
from .sweep import SweepOrchestrator

__all__ = [
    "ButtonToggle",
    "ClickResult",
    "ClickStatus",
    "ReactionCollector",
    "ReconciliationEngine",
    "LiveReactionHandler",
    "ReactionEvent",
    "RolePlan",
    "plan_cleanup",
    "plan_member",
    "plan_toggle",
    "SweepOrchestrator",
]
