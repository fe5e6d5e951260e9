from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .constants import PANEL_SCHEMA_VERSION
from .errors import PanelConfigError


class PanelKind(str, Enum):
    BUTTON = "button"
    REACTION = "reaction"


@dataclass(frozen=True)
class PanelEntry:
    """One role on a panel. ``emoji`` is set for reaction panels only."""
    role_id: int
    emoji: Optional[str] = None


@dataclass(frozen=True)
class Panel:
    """A posted message that grants roles through buttons or reactions.

    Entries keep the order they were given at creation; that order decides
    which role survives when an exclusive panel receives contradictory
    signals.
    """
    kind: PanelKind
    guild_id: int
    message_id: int
    channel_id: Optional[int]
    entries: Tuple[PanelEntry, ...]
    exclusive: bool = False
    schema_version: int = PANEL_SCHEMA_VERSION

    def __post_init__(self) -> None:
        if not self.entries:
            raise PanelConfigError(f"panel {self.message_id} has no roles")

        role_ids = [e.role_id for e in self.entries]
        if len(set(role_ids)) != len(role_ids):
            raise PanelConfigError(f"panel {self.message_id} repeats a role")

        if self.kind is PanelKind.REACTION:
            emojis = [e.emoji for e in self.entries]
            if any(not e for e in emojis):
                raise PanelConfigError(f"reaction panel {self.message_id} has an entry without emoji")
            if len(set(emojis)) != len(emojis):
                raise PanelConfigError(f"reaction panel {self.message_id} repeats an emoji")

    @classmethod
    def buttons(
        cls,
        guild_id: int,
        message_id: int,
        channel_id: Optional[int],
        role_ids: Iterable[int],
        exclusive: bool = False,
    ) -> "Panel":
        entries = tuple(PanelEntry(role_id=int(rid)) for rid in role_ids)
        return cls(PanelKind.BUTTON, guild_id, message_id, channel_id, entries, exclusive)

    @classmethod
    def reactions(
        cls,
        guild_id: int,
        message_id: int,
        channel_id: Optional[int],
        mapping: Mapping[str, int],
        exclusive: bool = False,
    ) -> "Panel":
        entries = tuple(PanelEntry(role_id=int(rid), emoji=emoji) for emoji, rid in mapping.items())
        return cls(PanelKind.REACTION, guild_id, message_id, channel_id, entries, exclusive)

    @property
    def role_ids(self) -> List[int]:
        return [e.role_id for e in self.entries]

    @property
    def mapping(self) -> Dict[str, int]:
        return {e.emoji: e.role_id for e in self.entries if e.emoji}

    def role_for_emoji(self, emoji: str) -> Optional[int]:
        for entry in self.entries:
            if entry.emoji == emoji:
                return entry.role_id
        return None

    def contains_role(self, role_id: int) -> bool:
        return any(e.role_id == role_id for e in self.entries)


class DesiredState:
    """Snapshot of which members want which panel role.

    Role keys are fixed at construction in panel order. Members are kept in
    insertion order so a pass over the snapshot is deterministic.
    """

    def __init__(self, role_ids: Iterable[int]) -> None:
        self._wants: Dict[int, Dict[int, None]] = {int(rid): {} for rid in role_ids}

    @classmethod
    def for_panel(cls, panel: Panel) -> "DesiredState":
        return cls(panel.role_ids)

    def add(self, role_id: int, member_id: int) -> None:
        try:
            self._wants[role_id][member_id] = None
        except KeyError:
            raise PanelConfigError(f"role {role_id} is not part of this snapshot") from None

    @property
    def role_ids(self) -> List[int]:
        return list(self._wants)

    def members_for(self, role_id: int) -> Set[int]:
        return set(self._wants.get(role_id, ()))

    def wants_any(self, member_id: int) -> bool:
        return any(member_id in members for members in self._wants.values())

    def desired_roles(self, member_id: int) -> List[int]:
        return [rid for rid, members in self._wants.items() if member_id in members]

    def members(self) -> List[int]:
        seen: Dict[int, None] = {}
        for members in self._wants.values():
            for member_id in members:
                seen.setdefault(member_id, None)
        return list(seen)

    def as_dict(self) -> Dict[int, Set[int]]:
        return {rid: set(members) for rid, members in self._wants.items()}

    def __repr__(self) -> str:
        sizes = ", ".join(f"{rid}:{len(m)}" for rid, m in self._wants.items())
        return f"<DesiredState {sizes}>"


@dataclass
class SyncReport:
    """Counters from one reconciliation pass (or an aggregate of several)."""
    panels: int = 0
    panels_failed: int = 0
    members: int = 0
    roles_added: int = 0
    roles_removed: int = 0
    failures: int = 0
    cleanup_ran: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def mutations(self) -> int:
        return self.roles_added + self.roles_removed

    def merge(self, other: "SyncReport") -> None:
        self.panels += other.panels
        self.panels_failed += other.panels_failed
        self.members += other.members
        self.roles_added += other.roles_added
        self.roles_removed += other.roles_removed
        self.failures += other.failures
        self.cleanup_ran = self.cleanup_ran or other.cleanup_ran
        self.errors.extend(other.errors)

    def summary(self) -> str:
        return (
            f"panels={self.panels} failed_panels={self.panels_failed} members={self.members} "
            f"added={self.roles_added} removed={self.roles_removed} failures={self.failures}"
        )
