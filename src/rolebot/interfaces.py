"""
Interface contracts between the sync core and its collaborators.

The core never imports discord.py directly: it talks to the remote directory
and to the pacing gate through these protocols, which keeps it testable with
in-memory fakes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import Panel


@runtime_checkable
class Reactor(Protocol):
    """A user returned from a reactor page."""
    id: int
    bot: bool


@runtime_checkable
class RoleDirectory(Protocol):
    """Remote directory capability set (users, roles, messages).

    Every method may raise ``rolebot.errors.DirectoryError``.
    """

    @abstractmethod
    async def fetch_message(self, guild_id: int, channel_id: int, message_id: int) -> Any:
        """Fetch a message through its channel."""
        ...

    @abstractmethod
    async def resolve_reaction(self, message: Any, emoji: str) -> Optional[Any]:
        """Return the reaction for ``emoji`` on ``message`` or None when nobody reacted."""
        ...

    @abstractmethod
    async def fetch_reactors(self, reaction: Any, limit: int, after: Optional[int]) -> List[Reactor]:
        """Fetch one page of users who reacted, ordered by id, after ``after``."""
        ...

    @abstractmethod
    async def fetch_member(self, guild_id: int, user_id: int) -> Any:
        ...

    @abstractmethod
    async def fetch_members(self, guild_id: int) -> List[Any]:
        """Fetch every member of the guild."""
        ...

    @abstractmethod
    def member_has_role(self, member: Any, role_id: int) -> bool:
        ...

    @abstractmethod
    async def role_exists(self, guild_id: int, role_id: int) -> bool:
        ...

    @abstractmethod
    async def add_role(self, member: Any, role_id: int, reason: str) -> None:
        ...

    @abstractmethod
    async def remove_role(self, member: Any, role_id: int, reason: str) -> None:
        ...

    @abstractmethod
    async def has_reacted(self, message: Any, emoji: str, user_id: int) -> bool:
        """Whether ``user_id`` currently has an ``emoji`` reaction on ``message``."""
        ...

    @abstractmethod
    async def remove_reaction(self, message: Any, emoji: str, user_id: int) -> None:
        """Retract ``user_id``'s ``emoji`` reaction from ``message``."""
        ...


@runtime_checkable
class Pacer(Protocol):
    """Fixed-interval gate used between remote calls."""

    @abstractmethod
    async def pause(self, step: str) -> None:
        """Wait the interval configured for ``step``."""
        ...


@runtime_checkable
class PanelSource(Protocol):
    """Read access to stored panels, as consumed by the sync core."""

    @abstractmethod
    async def get_panel(self, guild_id: int, message_id: int, kind: Any = None) -> Optional[Panel]:
        ...

    @abstractmethod
    async def get_all_reaction_panels(self, guild_id: int) -> Dict[int, Panel]:
        ...


def validate_directory(directory: object) -> RoleDirectory:
    """Validate and return the RoleDirectory interface."""
    if not isinstance(directory, RoleDirectory):
        raise AttributeError(f"Object {directory} does not implement RoleDirectory interface")
    return directory


def validate_pacer(pacer: object) -> Pacer:
    """Validate and return the Pacer interface."""
    if not isinstance(pacer, Pacer):
        raise AttributeError(f"Object {pacer} does not implement Pacer interface")
    return pacer
