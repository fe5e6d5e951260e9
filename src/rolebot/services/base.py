from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import aiosqlite

log = logging.getLogger("rolebot.base_service")


class BaseService(ABC):
    """Base class for SQLite-backed stores.

    The owner calls ``init()`` once before use; every write commits
    immediately, so there is nothing to flush on shutdown.
    """

    def __init__(self, sqlite_path: str) -> None:
        self._path = sqlite_path
        self._logger = logging.getLogger(f"rolebot.{self.__class__.__name__.lower()}")

    async def init(self) -> None:
        """Initialize the database schema."""
        async with aiosqlite.connect(self._path) as db:
            await self._create_tables(db)
            await db.commit()

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        """Create the necessary database tables."""
        pass
