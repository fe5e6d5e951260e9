from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import aiosqlite

from ..constants import CACHE_TTL_SECONDS, PANEL_SCHEMA_VERSION
from ..errors import PanelConfigError
from ..migration import upgrade_entries
from ..models import Panel, PanelEntry, PanelKind
from .base import BaseService
from .cache import TTLCache

log = logging.getLogger("rolebot.config_store")


@dataclass(frozen=True)
class GuildConfig:
    guild_id: int
    autorole_id: Optional[int] = None


def _dump_entries(panel: Panel) -> str:
    return json.dumps(
        [{"role_id": e.role_id, "emoji": e.emoji} for e in panel.entries],
        ensure_ascii=False,
    )


class ConfigStore(BaseService):
    """Per-guild autorole and panel definitions.

    Panels are read fresh on every call; only the autorole is cached.
    """

    def __init__(self, sqlite_path: str, cache_ttl_seconds: int = CACHE_TTL_SECONDS) -> None:
        super().__init__(sqlite_path)
        self._autoroles: TTLCache[int, Optional[int]] = TTLCache(default_ttl_seconds=cache_ttl_seconds)

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS guild_config (
              guild_id INTEGER PRIMARY KEY,
              autorole_id INTEGER NULL
            )
            """
        )
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS panels (
              message_id INTEGER PRIMARY KEY,
              guild_id INTEGER NOT NULL,
              channel_id INTEGER NULL,
              kind TEXT NOT NULL,
              exclusive INTEGER NOT NULL DEFAULT 0,
              entries TEXT NOT NULL,
              schema_version INTEGER NOT NULL DEFAULT 1,
              created_at TEXT NOT NULL DEFAULT ''
            )
            """
        )

        # Best-effort migrations for older databases
        cols = await self._get_columns(db, "panels")
        await self._add_column_if_missing(db, cols, "schema_version", "INTEGER NOT NULL DEFAULT 1")
        await self._add_column_if_missing(db, cols, "created_at", "TEXT NOT NULL DEFAULT ''")

        await db.execute("CREATE INDEX IF NOT EXISTS idx_panels_guild_kind ON panels(guild_id, kind)")

    async def init(self) -> None:
        await super().init()
        upgraded = await self._upgrade_panels()
        log.info("ConfigStore initialized at %s (upgraded %d panel row(s))", self._path, upgraded)

    async def _get_columns(self, db: aiosqlite.Connection, table: str) -> set[str]:
        async with db.execute(f"PRAGMA table_info({table})") as cur:
            rows = await cur.fetchall()
        return {r[1] for r in rows}

    async def _add_column_if_missing(self, db: aiosqlite.Connection, cols: set[str], col: str, ddl: str) -> None:
        if col in cols:
            return
        await db.execute(f"ALTER TABLE panels ADD COLUMN {col} {ddl}")

    async def _upgrade_panels(self) -> int:
        """Rewrite rows stored with an older entries shape, once, at load time."""
        upgraded = 0
        async with aiosqlite.connect(self._path) as db:
            async with db.execute(
                "SELECT message_id, kind, entries FROM panels WHERE schema_version < ?",
                (PANEL_SCHEMA_VERSION,),
            ) as cur:
                rows = await cur.fetchall()

            for message_id, kind, raw in rows:
                try:
                    entries = upgrade_entries(PanelKind(kind), json.loads(raw))
                except (ValueError, PanelConfigError) as e:
                    log.warning("Cannot upgrade panel %s (%s): %s", message_id, kind, e)
                    continue
                await db.execute(
                    "UPDATE panels SET entries = ?, schema_version = ? WHERE message_id = ?",
                    (
                        json.dumps([{"role_id": e.role_id, "emoji": e.emoji} for e in entries], ensure_ascii=False),
                        PANEL_SCHEMA_VERSION,
                        message_id,
                    ),
                )
                upgraded += 1
            await db.commit()
        return upgraded

    # ---- autorole ----

    async def get_guild_config(self, guild_id: int) -> GuildConfig:
        hit, autorole_id = self._autoroles.lookup(guild_id)
        if hit:
            return GuildConfig(guild_id=guild_id, autorole_id=autorole_id)

        async with aiosqlite.connect(self._path) as db:
            async with db.execute(
                "SELECT autorole_id FROM guild_config WHERE guild_id = ?",
                (guild_id,),
            ) as cur:
                row = await cur.fetchone()

        autorole_id = row[0] if row else None
        self._autoroles.set(guild_id, autorole_id)
        return GuildConfig(guild_id=guild_id, autorole_id=autorole_id)

    async def get_autorole(self, guild_id: int) -> Optional[int]:
        return (await self.get_guild_config(guild_id)).autorole_id

    async def set_autorole(self, guild_id: int, role_id: Optional[int]) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                INSERT INTO guild_config (guild_id, autorole_id)
                VALUES (?, ?)
                ON CONFLICT(guild_id) DO UPDATE SET autorole_id = excluded.autorole_id
                """,
                (guild_id, role_id),
            )
            await db.commit()

        self._autoroles.set(guild_id, role_id)

    async def set_autorole_if_unset(self, guild_id: int, role_id: int) -> bool:
        """Store ``role_id`` only when the guild has no config row yet.

        A guild whose autorole was explicitly cleared keeps its NULL. Returns
        True when the row was written.
        """
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                INSERT INTO guild_config (guild_id, autorole_id)
                VALUES (?, ?)
                ON CONFLICT(guild_id) DO NOTHING
                """,
                (guild_id, role_id),
            )
            written = cur.rowcount > 0
            await db.commit()

        self._autoroles.invalidate(guild_id)
        return written

    async def clear_autorole(self, guild_id: int) -> None:
        await self.set_autorole(guild_id, None)

    # ---- panels ----

    async def save_panel(self, panel: Panel, *, overwrite: bool = True) -> bool:
        """Store ``panel`` keyed by its message id.

        With ``overwrite=False`` an existing row is left untouched. Returns
        True when the row was written.
        """
        conflict = (
            """
                ON CONFLICT(message_id) DO UPDATE SET
                  guild_id = excluded.guild_id,
                  channel_id = excluded.channel_id,
                  kind = excluded.kind,
                  exclusive = excluded.exclusive,
                  entries = excluded.entries,
                  schema_version = excluded.schema_version
            """
            if overwrite
            else "ON CONFLICT(message_id) DO NOTHING"
        )
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                INSERT INTO panels (message_id, guild_id, channel_id, kind, exclusive, entries, schema_version, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """
                + conflict,
                (
                    panel.message_id,
                    panel.guild_id,
                    panel.channel_id,
                    panel.kind.value,
                    int(panel.exclusive),
                    _dump_entries(panel),
                    PANEL_SCHEMA_VERSION,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            written = cur.rowcount > 0
            await db.commit()

        if not written:
            log.debug("Panel %s already stored; left unchanged", panel.message_id)
            return False
        log.info(
            "Saved %s panel %s in guild %s (%d role(s), exclusive=%s)",
            panel.kind.value,
            panel.message_id,
            panel.guild_id,
            len(panel.entries),
            panel.exclusive,
        )
        return True

    def _from_row(self, row: aiosqlite.Row) -> Optional[Panel]:
        try:
            raw = json.loads(row["entries"])
            entries = tuple(PanelEntry(role_id=int(e["role_id"]), emoji=e.get("emoji")) for e in raw)
            return Panel(
                kind=PanelKind(row["kind"]),
                guild_id=row["guild_id"],
                message_id=row["message_id"],
                channel_id=row["channel_id"],
                entries=entries,
                exclusive=bool(row["exclusive"]),
                schema_version=row["schema_version"],
            )
        except (ValueError, KeyError, TypeError, PanelConfigError) as e:
            log.warning("Ignoring unreadable panel row %s: %s", row["message_id"], e)
            return None

    async def get_panel(self, guild_id: int, message_id: int, kind: Optional[PanelKind] = None) -> Optional[Panel]:
        query = "SELECT * FROM panels WHERE guild_id = ? AND message_id = ?"
        params: tuple = (guild_id, message_id)
        if kind is not None:
            query += " AND kind = ?"
            params += (kind.value,)

        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cur:
                row = await cur.fetchone()

        if row is None:
            return None
        return self._from_row(row)

    async def list_panels(self, guild_id: int, kind: Optional[PanelKind] = None) -> List[Panel]:
        query = "SELECT * FROM panels WHERE guild_id = ?"
        params: tuple = (guild_id,)
        if kind is not None:
            query += " AND kind = ?"
            params += (kind.value,)
        query += " ORDER BY created_at, rowid"

        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cur:
                rows = await cur.fetchall()

        panels = [self._from_row(row) for row in rows]
        return [p for p in panels if p is not None]

    async def get_all_reaction_panels(self, guild_id: int) -> Dict[int, Panel]:
        return {p.message_id: p for p in await self.list_panels(guild_id, PanelKind.REACTION)}

    async def count_panels(self, guild_id: int) -> Dict[str, int]:
        async with aiosqlite.connect(self._path) as db:
            async with db.execute(
                "SELECT kind, COUNT(*) FROM panels WHERE guild_id = ? GROUP BY kind",
                (guild_id,),
            ) as cur:
                rows = await cur.fetchall()
        return {kind: count for kind, count in rows}
