"""Upgrades of older panel shapes.

Two sources of old data exist:

* rows written before the entries column held ``{"role_id", "emoji"}``
  objects (schema version 1), upgraded by ``ConfigStore.init``;
* the flat ``data.json`` file of the JSON-backed bot, imported with
  ``import_legacy_file``. Reruns only fill in rows that are still missing.

Both go through ``upgrade_entries`` so shape handling lives in one place and
never leaks into the handlers.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from .errors import PanelConfigError
from .models import Panel, PanelEntry, PanelKind

if TYPE_CHECKING:
    from .services.config_store import ConfigStore

log = logging.getLogger("rolebot.migration")


@dataclass
class LegacyImportResult:
    guilds: int = 0
    autoroles: int = 0
    button_panels: int = 0
    reaction_panels: int = 0
    # rows already in the store, left as they are
    existing: int = 0
    skipped: List[str] = field(default_factory=list)


def _entries_from_list(kind: PanelKind, raw: list) -> Tuple[PanelEntry, ...]:
    entries = []
    for item in raw:
        if isinstance(item, dict):
            entries.append(PanelEntry(role_id=int(item["role_id"]), emoji=item.get("emoji")))
        elif kind is PanelKind.BUTTON:
            entries.append(PanelEntry(role_id=int(item)))
        else:
            raise PanelConfigError(f"reaction entry without emoji: {item!r}")
    return tuple(entries)


def upgrade_entries(kind: PanelKind, raw: Any) -> Tuple[PanelEntry, ...]:
    """Normalize any known stored shape into ordered panel entries.

    Known shapes:
      button   -> [role_id, ...] | {"roles": [...]} | [{"role_id", "emoji"}, ...]
      reaction -> {emoji: role_id} | {"mapping": {...}} | [{"role_id", "emoji"}, ...]
    """
    try:
        if isinstance(raw, list):
            return _entries_from_list(kind, raw)

        if isinstance(raw, dict):
            if kind is PanelKind.BUTTON:
                roles = raw.get("roles")
                if not isinstance(roles, list):
                    raise PanelConfigError("button panel without a roles list")
                return _entries_from_list(kind, roles)

            mapping = raw.get("mapping") if isinstance(raw.get("mapping"), dict) else raw
            return tuple(PanelEntry(role_id=int(rid), emoji=str(emoji)) for emoji, rid in mapping.items())
    except (KeyError, TypeError, ValueError) as e:
        raise PanelConfigError(f"malformed {kind.value} entries: {e}") from e

    raise PanelConfigError(f"unknown {kind.value} entries shape: {type(raw).__name__}")


def _exclusive_flag(raw: Any) -> bool:
    return bool(raw.get("exclusive", False)) if isinstance(raw, dict) else False


def _channel_id(raw: Any) -> Optional[int]:
    if not isinstance(raw, dict):
        return None
    value = raw.get("channelId") or raw.get("channel_id")
    return int(value) if value else None


def legacy_panel(kind: PanelKind, guild_id: int, message_id: int, raw: Any) -> Panel:
    """Build a current Panel from one legacy ``panels``/``reactpanels`` entry."""
    entries = upgrade_entries(kind, raw)
    return Panel(
        kind=kind,
        guild_id=guild_id,
        message_id=message_id,
        channel_id=_channel_id(raw) if kind is PanelKind.REACTION else None,
        entries=entries,
        exclusive=_exclusive_flag(raw),
    )


async def import_legacy_data(data: Any, store: "ConfigStore") -> LegacyImportResult:
    """Import ``{"guilds": {gid: {"autorole", "panels", "reactpanels"}}}`` into ``store``.

    Only missing rows are written: an autorole or panel already in the store,
    including an autorole cleared since the last import, is never replaced.
    Malformed entries are skipped with a warning.
    """
    result = LegacyImportResult()
    guilds = data.get("guilds") if isinstance(data, dict) else None
    if not isinstance(guilds, dict):
        log.warning("Legacy data has no guilds mapping; nothing imported")
        return result

    for gid, cfg in guilds.items():
        if not isinstance(cfg, dict):
            result.skipped.append(f"guild {gid}: not an object")
            continue
        try:
            guild_id = int(gid)
        except ValueError:
            result.skipped.append(f"guild {gid}: bad id")
            continue
        result.guilds += 1

        autorole = cfg.get("autorole")
        if autorole:
            try:
                role_id = int(autorole)
            except (TypeError, ValueError):
                log.warning("Skipping legacy autorole %r in guild %s", autorole, gid)
                result.skipped.append(f"autorole {gid}: {autorole!r}")
            else:
                if await store.set_autorole_if_unset(guild_id, role_id):
                    result.autoroles += 1
                else:
                    result.existing += 1

        sections = (
            (PanelKind.BUTTON, cfg.get("panels") or {}),
            (PanelKind.REACTION, cfg.get("reactpanels") or {}),
        )
        for kind, panels in sections:
            if not isinstance(panels, dict):
                log.warning("Skipping legacy %s panels in guild %s: not an object", kind.value, gid)
                result.skipped.append(f"{kind.value} panels {gid}: not an object")
                continue
            for mid, raw in panels.items():
                try:
                    panel = legacy_panel(kind, guild_id, int(mid), raw)
                except (PanelConfigError, ValueError) as e:
                    log.warning("Skipping legacy %s panel %s in guild %s: %s", kind.value, mid, gid, e)
                    result.skipped.append(f"{kind.value} {mid}: {e}")
                    continue
                if not await store.save_panel(panel, overwrite=False):
                    result.existing += 1
                elif kind is PanelKind.BUTTON:
                    result.button_panels += 1
                else:
                    result.reaction_panels += 1

    log.info(
        "Legacy import: guilds=%d autoroles=%d button_panels=%d reaction_panels=%d existing=%d skipped=%d",
        result.guilds,
        result.autoroles,
        result.button_panels,
        result.reaction_panels,
        result.existing,
        len(result.skipped),
    )
    return result


async def import_legacy_file(path: str | Path, store: "ConfigStore") -> LegacyImportResult:
    """Read a legacy ``data.json`` file and import it."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return await import_legacy_data(data, store)
