from __future__ import annotations

import json
from pathlib import Path

import pytest

from rolebot.database import initialize_database
from rolebot.errors import PanelConfigError
from rolebot.migration import import_legacy_data, import_legacy_file, legacy_panel, upgrade_entries
from rolebot.models import Panel, PanelEntry, PanelKind
from rolebot.services.config_store import ConfigStore

LEGACY = {
    "guilds": {
        "1000": {
            "autorole": "42",
            "panels": {"11": {"roles": ["10", "20"], "exclusive": True}},
            "reactpanels": {
                "12": {"mapping": {"🔴": "10", "🔵": "20"}, "exclusive": False, "channelId": "50"},
                "13": {"mapping": {}, "channelId": "50"},
            },
        },
        "2000": {"autorole": None, "panels": {}, "reactpanels": {}},
    }
}


def test_upgrade_entries_known_shapes():
    assert upgrade_entries(PanelKind.BUTTON, [1, 2]) == (PanelEntry(1), PanelEntry(2))
    assert upgrade_entries(PanelKind.BUTTON, {"roles": ["3"]}) == (PanelEntry(3),)
    assert upgrade_entries(PanelKind.REACTION, {"✅": "4"}) == (PanelEntry(4, "✅"),)
    assert upgrade_entries(PanelKind.REACTION, {"mapping": {"✅": 5}}) == (PanelEntry(5, "✅"),)
    assert upgrade_entries(PanelKind.REACTION, [{"role_id": 6, "emoji": "✅"}]) == (PanelEntry(6, "✅"),)


def test_upgrade_entries_rejects_bad_shapes():
    with pytest.raises(PanelConfigError):
        upgrade_entries(PanelKind.REACTION, [1])
    with pytest.raises(PanelConfigError):
        upgrade_entries(PanelKind.BUTTON, {"mapping": {}})
    with pytest.raises(PanelConfigError):
        upgrade_entries(PanelKind.REACTION, {"✅": "not-a-number"})
    with pytest.raises(PanelConfigError):
        upgrade_entries(PanelKind.BUTTON, "10,20")


def test_legacy_panel_reads_channel_and_exclusive_flag():
    panel = legacy_panel(PanelKind.REACTION, 1000, 12, LEGACY["guilds"]["1000"]["reactpanels"]["12"])
    assert panel.channel_id == 50
    assert panel.mapping == {"🔴": 10, "🔵": 20}
    assert not panel.exclusive

    button = legacy_panel(PanelKind.BUTTON, 1000, 11, LEGACY["guilds"]["1000"]["panels"]["11"])
    assert button.channel_id is None
    assert button.exclusive


@pytest.mark.asyncio
async def test_import_legacy_file(tmp_path: Path):
    store = ConfigStore(str(tmp_path / "rolebot.sqlite3"))
    await initialize_database(store._path, [store])
    data_file = tmp_path / "data.json"
    data_file.write_text(json.dumps(LEGACY), encoding="utf-8")

    result = await import_legacy_file(data_file, store)

    assert result.guilds == 2
    assert result.autoroles == 1
    assert result.button_panels == 1
    assert result.reaction_panels == 1
    assert len(result.skipped) == 1
    assert await store.get_autorole(1000) == 42
    assert list(await store.get_all_reaction_panels(1000)) == [12]

    # running it again must not duplicate anything
    await import_legacy_data(LEGACY, store)
    assert await store.count_panels(1000) == {"button": 1, "reaction": 1}


@pytest.mark.asyncio
async def test_import_without_guilds_is_a_no_op(tmp_path: Path):
    store = ConfigStore(str(tmp_path / "rolebot.sqlite3"))
    await initialize_database(store._path, [store])

    result = await import_legacy_data({"something": "else"}, store)

    assert result.guilds == 0
    assert await store.count_panels(1000) == {}


@pytest.mark.asyncio
async def test_reimport_does_not_undo_admin_changes(tmp_path: Path):
    store = ConfigStore(str(tmp_path / "rolebot.sqlite3"))
    await initialize_database(store._path, [store])
    data_file = tmp_path / "data.json"
    data_file.write_text(json.dumps(LEGACY), encoding="utf-8")

    await import_legacy_file(data_file, store)
    await store.clear_autorole(1000)
    await store.save_panel(Panel.reactions(1000, 12, 50, {"✅": 77}, exclusive=True))

    # next startup: a fresh store instance and the same file
    restarted = ConfigStore(store._path)
    await restarted.init()
    result = await import_legacy_file(data_file, restarted)

    assert await restarted.get_autorole(1000) is None
    panel = await restarted.get_panel(1000, 12)
    assert panel is not None
    assert panel.mapping == {"✅": 77}
    assert panel.exclusive
    assert result.autoroles == 0
    assert result.reaction_panels == 0
    assert result.button_panels == 0
    assert result.existing == 3


@pytest.mark.asyncio
async def test_malformed_guild_entries_are_skipped_and_import_continues(tmp_path: Path):
    store = ConfigStore(str(tmp_path / "rolebot.sqlite3"))
    await initialize_database(store._path, [store])
    data = {
        "guilds": {
            "1": {"autorole": "not-a-role"},
            "2": {"panels": ["oops"], "reactpanels": "nope"},
            "3": {"autorole": "33", "reactpanels": {"30": {"mapping": {"✅": "31"}, "channelId": "50"}}},
        }
    }

    result = await import_legacy_data(data, store)

    assert result.guilds == 3
    assert len(result.skipped) == 3
    assert await store.get_autorole(1) is None
    assert await store.get_autorole(3) == 33
    assert list(await store.get_all_reaction_panels(3)) == [30]
