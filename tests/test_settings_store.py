"""Tests for TimerSettings and SettingsStore."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from tabtimer.settings_store import SETTINGS_KEY, SettingsStore, TimerSettings
from tabtimer.storage import MemoryStorageArea


class TestTimerSettings:
    def test_defaults(self):
        s = TimerSettings()
        assert s.auto_delete_executed == "1hour"
        assert s.fire_offset_minutes == 5
        assert s.notify_success is True
        assert s.default_persistence == "session"
        assert s.default_url_behavior == "cancel"

    def test_camel_case_round_trip(self):
        data = TimerSettings(typing_speed=120).to_dict()
        assert data["typingSpeed"] == 120
        assert data["autoDeleteExecuted"] == "1hour"
        assert TimerSettings.model_validate(data).typing_speed == 120

    def test_retention(self):
        assert TimerSettings(auto_delete_executed="5min").retention == timedelta(minutes=5)
        assert TimerSettings(auto_delete_executed="never").retention is None

    @pytest.mark.parametrize(
        "values",
        [
            {"typingSpeed": -1},
            {"typingSpeed": 5000},
            {"postTextEntryDelay": 20000},
            {"fireOffsetMinutes": -5},
            {"autoDeleteExecuted": "weekly"},
            {"defaultPersistence": "forever"},
        ],
    )
    def test_out_of_range_rejected(self, values):
        with pytest.raises(ValidationError):
            TimerSettings.model_validate(values)

    def test_merged_falls_back_per_key(self):
        merged = TimerSettings.merged(
            {"typingSpeed": 99, "postTextEntryDelay": -3, "notifySuccess": False, "bogus": 1}
        )
        assert merged.typing_speed == 99
        assert merged.post_text_entry_delay == 500
        assert merged.notify_success is False

    def test_merged_none(self):
        assert TimerSettings.merged(None) == TimerSettings()


class TestSettingsStore:
    async def test_current_before_load_is_defaults(self):
        store = SettingsStore(MemoryStorageArea())
        assert store.current == TimerSettings()

    async def test_load_merges_persisted(self):
        area = MemoryStorageArea()
        await area.set(SETTINGS_KEY, {"autoDeleteExecuted": "24hours", "typingSpeed": "fast"})
        store = SettingsStore(area)

        loaded = await store.load()
        assert loaded.auto_delete_executed == "24hours"
        assert loaded.typing_speed == 50
        assert store.current is loaded

    async def test_load_non_object_uses_defaults(self):
        area = MemoryStorageArea()
        await area.set(SETTINGS_KEY, ["not", "a", "dict"])
        assert await SettingsStore(area).load() == TimerSettings()

    async def test_load_storage_failure_uses_defaults(self):
        area = AsyncMock()
        area.get.side_effect = OSError("locked")
        assert await SettingsStore(area).load() == TimerSettings()

    async def test_update_replaces_and_persists(self):
        area = MemoryStorageArea()
        store = SettingsStore(area)
        await store.update({"typingSpeed": 10, "notifyFailure": False})

        assert store.current.typing_speed == 10
        assert store.current.notify_failure is False
        persisted = await area.get(SETTINGS_KEY)
        assert persisted["typingSpeed"] == 10

        # Full replace: keys not supplied go back to defaults
        await store.update({"notifyFailure": False})
        assert store.current.typing_speed == 50

    async def test_update_out_of_range_leaves_previous(self):
        area = MemoryStorageArea()
        store = SettingsStore(area)
        await store.update({"typingSpeed": 10})

        with pytest.raises(ValidationError):
            await store.update({"typingSpeed": 99999})
        assert store.current.typing_speed == 10
        assert (await area.get(SETTINGS_KEY))["typingSpeed"] == 10

    async def test_reload_sees_update(self):
        area = MemoryStorageArea()
        await SettingsStore(area).update({"autoDeleteExecuted": "30min"})
        assert (await SettingsStore(area).load()).auto_delete_executed == "30min"
