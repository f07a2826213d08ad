import json

import pytest

from pvdtime.core.service import PlaytimeService
from pvdtime.core.storage import PlaytimeStore, StorageError
from pvdtime.models import PlaytimeEntry, Settings


def _sample_ledger():
    return {
        "Alice": PlaytimeEntry(weeks={"2024-W06": 30, "2024-W07": 181}, status_flag=True),
        "Bob": PlaytimeEntry(weeks={"2024-W07": 0}, status_flag=False),
        "Carol": PlaytimeEntry(weeks={}, status_flag=False),
    }


def test_missing_files_mean_no_data(store):
    assert store.load_ledger() is None
    assert store.load_settings() is None
    assert store.read_archive("2024-W06") is None


def test_ledger_round_trip_is_identical(store):
    ledger = _sample_ledger()
    assert store.save_ledger(ledger) is True
    loaded = store.load_ledger()
    assert loaded == ledger
    assert list(loaded) == ["Alice", "Bob", "Carol"]
    # Saving what was loaded produces the same file
    first = store.ledger_path.read_text(encoding="utf-8")
    store.save_ledger(loaded)
    assert store.ledger_path.read_text(encoding="utf-8") == first


def test_ledger_file_shape(store):
    store.save_ledger({"Alice": PlaytimeEntry(weeks={"2024-W07": 3}, status_flag=True)})
    raw = json.loads(store.ledger_path.read_text(encoding="utf-8"))
    assert raw == {"Alice": {"weeks": {"2024-W07": 3}, "PVD": True}}
    assert store.ledger_path.name == "lastlog.json"


def test_malformed_ledger_raises_storage_error(store):
    store.base_dir.mkdir(parents=True)
    store.ledger_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        store.load_ledger()


def test_wrong_shape_ledger_raises_storage_error(store):
    store.base_dir.mkdir(parents=True)
    store.ledger_path.write_text(json.dumps({"Alice": []}), encoding="utf-8")
    with pytest.raises(StorageError):
        store.load_ledger()
    store.ledger_path.write_text(json.dumps({"Alice": {"weeks": {"2024-W07": "many"}}}), encoding="utf-8")
    with pytest.raises(StorageError):
        store.load_ledger()


def test_entry_without_pvd_or_weeks_defaults(store):
    store.base_dir.mkdir(parents=True)
    store.ledger_path.write_text(json.dumps({"Alice": {"weeks": None}}), encoding="utf-8")
    loaded = store.load_ledger()
    assert loaded == {"Alice": PlaytimeEntry(weeks={}, status_flag=False)}


def test_settings_round_trip_and_file_keys(store):
    store.save_settings(Settings(required_minutes=90, afk_check_enabled=False, afk_time_threshold=7))
    raw = json.loads(store.settings_path.read_text(encoding="utf-8"))
    assert raw == {"requiredMinutes": 90, "afkCheckEnabled": False, "afkTimeThreshold": 7}
    assert store.load_settings() == Settings(required_minutes=90, afk_check_enabled=False, afk_time_threshold=7)


def test_settings_missing_keys_keep_defaults(store):
    store.base_dir.mkdir(parents=True)
    store.settings_path.write_text(json.dumps({"requiredMinutes": 60}), encoding="utf-8")
    loaded = store.load_settings()
    assert loaded.required_minutes == 60
    assert loaded.afk_check_enabled is True
    assert loaded.afk_time_threshold == 5


def test_write_failure_is_reported_not_raised(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = PlaytimeStore(blocker)
    assert store.save_ledger(_sample_ledger()) is False
    assert store.save_settings(Settings()) is False
    assert store.write_archive("2024-W06", {}) is False


def test_service_load_restores_state(store, today):
    store.save_ledger(_sample_ledger())
    store.save_settings(Settings(required_minutes=120, afk_check_enabled=False, afk_time_threshold=3))

    service = PlaytimeService(store=store, today=today)
    service.load()

    assert service.ledger.entries == _sample_ledger()
    assert service.settings.required_minutes == 120
    # The AFK detector sees the loaded settings record
    assert service.afk.settings is service.settings
    assert service.afk.settings.afk_check_enabled is False


def test_service_load_with_malformed_files_keeps_defaults(store, today):
    store.base_dir.mkdir(parents=True)
    store.ledger_path.write_text("[1, 2", encoding="utf-8")
    store.settings_path.write_text("nope", encoding="utf-8")

    service = PlaytimeService(store=store, today=today)
    service.load()

    assert len(service.ledger) == 0
    assert service.settings == Settings()


def test_service_save_then_reload_is_idempotent(service, store, today):
    service.ledger.add_minutes("Alice", "2024-W07", 5)
    service.ledger.add_minutes("Bob", "2024-W07", 2)
    service.ledger.get("Alice").status_flag = True
    assert service.save() is True

    other = PlaytimeService(store=store, today=today)
    other.load()
    assert other.ledger.entries == service.ledger.entries
