import json

import pytest
from conftest import FakeMarkers, player

from pvdtime.core.commands import CommandContext, CommandRouter, CommandSource
from pvdtime.models import PlaytimeEntry

WEEK = "2024-W07"

ADMIN = CommandSource(name="admin", permission_level=4)
GUEST = CommandSource(name="guest", permission_level=0)


@pytest.fixture
def router():
    return CommandRouter()


def _ctx(service, source=ADMIN, players=(), markers=None):
    return CommandContext(
        service=service,
        source=source,
        markers=markers if markers is not None else FakeMarkers(),
        players=list(players),
    )


def test_list_sorted_desc_with_stable_ties_and_positive_only(service, router):
    service.ledger.replace({
        "Zed": PlaytimeEntry(weeks={WEEK: 30}),
        "Alice": PlaytimeEntry(weeks={WEEK: 100}),
        "Bob": PlaytimeEntry(weeks={WEEK: 30}),
        "Idle": PlaytimeEntry(weeks={WEEK: 0}),
        "Old": PlaytimeEntry(weeks={"2024-W06": 500}),
    })
    result = router.execute("pvd list", _ctx(service, GUEST))
    assert result.success is True
    assert result.message.splitlines() == [
        "All players and their time:",
        "- Alice: 1 hours 40 minutes",
        "- Zed: 0 hours 30 minutes",
        "- Bob: 0 hours 30 minutes",
    ]


def test_list_empty(service, router):
    result = router.execute("pvd list", _ctx(service, GUEST))
    assert result.message == "All players and their time:\nNo player time data."


def test_list_active_includes_flagged_players_regardless_of_minutes(service, router):
    service.ledger.replace({
        "Alice": PlaytimeEntry(weeks={WEEK: 200}, status_flag=True),
        "Bob": PlaytimeEntry(weeks={WEEK: 0}, status_flag=True),
        "Carol": PlaytimeEntry(weeks={WEEK: 300}, status_flag=False),
    })
    result = router.execute("/pvd list active", _ctx(service, GUEST))
    assert result.message.splitlines() == [
        "Active PVD players and their time:",
        "- Alice: 3 hours 20 minutes",
        "- Bob: 0 hours 0 minutes",
    ]


def test_list_active_empty(service, router):
    result = router.execute("pvd list active", _ctx(service, GUEST))
    assert result.message.endswith("No active PVD players.")


def test_list_last_without_archive_is_no_data(service, router):
    result = router.execute("pvd list last", _ctx(service, GUEST))
    assert result.success is True
    assert result.message == "No data for last week."


def test_list_last_reads_previous_week_archive(service, store, router):
    store.write_archive("2024-W06", {
        "Bob": PlaytimeEntry(weeks={"2024-W06": 61}),
        "Alice": PlaytimeEntry(weeks={"2024-W06": 240}, status_flag=True),
        "Zero": PlaytimeEntry(weeks={"2024-W06": 0}),
    })
    result = router.execute("pvd list last", _ctx(service, GUEST))
    assert result.message.splitlines() == [
        "Player time for last week:",
        "- Alice: 4 hours 0 minutes",
        "- Bob: 1 hours 1 minutes",
    ]


def test_list_last_with_unreadable_archive_fails(service, store, router):
    store.base_dir.mkdir(parents=True)
    store.archive_path("2024-W06").write_text("{broken", encoding="utf-8")
    result = router.execute("pvd list last", _ctx(service, GUEST))
    assert result.success is False
    assert result.message == "Error loading data."


@pytest.mark.parametrize("command", [
    "pvd settings",
    "pvd settings afk work off",
    "pvd settings time default 10",
    "pvd settings time clear all",
    "pvd settings time set Alice 15",
])
def test_settings_require_admin_permission(service, router, command):
    result = router.execute(command, _ctx(service, GUEST))
    assert result.success is False
    assert "permission" in result.message
    assert service.settings.required_minutes == 180
    assert len(service.ledger) == 0


def test_settings_overview(service, router):
    result = router.execute("pvd settings", _ctx(service))
    assert result.success is True
    assert result.message.splitlines() == [
        "Current settings:",
        "- AFK mode: enabled",
        "- AFK time: 5 min",
        "- Required PVD time: 180 min",
    ]


def test_afk_status(service, router):
    result = router.execute("pvd settings afk", _ctx(service))
    assert result.message == "AFK mode: enabled\nCurrent threshold: 5 min"


@pytest.mark.parametrize("state, expected", [("on", True), ("ON", True), ("off", False), ("maybe", False)])
def test_afk_work_toggle_persists(service, store, router, state, expected):
    service.settings.afk_check_enabled = not expected
    result = router.execute(f"pvd settings afk work {state}", _ctx(service))
    assert result.success is True
    assert service.settings.afk_check_enabled is expected
    assert json.loads(store.settings_path.read_text(encoding="utf-8"))["afkCheckEnabled"] is expected


def test_afk_time_sets_threshold(service, store, router):
    result = router.execute("pvd settings afk time 12", _ctx(service))
    assert result.message == "AFK timer set to 12 min"
    assert service.settings.afk_time_threshold == 12
    assert store.load_settings().afk_time_threshold == 12


@pytest.mark.parametrize("value, message", [
    ("0", "Integer must not be less than 1, found 0"),
    ("abc", "Invalid integer 'abc'"),
])
def test_afk_time_rejects_invalid_values(service, router, value, message):
    result = router.execute(f"pvd settings afk time {value}", _ctx(service))
    assert result.success is False
    assert result.message == message
    assert service.settings.afk_time_threshold == 5


def test_time_shows_required_minutes(service, router):
    assert router.execute("pvd settings time", _ctx(service)).message == "Current PVD limit: 180 min"


def test_time_default_updates_threshold_and_rechecks_status(service, router):
    alice, bob = player("Alice"), player("Bob")
    markers = FakeMarkers(initial=[bob.player_id])
    service.ledger.set_minutes("Alice", WEEK, 50)
    service.ledger.set_minutes("Bob", WEEK, 20)
    service.ledger.get("Bob").status_flag = True

    result = router.execute("pvd settings time default 30", _ctx(service, players=[alice, bob], markers=markers))

    assert result.message == "New PVD limit: 30 min"
    assert markers.has_marker(alice.player_id) is True
    assert markers.has_marker(bob.player_id) is False
    assert service.ledger.get("Alice").status_flag is True
    assert service.ledger.get("Bob").status_flag is False


def test_clear_unknown_player_reports_not_found(service, router):
    result = router.execute("pvd settings time clear Ghost", _ctx(service))
    assert result.success is False
    assert result.message == "Player Ghost not found"


def test_clear_player_resets_current_week_and_revokes(service, store, router):
    alice = player("Alice")
    markers = FakeMarkers(initial=[alice.player_id])
    service.ledger.replace({"Alice": PlaytimeEntry(weeks={"2024-W06": 10, WEEK: 200}, status_flag=True)})

    result = router.execute("pvd settings time clear Alice", _ctx(service, players=[alice], markers=markers))

    assert result.success is True
    assert result.message == "Counter for Alice reset"
    assert service.ledger.get("Alice").weeks == {"2024-W06": 10, WEEK: 0}
    assert service.ledger.get("Alice").status_flag is False
    assert markers.has_marker(alice.player_id) is False
    assert store.load_ledger()["Alice"].weeks[WEEK] == 0


def test_clear_all_zeroes_every_week_and_revokes_online(service, router):
    alice, bob = player("Alice"), player("Bob")
    markers = FakeMarkers(initial=[alice.player_id, bob.player_id])
    service.ledger.replace({
        "Alice": PlaytimeEntry(weeks={"2024-W06": 10, WEEK: 200}, status_flag=True),
        "Carol": PlaytimeEntry(weeks={WEEK: 50}, status_flag=True),
    })

    result = router.execute("pvd settings time clear all", _ctx(service, players=[alice, bob], markers=markers))

    assert result.message == "All counters reset"
    assert service.ledger.get("Alice").weeks == {"2024-W06": 0, WEEK: 0}
    assert service.ledger.get("Carol").weeks == {WEEK: 0}
    assert not any(e.status_flag for _, e in service.ledger)
    assert markers.present == {alice.player_id: False, bob.player_id: False}


def test_set_uses_fixed_five_minute_rule_not_required_minutes(service, router):
    router.execute("pvd settings time default 10", _ctx(service))

    result = router.execute("pvd settings time set Alice 15", _ctx(service))
    assert result.message == "Set time for Alice: 15 minutes."
    assert service.ledger.get("Alice").weeks == {WEEK: 15}
    assert service.ledger.get("Alice").status_flag is True

    router.execute("pvd settings time set Bob 7", _ctx(service))
    # 7 < 10 required minutes, yet the set rule flags it
    assert service.ledger.get("Bob").status_flag is True

    router.execute("pvd settings time set Carol 4", _ctx(service))
    assert service.ledger.get("Carol").status_flag is False


def test_set_accepts_negative_values(service, store, router):
    result = router.execute("pvd settings time set Alice -20", _ctx(service))
    assert result.success is True
    assert service.ledger.get("Alice").weeks[WEEK] == -20
    assert service.ledger.get("Alice").status_flag is False
    assert store.load_ledger()["Alice"].weeks[WEEK] == -20


def test_set_does_not_touch_host_marker(service, router):
    alice = player("Alice")
    markers = FakeMarkers()
    router.execute("pvd settings time set Alice 500", _ctx(service, players=[alice], markers=markers))
    assert markers.has_marker(alice.player_id) is False


def test_unknown_command_and_usage(service, router):
    result = router.execute("pvd dance", _ctx(service))
    assert result.success is False
    assert result.message == "Unknown command: pvd dance"

    result = router.execute("pvd settings time set Alice", _ctx(service))
    assert result.success is False
    assert result.message == "Usage: pvd settings time set <player> <time>"


def test_player_named_all_is_shadowed_by_clear_all(service, router):
    service.ledger.set_minutes("all", WEEK, 10)
    service.ledger.set_minutes("Bob", WEEK, 10)
    router.execute("pvd settings time clear all", _ctx(service))
    assert service.ledger.minutes("Bob", WEEK) == 0


def test_clear_and_set_live_under_settings_time(service, router):
    # Only the settings time subtree accepts these admin commands
    result = router.execute("pvd settings set Alice 15", _ctx(service))
    assert result.success is False
    assert result.message == "Usage: pvd settings"
    result = router.execute("pvd settings clear all", _ctx(service))
    assert result.success is False
    assert len(service.ledger) == 0

    assert router.execute("pvd settings time set Alice 15", _ctx(service)).success is True
    assert router.execute("pvd settings time clear all", _ctx(service)).success is True
    assert service.ledger.minutes("Alice", WEEK) == 0


@pytest.mark.parametrize("value, message", [
    ("1_000", "Invalid integer '1_000'"),
    ("+5", "Invalid integer '+5'"),
    ("2147483648", "Integer must not be more than 2147483647, found 2147483648"),
    ("-2147483649", "Integer must not be less than -2147483648, found -2147483649"),
])
def test_set_accepts_only_32_bit_decimal_integers(service, router, value, message):
    result = router.execute(f"pvd settings time set Alice {value}", _ctx(service))
    assert result.success is False
    assert result.message == message
    assert service.ledger.get("Alice") is None


def test_set_accepts_32_bit_bounds(service, router):
    assert router.execute("pvd settings time set Alice 2147483647", _ctx(service)).success is True
    assert router.execute("pvd settings time set Bob -2147483648", _ctx(service)).success is True
    assert service.ledger.minutes("Alice", WEEK) == 2147483647


def test_afk_time_rejects_values_above_int_range(service, router):
    result = router.execute("pvd settings afk time 99999999999", _ctx(service))
    assert result.success is False
    assert result.message == "Integer must not be more than 2147483647, found 99999999999"
