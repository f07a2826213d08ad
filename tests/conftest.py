from datetime import date
from typing import Dict, Iterable

import pytest

from pvdtime.core.service import PlaytimeService
from pvdtime.core.storage import PlaytimeStore
from pvdtime.models import OnlinePlayer


class FakeMarkers:
    """In-memory MarkerHost keyed by player id."""

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self.present: Dict[str, bool] = {pid: True for pid in initial}

    def has_marker(self, player_id: str) -> bool:
        return self.present.get(player_id, False)

    def set_marker(self, player_id: str, present: bool) -> None:
        self.present[player_id] = present


class FakeToday:
    """Mutable local date source for week computations."""

    def __init__(self, day: date) -> None:
        self.day = day

    def __call__(self) -> date:
        return self.day


def player(name: str, x: float = 0.0, y: float = 64.0, z: float = 0.0) -> OnlinePlayer:
    return OnlinePlayer(player_id=f"uuid-{name}", name=name, x=x, y=y, z=z)


@pytest.fixture
def store(tmp_path) -> PlaytimeStore:
    return PlaytimeStore(tmp_path / "playtime_logs")


@pytest.fixture
def today() -> FakeToday:
    # Wednesday of ISO week 2024-W07
    return FakeToday(date(2024, 2, 14))


@pytest.fixture
def service(store, today) -> PlaytimeService:
    return PlaytimeService(store=store, today=today)


@pytest.fixture
def markers() -> FakeMarkers:
    return FakeMarkers()
