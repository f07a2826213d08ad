from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from pvdtime.models import LeaderboardRow, PlaytimeEntry


class PlaytimeLedger:
    """In-memory mapping of player name -> PlaytimeEntry.

    Iteration follows insertion order, which is also the tie-break order of
    the leaderboards (sorting is stable).
    """

    def __init__(self, entries: Optional[Dict[str, PlaytimeEntry]] = None) -> None:
        self._entries: Dict[str, PlaytimeEntry] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[Tuple[str, PlaytimeEntry]]:
        return iter(list(self._entries.items()))

    @property
    def entries(self) -> Dict[str, PlaytimeEntry]:
        return self._entries

    def get(self, name: str) -> Optional[PlaytimeEntry]:
        return self._entries.get(name)

    def ensure_entry(self, name: str, week: str) -> PlaytimeEntry:
        """Return the entry for `name`, creating it with zero minutes for `week` if absent."""
        entry = self._entries.get(name)
        if entry is None:
            entry = PlaytimeEntry(weeks={week: 0}, status_flag=False)
            self._entries[name] = entry
        return entry

    def add_minutes(self, name: str, week: str, minutes: int = 1) -> int:
        entry = self.ensure_entry(name, week)
        entry.weeks[week] = entry.weeks.get(week, 0) + minutes
        return entry.weeks[week]

    def minutes(self, name: str, week: str) -> int:
        entry = self._entries.get(name)
        return entry.minutes_for(week) if entry is not None else 0

    def set_minutes(self, name: str, week: str, minutes: int) -> PlaytimeEntry:
        entry = self._entries.get(name)
        if entry is None:
            entry = PlaytimeEntry(weeks={}, status_flag=False)
            self._entries[name] = entry
        entry.weeks[week] = int(minutes)
        return entry

    def zero_all(self) -> None:
        """Reset every week counter of every entry to 0 and drop all status flags."""
        for entry in self._entries.values():
            for week in entry.weeks:
                entry.weeks[week] = 0
            entry.status_flag = False

    def clear(self) -> None:
        self._entries.clear()

    def replace(self, entries: Dict[str, PlaytimeEntry]) -> None:
        self._entries = dict(entries)

    def week_snapshot(self, week: str) -> Dict[str, PlaytimeEntry]:
        """Copy of the entries that have a counter for `week`, reduced to that week only."""
        snapshot: Dict[str, PlaytimeEntry] = {}
        for name, entry in self._entries.items():
            if week in entry.weeks:
                snapshot[name] = PlaytimeEntry(weeks={week: entry.weeks[week]}, status_flag=entry.status_flag)
        return snapshot


def leaderboard(entries: Dict[str, PlaytimeEntry], week: str, *, flagged_only: bool = False) -> List[LeaderboardRow]:
    """Rows sorted by minutes descending, ties kept in insertion order.

    Regular boards keep only positive minutes; the flagged variant keeps every
    entry holding the status flag regardless of minutes.
    """
    rows: List[LeaderboardRow] = []
    for name, entry in entries.items():
        minutes = entry.minutes_for(week)
        if flagged_only:
            if entry.status_flag:
                rows.append(LeaderboardRow(name=name, minutes=minutes))
        elif minutes > 0:
            rows.append(LeaderboardRow(name=name, minutes=minutes))
    rows.sort(key=lambda row: row.minutes, reverse=True)
    return rows


__all__ = ["PlaytimeLedger", "leaderboard"]
