"""Data models for the archiver."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple


def date_key(value: date) -> str:
    """Return the ISO key (YYYY-MM-DD) used to look a date up in the index."""
    return value.strftime('%Y-%m-%d')


def date_relpath(value: date) -> str:
    """Return the three level YYYY/MM/DD path for a date."""
    return value.strftime('%Y/%m/%d')


def date_range(value: date) -> Tuple[date, date]:
    """Return the half-open range [value, value + 1 day)."""
    return value, value + timedelta(days=1)


class RemoteArchiveIndex:
    """Immutable snapshot of the dates already archived on the remote host."""

    def __init__(self, keys: Iterable[str] = ()):
        self._keys: FrozenSet[str] = frozenset(keys)

    def __contains__(self, item) -> bool:
        if isinstance(item, date):
            item = date_key(item)
        return item in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._keys))

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RemoteArchiveIndex):
            return NotImplemented
        return self._keys == other._keys

    def __repr__(self) -> str:
        return f"RemoteArchiveIndex({sorted(self._keys)!r})"

    def dates(self) -> List[date]:
        """Return the archived dates in ascending order."""
        return [date.fromisoformat(key) for key in self]


class ExportOutcome(Enum):
    """Lifecycle of one date's local export directory."""
    NOT_CREATED = "not_created"
    EXPORTING = "exporting"
    DISCARDED_EMPTY = "discarded_empty"
    RETAINED = "retained"


class RunState(Enum):
    """States of a single archiver run."""
    IDLE = "idle"
    PROBING_GAPS = "probing_gaps"
    PROCESSING_DATES = "processing_dates"
    SYNCING = "syncing"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    INTERRUPTED = "interrupted"


@dataclass
class DateResult:
    """Result of processing one date locally."""
    target_date: date
    outcome: ExportOutcome
    path: str


@dataclass
class RunResult:
    """Summary of an archiver run."""
    missing_dates: List[date] = field(default_factory=list)
    date_results: List[DateResult] = field(default_factory=list)
    outcomes: Dict[date, ExportOutcome] = field(default_factory=dict)
    synced: bool = False
    probe_failed: bool = False
    state: RunState = RunState.IDLE
    error_message: Optional[str] = None

    @property
    def retained_dates(self) -> List[date]:
        return [r.target_date for r in self.date_results if r.outcome == ExportOutcome.RETAINED]

    @property
    def discarded_dates(self) -> List[date]:
        return [r.target_date for r in self.date_results if r.outcome == ExportOutcome.DISCARDED_EMPTY]
