"""Body-weight history and workout session log."""

from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .models import ProgressEntry, WorkoutLog

_ID_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class ProgressLedger:
    """Weight samples, always sorted ascending by date."""

    entries: Tuple[ProgressEntry, ...] = field(default_factory=tuple)

    def add(self, entry: ProgressEntry) -> "ProgressLedger":
        # sorted() is stable, so equal dates keep their insertion order
        return ProgressLedger(tuple(sorted((*self.entries, entry), key=lambda e: e.date)))

    @property
    def first(self) -> Optional[ProgressEntry]:
        return self.entries[0] if self.entries else None

    @property
    def last(self) -> Optional[ProgressEntry]:
        return self.entries[-1] if self.entries else None

    @property
    def latest_weight(self) -> Optional[float]:
        return self.last.weight if self.last else None

    @property
    def net_change(self) -> Optional[float]:
        if len(self.entries) < 2:
            return None
        return round(self.last.weight - self.first.weight, 1)


def new_log_id(length: int = 9) -> str:
    """Short random token; unique enough for a local history."""
    return "".join(random.choice(_ID_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class WorkoutLogBook:
    """Completed sessions, newest first."""

    logs: Tuple[WorkoutLog, ...] = field(default_factory=tuple)

    def append(self, log: WorkoutLog) -> "WorkoutLogBook":
        return WorkoutLogBook((log, *self.logs))

    def for_day(self, day_id: str) -> Tuple[WorkoutLog, ...]:
        return tuple(log for log in self.logs if log.day_id == day_id)

    @property
    def count(self) -> int:
        return len(self.logs)
