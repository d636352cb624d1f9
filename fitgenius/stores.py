from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from .models import UserProfile, WorkoutCurriculum
from .persistence import PLAN_KEY, PROFILE_KEY, PersistenceLayer

T = TypeVar("T")


class SnapshotStore(Generic[T]):
    """Holds one in-memory value and mirrors every replacement to storage.

    An absent value (``None``) clears the stored snapshot instead of writing one.
    """

    def __init__(self, persistence: PersistenceLayer, key: str, type_: Any, default: T) -> None:
        self.persistence = persistence
        self.key = key
        self.type_ = type_
        self._value: T = persistence.load(key, default, type_)

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        if value is None:
            self.persistence.clear(self.key)
        else:
            self.persistence.save(self.key, value, self.type_)


class ProfileStore(SnapshotStore[Optional[UserProfile]]):
    def __init__(self, persistence: PersistenceLayer) -> None:
        super().__init__(persistence, PROFILE_KEY, Optional[UserProfile], None)


class PlanStore(SnapshotStore[Optional[WorkoutCurriculum]]):
    def __init__(self, persistence: PersistenceLayer) -> None:
        super().__init__(persistence, PLAN_KEY, Optional[WorkoutCurriculum], None)
