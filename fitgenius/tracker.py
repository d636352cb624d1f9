"""Day and exercise completion tracking.

Completion cascades between a day and its exercises, but only in some directions:

- day -> exercises is total. Completing a day completes every exercise of that
  day and un-completing it clears them all, so "day complete implies all its
  exercises complete" holds after every day toggle.
- exercises -> day promotion is advisory. Completing the last open exercise of a
  workout day yields ``DayEligibleForCompletion``; the day itself is only added
  when the caller commits it through ``toggle_day``.
- exercises -> day demotion does not exist. Un-completing an exercise of a day
  that is already complete leaves the day complete.

All ids are positional (see ``models.make_day_id``), so completion records stay
bound to a slot even when the exercise in that slot is moved or swapped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, NamedTuple, Tuple, Union

from .models import (
    DayPlan,
    WorkoutCurriculum,
    make_day_id,
    make_exercise_id,
    parse_day_id,
    parse_exercise_id,
)


@dataclass(frozen=True)
class CompletionState:
    completed_days: FrozenSet[str] = field(default_factory=frozenset)
    completed_exercises: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_lists(cls, days: List[str], exercises: List[str]) -> "CompletionState":
        return cls(frozenset(days), frozenset(exercises))


@dataclass(frozen=True)
class Unchanged:
    """The exercise toggle did not make its day eligible for completion."""


@dataclass(frozen=True)
class DayEligibleForCompletion:
    day_id: str


ToggleOutcome = Union[Unchanged, DayEligibleForCompletion]


class ExerciseToggle(NamedTuple):
    state: CompletionState
    outcome: ToggleOutcome


class CompletionSummary(NamedTuple):
    total_workouts: int
    completed_workouts: int
    percentage: int


class DayStatus(NamedTuple):
    day_id: str
    is_workout: bool
    is_complete: bool


class CompletionTracker:
    def __init__(self, plan: WorkoutCurriculum) -> None:
        self.plan = plan

    def _day(self, day_id: str) -> DayPlan:
        week_idx, day_idx = parse_day_id(day_id)
        return self.plan.day(week_idx, day_idx)

    def exercise_ids(self, day_id: str) -> Tuple[str, ...]:
        day = self._day(day_id)
        return tuple(make_exercise_id(day_id, i) for i in range(len(day.exercises)))

    def toggle_day(self, state: CompletionState, day_id: str) -> CompletionState:
        day = self._day(day_id)
        if not day.is_workout_day:
            raise ValueError(f"{day_id} is a rest day and cannot be completed")
        ex_ids = self.exercise_ids(day_id)
        if day_id in state.completed_days:
            return CompletionState(
                state.completed_days - {day_id},
                state.completed_exercises.difference(ex_ids),
            )
        return CompletionState(
            state.completed_days | {day_id},
            state.completed_exercises.union(ex_ids),
        )

    def toggle_exercise(self, state: CompletionState, exercise_id: str) -> ExerciseToggle:
        day_id, ex_idx = parse_exercise_id(exercise_id)
        week_idx, day_idx = parse_day_id(day_id)
        day = self.plan.day(week_idx, day_idx)
        # Validates the index too
        self.plan.exercise(week_idx, day_idx, ex_idx)

        if exercise_id in state.completed_exercises:
            # Demotion: the owning day keeps whatever status it had
            new_state = CompletionState(
                state.completed_days, state.completed_exercises - {exercise_id}
            )
            return ExerciseToggle(new_state, Unchanged())

        new_state = CompletionState(
            state.completed_days, state.completed_exercises | {exercise_id}
        )
        if (
            day.is_workout_day
            and day_id not in state.completed_days
            and all(i in new_state.completed_exercises for i in self.exercise_ids(day_id))
        ):
            return ExerciseToggle(new_state, DayEligibleForCompletion(day_id))
        return ExerciseToggle(new_state, Unchanged())

    # --- statistics ---
    def workout_day_ids(self) -> List[str]:
        ids: List[str] = []
        for w, week in enumerate(self.plan.weeks):
            for d, day in enumerate(week.schedule):
                if day.is_workout_day:
                    ids.append(make_day_id(w, d))
        return ids

    def summary(self, state: CompletionState) -> CompletionSummary:
        workout_ids = self.workout_day_ids()
        done = sum(1 for i in workout_ids if i in state.completed_days)
        total = len(workout_ids)
        pct = int(done * 100 / total + 0.5) if total else 0
        return CompletionSummary(total, done, pct)

    def week_overview(self, state: CompletionState, week_idx: int) -> List[DayStatus]:
        if not 0 <= week_idx < len(self.plan.weeks):
            raise IndexError(f"week index {week_idx} out of range")
        out: List[DayStatus] = []
        for d, day in enumerate(self.plan.weeks[week_idx].schedule):
            day_id = make_day_id(week_idx, d)
            out.append(DayStatus(day_id, day.is_workout_day, day_id in state.completed_days))
        return out
