"""Structural edits to a curriculum.

Both operations return a fresh deep copy; the snapshot passed in is left
untouched. Completion state is never consulted or changed here.
"""

from __future__ import annotations

from .models import Exercise, WorkoutCurriculum


def move_exercise(
    plan: WorkoutCurriculum, week_idx: int, day_idx: int, from_idx: int, to_idx: int
) -> WorkoutCurriculum:
    """Move one exercise to another position within the same day."""
    new_plan = plan.model_copy(deep=True)
    exercises = new_plan.day(week_idx, day_idx).exercises
    n = len(exercises)
    if not (0 <= from_idx < n and 0 <= to_idx < n):
        raise IndexError(f"move {from_idx}->{to_idx} out of range for {n} exercises")
    if from_idx != to_idx:
        exercises.insert(to_idx, exercises.pop(from_idx))
    return new_plan


def swap_exercise(
    plan: WorkoutCurriculum, week_idx: int, day_idx: int, ex_idx: int, new_exercise: Exercise
) -> WorkoutCurriculum:
    """Replace the exercise at a position; the position keeps its id."""
    new_plan = plan.model_copy(deep=True)
    # raises IndexError on a bad position
    new_plan.exercise(week_idx, day_idx, ex_idx)
    new_plan.day(week_idx, day_idx).exercises[ex_idx] = new_exercise.model_copy(deep=True)
    return new_plan
