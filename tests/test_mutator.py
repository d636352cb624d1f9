import pytest

from conftest import make_exercise
from fitgenius.mutator import move_exercise, swap_exercise


def names(plan, w, d):
    return [e.name for e in plan.weeks[w].schedule[d].exercises]


def test_move_exercise_reorders_within_day(plan):
    moved = move_exercise(plan, 0, 2, 2, 0)
    assert names(moved, 0, 2) == ["C", "A", "B", "D"]


def test_move_exercise_leaves_input_untouched(plan):
    before = plan.model_dump()
    move_exercise(plan, 0, 2, 2, 0)
    assert names(plan, 0, 2) == ["A", "B", "C", "D"]
    assert plan.model_dump() == before


def test_move_exercise_forward(plan):
    assert names(move_exercise(plan, 0, 2, 0, 3), 0, 2) == ["B", "C", "D", "A"]


def test_move_to_same_index_returns_equal_copy(plan):
    moved = move_exercise(plan, 0, 2, 1, 1)
    assert moved == plan
    assert moved is not plan


def test_move_only_touches_target_day(plan):
    moved = move_exercise(plan, 1, 2, 3, 0)
    assert names(moved, 0, 2) == ["A", "B", "C", "D"]
    assert names(moved, 1, 2) == ["D", "A", "B", "C"]


def test_move_out_of_range_raises(plan):
    with pytest.raises(IndexError):
        move_exercise(plan, 0, 2, 4, 0)
    with pytest.raises(IndexError):
        move_exercise(plan, 5, 0, 0, 1)


def test_swap_exercise_replaces_in_place(plan):
    swapped = swap_exercise(plan, 0, 0, 1, make_exercise("Incline Push-up"))
    assert names(swapped, 0, 0) == ["Squat", "Incline Push-up", "Plank"]
    assert names(plan, 0, 0) == ["Squat", "Push-up", "Plank"]


def test_swap_out_of_range_raises(plan):
    with pytest.raises(IndexError):
        swap_exercise(plan, 0, 1, 0, make_exercise("X"))
