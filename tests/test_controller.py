import datetime as dt
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import FIXED_NOW, make_exercise, make_profile
from fitgenius.controller import FitnessController, NoPlanError, next_monday
from fitgenius.generation import GenerationError
from fitgenius.models import ActivityAnalysis, ProgressEntry
from fitgenius.persistence import MemoryKeyValueStore
from fitgenius.timer import Idle, ManualTicker, Running
from fitgenius.tracker import DayEligibleForCompletion, Unchanged


def test_next_monday():
    assert next_monday(dt.date(2024, 1, 10)) == dt.date(2024, 1, 15)
    assert next_monday(dt.date(2024, 1, 15)) == dt.date(2024, 1, 22)
    assert next_monday(dt.date(2024, 1, 14)) == dt.date(2024, 1, 15)


def test_generate_plan_commits_plan_and_profile(controller, provider):
    plan = controller.generate_plan(make_profile(), language="vi")
    assert provider.languages == ["vi"]
    assert plan.start_date == "2024-01-15"
    assert controller.plan == plan
    assert controller.profile == make_profile()


def test_generation_failure_leaves_state_untouched(planned, provider):
    old_plan, old_profile = planned.plan, planned.profile
    planned.toggle_day("w0-d0")
    provider.fail = True
    with pytest.raises(GenerationError):
        planned.generate_plan(make_profile(age=45))
    assert planned.plan == old_plan
    assert planned.profile == old_profile
    assert "w0-d0" in planned.completion.completed_days


def test_regeneration_clears_completion_and_logs_but_not_progress(planned):
    planned.complete_day("w0-d0", weight=81.5)
    planned.generate_plan(make_profile())
    assert planned.completion.completed_days == frozenset()
    assert planned.logbook.count == 0
    assert planned.ledger.latest_weight == 81.5


def test_reset_keeps_profile(planned, kv):
    planned.toggle_day("w0-d0")
    planned.reset()
    assert planned.plan is None
    assert planned.profile is not None
    assert "fitgenius_plan" not in kv.data
    assert kv.data["fitgenius_completed"] == "[]"
    with pytest.raises(NoPlanError):
        planned.toggle_day("w0-d0")


def test_state_survives_restart(planned, kv, provider):
    planned.toggle_day("w0-d2")
    planned.toggle_exercise("w1-d0-ex0")
    planned.add_progress(ProgressEntry(date="2024-01-09", weight=82))
    planned.move_exercise(0, 2, 3, 0)

    reloaded = FitnessController(kv, provider, ticker_factory=ManualTicker)
    assert reloaded.plan == planned.plan
    assert reloaded.completion == planned.completion
    assert reloaded.ledger == planned.ledger
    assert reloaded.profile == planned.profile


def test_exercise_flow_signals_then_complete_day_commits(planned):
    assert planned.toggle_exercise("w0-d0-ex0") == Unchanged()
    assert planned.toggle_exercise("w0-d0-ex1") == Unchanged()
    assert planned.toggle_exercise("w0-d0-ex2") == DayEligibleForCompletion("w0-d0")
    assert "w0-d0" not in planned.completion.completed_days

    log = planned.complete_day("w0-d0", notes="Felt strong", weight=81.0)
    assert "w0-d0" in planned.completion.completed_days
    assert planned.logbook.logs[0] == log
    assert (log.day_id, log.day_name, log.focus, log.duration, log.notes) == (
        "w0-d0",
        "Monday",
        "Full Body",
        "40 min",
        "Felt strong",
    )
    assert log.date == FIXED_NOW.isoformat()
    assert planned.ledger.last == ProgressEntry(date="2024-01-10", weight=81.0)


def test_complete_day_without_weight_records_no_progress(planned):
    planned.complete_day("w0-d2")
    assert planned.ledger.entries == ()
    assert planned.summary().completed_workouts == 1


def test_complete_day_is_safe_on_completed_day(planned):
    planned.toggle_day("w0-d0")
    planned.complete_day("w0-d0")
    assert "w0-d0" in planned.completion.completed_days
    assert planned.logbook.count == 1


def test_swap_keeps_positional_completion(planned):
    planned.toggle_exercise("w0-d2-ex1")
    planned.swap_exercise(0, 2, 1, make_exercise("Dips"))
    assert planned.plan.exercise(0, 2, 1).name == "Dips"
    assert "w0-d2-ex1" in planned.completion.completed_exercises


def test_suggest_alternatives_uses_current_exercise(planned):
    alts = planned.suggest_alternatives(0, 0, 0)
    assert [a.name for a in alts] == ["Squat alt 0", "Squat alt 1", "Squat alt 2"]


def test_analyze_and_log_activity(planned):
    analysis = planned.analyze_activity(b"\x89PNG...")
    log = planned.log_activity(analysis, notes="park run")
    assert planned.logbook.logs[0] == log
    assert log.day_id is None
    assert (log.day_name, log.duration, log.calories) == ("Running", "30 min", 320)


def test_analyze_failure_surfaces_error(planned, provider):
    provider.fail = True
    with pytest.raises(GenerationError):
        planned.analyze_activity(b"img")
    planned.log_activity(ActivityAnalysis(activity_type="Yoga", duration="20 min"))
    assert planned.logbook.logs[0].day_name == "Yoga"


def test_exercise_visual_is_cached(planned, provider, kv):
    assert planned.exercise_visual("Squat") == "https://img.example/squat.png"
    assert planned.exercise_visual("Squat") == "https://img.example/squat.png"
    assert provider.visual_calls == ["Squat"]
    assert "Squat" in kv.data["fitgenius_visuals"]


def test_missing_visual_is_retryable(planned, provider):
    provider.visual_url = None
    assert planned.exercise_visual("Plank") is None
    provider.visual_url = "https://img.example/plank.png"
    assert planned.exercise_visual("Plank") == "https://img.example/plank.png"
    assert provider.visual_calls == ["Plank", "Plank"]


def test_rest_timer_uses_exercise_rest(planned, tickers):
    running = planned.start_rest_timer("w0-d0-ex2")
    assert running == Running(remaining=60, total=60, label="Plank")
    planned.start_rest_timer("w0-d0-ex0")
    assert tickers[0].cancelled
    planned.stop_rest_timer()
    assert planned.timer.state == Idle()


def test_operations_without_plan_raise(controller):
    with pytest.raises(NoPlanError):
        controller.summary()
    with pytest.raises(NoPlanError):
        controller.move_exercise(0, 0, 0, 1)


class SlowStore(MemoryKeyValueStore):
    """Widens the gap between reading state and committing it."""

    def set(self, key, text):
        time.sleep(0.002)
        super().set(key, text)


def test_concurrent_toggles_are_not_lost(provider):
    ctl = FitnessController(SlowStore(), provider, ticker_factory=ManualTicker, clock=lambda: FIXED_NOW)
    ctl.generate_plan(make_profile())
    exercise_ids = [
        ex_id for day_id in ctl.tracker().workout_day_ids() for ex_id in ctl.tracker().exercise_ids(day_id)
    ]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(ctl.toggle_exercise, exercise_ids))
    assert ctl.completion.completed_exercises == frozenset(exercise_ids)

    reloaded = FitnessController(ctl.persistence.store, provider, ticker_factory=ManualTicker)
    assert reloaded.completion == ctl.completion
    ctl.close()


def test_concurrent_progress_entries_are_not_lost(planned):
    entries = [ProgressEntry(date=f"2024-01-{day:02d}", weight=80 + day / 10) for day in range(1, 21)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(planned.add_progress, entries))
    assert list(planned.ledger.entries) == entries
