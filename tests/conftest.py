import datetime as dt
from typing import List, Optional

import pytest

from fitgenius.controller import FitnessController
from fitgenius.generation import GenerationError
from fitgenius.models import (
    ActivityAnalysis,
    DayPlan,
    Equipment,
    Exercise,
    UserProfile,
    WeeklyPlan,
    WorkoutCurriculum,
)
from fitgenius.persistence import MemoryKeyValueStore
from fitgenius.timer import ManualTicker

FIXED_NOW = dt.datetime(2024, 1, 10, 18, 30)  # a Wednesday


def make_exercise(name: str, rest: str = "60s") -> Exercise:
    return Exercise(name=name, sets="3", reps="10", rest=rest, instructions=f"Do {name} with control")


def rest(day_name: str) -> DayPlan:
    return DayPlan(day_name=day_name, focus="Rest", estimated_duration="0 min")


def make_week(week_number: int) -> WeeklyPlan:
    return WeeklyPlan(
        week_number=week_number,
        focus="Foundation",
        schedule=[
            DayPlan(
                day_name="Monday",
                focus="Full Body",
                estimated_duration="40 min",
                exercises=[make_exercise("Squat"), make_exercise("Push-up"), make_exercise("Plank", rest="1 min")],
            ),
            rest("Tuesday"),
            DayPlan(
                day_name="Wednesday",
                focus="Upper Body",
                estimated_duration="35 min",
                exercises=[make_exercise(n) for n in ("A", "B", "C", "D")],
            ),
            DayPlan(
                day_name="Thursday",
                focus="Active Rest",
                estimated_duration="15 min",
                exercises=[make_exercise("Stretch")],
            ),
            rest("Friday"),
            rest("Saturday"),
            rest("Sunday"),
        ],
    )


def make_plan(weeks: int = 2) -> WorkoutCurriculum:
    return WorkoutCurriculum(
        program_name="Home Strength Foundations",
        description="A progressive bodyweight plan",
        nutrition_tips=["Eat enough protein", "Drink water"],
        weeks=[make_week(i + 1) for i in range(weeks)],
    )


def make_profile(**overrides) -> UserProfile:
    base = {
        "age": 30,
        "height": 180,
        "weight": 82,
        "gender": "Male",
        "goal": "Build Muscle",
        "level": "Beginner",
        "equipment": ["Bodyweight Only", "Dumbbells"],
        "days_per_week": 3,
        "duration_per_session": 45,
        "injuries": None,
    }
    base.update(overrides)
    return UserProfile(**base)


class FakeProvider:
    def __init__(self, plan: Optional[WorkoutCurriculum] = None) -> None:
        self.plan = plan or make_plan()
        self.fail = False
        self.visual_url: Optional[str] = "https://img.example/squat.png"
        self.visual_calls: List[str] = []
        self.languages: List[str] = []

    def generate_plan(self, profile, language):
        self.languages.append(language)
        if self.fail:
            raise GenerationError("Failed to generate plan. Please try again.")
        return self.plan.model_copy(deep=True)

    def suggest_alternatives(self, exercise_name, equipment: List[Equipment], language):
        if self.fail:
            raise GenerationError("Could not find alternative exercises right now.")
        return [make_exercise(f"{exercise_name} alt {i}") for i in range(3)]

    def analyze_activity_image(self, image_bytes, language):
        if self.fail:
            raise GenerationError("Could not analyze the image.")
        return ActivityAnalysis(activity_type="Running", duration="30 min", calories=320, summary="Easy 5k")

    def render_exercise_visual(self, exercise_name):
        self.visual_calls.append(exercise_name)
        return self.visual_url


@pytest.fixture
def plan() -> WorkoutCurriculum:
    return make_plan()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def tickers() -> List[ManualTicker]:
    return []


@pytest.fixture
def controller(kv, provider, tickers) -> FitnessController:
    def factory() -> ManualTicker:
        t = ManualTicker()
        tickers.append(t)
        return t

    ctl = FitnessController(kv, provider, ticker_factory=factory, clock=lambda: FIXED_NOW)
    yield ctl
    ctl.close()


@pytest.fixture
def planned(controller) -> FitnessController:
    controller.generate_plan(make_profile())
    return controller
