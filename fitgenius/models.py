from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Goal(str, Enum):
    LOSE_WEIGHT = "Lose Weight"
    BUILD_MUSCLE = "Build Muscle"
    IMPROVE_ENDURANCE = "Improve Endurance"
    FLEXIBILITY = "Flexibility & Mobility"
    GENERAL_FITNESS = "General Fitness"


class ExperienceLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Equipment(str, Enum):
    NONE = "Bodyweight Only"
    YOGA_MAT = "Yoga Mat"
    JUMP_ROPE = "Jump Rope"
    DUMBBELLS = "Dumbbells"
    KETTLEBELL = "Kettlebell"
    RESISTANCE_BANDS = "Resistance Bands"
    PULL_UP_BAR = "Pull-up Bar"
    BENCH = "Adjustable Bench"
    FOAM_ROLLER = "Foam Roller"
    BARBELL = "Barbell & Plates"
    FULL_HOME_GYM = "Full Home Gym"


class UserProfile(BaseModel):
    age: int = Field(ge=13, le=100)
    height: float = Field(gt=0, description="cm")
    weight: float = Field(gt=0, description="kg")
    gender: Gender
    goal: Goal
    level: ExperienceLevel
    equipment: List[Equipment] = Field(default_factory=list)
    days_per_week: int = Field(ge=1, le=7)
    duration_per_session: int = Field(ge=10, le=180, description="minutes")
    injuries: Optional[str] = None


class Exercise(BaseModel):
    name: str
    sets: str
    reps: str
    rest: str = Field(description="Free text, e.g. '60s' or '2 min'")
    notes: Optional[str] = None
    instructions: Optional[str] = Field(default=None, description="Execution cue (max 30 words)")
    video_url: Optional[str] = None


class DayPlan(BaseModel):
    day_name: str = Field(description="Monday .. Sunday")
    focus: str = Field(description="e.g. Legs & Core, or Rest")
    estimated_duration: str = ""
    exercises: List[Exercise] = Field(default_factory=list)

    @property
    def is_workout_day(self) -> bool:
        return bool(self.exercises) and "rest" not in self.focus.lower()


class WeeklyPlan(BaseModel):
    week_number: int
    focus: str = Field(description="Main goal of this week (e.g. Hypertrophy, Stability)")
    schedule: List[DayPlan] = Field(default_factory=list)


class WorkoutCurriculum(BaseModel):
    program_name: str
    description: str
    nutrition_tips: List[str] = Field(default_factory=list)
    start_date: Optional[str] = None
    weeks: List[WeeklyPlan] = Field(default_factory=list)

    def day(self, week_idx: int, day_idx: int) -> DayPlan:
        """Return the day at a position, raising IndexError when it does not exist."""
        if not 0 <= week_idx < len(self.weeks):
            raise IndexError(f"week index {week_idx} out of range")
        schedule = self.weeks[week_idx].schedule
        if not 0 <= day_idx < len(schedule):
            raise IndexError(f"day index {day_idx} out of range for week {week_idx}")
        return schedule[day_idx]

    def exercise(self, week_idx: int, day_idx: int, ex_idx: int) -> Exercise:
        exercises = self.day(week_idx, day_idx).exercises
        if not 0 <= ex_idx < len(exercises):
            raise IndexError(f"exercise index {ex_idx} out of range for w{week_idx}-d{day_idx}")
        return exercises[ex_idx]


class ProgressEntry(BaseModel):
    date: str = Field(description="ISO date, YYYY-MM-DD")
    weight: float = Field(gt=0)

    @field_validator("date")
    @classmethod
    def _iso_date(cls, v: str) -> str:
        # Normalised so plain string ordering is chronological
        return dt.date.fromisoformat(v[:10]).isoformat()


class WorkoutLog(BaseModel):
    id: str
    date: str
    day_id: Optional[str] = None
    day_name: str
    focus: str
    duration: str
    notes: Optional[str] = None
    image_url: Optional[str] = None
    calories: Optional[int] = None


class ActivityAnalysis(BaseModel):
    activity_type: str = "Workout"
    duration: str = ""
    calories: Optional[int] = None
    summary: str = ""


# --- positional identifiers ---

_DAY_ID_RE = re.compile(r"^w(\d+)-d(\d+)$")
_EXERCISE_ID_RE = re.compile(r"^(w\d+-d\d+)-ex(\d+)$")


def make_day_id(week_idx: int, day_idx: int) -> str:
    return f"w{week_idx}-d{day_idx}"


def make_exercise_id(day_id: str, ex_idx: int) -> str:
    return f"{day_id}-ex{ex_idx}"


def parse_day_id(day_id: str) -> Tuple[int, int]:
    m = _DAY_ID_RE.match(day_id or "")
    if not m:
        raise ValueError(f"Malformed day id: {day_id!r}")
    return int(m.group(1)), int(m.group(2))


def parse_exercise_id(exercise_id: str) -> Tuple[str, int]:
    """Split an exercise id into its owning day id and exercise index."""
    m = _EXERCISE_ID_RE.match(exercise_id or "")
    if not m:
        raise ValueError(f"Malformed exercise id: {exercise_id!r}")
    return m.group(1), int(m.group(2))
