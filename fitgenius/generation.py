import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from pydantic import BaseModel, Field

from langchain_core.messages import HumanMessage
from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI
from langchain_community.utilities.dalle_image_generator import DallEAPIWrapper

from .config import CHAT_MODEL, IMAGE_MODEL, PLAN_WEEKS
from .models import ActivityAnalysis, Equipment, Exercise, UserProfile, WorkoutCurriculum

logger = logging.getLogger(__name__)

GENERIC_PLAN_ERROR = "Failed to generate plan. Please try again. Ensure you have a valid API key."
GENERIC_ALTERNATIVES_ERROR = "Could not find alternative exercises right now. Please try again."
GENERIC_ANALYSIS_ERROR = "Could not analyze the image. Please enter the workout manually."


class GenerationError(RuntimeError):
    """A provider call failed; ``str(err)`` is safe to show to the user."""


class ContentProvider(Protocol):
    def generate_plan(self, profile: UserProfile, language: str) -> WorkoutCurriculum: ...

    def suggest_alternatives(
        self, exercise_name: str, equipment: List[Equipment], language: str
    ) -> List[Exercise]: ...

    def analyze_activity_image(self, image_bytes: bytes, language: str) -> ActivityAnalysis: ...

    def render_exercise_visual(self, exercise_name: str) -> Optional[str]: ...


@dataclass
class ProviderConfig:
    chat_model: str = CHAT_MODEL
    image_model: str = IMAGE_MODEL
    plan_weeks: int = PLAN_WEEKS
    temperature: float = 0.7


class ExerciseAlternatives(BaseModel):
    alternatives: List[Exercise] = Field(description="Exactly 3 alternative exercises")


PLAN_PROMPT = PromptTemplate.from_template(
    """
    Act as a world-class certified personal trainer and strength coach.
    Create a {weeks}-week home workout curriculum for a user with the following profile:

    - Age: {age}
    - Gender: {gender}
    - Height: {height} cm
    - Weight: {weight} kg
    - Primary Goal: {goal}
    - Experience Level: {level}
    - Available Equipment: {equipment}
    - Commitment: {days_per_week} days per week
    - Time per session: {duration} minutes
    - Physical Limitations/Injuries: {injuries}

    The plan should be progressive, getting slightly harder or changing focus week over week.

    Each week MUST have exactly 7 days, starting with Monday and ending with Sunday.
    Assign workouts to specific days based on the commitment (e.g. 3 days/week: Mon/Wed/Fri).
    Mark non-workout days with the focus "Rest" or "Active Recovery" and no exercises.

    Include 3-5 concise nutrition tips specific to the goal.
    For each exercise give sets, reps, rest (e.g. "60s" or "2 min") and a concise
    "instructions" field (max 30 words) with the main form cue.
    Optionally provide a "video_url" (e.g. a YouTube search link for the exercise).

    Write all user-facing text in the language with code "{language}".
    """
)

ALTERNATIVES_PROMPT = PromptTemplate.from_template(
    """
    Suggest exactly 3 alternative exercises that can replace "{exercise}" and train the same
    muscles. Only use this equipment: {equipment}.
    Give sets, reps, rest and a short "instructions" cue (max 30 words) for each.
    Write all user-facing text in the language with code "{language}".
    """
)

ANALYSIS_PROMPT = (
    "This image shows a fitness activity or a workout tracker screen. "
    "Reply with a single JSON object with the keys "
    '"activity_type" (string), "duration" (string, e.g. "45 min"), '
    '"calories" (integer or null) and "summary" (one sentence). '
    'Write the text values in the language with code "{language}".'
)

VISUAL_PROMPT = (
    "A minimalist, high-contrast white-line vector illustration on a solid black background "
    'showing the exercise: "{exercise}". Simple, clean and instructional.'
)


def _image_mime(data: bytes) -> str:
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:3] == b"GIF":
        return "image/gif"
    return "image/jpeg"


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    m = re.search(r"\d+", str(value))
    return int(m.group(0)) if m else None


def extract_activity_analysis(text: str) -> ActivityAnalysis:
    """Best-effort pull of the analysis fields out of a model reply."""
    data: dict = {}
    m = re.search(r"\{.*\}", text or "", re.DOTALL)
    if m:
        try:
            parsed = json.loads(m.group(0))
            if isinstance(parsed, dict):
                data = parsed
        except ValueError:
            logger.warning("Activity analysis reply was not valid JSON")
    # Without JSON the raw reply is still a useful summary
    summary = data.get("summary") if data else (text or "").strip()
    return ActivityAnalysis(
        activity_type=str(data.get("activity_type") or data.get("activityType") or "Workout"),
        duration=str(data.get("duration") or ""),
        calories=_as_int(data.get("calories")),
        summary=str(summary or ""),
    )


def validate_curriculum(plan: WorkoutCurriculum) -> WorkoutCurriculum:
    """Reject curricula the engine cannot track; structure only, not content quality."""
    if not plan.weeks:
        raise ValueError("curriculum has no weeks")
    for week in plan.weeks:
        if not week.schedule:
            raise ValueError(f"week {week.week_number} has no days")
        if len(week.schedule) != 7:
            logger.warning("Week %s has %d days instead of 7", week.week_number, len(week.schedule))
    return plan


class OpenAIContentProvider:
    def __init__(
        self,
        cfg: Optional[ProviderConfig] = None,
        llm: Optional[Any] = None,
        image_generator: Optional[Any] = None,
    ) -> None:
        self.cfg = cfg or ProviderConfig()
        self._llm = llm
        self._image_generator = image_generator

    # Clients are built on first use so the app can start without an API key
    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = ChatOpenAI(model=self.cfg.chat_model, temperature=self.cfg.temperature)
        return self._llm

    @property
    def image_generator(self) -> Any:
        if self._image_generator is None:
            self._image_generator = DallEAPIWrapper(model=self.cfg.image_model)
        return self._image_generator

    def generate_plan(self, profile: UserProfile, language: str) -> WorkoutCurriculum:
        try:
            chain = PLAN_PROMPT | self.llm.with_structured_output(WorkoutCurriculum, method="function_calling")
            plan = chain.invoke(
                {
                    "weeks": self.cfg.plan_weeks,
                    "age": profile.age,
                    "gender": profile.gender.value,
                    "height": profile.height,
                    "weight": profile.weight,
                    "goal": profile.goal.value,
                    "level": profile.level.value,
                    "equipment": ", ".join(e.value for e in profile.equipment) or Equipment.NONE.value,
                    "days_per_week": profile.days_per_week,
                    "duration": profile.duration_per_session,
                    "injuries": profile.injuries or "None",
                    "language": language,
                }
            )
            if plan is None:
                raise ValueError("no content generated")
            if not isinstance(plan, WorkoutCurriculum):
                plan = WorkoutCurriculum.model_validate(plan)
            plan = validate_curriculum(plan)
        except Exception as e:
            logger.error("Error generating workout plan: %s", e, exc_info=True)
            raise GenerationError(GENERIC_PLAN_ERROR) from e
        # The start date is set by the caller, never by the model
        return plan.model_copy(update={"start_date": None})

    def suggest_alternatives(
        self, exercise_name: str, equipment: List[Equipment], language: str
    ) -> List[Exercise]:
        try:
            chain = ALTERNATIVES_PROMPT | self.llm.with_structured_output(
                ExerciseAlternatives, method="function_calling"
            )
            result = chain.invoke(
                {
                    "exercise": exercise_name,
                    "equipment": ", ".join(e.value for e in equipment) or Equipment.NONE.value,
                    "language": language,
                }
            )
            if not isinstance(result, ExerciseAlternatives):
                result = ExerciseAlternatives.model_validate(result)
            if not result.alternatives:
                raise ValueError("no alternatives returned")
        except Exception as e:
            logger.error("Error suggesting alternatives for %s: %s", exercise_name, e, exc_info=True)
            raise GenerationError(GENERIC_ALTERNATIVES_ERROR) from e
        return result.alternatives[:3]

    def analyze_activity_image(self, image_bytes: bytes, language: str) -> ActivityAnalysis:
        data_url = f"data:{_image_mime(image_bytes)};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        message = HumanMessage(
            content=[
                {"type": "text", "text": ANALYSIS_PROMPT.format(language=language)},
                {"type": "image_url", "image_url": {"url": data_url}},
            ]
        )
        try:
            reply = self.llm.invoke([message])
        except Exception as e:
            logger.error("Error analyzing activity image: %s", e, exc_info=True)
            raise GenerationError(GENERIC_ANALYSIS_ERROR) from e
        content = reply.content if hasattr(reply, "content") else reply
        if isinstance(content, list):
            content = " ".join(
                p.get("text", "") if isinstance(p, dict) else str(p) for p in content
            )
        return extract_activity_analysis(str(content))

    def render_exercise_visual(self, exercise_name: str) -> Optional[str]:
        try:
            url = self.image_generator.run(VISUAL_PROMPT.format(exercise=exercise_name))
        except Exception as e:
            logger.error("Failed to generate exercise image for %s: %s", exercise_name, e)
            return None
        url = (url or "").strip()
        return url if url.startswith(("http", "data:")) else None
