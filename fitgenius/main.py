from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import configure_logging
from .controller import FitnessController, NoPlanError, build_controller
from .generation import GenerationError
from .models import (
    ActivityAnalysis,
    Exercise,
    ProgressEntry,
    UserProfile,
    WorkoutCurriculum,
    WorkoutLog,
)
from .timer import Expired, Running, TimerState

configure_logging()

_controller: Optional[FitnessController] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _controller is not None:
        _controller.close()


app = FastAPI(title="FitGenius Plan Engine API", version="0.2.0", lifespan=lifespan)

# CORS (allow Streamlit on localhost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_controller() -> FitnessController:
    global _controller
    if _controller is None:
        _controller = build_controller()
    return _controller


def _raise_http(e: Exception) -> None:
    if isinstance(e, GenerationError):
        raise HTTPException(status_code=502, detail=str(e))
    if isinstance(e, NoPlanError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, IndexError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValueError):
        raise HTTPException(status_code=422, detail=str(e))
    raise e


# --- request / response bodies ---
class GenerateBody(BaseModel):
    profile: UserProfile
    language: Optional[str] = None


class CompleteDayBody(BaseModel):
    notes: str = ""
    weight: Optional[float] = Field(default=None, gt=0)


class MoveBody(BaseModel):
    week: int
    day: int
    from_index: int
    to_index: int


class SwapBody(BaseModel):
    week: int
    day: int
    index: int
    exercise: Exercise


class AlternativesBody(BaseModel):
    week: int
    day: int
    index: int
    language: Optional[str] = None


class TimerStartBody(BaseModel):
    exercise_id: str


class CompletionResponse(BaseModel):
    completed_days: List[str]
    completed_exercises: List[str]
    total_workouts: int
    completed_workouts: int
    percentage: int


def _completion_response(ctl: FitnessController) -> CompletionResponse:
    state = ctl.completion
    summary = ctl.summary()
    return CompletionResponse(
        completed_days=sorted(state.completed_days),
        completed_exercises=sorted(state.completed_exercises),
        total_workouts=summary.total_workouts,
        completed_workouts=summary.completed_workouts,
        percentage=summary.percentage,
    )


def _timer_response(state: TimerState) -> Dict:
    if isinstance(state, Running):
        return {"status": "running", "remaining": state.remaining, "total": state.total, "label": state.label}
    if isinstance(state, Expired):
        return {"status": "expired", "label": state.label}
    return {"status": "idle"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/profile", response_model=Optional[UserProfile])
def get_profile(ctl: FitnessController = Depends(get_controller)):
    return ctl.profile


# --- plan ---
@app.post("/plan", response_model=WorkoutCurriculum)
def generate_plan(body: GenerateBody, ctl: FitnessController = Depends(get_controller)):
    try:
        return ctl.generate_plan(body.profile, body.language)
    except GenerationError as e:
        _raise_http(e)


@app.get("/plan", response_model=WorkoutCurriculum)
def get_plan(ctl: FitnessController = Depends(get_controller)):
    if ctl.plan is None:
        raise HTTPException(status_code=404, detail="No workout plan loaded")
    return ctl.plan


@app.delete("/plan")
def reset_plan(ctl: FitnessController = Depends(get_controller)):
    ctl.reset()
    return {"status": "ok"}


@app.post("/plan/days/{day_id}/toggle", response_model=CompletionResponse)
def toggle_day(day_id: str, ctl: FitnessController = Depends(get_controller)):
    try:
        ctl.toggle_day(day_id)
        return _completion_response(ctl)
    except (NoPlanError, IndexError, ValueError) as e:
        _raise_http(e)


@app.post("/plan/days/{day_id}/complete", response_model=WorkoutLog)
def complete_day(day_id: str, body: CompleteDayBody, ctl: FitnessController = Depends(get_controller)):
    try:
        return ctl.complete_day(day_id, notes=body.notes, weight=body.weight)
    except (NoPlanError, IndexError, ValueError) as e:
        _raise_http(e)


@app.post("/plan/exercises/{exercise_id}/toggle")
def toggle_exercise(exercise_id: str, ctl: FitnessController = Depends(get_controller)):
    try:
        outcome = ctl.toggle_exercise(exercise_id)
    except (NoPlanError, IndexError, ValueError) as e:
        _raise_http(e)
    return {
        "completion": _completion_response(ctl).model_dump(),
        "day_eligible_for_completion": getattr(outcome, "day_id", None),
    }


@app.post("/plan/move", response_model=WorkoutCurriculum)
def move_exercise(body: MoveBody, ctl: FitnessController = Depends(get_controller)):
    try:
        return ctl.move_exercise(body.week, body.day, body.from_index, body.to_index)
    except (NoPlanError, IndexError) as e:
        _raise_http(e)


@app.post("/plan/swap", response_model=WorkoutCurriculum)
def swap_exercise(body: SwapBody, ctl: FitnessController = Depends(get_controller)):
    try:
        return ctl.swap_exercise(body.week, body.day, body.index, body.exercise)
    except (NoPlanError, IndexError) as e:
        _raise_http(e)


@app.post("/plan/alternatives", response_model=List[Exercise])
def suggest_alternatives(body: AlternativesBody, ctl: FitnessController = Depends(get_controller)):
    try:
        return ctl.suggest_alternatives(body.week, body.day, body.index, body.language)
    except (GenerationError, NoPlanError, IndexError) as e:
        _raise_http(e)


@app.get("/completion", response_model=CompletionResponse)
def get_completion(ctl: FitnessController = Depends(get_controller)):
    try:
        return _completion_response(ctl)
    except NoPlanError as e:
        _raise_http(e)


# --- progress & logs ---
@app.get("/progress")
def get_progress(ctl: FitnessController = Depends(get_controller)):
    ledger = ctl.ledger
    return {
        "entries": [e.model_dump() for e in ledger.entries],
        "latest_weight": ledger.latest_weight,
        "net_change": ledger.net_change,
    }


@app.post("/progress", response_model=List[ProgressEntry])
def add_progress(entry: ProgressEntry, ctl: FitnessController = Depends(get_controller)):
    return list(ctl.add_progress(entry).entries)


@app.get("/logs", response_model=List[WorkoutLog])
def get_logs(ctl: FitnessController = Depends(get_controller)):
    return list(ctl.logbook.logs)


@app.post("/logs", response_model=WorkoutLog)
def add_log(log: WorkoutLog, ctl: FitnessController = Depends(get_controller)):
    ctl.log_workout(log)
    return log


@app.post("/logs/analyze", response_model=ActivityAnalysis)
async def analyze_activity(
    image: UploadFile = File(...),
    language: Optional[str] = None,
    ctl: FitnessController = Depends(get_controller),
):
    data = await image.read()
    if not data:
        raise HTTPException(status_code=422, detail="Empty image upload")
    try:
        return ctl.analyze_activity(data, language)
    except GenerationError as e:
        _raise_http(e)


@app.get("/visuals/{exercise_name}")
def get_visual(exercise_name: str, ctl: FitnessController = Depends(get_controller)):
    url = ctl.exercise_visual(exercise_name)
    if url is None:
        raise HTTPException(status_code=503, detail="No visual guide available, try again later")
    return {"exercise": exercise_name, "url": url}


# --- rest timer ---
@app.post("/timer/start")
def start_timer(body: TimerStartBody, ctl: FitnessController = Depends(get_controller)):
    try:
        return _timer_response(ctl.start_rest_timer(body.exercise_id))
    except (NoPlanError, IndexError, ValueError) as e:
        _raise_http(e)


@app.post("/timer/stop")
def stop_timer(ctl: FitnessController = Depends(get_controller)):
    ctl.stop_rest_timer()
    return _timer_response(ctl.timer.state)


@app.get("/timer")
def get_timer(ctl: FitnessController = Depends(get_controller)):
    return _timer_response(ctl.timer.state)
