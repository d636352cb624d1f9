from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Callable, Dict, List, Optional

from .config import AppConfig
from .generation import ContentProvider, OpenAIContentProvider, ProviderConfig
from .ledger import ProgressLedger, WorkoutLogBook, new_log_id
from .models import (
    ActivityAnalysis,
    Exercise,
    ProgressEntry,
    UserProfile,
    WorkoutCurriculum,
    WorkoutLog,
    parse_day_id,
    parse_exercise_id,
)
from .mutator import move_exercise, swap_exercise
from .persistence import (
    COMPLETED_DAYS_KEY,
    COMPLETED_EXERCISES_KEY,
    PROGRESS_KEY,
    VISUALS_KEY,
    WORKOUT_LOGS_KEY,
    FileKeyValueStore,
    KeyValueStore,
    PersistenceLayer,
)
from .stores import PlanStore, ProfileStore
from .timer import RestTimer, Running, ThreadTicker, TickSource
from .tracker import CompletionState, CompletionSummary, CompletionTracker, ToggleOutcome

logger = logging.getLogger(__name__)


class NoPlanError(LookupError):
    """Raised when an operation needs a curriculum and none is loaded."""


def next_monday(today: Optional[dt.date] = None) -> dt.date:
    """Monday of the week after ``today``; a generated plan starts fresh there."""
    today = today or dt.date.today()
    return today - dt.timedelta(days=today.weekday()) + dt.timedelta(days=7)


class FitnessController:
    """Owns all engine state and mirrors each committed transition to storage."""

    def __init__(
        self,
        store: Optional[KeyValueStore],
        provider: ContentProvider,
        language: str = "en",
        ticker_factory: Callable[[], TickSource] = ThreadTicker,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self.persistence = PersistenceLayer(store)
        self.provider = provider
        self.language = language
        self.clock = clock
        self.profiles = ProfileStore(self.persistence)
        self.plans = PlanStore(self.persistence)
        self._completion = CompletionState.from_lists(
            self.persistence.load(COMPLETED_DAYS_KEY, [], List[str]),
            self.persistence.load(COMPLETED_EXERCISES_KEY, [], List[str]),
        )
        self._ledger = ProgressLedger(
            tuple(self.persistence.load(PROGRESS_KEY, [], List[ProgressEntry]))
        )
        self._logbook = WorkoutLogBook(
            tuple(self.persistence.load(WORKOUT_LOGS_KEY, [], List[WorkoutLog]))
        )
        self._visuals: Dict[str, str] = self.persistence.load(VISUALS_KEY, {}, Dict[str, str])
        self.timer = RestTimer(ticker_factory)
        # Request threads share one controller; transitions read, compute and commit under it
        self._lock = threading.RLock()

    # --- read side ---
    @property
    def profile(self) -> Optional[UserProfile]:
        return self.profiles.value

    @property
    def plan(self) -> Optional[WorkoutCurriculum]:
        return self.plans.value

    @property
    def completion(self) -> CompletionState:
        return self._completion

    @property
    def ledger(self) -> ProgressLedger:
        return self._ledger

    @property
    def logbook(self) -> WorkoutLogBook:
        return self._logbook

    @property
    def visuals(self) -> Dict[str, str]:
        return dict(self._visuals)

    def _require_plan(self) -> WorkoutCurriculum:
        if self.plan is None:
            raise NoPlanError("No workout plan loaded")
        return self.plan

    def tracker(self) -> CompletionTracker:
        return CompletionTracker(self._require_plan())

    def summary(self) -> CompletionSummary:
        return self.tracker().summary(self._completion)

    # --- commits ---
    def _commit_completion(self, state: CompletionState) -> None:
        self._completion = state
        self.persistence.save(COMPLETED_DAYS_KEY, sorted(state.completed_days), List[str])
        self.persistence.save(
            COMPLETED_EXERCISES_KEY, sorted(state.completed_exercises), List[str]
        )

    def _commit_ledger(self, ledger: ProgressLedger) -> None:
        self._ledger = ledger
        self.persistence.save(PROGRESS_KEY, list(ledger.entries), List[ProgressEntry])

    def _commit_logbook(self, logbook: WorkoutLogBook) -> None:
        self._logbook = logbook
        self.persistence.save(WORKOUT_LOGS_KEY, list(logbook.logs), List[WorkoutLog])

    # --- plan lifecycle ---
    def generate_plan(self, profile: UserProfile, language: Optional[str] = None) -> WorkoutCurriculum:
        # Raises GenerationError before anything is committed
        generated = self.provider.generate_plan(profile, language or self.language)
        start = next_monday(self.clock().date())
        plan = generated.model_copy(update={"start_date": start.isoformat()})
        with self._lock:
            self.profiles.set(profile)
            self.plans.set(plan)
            self._commit_completion(CompletionState())
            self._commit_logbook(WorkoutLogBook())
        logger.info("Generated plan %r with %d weeks", plan.program_name, len(plan.weeks))
        return plan

    def reset(self) -> None:
        self.timer.stop()
        with self._lock:
            self.plans.set(None)
            self._commit_completion(CompletionState())
            self._commit_logbook(WorkoutLogBook())

    def update_plan(self, plan: WorkoutCurriculum) -> None:
        with self._lock:
            self.plans.set(plan)

    # --- completion ---
    def toggle_day(self, day_id: str) -> CompletionState:
        with self._lock:
            self._commit_completion(self.tracker().toggle_day(self._completion, day_id))
            return self._completion

    def toggle_exercise(self, exercise_id: str) -> ToggleOutcome:
        with self._lock:
            state, outcome = self.tracker().toggle_exercise(self._completion, exercise_id)
            self._commit_completion(state)
        return outcome

    def complete_day(
        self, day_id: str, notes: str = "", weight: Optional[float] = None
    ) -> WorkoutLog:
        """Log the session, mark the day complete and optionally record body weight."""
        plan = self._require_plan()
        day = plan.day(*parse_day_id(day_id))
        now = self.clock()
        log = WorkoutLog(
            id=new_log_id(),
            date=now.isoformat(),
            day_id=day_id,
            day_name=day.day_name,
            focus=day.focus,
            duration=day.estimated_duration,
            notes=notes,
        )
        with self._lock:
            if day_id not in self._completion.completed_days:
                new_state = self.tracker().toggle_day(self._completion, day_id)
            else:
                new_state = self._completion
            self._commit_logbook(self._logbook.append(log))
            self._commit_completion(new_state)
            if weight:
                self.add_progress(ProgressEntry(date=now.date().isoformat(), weight=weight))
        return log

    # --- plan edits ---
    def move_exercise(self, week_idx: int, day_idx: int, from_idx: int, to_idx: int) -> WorkoutCurriculum:
        with self._lock:
            plan = move_exercise(self._require_plan(), week_idx, day_idx, from_idx, to_idx)
            self.plans.set(plan)
        return plan

    def swap_exercise(
        self, week_idx: int, day_idx: int, ex_idx: int, new_exercise: Exercise
    ) -> WorkoutCurriculum:
        with self._lock:
            plan = swap_exercise(self._require_plan(), week_idx, day_idx, ex_idx, new_exercise)
            self.plans.set(plan)
        return plan

    def suggest_alternatives(
        self, week_idx: int, day_idx: int, ex_idx: int, language: Optional[str] = None
    ) -> List[Exercise]:
        current = self._require_plan().exercise(week_idx, day_idx, ex_idx)
        equipment = self.profile.equipment if self.profile else []
        return self.provider.suggest_alternatives(current.name, equipment, language or self.language)

    # --- progress & logs ---
    def add_progress(self, entry: ProgressEntry) -> ProgressLedger:
        with self._lock:
            self._commit_ledger(self._ledger.add(entry))
            return self._ledger

    def log_workout(self, log: WorkoutLog) -> WorkoutLogBook:
        with self._lock:
            self._commit_logbook(self._logbook.append(log))
            return self._logbook

    def analyze_activity(self, image_bytes: bytes, language: Optional[str] = None) -> ActivityAnalysis:
        return self.provider.analyze_activity_image(image_bytes, language or self.language)

    def log_activity(
        self,
        analysis: ActivityAnalysis,
        date: Optional[str] = None,
        notes: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> WorkoutLog:
        log = WorkoutLog(
            id=new_log_id(),
            date=date or self.clock().isoformat(),
            day_name=analysis.activity_type,
            focus=analysis.summary,
            duration=analysis.duration,
            notes=notes,
            image_url=image_url,
            calories=analysis.calories,
        )
        self.log_workout(log)
        return log

    # --- visuals ---
    def exercise_visual(self, exercise_name: str) -> Optional[str]:
        cached = self._visuals.get(exercise_name)
        if cached:
            return cached
        url = self.provider.render_exercise_visual(exercise_name)
        if url:
            with self._lock:
                self._visuals = {**self._visuals, exercise_name: url}
                self.persistence.save(VISUALS_KEY, self._visuals, Dict[str, str])
        return url

    # --- rest timer ---
    def start_rest_timer(self, exercise_id: str) -> Running:
        day_id, ex_idx = parse_exercise_id(exercise_id)
        exercise = self._require_plan().exercise(*parse_day_id(day_id), ex_idx)
        return self.timer.start(exercise.rest, exercise.name)

    def stop_rest_timer(self) -> None:
        self.timer.stop()

    def close(self) -> None:
        self.timer.close()


def build_controller(cfg: Optional[AppConfig] = None) -> FitnessController:
    cfg = cfg or AppConfig.from_env()
    try:
        store: Optional[KeyValueStore] = FileKeyValueStore(cfg.data_dir)
    except OSError as e:
        # Run memory-only; state is lost on restart but the app stays usable
        logger.warning("Local storage unavailable at %s: %s", cfg.data_dir, e)
        store = None
    provider = OpenAIContentProvider(
        ProviderConfig(chat_model=cfg.chat_model, image_model=cfg.image_model, plan_weeks=cfg.plan_weeks)
    )
    return FitnessController(store, provider, language=cfg.language)
