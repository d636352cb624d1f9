import os
import sys
import requests
import streamlit as st
import pandas as pd
from datetime import date
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()

# Optional remote API, only used for the health check; the engine always runs in-process
BACKEND_URL = os.getenv("BACKEND_URL", "").strip()

# Ensure project root is on sys.path when running on Streamlit Cloud
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))
# Load secrets into environment for SDKs that read os.environ
try:
    for key in ("OPENAI_API_KEY", "OPENAI_MODEL", "IMAGE_MODEL", "FITGENIUS_DATA_DIR", "FITGENIUS_LANGUAGE"):
        if key in st.secrets:
            os.environ[key] = str(st.secrets[key]).strip()
except Exception:
    # No secrets file configured; fall back to the environment
    pass

from fitgenius.config import configure_logging
from fitgenius.controller import build_controller
from fitgenius.generation import GenerationError
from fitgenius.models import (
    Equipment,
    ExperienceLevel,
    Gender,
    Goal,
    ProgressEntry,
    UserProfile,
    make_day_id,
    make_exercise_id,
)
from fitgenius.timer import Expired, Running, format_seconds
from fitgenius.tracker import DayEligibleForCompletion

if "controller" not in st.session_state:
    configure_logging()
    st.session_state.controller = build_controller()
ctl = st.session_state.controller

st.set_page_config(page_title="FitGenius", page_icon="💪", layout="wide")

st.title("💪 FitGenius")
st.caption("A progressive home workout curriculum that tracks what you actually did.")

with st.sidebar:
    st.header("Configuration")
    st.write(f"Language: {ctl.language}")
    if BACKEND_URL and st.button("API Health Check"):
        try:
            r = requests.get(f"{BACKEND_URL}/health", timeout=5)
            st.success(f"API OK: {r.json()}")
        except requests.RequestException as e:
            st.error(f"API not reachable: {e}")
    if ctl.plan is not None and st.button("New Plan"):
        ctl.reset()
        st.rerun()


def onboarding() -> None:
    p = ctl.profile
    st.subheader("Tell us about you")
    col1, col2, col3 = st.columns(3)
    with col1:
        age = st.number_input("Age", min_value=13, max_value=100, value=p.age if p else 25)
        height = st.number_input("Height (cm)", min_value=100.0, max_value=250.0, value=p.height if p else 175.0)
        weight = st.number_input("Weight (kg)", min_value=30.0, max_value=300.0, value=p.weight if p else 70.0)
    with col2:
        gender = st.selectbox("Gender", list(Gender), format_func=lambda g: g.value)
        goal = st.selectbox("Primary Goal", list(Goal), format_func=lambda g: g.value)
        level = st.selectbox("Experience", list(ExperienceLevel), format_func=lambda g: g.value)
    with col3:
        days = st.slider("Days per week", min_value=1, max_value=7, value=p.days_per_week if p else 3)
        duration = st.slider("Time per session (min)", min_value=10, max_value=120, value=p.duration_per_session if p else 45, step=5)
    injuries = st.text_input("Injuries or limitations (optional)", value=(p.injuries or "") if p else "")
    equipment = st.multiselect(
        "Equipment Available",
        list(Equipment),
        default=p.equipment if p else [Equipment.NONE],
        format_func=lambda e: e.value,
    )

    if st.button("Generate Plan", type="primary"):
        profile = UserProfile(
            age=int(age),
            height=float(height),
            weight=float(weight),
            gender=gender,
            goal=goal,
            level=level,
            equipment=equipment,
            days_per_week=int(days),
            duration_per_session=int(duration),
            injuries=injuries.strip() or None,
        )
        try:
            with st.spinner("Analyzing metrics & designing curriculum..."):
                ctl.generate_plan(profile)
        except GenerationError as e:
            st.error(str(e))
            st.stop()
        st.rerun()


@st.dialog("Workout complete!")
def completion_dialog(day_id: str) -> None:
    notes = st.text_area("How did it go?")
    last = ctl.ledger.latest_weight
    weight = st.number_input("Today's weight (kg, optional)", min_value=0.0, value=float(last or 0.0), step=0.1)
    if st.button("Save", type="primary"):
        ctl.complete_day(day_id, notes=notes, weight=weight or None)
        st.session_state.pop("pending_day", None)
        st.rerun()
    if st.button("Not now"):
        st.session_state.pop("pending_day", None)
        st.rerun()


@st.fragment(run_every="1s")
def rest_timer() -> None:
    state = ctl.timer.state
    if isinstance(state, Running):
        st.info(f"⏱ Rest: {state.label} · {format_seconds(state.remaining)}")
        st.progress(1 - state.remaining / (state.total or 1))
        if st.button("Stop timer"):
            ctl.stop_rest_timer()
    elif isinstance(state, Expired):
        st.success(f"Rest over for {state.label}. Next set!")
        if st.button("Dismiss"):
            ctl.stop_rest_timer()


def plan_view() -> None:
    plan = ctl.plan
    summary = ctl.summary()
    st.subheader(plan.program_name)
    st.write(plan.description)
    if plan.start_date:
        st.caption(f"Starts {plan.start_date}")
    st.progress(summary.percentage / 100, text=f"{summary.completed_workouts}/{summary.total_workouts} workouts · {summary.percentage}%")
    rest_timer()

    week_tabs = st.tabs([f"Week {w.week_number}" for w in plan.weeks])
    for w_idx, (tab, week) in enumerate(zip(week_tabs, plan.weeks)):
        with tab:
            st.caption(week.focus)
            for d_idx, day in enumerate(week.schedule):
                day_id = make_day_id(w_idx, d_idx)
                done = day_id in ctl.completion.completed_days
                if not day.is_workout_day:
                    st.markdown(f"**{day.day_name}** · _{day.focus}_")
                    continue
                with st.expander(f"{'✅ ' if done else ''}{day.day_name} · {day.focus} ({day.estimated_duration})"):
                    if st.checkbox("Day complete", value=done, key=f"day-{day_id}-{done}") != done:
                        if done:
                            ctl.toggle_day(day_id)
                        else:
                            st.session_state.pending_day = day_id
                        st.rerun()
                    for ex_idx, ex in enumerate(day.exercises):
                        ex_id = make_exercise_id(day_id, ex_idx)
                        ex_done = ex_id in ctl.completion.completed_exercises
                        cols = st.columns([5, 1, 1, 1, 1])
                        with cols[0]:
                            label = f"**{ex.name}** · {ex.sets} × {ex.reps} · rest {ex.rest}"
                            if st.checkbox(label, value=ex_done, key=f"ex-{ex_id}-{ex_done}") != ex_done:
                                outcome = ctl.toggle_exercise(ex_id)
                                if isinstance(outcome, DayEligibleForCompletion):
                                    st.session_state.pending_day = outcome.day_id
                                st.rerun()
                            if ex.instructions:
                                st.caption(ex.instructions)
                        if cols[1].button("Rest", key=f"rest-{ex_id}"):
                            ctl.start_rest_timer(ex_id)
                        if cols[2].button("↑", key=f"up-{ex_id}", disabled=ex_idx == 0):
                            ctl.move_exercise(w_idx, d_idx, ex_idx, ex_idx - 1)
                            st.rerun()
                        if cols[3].button("↓", key=f"down-{ex_id}", disabled=ex_idx == len(day.exercises) - 1):
                            ctl.move_exercise(w_idx, d_idx, ex_idx, ex_idx + 1)
                            st.rerun()
                        if cols[4].button("Swap", key=f"swap-{ex_id}"):
                            try:
                                st.session_state.alternatives = (w_idx, d_idx, ex_idx, ctl.suggest_alternatives(w_idx, d_idx, ex_idx))
                            except GenerationError as e:
                                st.error(str(e))
                        alt = st.session_state.get("alternatives")
                        if alt and alt[:3] == (w_idx, d_idx, ex_idx):
                            for a_idx, candidate in enumerate(alt[3]):
                                if st.button(f"Use {candidate.name} ({candidate.sets} × {candidate.reps})", key=f"alt-{ex_id}-{a_idx}"):
                                    ctl.swap_exercise(w_idx, d_idx, ex_idx, candidate)
                                    st.session_state.pop("alternatives", None)
                                    st.rerun()
                        if st.button("Visual guide", key=f"vis-{ex_id}"):
                            url = ctl.exercise_visual(ex.name)
                            if url:
                                st.image(url, width=240)
                            else:
                                st.caption("No visual guide available")

    with st.expander("Nutrition tips"):
        for tip in plan.nutrition_tips:
            st.markdown(f"- {tip}")


def progress_view() -> None:
    st.header("Progress Tracker")
    ledger = ctl.ledger
    col_a, col_b = st.columns([1, 2])
    with col_a:
        entry_date = st.date_input("Date", value=date.today())
        weight = st.number_input("Weight (kg)", min_value=0.0, step=0.1, key="progress-weight")
        if st.button("Save Entry") and weight > 0:
            ctl.add_progress(ProgressEntry(date=entry_date.isoformat(), weight=weight))
            st.rerun()
        if ledger.latest_weight is not None:
            st.metric("Current weight", f"{ledger.latest_weight} kg", delta=ledger.net_change)
    with col_b:
        if ledger.entries:
            df = pd.DataFrame([e.model_dump() for e in ledger.entries]).set_index("date")
            st.line_chart(df["weight"])

    st.subheader("Workout history")
    upload = st.file_uploader("Log an activity from a screenshot", type=["png", "jpg", "jpeg", "webp"])
    if upload is not None and st.button("Analyze & log"):
        try:
            with st.spinner("Analyzing..."):
                analysis = ctl.analyze_activity(upload.getvalue())
            ctl.log_activity(analysis)
            st.rerun()
        except GenerationError as e:
            st.warning(str(e))
    for log in ctl.logbook.logs:
        st.markdown(f"**{log.day_name}** · {log.focus} · {log.duration} · {log.date[:10]}")
        if log.notes:
            st.caption(log.notes)


if ctl.plan is None:
    onboarding()
else:
    if st.session_state.get("pending_day"):
        completion_dialog(st.session_state.pending_day)
    plan_view()
    progress_view()
