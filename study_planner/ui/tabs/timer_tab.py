# study_planner/ui/tabs/timer_tab.py
import streamlit as st

from study_planner.core.constants import SESSION_MODES
from study_planner.core.errors import StudyPlannerError
from study_planner.core.time_utils import local_today
from study_planner.services.analytics_service import get_streak, get_today_session_stats
from study_planner.services.burnout_service import get_burnout_score
from study_planner.services.planner_service import get_active_plan_with_tasks
from study_planner.services.sessions_service import (
    cancel_session, end_session, get_active_session, start_session,
)
from study_planner.ui.components.sound import play_finish_sound, sound_toggle

MODE_MINUTES = {"pomodoro": 25, "short": 5, "long": 15}


def _render_stats(store, USER_ID: str, tz: str):
    today = get_today_session_stats(store, USER_ID, tz=tz)
    streak = get_streak(store, USER_ID, tz=tz)["streak"]
    burnout = get_burnout_score(store, USER_ID, tz=tz)
    c1, c2, c3, c4 = st.columns(4)
    with c1: st.metric("Today (min)", today["totalMinutes"])
    with c2: st.metric("Sessions", today["sessionsCount"])
    with c3: st.metric("🔥 Streak", f"{streak} days")
    with c4: st.metric("Burnout", f"{burnout['score']}", burnout["status"])
    return burnout


def render_timer_tab(store, USER_ID: str, tz: str):
    st.header("⏱️ Focus")
    st.caption(f"Date: **{local_today(tz=tz).isoformat()}** ({tz})")

    sound_toggle()
    if st.session_state.pop("chime_pending", False):
        play_finish_sound()

    try:
        burnout = _render_stats(store, USER_ID, tz)
        plan, tasks = get_active_plan_with_tasks(store, USER_ID)
        active = get_active_session(store, USER_ID)
    except StudyPlannerError as e:
        st.error(f"Could not load focus data: {e}")
        return

    st.divider()

    if active:
        s = active["session"]
        st.subheader(f"Running: {s.get('mode')} · {s.get('subject') or 'no subject'}")
        default_min = int(s.get("plannedMinutes") or MODE_MINUTES.get(s.get("mode"), 25))
        minutes = st.number_input("Minutes focused", min_value=0, max_value=240, value=default_min, step=1)
        c1, c2 = st.columns(2)
        with c1:
            if st.button("✅ Complete", use_container_width=True):
                try:
                    end_session(store, USER_ID, active["sessionId"], duration_minutes=minutes,
                                burnout_score_at_end=burnout["score"])
                    st.session_state["chime_pending"] = True
                    st.rerun()
                except StudyPlannerError as e:
                    st.error(str(e))
        with c2:
            if st.button("✖️ Cancel", use_container_width=True):
                try:
                    cancel_session(store, USER_ID, active["sessionId"])
                    st.rerun()
                except StudyPlannerError as e:
                    st.error(str(e))
        return

    st.subheader("Start a session")
    if not plan:
        st.info("No active plan yet. Create one in the Plans tab, or run a free session.")
    open_tasks = [t for t in tasks if not t.get("done")]
    labels = ["(no task)"] + [f"{t['title']} · {t.get('subject') or '—'} · {t.get('plannedMinutes')}m" for t in open_tasks]

    with st.form("start_session"):
        mode = st.radio("Mode", list(SESSION_MODES), horizontal=True)
        pick = st.selectbox("Task", labels)
        task = open_tasks[labels.index(pick) - 1] if pick != "(no task)" else None
        planned = st.number_input("Planned minutes", min_value=1, max_value=240,
                                  value=int((task or {}).get("plannedMinutes") or MODE_MINUTES[mode]))
        go = st.form_submit_button("▶️ Start", use_container_width=True)

    if go:
        scale = 1.0 if burnout["score"] <= 30 else (0.8 if burnout["score"] <= 60 else 0.6)
        try:
            res = start_session(
                store, USER_ID,
                plan_id=(plan or {}).get("id"),
                task_id=(task or {}).get("id"),
                mode=mode,
                planned_minutes=planned,
                scaled_minutes=round(planned * scale),
                subject=(task or {}).get("subject") or None,
                burnout_score_at_start=burnout["score"],
            )
        except StudyPlannerError as e:
            st.error(str(e))
            return
        if res["reused"]:
            st.warning("A session is already running; resumed it.")
        st.rerun()
