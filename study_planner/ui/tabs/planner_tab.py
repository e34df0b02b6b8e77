# study_planner/ui/tabs/planner_tab.py
import pandas as pd
import streamlit as st

from study_planner.core.errors import StudyPlannerError
from study_planner.core.time_utils import to_local
from study_planner.services.ai_payload import extract_json_object
from study_planner.services.planner_service import (
    create_plan, get_active_plan_with_tasks, get_plans, optimize_tasks_in_plan,
    set_plan_active, set_task_done, tasks_from_ai_plan,
)


def _parse_task_lines(text: str):
    """One task per line: `title | subject | minutes` (subject and minutes optional)."""
    tasks = []
    for line in (text or "").splitlines():
        parts = [p.strip() for p in line.split("|")]
        if not parts or not parts[0]:
            continue
        tasks.append({
            "title": parts[0],
            "subject": parts[1] if len(parts) > 1 else "",
            "plannedMinutes": parts[2] if len(parts) > 2 else None,
        })
    return tasks


def _render_create(store, USER_ID: str):
    st.subheader("➕ New plan")
    src = st.radio("Source", ["Manual", "Paste generated JSON"], horizontal=True, key="plan_src")
    with st.form("create_plan", clear_on_submit=True):
        energy = st.slider("Energy level", min_value=1, max_value=5, value=3)
        if src == "Manual":
            title = st.text_input("Title")
            lines = st.text_area("Tasks (title | subject | minutes)", height=140)
            raw_json = ""
        else:
            title = ""
            lines = ""
            raw_json = st.text_area("Generator output", height=180)
        save = st.form_submit_button("Create & activate", use_container_width=True)

    if not save:
        return
    try:
        if src == "Manual":
            create_plan(store, USER_ID, title, _parse_task_lines(lines),
                        input={"energyLevel": energy}, source="manual")
        else:
            ai_plan = extract_json_object(raw_json)
            create_plan(store, USER_ID, ai_plan.get("title") or "Study plan", tasks_from_ai_plan(ai_plan),
                        ai_plan=ai_plan, input={"energyLevel": energy})
        st.success("Plan created.")
        st.rerun()
    except StudyPlannerError as e:
        st.error(str(e))


def _render_active(store, USER_ID: str):
    plan, tasks = get_active_plan_with_tasks(store, USER_ID)
    if not plan:
        st.info("No plans yet.")
        return
    st.subheader(f"📌 {plan['title']}")
    done = sum(1 for t in tasks if t.get("done"))
    st.progress(done / len(tasks) if tasks else 1.0, text=f"{done}/{len(tasks)} tasks done")

    for t in tasks:
        label = f"{t['title']} · {t.get('subject') or '—'} · {t.get('plannedMinutes')}m"
        if t.get("note"):
            label += f"  _({t['note']})_"
        checked = st.checkbox(label, value=bool(t.get("done")), key=f"task_{t['id']}")
        if checked != bool(t.get("done")):
            set_task_done(store, USER_ID, plan["id"], t["id"], checked)
            st.rerun()

    with st.expander("⚙️ Apply optimized tasks (paste generator JSON)"):
        raw = st.text_area("Optimized tasks", key="opt_json", height=160)
        if st.button("Apply", key="opt_apply"):
            try:
                obj = extract_json_object(raw)
                updates = obj.get("tasks") or obj.get("updates") or []
                applied = optimize_tasks_in_plan(store, USER_ID, plan["id"], updates)
                st.success(f"Updated {len(applied)} task(s).")
                st.rerun()
            except StudyPlannerError as e:
                st.error(str(e))


def render_planner_tab(store, USER_ID: str, tz: str):
    st.header("🗂️ Plans")
    left, right = st.columns([1.1, 0.9])

    with left:
        try:
            _render_active(store, USER_ID)
        except StudyPlannerError as e:
            st.error(f"Could not load the active plan: {e}")

    with right:
        _render_create(store, USER_ID)
        st.divider()
        st.subheader("🗃️ All plans")
        try:
            plans = get_plans(store, USER_ID, limit_count=10)
        except StudyPlannerError as e:
            st.error(str(e))
            return
        if not plans:
            return
        rows = [{
            "Active": "✅" if p.get("active") else "",
            "Title": p.get("title"),
            "Created": to_local(p["createdAt"], tz).strftime("%Y-%m-%d %H:%M") if p.get("createdAt") else "—",
            "Source": p.get("source"),
        } for p in plans]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        inactive = [p for p in plans if not p.get("active")]
        if inactive:
            pick = st.selectbox("Switch active plan", inactive, format_func=lambda p: p.get("title"))
            if st.button("Activate", use_container_width=True):
                try:
                    set_plan_active(store, USER_ID, pick["id"])
                    st.rerun()
                except StudyPlannerError as e:
                    st.error(str(e))
