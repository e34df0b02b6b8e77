# study_planner/ui/tabs/analytics_tab.py
import pandas as pd
import plotly.express as px
import streamlit as st

from study_planner.core.errors import StudyPlannerError
from study_planner.services.analytics_service import (
    get_sessions_since_days, get_streak, group_focus_minutes_by_day, insights_from_sessions,
)


def render_analytics_tab(store, USER_ID: str, tz: str):
    st.header("📊 Insights")

    days = st.select_slider("Window (days)", options=[7, 14, 30], value=7)
    try:
        # one fetch feeds the daily chart and the insight cards
        sessions = get_sessions_since_days(store, USER_ID, days, tz=tz)
        daily = group_focus_minutes_by_day(sessions, days, tz=tz)
        insights = insights_from_sessions(sessions, tz)
        streak = get_streak(store, USER_ID, tz=tz)["streak"]
    except StudyPlannerError as e:
        st.error(f"Could not load insights: {e}")
        return

    c1, c2, c3, c4 = st.columns(4)
    with c1: st.metric("Focused (min)", insights["totalActual"])
    with c2: st.metric("Productivity", f"{insights['productivity']}%")
    with c3: st.metric("Focus efficiency", f"{insights['focusEfficiency']}%")
    with c4: st.metric("Avg burnout at start", insights["avgBurnout"])
    st.caption(f"🔥 Current streak: {streak} days")

    st.divider()
    dfd = pd.DataFrame({"date": daily["keys"], "minutes": [daily["map"][k] for k in daily["keys"]]})
    if dfd["minutes"].sum() > 0:
        fig = px.bar(dfd, x="date", y="minutes", title="Daily Focus Minutes",
                     color="minutes", color_continuous_scale="Blues")
        fig.update_layout(height=360, showlegend=False)
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No completed pomodoros in this window yet.")

    if insights["subjectMap"]:
        subj = pd.DataFrame(
            [{"subject": k, "minutes": v} for k, v in insights["subjectMap"].items()]
        ).sort_values("minutes", ascending=False)
        fig_s = px.pie(subj, values="minutes", names="subject", hole=0.4,
                       title="Time by Subject", color_discrete_sequence=px.colors.qualitative.Set3)
        fig_s.update_layout(height=380, title_x=0.5)
        st.plotly_chart(fig_s, use_container_width=True)
