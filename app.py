# app.py
import streamlit as st

from study_planner.core.config import APP_TITLE, PAGE_ICON, load_settings
from study_planner.core.db import get_store
from study_planner.core.errors import StorageError
from study_planner.core.logging_config import setup_logging
from study_planner.ui.tabs.analytics_tab import render_analytics_tab
from study_planner.ui.tabs.planner_tab import render_planner_tab
from study_planner.ui.tabs.timer_tab import render_timer_tab

st.set_page_config(page_title=APP_TITLE, page_icon=PAGE_ICON, layout="wide")


def _secrets():
    try:
        return dict(st.secrets)
    except FileNotFoundError:
        return {}


@st.cache_resource
def bootstrap():
    settings = load_settings(_secrets())
    setup_logging(settings.log_level, settings.log_json)
    return settings, get_store(settings)


try:
    settings, store = bootstrap()
except StorageError as e:
    st.error(str(e))
    st.stop()

USER_ID = settings.user_id

st.sidebar.header("⚙️ Connection")
st.sidebar.write(f"**Store:** `{settings.store_backend}`")
st.sidebar.write(f"**User:** `{USER_ID}`")
st.sidebar.write(f"**Timezone:** `{settings.timezone}`")

tab1, tab2, tab3 = st.tabs(["⏱️ Focus", "🗂️ Plans", "📊 Insights"])

with tab1:
    render_timer_tab(store, USER_ID, settings.timezone)

with tab2:
    render_planner_tab(store, USER_ID, settings.timezone)

with tab3:
    render_analytics_tab(store, USER_ID, settings.timezone)
