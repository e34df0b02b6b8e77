# study_planner/services/analytics_service.py
"""Read-only aggregates over a user's session log.

Only sessions with status == "completed" and mode == "pomodoro" count
toward any figure here; running, cancelled, and break sessions are dropped
before aggregation. Days are bucketed in the configured timezone.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from study_planner.core.constants import (
    FOCUS_MODE, STATUS_COMPLETED, STREAK_LOOKBACK_DAYS, STREAK_MAX_DAYS, WEEK_DAYS,
)
from study_planner.core.numbers import as_int, finite_or, round_half_up
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import (
    TzLike, day_key, last_n_day_keys, local_day_bounds, local_today, window_start,
)
from study_planner.data_access.sessions_repo import sessions_started_between

FRAME_COLUMNS = ["day", "minutes", "planned", "scaled", "burnout", "subject"]


def is_focus_completed(s: Dict[str, Any]) -> bool:
    return s.get("status") == STATUS_COMPLETED and s.get("mode") == FOCUS_MODE


def _score_or_none(val: Any) -> Optional[float]:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    return float(val)


def focus_frame(sessions: Iterable[Dict[str, Any]], tz: TzLike = None) -> pd.DataFrame:
    records = []
    for s in sessions:
        if not is_focus_completed(s):
            continue
        records.append({
            "day": day_key(s.get("startedAt"), tz),
            "minutes": finite_or(s.get("durationMinutes"), 0),
            "planned": finite_or(s.get("plannedMinutes"), 0),
            "scaled": finite_or(s.get("scaledMinutes"), 0),
            "burnout": _score_or_none(s.get("burnoutScoreAtStart")),
            "subject": s.get("subject") or None,
        })
    return pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)


def _minutes_by_day(df: pd.DataFrame) -> Dict[str, Any]:
    df = df[df["day"].notna()]
    if df.empty:
        return {}
    return {k: as_int(float(v)) for k, v in df.groupby("day")["minutes"].sum().items()}


def get_today_session_stats(store: DocumentStore, uid: str, now: Optional[datetime] = None,
                            tz: TzLike = None) -> Dict[str, Any]:
    start, end = local_day_bounds(now, tz)
    df = focus_frame(sessions_started_between(store, uid, start, end), tz)
    return {
        "totalMinutes": as_int(float(df["minutes"].sum())) if not df.empty else 0,
        "sessionsCount": int(len(df)),
    }


def get_streak(store: DocumentStore, uid: str, lookback_days: int = STREAK_LOOKBACK_DAYS,
               now: Optional[datetime] = None, tz: TzLike = None) -> Dict[str, int]:
    df = focus_frame(sessions_started_between(store, uid, window_start(lookback_days, now, tz)), tz)
    days = set(df["day"].dropna())
    today = local_today(now, tz)
    streak = 0
    for i in range(STREAK_MAX_DAYS):
        if (today - timedelta(days=i)).isoformat() not in days:
            break
        streak += 1
    return {"streak": streak}


def get_weekly_stats(store: DocumentStore, uid: str, now: Optional[datetime] = None,
                     tz: TzLike = None) -> Dict[str, Any]:
    sessions = sessions_started_between(store, uid, window_start(WEEK_DAYS - 1, now, tz))
    return _minutes_by_day(focus_frame(sessions, tz))


def get_sessions_since_days(store: DocumentStore, uid: str, days: int = WEEK_DAYS,
                            now: Optional[datetime] = None, tz: TzLike = None) -> List[Dict[str, Any]]:
    return sessions_started_between(store, uid, window_start(max(1, int(days)) - 1, now, tz))


def group_focus_minutes_by_day(sessions: Iterable[Dict[str, Any]], days: int = WEEK_DAYS,
                               now: Optional[datetime] = None, tz: TzLike = None) -> Dict[str, Any]:
    keys = last_n_day_keys(days, now, tz)
    minutes = {k: 0 for k in keys}
    for k, v in _minutes_by_day(focus_frame(sessions, tz)).items():
        if k in minutes:
            minutes[k] = v
    return {"keys": keys, "map": minutes}


def get_advanced_insights(store: DocumentStore, uid: str, days: int = WEEK_DAYS,
                          now: Optional[datetime] = None, tz: TzLike = None) -> Dict[str, Any]:
    return insights_from_sessions(get_sessions_since_days(store, uid, days, now, tz), tz)


def insights_from_sessions(sessions: Iterable[Dict[str, Any]], tz: TzLike = None) -> Dict[str, Any]:
    """Advanced insights over an already-fetched session list."""
    return summarize_insights(focus_frame(sessions, tz))


def summarize_insights(df: pd.DataFrame) -> Dict[str, Any]:
    total_actual = float(df["minutes"].sum()) if not df.empty else 0.0
    total_planned = float(df["planned"].sum()) if not df.empty else 0.0
    total_scaled = float(df["scaled"].sum()) if not df.empty else 0.0

    productivity = total_actual / total_planned * 100 if total_planned > 0 else 0
    focus_efficiency = total_actual / total_scaled * 100 if total_scaled > 0 else 0
    burnout = df["burnout"].dropna()
    avg_burnout = float(burnout.mean()) if len(burnout) else 0

    subjects = df[df["subject"].notna()]
    subject_map = {k: as_int(float(v)) for k, v in subjects.groupby("subject")["minutes"].sum().items()}

    return {
        "totalActual": as_int(total_actual),
        "totalPlanned": as_int(total_planned),
        "totalScaled": as_int(total_scaled),
        "productivity": round_half_up(productivity),
        "focusEfficiency": round_half_up(focus_efficiency),
        "avgBurnout": round_half_up(avg_burnout),
        "subjectMap": subject_map,
    }
