# study_planner/services/ai_payload.py
# Boundary helpers for the text generator: pull one JSON object out of free
# text, and build the insights request payload. No content validation here.
import json
import re
from datetime import datetime
from typing import Any, Dict, Optional

from study_planner.core.errors import ValidationError
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import TzLike
from study_planner.services.analytics_service import (
    get_advanced_insights, get_streak, get_today_session_stats, get_weekly_stats,
)
from study_planner.services.burnout_service import get_burnout_score

_FENCE_OPEN = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"```$")


def extract_json_object(text: Any) -> Dict[str, Any]:
    s = str(text or "").strip()
    if s.startswith("```"):
        s = _FENCE_OPEN.sub("", s).strip()
        s = _FENCE_CLOSE.sub("", s).strip()

    first, last = s.find("{"), s.rfind("}")
    if first != -1 and last > first:
        s = s[first:last + 1]

    try:
        obj = json.loads(s)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Generator output is not valid JSON: {e.msg}") from e
    if not isinstance(obj, dict):
        raise ValidationError("Generator output must be a JSON object")
    return obj


def build_insights_payload(store: DocumentStore, uid: str, now: Optional[datetime] = None,
                           tz: TzLike = None) -> Dict[str, Any]:
    return {
        "today": get_today_session_stats(store, uid, now=now, tz=tz),
        "streak": get_streak(store, uid, now=now, tz=tz)["streak"],
        "weekly": get_weekly_stats(store, uid, now=now, tz=tz),
        "insights": get_advanced_insights(store, uid, now=now, tz=tz),
        "burnout": get_burnout_score(store, uid, now=now, tz=tz),
    }
