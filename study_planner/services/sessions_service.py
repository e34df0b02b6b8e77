# study_planner/services/sessions_service.py
"""Focus session lifecycle: running -> completed | cancelled.

The users/{uid} pointer names the running session. start_session claims it
with a compare-and-swap against the value it read, so two concurrent starts
cannot both leave a running session behind the pointer: the loser cancels
its own session and reports the winner as reused.
"""
from typing import Any, Dict, Optional

import structlog

from study_planner.core.constants import (
    FOCUS_MODE, SESSION_MODES, STATUS_CANCELLED, STATUS_COMPLETED, STATUS_RUNNING, TERMINAL_STATUSES,
)
from study_planner.core.errors import NotFoundError, StorageError, ValidationError
from study_planner.core.numbers import as_int, clamp_score, finite_or
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import to_epoch_ms, utc_now_naive
from study_planner.data_access.sessions_repo import get_session, insert_session, update_session
from study_planner.data_access.users_repo import (
    claim_active_session_pointer, clear_active_session_pointer, get_active_session_pointer,
)

log = structlog.get_logger(__name__)

CLAIM_ATTEMPTS = 2


def _optional_minutes(val: Any) -> Optional[float]:
    if val is None:
        return None
    return as_int(finite_or(val, 0))


def _is_running(session: Optional[Dict[str, Any]]) -> bool:
    return bool(session) and session.get("status") == STATUS_RUNNING


def _terminal_fields(status: str, duration_minutes: Any,
                     burnout_score_at_end: Any = None) -> Dict[str, Any]:
    fields = {
        "endedAt": utc_now_naive(),
        "durationMinutes": as_int(max(0, finite_or(duration_minutes, 0))),
        "status": status,
        "completed": status == STATUS_COMPLETED,
    }
    if burnout_score_at_end is not None:
        fields["burnoutScoreAtEnd"] = clamp_score(burnout_score_at_end)
    return fields


def _clear_pointer(store: DocumentStore, uid: str) -> bool:
    try:
        clear_active_session_pointer(store, uid)
        return True
    except StorageError as e:
        log.warning("session.pointer_clear_failed", uid=uid, error=str(e))
        return False


def get_active_session(store: DocumentStore, uid: str) -> Optional[Dict[str, Any]]:
    ptr = get_active_session_pointer(store, uid)
    if not ptr:
        return None
    session = get_session(store, uid, ptr["sessionId"])
    if not _is_running(session):
        return None
    return {**ptr, "session": session}


def start_session(store: DocumentStore, uid: str, plan_id: Optional[str] = None,
                  task_id: Optional[str] = None, mode: str = FOCUS_MODE,
                  planned_minutes: Any = None, scaled_minutes: Any = None,
                  subject: Optional[str] = None, burnout_score_at_start: Any = None) -> Dict[str, Any]:
    mode = str(mode or FOCUS_MODE).strip().lower()
    if mode not in SESSION_MODES:
        raise ValidationError(f"Unknown session mode: {mode}")

    ptr = get_active_session_pointer(store, uid)
    expected = ptr["sessionId"] if ptr else None
    if expected:
        if _is_running(get_session(store, uid, expected)):
            log.info("session.reused", uid=uid, session_id=expected)
            return {"id": expected, "reused": True}
        if _clear_pointer(store, uid):
            expected = None

    now = utc_now_naive()
    started_ms = to_epoch_ms(now)
    sid = insert_session(store, uid, {
        "planId": plan_id,
        "taskId": task_id,
        "mode": mode,
        "startedAt": now,
        "endedAt": None,
        "durationMinutes": 0,
        "status": STATUS_RUNNING,
        "completed": False,
        "createdAt": now,
        "plannedMinutes": _optional_minutes(planned_minutes),
        "scaledMinutes": _optional_minutes(scaled_minutes),
        "subject": None if subject is None else str(subject or ""),
        "burnoutScoreAtStart": clamp_score(burnout_score_at_start),
    })

    for _ in range(CLAIM_ATTEMPTS):
        if claim_active_session_pointer(store, uid, expected, sid, started_ms, mode):
            log.info("session.started", uid=uid, session_id=sid, mode=mode, plan_id=plan_id)
            return {"id": sid, "reused": False}
        current = get_active_session_pointer(store, uid)
        expected = current["sessionId"] if current else None
        if expected and _is_running(get_session(store, uid, expected)):
            update_session(store, sid, _terminal_fields(STATUS_CANCELLED, 0))
            log.info("session.start_race_lost", uid=uid, session_id=sid, winner=expected)
            return {"id": expected, "reused": True}

    update_session(store, sid, _terminal_fields(STATUS_CANCELLED, 0))
    raise StorageError("Could not claim the active session pointer")


def end_session(store: DocumentStore, uid: str, session_id: str, duration_minutes: Any = 0,
                status: str = STATUS_COMPLETED, burnout_score_at_end: Any = None) -> None:
    if not session_id:
        raise ValidationError("sessionId is required")
    if status not in TERMINAL_STATUSES:
        raise ValidationError(f"Status must be one of {', '.join(TERMINAL_STATUSES)}")
    if get_session(store, uid, session_id) is None:
        raise NotFoundError("Session not found")

    update_session(store, session_id, _terminal_fields(status, duration_minutes, burnout_score_at_end))
    _clear_pointer(store, uid)
    log.info("session.ended", uid=uid, session_id=session_id, status=status)


def cancel_session(store: DocumentStore, uid: str, session_id: str) -> None:
    end_session(store, uid, session_id, duration_minutes=0, status=STATUS_CANCELLED)
