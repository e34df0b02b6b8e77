# study_planner/data_access/users_repo.py
# Per-user pointer document: users/{uid}. Every write is a merge, so plan and
# session pointers never clobber each other and replays are no-ops.
from typing import Any, Dict, Optional

from study_planner.core.constants import FOCUS_MODE, USERS
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import to_epoch_ms, utc_now_naive

CLEARED_SESSION_POINTER = {
    "activeSessionId": None,
    "activeSessionStartedAtMs": None,
    "activeSessionMode": None,
}


def get_user_doc(store: DocumentStore, uid: str) -> Optional[Dict[str, Any]]:
    return store.get(USERS, uid)


def get_active_plan_pointer(store: DocumentStore, uid: str) -> Optional[str]:
    doc = get_user_doc(store, uid)
    if not doc:
        return None
    return doc.get("activePlanId") or None


def set_active_plan_pointer(store: DocumentStore, uid: str, plan_id: str) -> None:
    store.merge(USERS, uid, {"activePlanId": plan_id})


def clear_active_plan_pointer(store: DocumentStore, uid: str) -> None:
    store.merge(USERS, uid, {"activePlanId": None})


def get_active_session_pointer(store: DocumentStore, uid: str) -> Optional[Dict[str, Any]]:
    doc = get_user_doc(store, uid)
    if not doc or not doc.get("activeSessionId"):
        return None
    return {
        "sessionId": doc["activeSessionId"],
        "startedAtMs": doc.get("activeSessionStartedAtMs"),
        "mode": doc.get("activeSessionMode") or FOCUS_MODE,
    }


def session_pointer_fields(session_id: str, started_at_ms: Optional[int] = None,
                           mode: Optional[str] = None) -> Dict[str, Any]:
    return {
        "activeSessionId": session_id,
        "activeSessionStartedAtMs": started_at_ms or to_epoch_ms(utc_now_naive()),
        "activeSessionMode": mode or FOCUS_MODE,
    }


def set_active_session_pointer(store: DocumentStore, uid: str, session_id: str,
                               started_at_ms: Optional[int] = None, mode: Optional[str] = None) -> None:
    store.merge(USERS, uid, session_pointer_fields(session_id, started_at_ms, mode))


def claim_active_session_pointer(store: DocumentStore, uid: str, expected_session_id: Optional[str],
                                 session_id: str, started_at_ms: Optional[int] = None,
                                 mode: Optional[str] = None) -> bool:
    """Point at `session_id` only if the pointer still holds `expected_session_id`."""
    return store.compare_and_merge(
        USERS, uid,
        {"activeSessionId": expected_session_id},
        session_pointer_fields(session_id, started_at_ms, mode),
    )


def clear_active_session_pointer(store: DocumentStore, uid: str) -> None:
    store.merge(USERS, uid, dict(CLEARED_SESSION_POINTER))
