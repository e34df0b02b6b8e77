# study_planner/services/health_service.py
"""Consistency audit for the single-active invariants.

Finds users with more than one active plan, a stale plan pointer, more than
one running session, or a session pointer that does not name the surviving
running session, and optionally repairs them. After a fix the session
pointer always names the one running session, so the next start reuses it.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

import structlog

from study_planner.core.constants import PLANS, SESSIONS, STATUS_CANCELLED
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import to_epoch_ms, utc_now_naive
from study_planner.data_access.plans_repo import created_key, find_active_plans, get_plan
from study_planner.data_access.sessions_repo import find_running_sessions, update_session
from study_planner.data_access.users_repo import (
    clear_active_plan_pointer, clear_active_session_pointer, get_active_plan_pointer,
    get_active_session_pointer, set_active_session_pointer,
)
from study_planner.services.planner_service import get_active_plan, set_only_plan_active

log = structlog.get_logger(__name__)


def list_user_ids(store: DocumentStore) -> List[str]:
    uids: Set[str] = set()
    for coll in (PLANS, SESSIONS):
        uids.update(d["userId"] for d in store.find(coll, {}) if d.get("userId"))
    return sorted(uids)


def _point_at(store: DocumentStore, uid: str, session: Dict[str, Any]) -> None:
    started = session.get("startedAt")
    set_active_session_pointer(store, uid, session["id"],
                               to_epoch_ms(started) if isinstance(started, datetime) else None,
                               session.get("mode"))


def _audit_plans(store: DocumentStore, uid: str, fix: bool, report: Dict[str, Any]) -> None:
    active = find_active_plans(store, uid)
    if len(active) > 1:
        report["issues"].append(f"{len(active)} active plans")
        if fix:
            keep = max(active, key=created_key)
            set_only_plan_active(store, uid, keep["id"])
            report["fixed"].append(f"kept plan {keep['id']} active")

    ptr_plan = get_active_plan_pointer(store, uid)
    plan = get_plan(store, ptr_plan) if ptr_plan else None
    if ptr_plan and (not plan or plan.get("userId") != uid):
        report["issues"].append("stale plan pointer")
        if fix:
            healed = get_active_plan(store, uid)
            if healed:
                report["fixed"].append(f"plan pointer -> {healed['id']}")
            else:
                clear_active_plan_pointer(store, uid)
                report["fixed"].append("plan pointer cleared")


def _audit_sessions(store: DocumentStore, uid: str, fix: bool, report: Dict[str, Any]) -> None:
    running = find_running_sessions(store, uid)
    ptr = get_active_session_pointer(store, uid)
    ptr_sid = ptr["sessionId"] if ptr else None

    keep: Optional[Dict[str, Any]] = next((s for s in running if s["id"] == ptr_sid), None)
    if keep is None and running:
        keep = max(running, key=lambda s: s.get("startedAt") or utc_now_naive())

    if len(running) > 1:
        report["issues"].append(f"{len(running)} running sessions")
        if fix:
            for s in running:
                if s["id"] != keep["id"]:
                    update_session(store, s["id"], {
                        "status": STATUS_CANCELLED, "completed": False,
                        "endedAt": utc_now_naive(), "durationMinutes": 0,
                    })
            report["fixed"].append(f"kept session {keep['id']} running")

    if ptr_sid and (keep is None or keep["id"] != ptr_sid):
        report["issues"].append("stale session pointer")
    elif not ptr_sid and keep is not None:
        report["issues"].append("running session without pointer")
    else:
        return
    if not fix:
        return
    if keep is not None:
        _point_at(store, uid, keep)
        report["fixed"].append(f"session pointer -> {keep['id']}")
    else:
        clear_active_session_pointer(store, uid)
        report["fixed"].append("session pointer cleared")


def audit_user(store: DocumentStore, uid: str, fix: bool = False) -> Dict[str, Any]:
    report: Dict[str, Any] = {"uid": uid, "issues": [], "fixed": []}
    _audit_plans(store, uid, fix, report)
    _audit_sessions(store, uid, fix, report)
    if report["issues"]:
        log.warning("health.issues", uid=uid, issues=report["issues"], fixed=report["fixed"])
    return report


def audit_all(store: DocumentStore, fix: bool = False) -> List[Dict[str, Any]]:
    return [audit_user(store, uid, fix=fix) for uid in list_user_ids(store)]
