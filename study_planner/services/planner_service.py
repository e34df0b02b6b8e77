# study_planner/services/planner_service.py
"""Plan lifecycle: creation, activation, the active-plan lookup, task edits.

At most one plan per user carries `active=True`. Every flip of that flag is
committed together with the user's `activePlanId` pointer in one batch, so a
plan that is visible as active always has its tasks and its pointer.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from study_planner.core.constants import (
    DEFAULT_PLAN_SOURCE, DEFAULT_PLANNED_MINUTES, DEFAULT_PRIORITY, PLANS, PLAN_FETCH_FACTOR,
    PLAN_FETCH_FLOOR, PLAN_VERSION, SELF_HEAL_SCAN_LIMIT, TASKS, USERS,
)
from study_planner.core.errors import NotFoundError, StorageError, ValidationError
from study_planner.core.numbers import as_int, finite_or, number_or
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import utc_now_naive
from study_planner.data_access.plans_repo import (
    created_key, find_active_plans, find_user_plans, get_owned_plan, get_plan, get_plan_task,
    list_plan_tasks,
)
from study_planner.data_access.users_repo import get_active_plan_pointer, set_active_plan_pointer

log = structlog.get_logger(__name__)

PlanDoc = Dict[str, Any]


def _task_doc(uid: str, plan_id: str, raw: Any, index: int, now) -> Optional[Dict[str, Any]]:
    raw = raw if isinstance(raw, dict) else {}
    title = str(raw.get("title") or "").strip()
    if not title:
        return None
    return {
        "planId": plan_id,
        "userId": uid,
        "title": title,
        "subject": str(raw.get("subject")).strip() if raw.get("subject") else "",
        "plannedMinutes": as_int(max(0.0, finite_or(raw.get("plannedMinutes"), DEFAULT_PLANNED_MINUTES))),
        "done": False,
        "order": as_int(finite_or(raw.get("order"), index)),
        "createdAt": now,
        "completedAt": None,
    }


def create_plan(store: DocumentStore, uid: str, title: str, tasks: List[Dict[str, Any]],
                ai_plan: Optional[Dict[str, Any]] = None, input: Optional[Dict[str, Any]] = None,
                source: str = DEFAULT_PLAN_SOURCE) -> str:
    clean_title = str(title or "").strip()
    if not clean_title:
        raise ValidationError("Title is required")
    if not isinstance(tasks, list):
        raise ValidationError("Tasks must be a list")

    now = utc_now_naive()
    plan_id = store.new_id()
    batch = store.batch()
    for p in find_active_plans(store, uid):
        batch.update(PLANS, p["id"], {"active": False})
    batch.set(PLANS, plan_id, {
        "userId": uid,
        "title": clean_title,
        "active": True,
        "createdAt": now,
        "source": source,
        "version": PLAN_VERSION,
        "input": input or None,
        "aiPlan": ai_plan or None,
    })
    n_tasks = 0
    for i, raw in enumerate(tasks):
        doc = _task_doc(uid, plan_id, raw, i, now)
        if doc is None:
            continue
        batch.set(TASKS, store.new_id(), doc)
        n_tasks += 1
    batch.merge(USERS, uid, {"activePlanId": plan_id})
    batch.commit()

    log.info("plan.created", uid=uid, plan_id=plan_id, tasks=n_tasks)
    return plan_id


def set_only_plan_active(store: DocumentStore, uid: str, plan_id: str) -> None:
    if not get_plan(store, plan_id):
        raise NotFoundError("Plan not found")
    batch = store.batch()
    for p in find_active_plans(store, uid):
        if p["id"] != plan_id:
            batch.update(PLANS, p["id"], {"active": False})
    batch.update(PLANS, plan_id, {"active": True})
    batch.merge(USERS, uid, {"activePlanId": plan_id})
    batch.commit()
    log.info("plan.activated", uid=uid, plan_id=plan_id)


def set_plan_active(store: DocumentStore, uid: str, plan_id: str) -> None:
    get_owned_plan(store, uid, plan_id)
    set_only_plan_active(store, uid, plan_id)


# ---- Active plan resolution ---------------------------------------------------
# Ordered tiers: pointer -> active flag -> newest plan. Each returns a plan or
# None to hand over to the next tier.

def _resolve_from_pointer(store: DocumentStore, uid: str) -> Optional[PlanDoc]:
    plan_id = get_active_plan_pointer(store, uid)
    if not plan_id:
        return None
    plan = get_plan(store, plan_id)
    if not plan or plan.get("userId") != uid:
        log.info("plan.pointer_stale", uid=uid, plan_id=plan_id)
        return None
    if plan.get("active") is not True:
        try:
            set_only_plan_active(store, uid, plan_id)
        except StorageError as e:
            log.warning("plan.reactivate_failed", uid=uid, plan_id=plan_id, error=str(e))
    plan["active"] = True
    return plan


def _resolve_from_active_flag(store: DocumentStore, uid: str) -> Optional[PlanDoc]:
    found = find_active_plans(store, uid, limit=1)
    if not found:
        return None
    plan = found[0]
    try:
        set_active_plan_pointer(store, uid, plan["id"])
        log.info("plan.pointer_repaired", uid=uid, plan_id=plan["id"])
    except StorageError as e:
        log.warning("plan.pointer_repair_failed", uid=uid, plan_id=plan["id"], error=str(e))
    return plan


def _self_heal_newest(store: DocumentStore, uid: str) -> Optional[PlanDoc]:
    plans = find_user_plans(store, uid, limit=SELF_HEAL_SCAN_LIMIT)
    if not plans:
        return None
    newest = max(plans, key=created_key)
    set_only_plan_active(store, uid, newest["id"])
    log.info("plan.self_healed", uid=uid, plan_id=newest["id"])
    return {**newest, "active": True}


ACTIVE_PLAN_TIERS: Tuple[Callable[[DocumentStore, str], Optional[PlanDoc]], ...] = (
    _resolve_from_pointer,
    _resolve_from_active_flag,
    _self_heal_newest,
)


def get_active_plan(store: DocumentStore, uid: str) -> Optional[PlanDoc]:
    for tier in ACTIVE_PLAN_TIERS:
        plan = tier(store, uid)
        if plan is not None:
            return plan
    return None


def has_active_plan(store: DocumentStore, uid: str) -> bool:
    return get_active_plan(store, uid) is not None


def get_plans(store: DocumentStore, uid: str, limit_count: int = 10) -> List[PlanDoc]:
    limit_count = max(0, int(limit_count))
    active = get_active_plan(store, uid)
    plans = find_user_plans(store, uid, limit=max(PLAN_FETCH_FLOOR, limit_count * PLAN_FETCH_FACTOR))
    if active:
        plans = [p for p in plans if p["id"] != active["id"]] + [active]
    plans.sort(key=created_key, reverse=True)
    plans.sort(key=lambda p: p.get("active") is True, reverse=True)
    return plans[:limit_count]


# ---- Tasks ----------------------------------------------------------------------

def get_plan_tasks(store: DocumentStore, uid: str, plan_id: str) -> List[Dict[str, Any]]:
    get_owned_plan(store, uid, plan_id)
    return list_plan_tasks(store, plan_id)


def get_active_plan_with_tasks(store: DocumentStore, uid: str) -> Tuple[Optional[PlanDoc], List[Dict[str, Any]]]:
    plan = get_active_plan(store, uid)
    if not plan:
        return None, []
    return plan, get_plan_tasks(store, uid, plan["id"])


def set_task_done(store: DocumentStore, uid: str, plan_id: str, task_id: str, done: bool) -> None:
    get_owned_plan(store, uid, plan_id)
    if get_plan_task(store, plan_id, task_id) is None:
        raise NotFoundError("Task not found")
    store.update(TASKS, task_id, {
        "done": bool(done),
        "completedAt": utc_now_naive() if done else None,
    })


def optimize_tasks_in_plan(store: DocumentStore, uid: str, plan_id: str,
                           updates: List[Dict[str, Any]]) -> List[str]:
    get_owned_plan(store, uid, plan_id)
    if not isinstance(updates, list) or not updates:
        raise ValidationError("No updates provided")

    now = utc_now_naive()
    batch = store.batch()
    applied: List[str] = []
    for u in updates:
        task_id = u.get("taskId") if isinstance(u, dict) else None
        if get_plan_task(store, plan_id, task_id) is None:
            continue
        batch.update(TASKS, task_id, {
            "plannedMinutes": as_int(number_or(u.get("plannedMinutes"), DEFAULT_PLANNED_MINUTES)),
            "priority": as_int(number_or(u.get("priority"), DEFAULT_PRIORITY)),
            "order": as_int(number_or(u.get("order"), 0)),
            "note": str(u.get("note") or ""),
            "optimizedAt": now,
        })
        applied.append(task_id)
    batch.commit()

    try:
        store.update(PLANS, plan_id, {"optimizedAt": now})
    except StorageError as e:
        log.warning("plan.mark_optimized_failed", uid=uid, plan_id=plan_id, error=str(e))

    log.info("plan.optimized", uid=uid, plan_id=plan_id, applied=len(applied), skipped=len(updates) - len(applied))
    return applied


def tasks_from_ai_plan(ai_plan: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Map an already-parsed study-plan object onto create_plan's `tasks` argument."""
    raw = (ai_plan or {}).get("tasks") if isinstance(ai_plan, dict) else None
    if not isinstance(raw, list):
        return []
    out = []
    for i, t in enumerate(raw):
        if isinstance(t, str):
            t = {"title": t}
        if not isinstance(t, dict):
            continue
        out.append({
            "title": t.get("title"),
            "subject": t.get("subject"),
            "plannedMinutes": t.get("plannedMinutes", t.get("minutes")),
            "order": t.get("order", i),
        })
    return out
