# study_planner/data_access/plans_repo.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from study_planner.core.constants import PLANS, TASKS, TASK_FETCH_LIMIT
from study_planner.core.errors import ForbiddenError, NotFoundError, ValidationError
from study_planner.core.store import DocumentStore

_EPOCH = datetime(1970, 1, 1)


def with_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    out["id"] = out.get("_id")
    return out


def created_key(doc: Dict[str, Any]) -> datetime:
    ts = doc.get("createdAt")
    return ts if isinstance(ts, datetime) else _EPOCH


def get_plan(store: DocumentStore, plan_id: str) -> Optional[Dict[str, Any]]:
    if not plan_id:
        return None
    doc = store.get(PLANS, plan_id)
    return with_id(doc) if doc else None


def get_owned_plan(store: DocumentStore, uid: str, plan_id: str) -> Dict[str, Any]:
    if not plan_id:
        raise ValidationError("planId is required")
    plan = get_plan(store, plan_id)
    if not plan:
        raise NotFoundError("Plan not found")
    if plan.get("userId") != uid:
        raise ForbiddenError()
    return plan


def find_user_plans(store: DocumentStore, uid: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    return [with_id(d) for d in store.find(PLANS, {"userId": uid}, limit=limit)]


def find_active_plans(store: DocumentStore, uid: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    return [with_id(d) for d in store.find(PLANS, {"userId": uid, "active": True}, limit=limit)]


def list_plan_tasks(store: DocumentStore, plan_id: str) -> List[Dict[str, Any]]:
    tasks = [with_id(d) for d in store.find(TASKS, {"planId": plan_id}, limit=TASK_FETCH_LIMIT)]
    tasks.sort(key=lambda t: _num(t.get("order"), 0))
    return tasks


def _num(val: Any, default: float) -> float:
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def get_plan_task(store: DocumentStore, plan_id: str, task_id: str) -> Optional[Dict[str, Any]]:
    doc = store.get(TASKS, task_id) if task_id else None
    if not doc or doc.get("planId") != plan_id:
        return None
    return with_id(doc)
