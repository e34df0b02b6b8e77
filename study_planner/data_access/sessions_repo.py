# study_planner/data_access/sessions_repo.py
# Session log: append-only, partitioned by userId. Documents are inserted once
# and only their terminal fields are ever updated.
from datetime import datetime
from typing import Any, Dict, List, Optional

from study_planner.core.constants import SESSIONS
from study_planner.core.store import DocumentStore
from study_planner.data_access.plans_repo import with_id


def insert_session(store: DocumentStore, uid: str, doc: Dict[str, Any]) -> str:
    return store.insert(SESSIONS, {**doc, "userId": uid})


def get_session(store: DocumentStore, uid: str, session_id: str) -> Optional[Dict[str, Any]]:
    doc = store.get(SESSIONS, session_id) if session_id else None
    if not doc or doc.get("userId") != uid:
        return None
    return with_id(doc)


def update_session(store: DocumentStore, session_id: str, fields: Dict[str, Any]) -> None:
    store.update(SESSIONS, session_id, fields)


def sessions_started_between(store: DocumentStore, uid: str, start_utc: datetime,
                             end_utc: Optional[datetime] = None) -> List[Dict[str, Any]]:
    rng: Dict[str, Any] = {"$gte": start_utc}
    if end_utc is not None:
        rng["$lt"] = end_utc
    return [with_id(d) for d in store.find(SESSIONS, {"userId": uid, "startedAt": rng})]


def find_running_sessions(store: DocumentStore, uid: str) -> List[Dict[str, Any]]:
    return [with_id(d) for d in store.find(SESSIONS, {"userId": uid, "status": "running"})]
