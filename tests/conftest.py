"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pytest

from study_planner.core.constants import PLANS, SESSIONS, TASKS
from study_planner.core.errors import StorageError
from study_planner.core.store import MemoryStore

# 2026-03-10 15:00 UTC, a Tuesday
NOW = datetime(2026, 3, 10, 15, 0, 0)


class FlakyStore(MemoryStore):
    """MemoryStore that raises StorageError on chosen (kind, collection) writes."""

    def __init__(self):
        super().__init__()
        self.fail_on = set()

    def _apply(self, data, op):
        if (op[0], op[1]) in self.fail_on:
            raise StorageError(f"injected failure on {op[0]} {op[1]}")
        super()._apply(data, op)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def uid() -> str:
    return "alice"


@pytest.fixture
def other_uid() -> str:
    return "bob"


@pytest.fixture
def now() -> datetime:
    return NOW


def add_plan(store, uid: str, title: str = "Plan", created_at: Optional[datetime] = None,
             active: bool = False, **extra: Any) -> str:
    return store.insert(PLANS, {
        "userId": uid, "title": title, "active": active,
        "createdAt": created_at or NOW, "source": "manual", "version": 1,
        "input": None, "aiPlan": None, **extra,
    })


def add_task(store, uid: str, plan_id: str, title: str, order: int = 0, done: bool = False,
             **extra: Any) -> str:
    return store.insert(TASKS, {
        "planId": plan_id, "userId": uid, "title": title, "subject": "",
        "plannedMinutes": 25, "done": done, "order": order,
        "createdAt": NOW, "completedAt": NOW if done else None, **extra,
    })


def add_session(store, uid: str, started_at: datetime, minutes: float = 25,
                status: str = "completed", mode: str = "pomodoro", **extra: Any) -> str:
    doc: Dict[str, Any] = {
        "userId": uid, "planId": None, "taskId": None, "mode": mode,
        "status": status, "completed": status == "completed",
        "startedAt": started_at,
        "endedAt": started_at + timedelta(minutes=minutes) if status != "running" else None,
        "durationMinutes": minutes, "createdAt": started_at,
    }
    doc.update(extra)
    return store.insert(SESSIONS, doc)
