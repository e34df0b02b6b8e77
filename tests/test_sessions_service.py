"""Tests for the focus session lifecycle and the active-session pointer."""

import pytest

from conftest import NOW, add_session
from study_planner.core.constants import SESSIONS, USERS
from study_planner.core.errors import NotFoundError, StorageError, ValidationError
from study_planner.core.store import MemoryStore
from study_planner.data_access.users_repo import (
    get_active_session_pointer, set_active_session_pointer,
)
from study_planner.services.sessions_service import (
    cancel_session, end_session, get_active_session, start_session,
)


class RacingStore(MemoryStore):
    """Lets a competing start win the pointer just before our first claim."""

    def __init__(self, uid, always=False):
        super().__init__()
        self.uid = uid
        self.always = always
        self.winner = None

    def compare_and_merge(self, collection, doc_id, expected, fields):
        if collection == USERS and (self.always or self.winner is None):
            self.winner = self.insert(SESSIONS, {
                "userId": self.uid, "mode": "pomodoro", "status": "running" if not self.always else "completed",
                "startedAt": NOW, "durationMinutes": 0,
            })
            self.merge(USERS, doc_id, {"activeSessionId": self.winner})
        return super().compare_and_merge(collection, doc_id, expected, fields)


def _running(store, uid):
    return store.find(SESSIONS, {"userId": uid, "status": "running"})


class TestStartSession:
    def test_creates_running_session_and_pointer(self, store, uid):
        res = start_session(store, uid, plan_id="p1", task_id="t1", planned_minutes=25,
                            scaled_minutes=30, subject="Math", burnout_score_at_start=140)
        assert res["reused"] is False

        doc = store.get(SESSIONS, res["id"])
        assert doc["userId"] == uid
        assert doc["status"] == "running"
        assert doc["completed"] is False
        assert doc["endedAt"] is None
        assert doc["durationMinutes"] == 0
        assert doc["plannedMinutes"] == 25
        assert doc["scaledMinutes"] == 30
        assert doc["subject"] == "Math"
        assert doc["burnoutScoreAtStart"] == 100

        ptr = get_active_session_pointer(store, uid)
        assert ptr["sessionId"] == res["id"]
        assert ptr["mode"] == "pomodoro"
        assert isinstance(ptr["startedAtMs"], int)

    def test_optional_fields_stay_none(self, store, uid):
        res = start_session(store, uid)
        doc = store.get(SESSIONS, res["id"])
        assert doc["plannedMinutes"] is None
        assert doc["scaledMinutes"] is None
        assert doc["subject"] is None
        assert doc["burnoutScoreAtStart"] is None

    def test_rejects_unknown_mode(self, store, uid):
        with pytest.raises(ValidationError):
            start_session(store, uid, mode="nap")

    def test_reuses_running_session(self, store, uid):
        first = start_session(store, uid)
        second = start_session(store, uid, mode="short")
        assert second == {"id": first["id"], "reused": True}
        assert len(_running(store, uid)) == 1

    def test_stale_pointer_is_replaced(self, store, uid):
        done = add_session(store, uid, NOW)
        set_active_session_pointer(store, uid, done)
        res = start_session(store, uid)
        assert res["reused"] is False
        assert res["id"] != done
        assert get_active_session_pointer(store, uid)["sessionId"] == res["id"]

    def test_lost_race_cancels_own_session(self, uid):
        store = RacingStore(uid)
        res = start_session(store, uid)

        assert res == {"id": store.winner, "reused": True}
        running = _running(store, uid)
        assert [s["_id"] for s in running] == [store.winner]
        cancelled = store.find(SESSIONS, {"userId": uid, "status": "cancelled"})
        assert len(cancelled) == 1
        assert cancelled[0]["completed"] is False
        assert get_active_session_pointer(store, uid)["sessionId"] == store.winner

    def test_gives_up_after_repeated_lost_claims(self, uid):
        store = RacingStore(uid, always=True)
        with pytest.raises(StorageError):
            start_session(store, uid)
        assert _running(store, uid) == []


class TestEndSession:
    def test_complete_clears_pointer(self, store, uid):
        sid = start_session(store, uid)["id"]
        end_session(store, uid, sid, duration_minutes=25, burnout_score_at_end=-5)

        doc = store.get(SESSIONS, sid)
        assert doc["status"] == "completed"
        assert doc["completed"] is True
        assert doc["durationMinutes"] == 25
        assert doc["endedAt"] is not None
        assert doc["burnoutScoreAtEnd"] == 0
        assert get_active_session_pointer(store, uid) is None
        assert get_active_session(store, uid) is None

    def test_cancel(self, store, uid):
        sid = start_session(store, uid)["id"]
        cancel_session(store, uid, sid)
        doc = store.get(SESSIONS, sid)
        assert doc["status"] == "cancelled"
        assert doc["completed"] is False
        assert doc["durationMinutes"] == 0
        assert get_active_session_pointer(store, uid) is None

    def test_negative_duration_clamps_to_zero(self, store, uid):
        sid = start_session(store, uid)["id"]
        end_session(store, uid, sid, duration_minutes=-10)
        assert store.get(SESSIONS, sid)["durationMinutes"] == 0

    def test_validation(self, store, uid):
        sid = start_session(store, uid)["id"]
        with pytest.raises(ValidationError):
            end_session(store, uid, "")
        with pytest.raises(ValidationError):
            end_session(store, uid, sid, status="running")

    def test_unknown_or_foreign_session(self, store, uid, other_uid):
        theirs = start_session(store, other_uid)["id"]
        with pytest.raises(NotFoundError):
            end_session(store, uid, "missing")
        with pytest.raises(NotFoundError):
            end_session(store, uid, theirs)
        assert store.get(SESSIONS, theirs)["status"] == "running"

    def test_pointer_clear_failure_is_swallowed(self, flaky_store, uid):
        sid = start_session(flaky_store, uid)["id"]
        flaky_store.fail_on.add(("merge", USERS))
        end_session(flaky_store, uid, sid, duration_minutes=20)

        assert flaky_store.get(SESSIONS, sid)["status"] == "completed"
        # pointer is stale, but readers see no running session
        assert get_active_session_pointer(flaky_store, uid)["sessionId"] == sid
        assert get_active_session(flaky_store, uid) is None

    def test_new_start_after_end(self, store, uid):
        first = start_session(store, uid)["id"]
        end_session(store, uid, first)
        second = start_session(store, uid)
        assert second["reused"] is False
        assert second["id"] != first


def test_get_active_session(store, uid):
    assert get_active_session(store, uid) is None
    sid = start_session(store, uid, mode="short")["id"]
    active = get_active_session(store, uid)
    assert active["sessionId"] == sid
    assert active["mode"] == "short"
    assert active["session"]["status"] == "running"
