"""Tests for the DocumentStore contract as implemented by MemoryStore."""

from datetime import datetime

import pytest

from study_planner.core.errors import NotFoundError, StorageError, ValidationError
from study_planner.core.store import MemoryStore, matches


class TestMatches:
    def test_equality_and_missing_is_none(self):
        doc = {"a": 1, "b": None}
        assert matches(doc, {"a": 1})
        assert matches(doc, {"b": None})
        assert matches(doc, {"c": None})
        assert not matches(doc, {"a": 2})

    def test_range_operators(self):
        doc = {"t": datetime(2026, 3, 10, 12)}
        assert matches(doc, {"t": {"$gte": datetime(2026, 3, 10), "$lt": datetime(2026, 3, 11)}})
        assert not matches(doc, {"t": {"$lt": datetime(2026, 3, 10)}})
        assert not matches({}, {"t": {"$gte": datetime(2026, 3, 10)}})

    def test_in_and_ne(self):
        assert matches({"s": "running"}, {"s": {"$in": ["running", "completed"]}})
        assert matches({"s": "running"}, {"s": {"$ne": "cancelled"}})

    def test_unknown_operator(self):
        with pytest.raises(ValidationError):
            matches({"a": 1}, {"a": {"$regex": "x"}})


class TestMemoryStore:
    def test_get_missing_returns_none(self, store):
        assert store.get("users", "nobody") is None

    def test_insert_and_find(self, store):
        sid = store.insert("plans", {"userId": "u1", "title": "A"})
        store.insert("plans", {"userId": "u2", "title": "B"})
        found = store.find("plans", {"userId": "u1"})
        assert [d["_id"] for d in found] == [sid]

    def test_find_limit(self, store):
        for i in range(5):
            store.insert("plans", {"userId": "u1", "n": i})
        assert len(store.find("plans", {"userId": "u1"}, limit=2)) == 2

    def test_returned_docs_are_copies(self, store):
        store.insert("plans", {"_id": "p1", "tags": ["a"]})
        doc = store.get("plans", "p1")
        doc["tags"].append("b")
        assert store.get("plans", "p1")["tags"] == ["a"]

    def test_merge_keeps_unrelated_fields(self, store):
        store.merge("users", "u1", {"activePlanId": "p1"})
        store.merge("users", "u1", {"activeSessionId": "s1"})
        assert store.get("users", "u1") == {"_id": "u1", "activePlanId": "p1", "activeSessionId": "s1"}

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update("plans", "missing", {"active": True})

    def test_compare_and_merge(self, store):
        assert store.compare_and_merge("users", "u1", {"activeSessionId": None}, {"activeSessionId": "s1"})
        assert not store.compare_and_merge("users", "u1", {"activeSessionId": None}, {"activeSessionId": "s2"})
        assert store.compare_and_merge("users", "u1", {"activeSessionId": "s1"}, {"activeSessionId": "s2"})
        assert store.get("users", "u1")["activeSessionId"] == "s2"

    def test_batch_commit_is_all_or_nothing(self, store):
        store.insert("plans", {"_id": "p1", "active": True})
        batch = store.batch()
        batch.update("plans", "p1", {"active": False})
        batch.set("plans", "p2", {"active": True})
        batch.update("plans", "missing", {"active": False})
        with pytest.raises(NotFoundError):
            batch.commit()
        assert store.get("plans", "p1")["active"] is True
        assert store.get("plans", "p2") is None

    def test_injected_failure_leaves_no_partial_write(self, flaky_store):
        flaky_store.fail_on.add(("set", "tasks"))
        batch = flaky_store.batch().set("plans", "p1", {"a": 1}).set("tasks", "t1", {"b": 2})
        with pytest.raises(StorageError):
            batch.commit()
        assert flaky_store.get("plans", "p1") is None

    def test_empty_batch_commit_is_noop(self, store):
        batch = store.batch()
        assert len(batch) == 0
        batch.commit()

    def test_new_ids_are_unique(self):
        s = MemoryStore()
        assert len({s.new_id() for _ in range(100)}) == 100
