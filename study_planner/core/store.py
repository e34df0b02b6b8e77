# study_planner/core/store.py
"""Keyed document store contract plus the in-process backend.

Services only talk to a `DocumentStore`: point reads, filtered scans, merge
writes, one compare-and-merge, and atomic batches. `MongoStore` (see
core/mongo_store.py) is the production backend; `MemoryStore` backs local
runs and tests.
"""
import copy
import threading
import uuid
from typing import Any, Dict, List, Optional, Protocol, Tuple

from study_planner.core.errors import NotFoundError, ValidationError

Doc = Dict[str, Any]
# (kind, collection, doc_id, fields); kind is "set", "merge" or "update"
WriteOp = Tuple[str, str, str, Doc]

_WRITE_KINDS = ("set", "merge", "update")


class DocumentStore(Protocol):
    def new_id(self) -> str: ...
    def get(self, collection: str, doc_id: str) -> Optional[Doc]: ...
    def find(self, collection: str, filters: Doc, limit: Optional[int] = None) -> List[Doc]: ...
    def insert(self, collection: str, doc: Doc) -> str: ...
    def merge(self, collection: str, doc_id: str, fields: Doc) -> None: ...
    def update(self, collection: str, doc_id: str, fields: Doc) -> None: ...
    def compare_and_merge(self, collection: str, doc_id: str, expected: Doc, fields: Doc) -> bool: ...
    def batch(self) -> "WriteBatch": ...
    def commit(self, ops: List[WriteOp]) -> None: ...


class WriteBatch:
    """Collects writes and hands them to the store as one all-or-nothing commit."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._ops: List[WriteOp] = []

    def set(self, collection: str, doc_id: str, doc: Doc) -> "WriteBatch":
        self._ops.append(("set", collection, doc_id, dict(doc)))
        return self

    def merge(self, collection: str, doc_id: str, fields: Doc) -> "WriteBatch":
        self._ops.append(("merge", collection, doc_id, dict(fields)))
        return self

    def update(self, collection: str, doc_id: str, fields: Doc) -> "WriteBatch":
        self._ops.append(("update", collection, doc_id, dict(fields)))
        return self

    @property
    def ops(self) -> List[WriteOp]:
        return list(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> None:
        if self._ops:
            self._store.commit(list(self._ops))


def _compare(val: Any, op: str, arg: Any) -> bool:
    if op == "$ne":
        return val != arg
    if op == "$in":
        return val in list(arg or [])
    if val is None or arg is None:
        return False
    if op == "$gte":
        return val >= arg
    if op == "$gt":
        return val > arg
    if op == "$lte":
        return val <= arg
    if op == "$lt":
        return val < arg
    raise ValidationError(f"Unsupported filter operator: {op}")


def matches(doc: Doc, filters: Doc) -> bool:
    """Mongo-style match: equality, None == missing, and $gte/$gt/$lt/$lte/$in/$ne."""
    for field, cond in (filters or {}).items():
        val = doc.get(field)
        if isinstance(cond, dict) and cond and all(str(k).startswith("$") for k in cond):
            if not all(_compare(val, op, arg) for op, arg in cond.items()):
                return False
        elif val != cond:
            return False
    return True


class MemoryStore:
    """Thread-safe in-process DocumentStore."""

    def __init__(self):
        self._data: Dict[str, Dict[str, Doc]] = {}
        self._lock = threading.RLock()

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def get(self, collection: str, doc_id: str) -> Optional[Doc]:
        with self._lock:
            doc = self._data.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def find(self, collection: str, filters: Doc, limit: Optional[int] = None) -> List[Doc]:
        with self._lock:
            out = [copy.deepcopy(d) for d in self._data.get(collection, {}).values() if matches(d, filters)]
        return out[:limit] if limit else out

    def insert(self, collection: str, doc: Doc) -> str:
        doc_id = str(doc.get("_id") or self.new_id())
        self.commit([("set", collection, doc_id, dict(doc))])
        return doc_id

    def merge(self, collection: str, doc_id: str, fields: Doc) -> None:
        self.commit([("merge", collection, doc_id, dict(fields))])

    def update(self, collection: str, doc_id: str, fields: Doc) -> None:
        self.commit([("update", collection, doc_id, dict(fields))])

    def compare_and_merge(self, collection: str, doc_id: str, expected: Doc, fields: Doc) -> bool:
        with self._lock:
            current = self._data.get(collection, {}).get(doc_id) or {}
            if any(current.get(k) != v for k, v in expected.items()):
                return False
            self._apply(self._data, ("merge", collection, doc_id, dict(fields)))
            return True

    def commit(self, ops: List[WriteOp]) -> None:
        with self._lock:
            staged = copy.deepcopy(self._data)
            for op in ops:
                self._apply(staged, op)
            self._data = staged

    def _apply(self, data: Dict[str, Dict[str, Doc]], op: WriteOp) -> None:
        kind, collection, doc_id, fields = op
        if kind not in _WRITE_KINDS:
            raise ValidationError(f"Unknown write kind: {kind}")
        coll = data.setdefault(collection, {})
        if kind == "set":
            coll[doc_id] = {**copy.deepcopy(fields), "_id": doc_id}
        elif kind == "merge":
            coll.setdefault(doc_id, {"_id": doc_id}).update(copy.deepcopy(fields))
        else:
            if doc_id not in coll:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            coll[doc_id].update(copy.deepcopy(fields))
