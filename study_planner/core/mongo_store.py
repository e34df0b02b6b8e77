# study_planner/core/mongo_store.py
import uuid
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import structlog
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from study_planner.core.errors import NotFoundError, StorageError, ValidationError
from study_planner.core.store import WriteBatch, WriteOp

log = structlog.get_logger(__name__)


@contextmanager
def _storage_errors(action: str, collection: str):
    try:
        yield
    except PyMongoError as e:
        log.warning("store.error", action=action, collection=collection, error=str(e))
        raise StorageError(f"{action} on {collection} failed: {e}") from e


class MongoStore:
    """DocumentStore over a pymongo Database; batches commit inside a transaction."""

    def __init__(self, db: Database):
        self.db = db
        self.client = db.client

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with _storage_errors("get", collection):
            return self.db[collection].find_one({"_id": doc_id})

    def find(self, collection: str, filters: Dict[str, Any], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        with _storage_errors("find", collection):
            cursor = self.db[collection].find(filters)
            if limit:
                cursor = cursor.limit(int(limit))
            return list(cursor)

    def insert(self, collection: str, doc: Dict[str, Any]) -> str:
        doc = dict(doc)
        doc["_id"] = str(doc.get("_id") or self.new_id())
        with _storage_errors("insert", collection):
            self.db[collection].insert_one(doc)
        return doc["_id"]

    def merge(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        with _storage_errors("merge", collection):
            self.db[collection].update_one({"_id": doc_id}, {"$set": fields}, upsert=True)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        with _storage_errors("update", collection):
            res = self.db[collection].update_one({"_id": doc_id}, {"$set": fields})
        if res.matched_count == 0:
            raise NotFoundError(f"{collection}/{doc_id} not found")

    def compare_and_merge(self, collection: str, doc_id: str, expected: Dict[str, Any],
                          fields: Dict[str, Any]) -> bool:
        flt = {"_id": doc_id, **expected}
        try:
            with _storage_errors("compare_and_merge", collection):
                res = self.db[collection].update_one(flt, {"$set": fields}, upsert=True)
        except StorageError as e:
            # doc exists but the compare failed -> the upsert collides on _id
            if isinstance(e.__cause__, DuplicateKeyError):
                return False
            raise
        return bool(res.matched_count or res.upserted_id is not None)

    def commit(self, ops: List[WriteOp]) -> None:
        if not ops:
            return

        def _run(session):
            for kind, collection, doc_id, fields in ops:
                col = self.db[collection]
                if kind == "set":
                    col.replace_one({"_id": doc_id}, {**fields, "_id": doc_id}, upsert=True, session=session)
                elif kind == "merge":
                    col.update_one({"_id": doc_id}, {"$set": fields}, upsert=True, session=session)
                elif kind == "update":
                    res = col.update_one({"_id": doc_id}, {"$set": fields}, session=session)
                    if res.matched_count == 0:
                        raise NotFoundError(f"{collection}/{doc_id} not found")
                else:
                    raise ValidationError(f"Unknown write kind: {kind}")

        with _storage_errors("commit", ",".join(sorted({op[1] for op in ops}))):
            with self.client.start_session() as session:
                session.with_transaction(_run)
