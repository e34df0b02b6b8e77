# study_planner/core/db.py
import certifi
import structlog
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from study_planner.core.config import Settings
from study_planner.core.constants import PLANS, SESSIONS, TASKS
from study_planner.core.errors import StorageError
from study_planner.core.mongo_store import MongoStore
from study_planner.core.store import DocumentStore, MemoryStore

log = structlog.get_logger(__name__)


def get_mongo_db(settings: Settings):
    if not settings.mongo_uri:
        raise StorageError("MONGO_URI is not configured.")
    try:
        client = MongoClient(settings.mongo_uri, serverSelectionTimeoutMS=8000, tlsCAFile=certifi.where())
        client.admin.command("ping")
    except PyMongoError as e:
        raise StorageError(f"Could not connect to MongoDB: {e}") from e
    return client[settings.db_name]


def ensure_indexes(db) -> None:
    db[PLANS].create_index([("userId", ASCENDING), ("active", ASCENDING)], name="user_active")
    db[PLANS].create_index([("userId", ASCENDING), ("createdAt", DESCENDING)], name="user_created")
    db[TASKS].create_index([("planId", ASCENDING), ("order", ASCENDING)], name="plan_order")
    db[SESSIONS].create_index([("userId", ASCENDING), ("startedAt", ASCENDING)], name="user_started")


def get_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "memory":
        log.info("store.open", backend="memory")
        return MemoryStore()
    db = get_mongo_db(settings)
    try:
        ensure_indexes(db)
    except PyMongoError as e:
        raise StorageError(f"Could not create indexes: {e}") from e
    log.info("store.open", backend="mongo", db=settings.db_name)
    return MongoStore(db)
