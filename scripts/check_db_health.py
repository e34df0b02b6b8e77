#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
DB Health Checker for Study Planner
Run:
  python scripts/check_db_health.py --uri "mongodb+srv://..." [--db Focus_DB] [--fix] [--user UID]
"""

import argparse
import os

from pymongo.errors import PyMongoError

from study_planner.core.config import Settings
from study_planner.core.db import ensure_indexes, get_mongo_db
from study_planner.core.errors import StudyPlannerError
from study_planner.core.logging_config import setup_logging
from study_planner.core.mongo_store import MongoStore
from study_planner.services.health_service import audit_all, audit_user


def parse_args(argv=None):
    p = argparse.ArgumentParser()
    p.add_argument("--uri", default=os.getenv("MONGO_URI", ""), help="MongoDB connection URI")
    p.add_argument("--db", default=os.getenv("DB_NAME", "Focus_DB"), help="Database name")
    p.add_argument("--user", default=None, help="Audit a single user id")
    p.add_argument("--fix", action="store_true", help="Repair active-plan / running-session invariants")
    p.add_argument("--no-indexes", action="store_true", help="Skip creating the expected indexes")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    if not args.uri:
        raise SystemExit("MONGO_URI is required (--uri or env)")

    try:
        db = get_mongo_db(Settings(mongo_uri=args.uri, db_name=args.db, store_backend="mongo"))
        if not args.no_indexes:
            print("🔎 Ensuring indexes")
            ensure_indexes(db)
        store = MongoStore(db)
        reports = [audit_user(store, args.user, fix=args.fix)] if args.user else audit_all(store, fix=args.fix)
    except (StudyPlannerError, PyMongoError) as e:
        print(f"  ⚠️  {e}")
        return 1

    bad = [r for r in reports if r["issues"]]
    print(f"\n🧪 Users audited: {len(reports)}, with issues: {len(bad)}")
    for r in bad:
        print(f"  {r['uid']}: {', '.join(r['issues'])}")
        for f in r["fixed"]:
            print(f"    ✅ {f}")

    print("\n✨ Done.")
    return 0 if (not bad or args.fix) else 2


if __name__ == "__main__":
    raise SystemExit(main())
