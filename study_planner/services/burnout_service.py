# study_planner/services/burnout_service.py
"""Heuristic 0-100 burnout score.

Each factor adds points on its own; the sum is clamped to 0..100.

    energy (plan.input.energyLevel, default 3)   <=2: +25   ==3: +10
    completion (done / total, 1.0 with no tasks)  <0.4: +25  <0.7: +10
    streak                                        ==0: +20
    today's focus minutes                         >180: +20  >120: +10

Labels: > 60 "Burnout Risk", > 30 "Fatigued", otherwise "Healthy".
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from study_planner.core.constants import BURNOUT_MAX, BURNOUT_MIN, DEFAULT_ENERGY_LEVEL
from study_planner.core.numbers import as_int, clamp, finite_or
from study_planner.core.store import DocumentStore
from study_planner.core.time_utils import TzLike
from study_planner.services.analytics_service import get_streak, get_today_session_stats
from study_planner.services.planner_service import get_active_plan_with_tasks

log = structlog.get_logger(__name__)

STATUS_RISK = "Burnout Risk"
STATUS_FATIGUED = "Fatigued"
STATUS_HEALTHY = "Healthy"


def score_burnout(energy: float, completion: float, streak: int, total_minutes: float) -> int:
    score = 0
    if energy <= 2:
        score += 25
    elif energy == 3:
        score += 10

    if completion < 0.4:
        score += 25
    elif completion < 0.7:
        score += 10

    if streak == 0:
        score += 20

    if total_minutes > 180:
        score += 20
    elif total_minutes > 120:
        score += 10

    return int(clamp(score, BURNOUT_MIN, BURNOUT_MAX))


def burnout_status(score: float) -> str:
    if score > 60:
        return STATUS_RISK
    if score > 30:
        return STATUS_FATIGUED
    return STATUS_HEALTHY


def plan_energy(plan: Optional[Dict[str, Any]]) -> float:
    raw = ((plan or {}).get("input") or {}).get("energyLevel")
    return as_int(finite_or(raw, DEFAULT_ENERGY_LEVEL))


def completion_ratio(tasks: List[Dict[str, Any]]) -> float:
    if not tasks:
        return 1.0
    done = sum(1 for t in tasks if t.get("done"))
    return done / len(tasks)


def get_burnout_score(store: DocumentStore, uid: str, now: Optional[datetime] = None,
                      tz: TzLike = None) -> Dict[str, Any]:
    with ThreadPoolExecutor(max_workers=3) as pool:
        f_today = pool.submit(get_today_session_stats, store, uid, now=now, tz=tz)
        f_streak = pool.submit(get_streak, store, uid, now=now, tz=tz)
        f_plan = pool.submit(get_active_plan_with_tasks, store, uid)
        today, streak, (plan, tasks) = f_today.result(), f_streak.result(), f_plan.result()

    energy = plan_energy(plan)
    completion = completion_ratio(tasks)
    total_minutes = today["totalMinutes"]
    score = score_burnout(energy, completion, streak["streak"], total_minutes)
    status = burnout_status(score)
    log.info("burnout.scored", uid=uid, score=score, status=status)
    return {
        "score": score,
        "status": status,
        "energy": energy,
        "completion": completion,
        "totalMinutes": total_minutes,
        "streak": streak["streak"],
    }
