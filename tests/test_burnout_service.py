"""Tests for the burnout heuristic."""

import pytest

from conftest import NOW, add_session
from study_planner.services.burnout_service import (
    burnout_status, completion_ratio, get_burnout_score, plan_energy, score_burnout,
)
from study_planner.services.planner_service import create_plan, get_active_plan_with_tasks, set_task_done


@pytest.mark.parametrize("energy, completion, streak, minutes, expected", [
    (1, 0.2, 0, 200, 90),
    (5, 1.0, 5, 30, 0),
    (1, 0.0, 0, 200, 90),
    (5, 1.0, 4, 60, 0),
    (3, 0.5, 2, 150, 30),
    (2, 0.39, 1, 181, 70),
    (4, 0.7, 0, 120, 20),
])
def test_score_burnout(energy, completion, streak, minutes, expected):
    assert score_burnout(energy, completion, streak, minutes) == expected


@pytest.mark.parametrize("score, status", [
    (90, "Burnout Risk"), (61, "Burnout Risk"), (60, "Fatigued"),
    (31, "Fatigued"), (30, "Healthy"), (0, "Healthy"),
])
def test_burnout_status(score, status):
    assert burnout_status(score) == status


@pytest.mark.parametrize("inputs, score, status", [
    ((1, 0.2, 0, 200), 90, "Burnout Risk"),
    ((5, 1.0, 5, 30), 0, "Healthy"),
])
def test_reference_cases_score_and_label(inputs, score, status):
    got = score_burnout(*inputs)
    assert got == score
    assert burnout_status(got) == status


def test_plan_energy_defaults():
    assert plan_energy(None) == 3
    assert plan_energy({"input": None}) == 3
    assert plan_energy({"input": {"energyLevel": "tired"}}) == 3
    assert plan_energy({"input": {"energyLevel": 5}}) == 5


def test_completion_ratio():
    assert completion_ratio([]) == 1.0
    assert completion_ratio([{"done": True}, {"done": False}, {"done": False}, {"done": True}]) == 0.5


def test_high_risk_for_low_energy_and_no_progress(store, uid):
    create_plan(store, uid, "Exams", [{"title": t} for t in "abcd"], input={"energyLevel": 2})
    out = get_burnout_score(store, uid, now=NOW)
    # +25 energy, +25 completion, +20 no streak
    assert out["score"] == 70
    assert out["status"] == "Burnout Risk"
    assert out["energy"] == 2
    assert out["completion"] == 0.0
    assert out["streak"] == 0
    assert out["totalMinutes"] == 0


def test_healthy_with_progress_and_streak(store, uid):
    plan_id = create_plan(store, uid, "Exams", [{"title": "a"}, {"title": "b"}], input={"energyLevel": 5})
    _, tasks = get_active_plan_with_tasks(store, uid)
    for t in tasks:
        set_task_done(store, uid, plan_id, t["id"], True)
    add_session(store, uid, NOW.replace(hour=9), 50)

    out = get_burnout_score(store, uid, now=NOW)
    assert out == {
        "score": 0, "status": "Healthy", "energy": 5,
        "completion": 1.0, "totalMinutes": 50, "streak": 1,
    }


def test_no_plan_counts_as_complete(store, uid):
    out = get_burnout_score(store, uid, now=NOW)
    # +10 default energy, +20 no streak
    assert out["score"] == 30
    assert out["completion"] == 1.0
    assert out["status"] == "Healthy"
