import itertools

import pytest

from neurocore.gating.difficulty import (
    STRATEGIES,
    DifficultyInput,
    advise,
    initial_training_capacity,
    update_training_capacity,
)
from neurocore.models import SkillState
from neurocore.plans import PLANS, get_plan


def _statuses(advice) -> dict:
    return {o.difficulty: o.status for o in advice.options}


def test_expert_example_falls_through_to_easy():
    inp = DifficultyInput(recovery=60, sharpness=72, readiness=65, weekly_xp=80, training_capacity=120)
    assert inp.opt_min == pytest.approx(72.0)
    assert inp.opt_max == pytest.approx(102.0)

    advice = advise(inp, get_plan("expert"))
    assert advice.recommended == "easy"
    assert advice.locked == []
    assert not advice.safety_mode_active
    assert _statuses(advice) == {"easy": "recommended", "medium": "enabled", "hard": "enabled"}


def test_expert_hard_and_medium_bands():
    hard = advise(DifficultyInput(75, 75, 65, 90, 120), get_plan("expert"))
    assert hard.recommended == "hard"
    medium = advise(DifficultyInput(60, 60, 65, 80, 120), get_plan("expert"))
    assert medium.recommended == "medium"
    under_loaded = advise(DifficultyInput(75, 75, 65, 10, 120), get_plan("expert"))
    assert under_loaded.recommended == "easy"


def test_plan_strategies_differ_on_same_metrics():
    inp = DifficultyInput(recovery=62, sharpness=62, readiness=50, weekly_xp=50, training_capacity=120)
    assert advise(inp, get_plan("light")).recommended == "medium"
    assert advise(inp, get_plan("expert")).recommended == "easy"
    assert advise(inp, get_plan("superhuman")).recommended == "medium"
    assert set(STRATEGIES) == set(PLANS)


def test_hard_lock_reasons():
    low_rec = advise(DifficultyInput(50, 80, 80, 80, 120), get_plan("superhuman"))
    hard = next(o for o in low_rec.options if o.difficulty == "hard")
    assert hard.status == "locked"
    assert hard.lock_reason == "REC_TOO_LOW"
    assert low_rec.recommended == "medium"

    overloaded = advise(DifficultyInput(80, 80, 80, 110, 120), get_plan("superhuman"))
    assert next(o for o in overloaded.options if o.difficulty == "hard").lock_reason == "LOAD_TOO_HIGH"

    unready = advise(DifficultyInput(80, 80, 40, 80, 120), get_plan("superhuman"))
    assert next(o for o in unready.options if o.difficulty == "hard").lock_reason == "READINESS_TOO_LOW"


def test_locked_suggestion_is_downgraded():
    advice = advise(DifficultyInput(50, 70, 70, 130, 120), get_plan("superhuman"))
    assert advice.suggested == "medium"
    assert advice.recommended == "easy"
    assert advice.safety_mode_active
    medium = next(o for o in advice.options if o.difficulty == "medium")
    assert medium.lock_reason == "LOAD_EXCEEDS_TC"


def test_safety_mode_when_medium_locked():
    advice = advise(DifficultyInput(35, 80, 80, 50, 120), get_plan("expert"))
    assert advice.safety_mode_active
    assert advice.safety_label == "Light mode enabled for safety"
    assert advice.locked == ["medium", "hard"]
    assert {o.lock_reason for o in advice.options if o.status == "locked"} == {"REC_VERY_LOW"}
    assert advice.to_dict()["options"][1]["lock_reason"]["code"] == "REC_VERY_LOW"


def test_never_recommends_a_locked_tier():
    values = (20, 39, 40, 45, 55, 60, 70, 90)
    loads = (0, 60, 80, 100, 110, 130)
    for plan_id in PLANS:
        plan = get_plan(plan_id)
        for rec, sharp, ready, xp in itertools.product(values, values, values, loads):
            advice = advise(DifficultyInput(rec, sharp, ready, xp, 120), plan)
            assert advice.recommended not in advice.locked
            if "medium" in advice.locked:
                assert "hard" in advice.locked
                assert advice.safety_mode_active
            assert sum(o.status == "recommended" for o in advice.options) == 1


def test_initial_training_capacity_bounds():
    plan = get_plan("expert")
    assert initial_training_capacity(SkillState("u1"), plan.tc_cap) == 50.0
    assert initial_training_capacity(SkillState("u1", 100, 100, 100, 100), plan.tc_cap) == 96.0
    assert initial_training_capacity(SkillState("u1", 10, 10, 10, 10), plan.tc_cap) == 30.0


def test_training_capacity_weekly_update():
    assert update_training_capacity(100.0, 100.0, 50.0, 1, 160.0) == 105.4
    assert update_training_capacity(100.0, 0.0, 50.0, 10, 160.0) == 97.0
    assert update_training_capacity(158.0, 500.0, 100.0, 0, 160.0) == 160.0
    assert update_training_capacity(31.0, 0.0, 0.0, None, 160.0) == 31.0
    assert update_training_capacity(31.0, 0.0, 0.0, 30, 160.0) == 30.0
