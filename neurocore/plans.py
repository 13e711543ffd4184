"""Static training plan table.

Plans are external configuration from the engine's point of view: weekly
XP and recovery targets, S2 gating modifiers, weekly caps and the training
capacity ceiling.  Unknown ids resolve to the default plan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

PlanId = Literal["light", "expert", "superhuman"]

DEFAULT_PLAN_ID: PlanId = "expert"
BASE_S2_RECOVERY: float = 50.0


@dataclass(slots=True, frozen=True)
class PlanConfig:
    id: PlanId
    name: str
    xp_target_week: float
    recovery_target_minutes: float
    s2_threshold_modifier: float
    require_rec_for_s2: float
    insight_max_per_week: int
    s2_max_per_week: int
    tc_cap: float

    @property
    def demands_s2_recovery(self) -> bool:
        """Whether the plan raises the recovery floor for S2 games."""
        return self.require_rec_for_s2 > BASE_S2_RECOVERY


PLANS: dict[str, PlanConfig] = {
    "light": PlanConfig(
        id="light",
        name="Light Training",
        xp_target_week=120.0,
        recovery_target_minutes=480.0,
        s2_threshold_modifier=3.0,
        require_rec_for_s2=50.0,
        insight_max_per_week=2,
        s2_max_per_week=4,
        tc_cap=100.0,
    ),
    "expert": PlanConfig(
        id="expert",
        name="Expert Training",
        xp_target_week=200.0,
        recovery_target_minutes=840.0,
        s2_threshold_modifier=0.0,
        require_rec_for_s2=50.0,
        insight_max_per_week=3,
        s2_max_per_week=7,
        tc_cap=160.0,
    ),
    "superhuman": PlanConfig(
        id="superhuman",
        name="Superhuman Training",
        xp_target_week=300.0,
        recovery_target_minutes=1680.0,
        s2_threshold_modifier=-5.0,
        require_rec_for_s2=55.0,
        insight_max_per_week=4,
        s2_max_per_week=10,
        tc_cap=220.0,
    ),
}


def get_plan(plan_id: str | None) -> PlanConfig:
    key = (plan_id or DEFAULT_PLAN_ID).lower()
    plan = PLANS.get(key)
    if plan is None:
        logger.warning("Unknown plan id %r, using %s", plan_id, DEFAULT_PLAN_ID)
        return PLANS[DEFAULT_PLAN_ID]
    return plan
