"""
Follow-Up Timing Resolver

Base interval (months) by risk tier:

    VERY_HIGH  1–3
    HIGH       3–6
    MODERATE   6–12
    LOW        12 (CKD path) / 12–24 (non-CKD path)

Modifiers, in order:
    tier progression      → use the next tier's interval
    rapid eGFR decline    → halve (> 5 mL/min/1.73m² per year)
    uACR rise > 50 %      → minimum −3, maximum −6
    new treatment started → one-time 1–2 week safety-lab checkpoint

Every bound is floored at the matrix minimum (1 month). With modifiers
held fixed, a higher tier never gets a longer interval.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from renalguard.utils import get_logger
from .base import FollowUpPlan, RiskTier
from .kdigo import albuminuria_category, gfr_category
from .snapshot import PriorObservation

logger = get_logger(__name__)

Interval = Tuple[float, float]

BASE_INTERVALS: Dict[RiskTier, Interval] = {
    RiskTier.VERY_HIGH: (1.0, 3.0),
    RiskTier.HIGH:      (3.0, 6.0),
    RiskTier.MODERATE:  (6.0, 12.0),
    RiskTier.LOW:       (12.0, 12.0),
}
NON_CKD_LOW_INTERVAL: Interval = (12.0, 24.0)

INTERVAL_FLOOR_MONTHS = min(low for low, _ in BASE_INTERVALS.values())

RAPID_DECLINE_PER_YEAR   = 5.0
UACR_RISE_FRACTION       = 0.5
UACR_RISE_SUBTRACT_MIN   = 3.0
UACR_RISE_SUBTRACT_MAX   = 6.0
SAFETY_CHECKPOINT_WEEKS  = (1, 2)
SAFETY_CHECKPOINT_TESTS  = ("potassium", "serum_creatinine", "egfr")

REQUIRED_TESTS: Dict[RiskTier, Tuple[str, ...]] = {
    RiskTier.LOW: ("egfr", "uacr"),
    RiskTier.MODERATE: ("egfr", "uacr", "basic_metabolic_panel"),
    RiskTier.HIGH: (
        "egfr", "uacr", "basic_metabolic_panel",
        "complete_blood_count", "lipid_panel",
    ),
    RiskTier.VERY_HIGH: (
        "egfr", "uacr", "basic_metabolic_panel",
        "complete_blood_count", "lipid_panel",
        "calcium_phosphate", "parathyroid_hormone", "bicarbonate",
    ),
}


def base_interval(tier: RiskTier, has_ckd: bool) -> Interval:
    if tier == RiskTier.LOW and not has_ckd:
        return NON_CKD_LOW_INTERVAL
    return BASE_INTERVALS[tier]


def egfr_decline_per_year(egfr: float, prior: Optional[PriorObservation]) -> Optional[float]:
    """Positive when eGFR is falling."""
    if prior is None or prior.egfr is None:
        return None
    return (prior.egfr - egfr) / prior.years_elapsed


def uacr_relative_change(uacr: Optional[float], prior: Optional[PriorObservation]) -> Optional[float]:
    if uacr is None or prior is None or prior.uacr is None or prior.uacr <= 0:
        return None
    return (uacr - prior.uacr) / prior.uacr


def has_tier_progression(
    egfr: float,
    uacr: Optional[float],
    prior: Optional[PriorObservation],
) -> bool:
    """True when either KDIGO axis moved to a worse category since the prior observation."""
    if prior is None:
        return False
    if prior.egfr is not None and gfr_category(egfr).rank > gfr_category(prior.egfr).rank:
        return True
    if (
        uacr is not None
        and prior.uacr is not None
        and albuminuria_category(uacr).rank > albuminuria_category(prior.uacr).rank
    ):
        return True
    return False


def _floor(value: float) -> float:
    return max(value, INTERVAL_FLOOR_MONTHS)


def resolve_follow_up(
    tier: RiskTier,
    has_ckd: bool,
    egfr: float,
    uacr: Optional[float] = None,
    prior: Optional[PriorObservation] = None,
    new_treatment_started: bool = False,
    as_of_cycle: int = 0,
) -> FollowUpPlan:
    triggers: List[str] = []

    effective_tier = tier
    if has_tier_progression(egfr, uacr, prior):
        effective_tier = tier.shifted(+1)
        triggers.append("tier_progression")

    low, high = base_interval(effective_tier, has_ckd)

    decline = egfr_decline_per_year(egfr, prior)
    if decline is not None and decline > RAPID_DECLINE_PER_YEAR:
        low, high = _floor(low / 2.0), _floor(high / 2.0)
        triggers.append("rapid_egfr_decline")

    rise = uacr_relative_change(uacr, prior)
    if rise is not None and rise > UACR_RISE_FRACTION:
        low = _floor(low - UACR_RISE_SUBTRACT_MIN)
        high = _floor(high - UACR_RISE_SUBTRACT_MAX)
        low = min(low, high)
        triggers.append("uacr_rise")

    checkpoint = None
    checkpoint_tests: Tuple[str, ...] = ()
    if new_treatment_started:
        checkpoint = SAFETY_CHECKPOINT_WEEKS
        checkpoint_tests = SAFETY_CHECKPOINT_TESTS
        triggers.append("new_treatment")

    rationale = f"{tier.value}:{'+'.join(triggers) if triggers else 'base'}"
    logger.debug(f"Follow-up: {rationale} → {low}-{high} months")

    return FollowUpPlan(
        interval_months_min=low,
        interval_months_max=high,
        required_tests=REQUIRED_TESTS[effective_tier],
        rationale_tag=rationale,
        base_tier=tier,
        effective_tier=effective_tier,
        triggers=tuple(triggers),
        safety_checkpoint_weeks=checkpoint,
        safety_checkpoint_tests=checkpoint_tests,
        as_of_cycle=as_of_cycle,
    )
