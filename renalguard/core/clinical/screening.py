"""
Non-CKD Screening Assessor

Two independent scores for patients below the CKD threshold:

    SCORED      — integer points estimating *current* occult kidney disease.
    Framingham  — multiplicative 10-year probability of *developing* CKD.

They answer different questions, so they are never blended numerically.
The merge compares bands:

    1. SCORED ≥ 4 and uACR ≥ 30             → HIGH
    2. otherwise max(SCORED band, Framingham band)
    3. a LOW result with eGFR < 90 is bumped to MODERATE

The merge never produces VERY_HIGH.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .base import RiskTier
from .snapshot import ComorbidityProfile, Sex, SmokingStatus

# ── SCORED ──────────────────────────────────────────────────────────────────
SCORED_AGE_POINTS: Tuple[Tuple[float, int], ...] = (
    (70.0, 4),
    (60.0, 3),
    (50.0, 2),
)
SCORED_HIGH_THRESHOLD = 4
UACR_ALBUMINURIA      = 30.0

# ── Framingham (kidney variant) ─────────────────────────────────────────────
FRAMINGHAM_BASELINE: Tuple[Tuple[float, float], ...] = (
    (70.0, 25.0),
    (60.0, 15.0),
    (50.0, 8.0),
    (40.0, 5.0),
)
FRAMINGHAM_BASELINE_YOUNG   = 3.0
FRAMINGHAM_DIABETES         = 1.8
FRAMINGHAM_HYPERTENSION     = 1.6
FRAMINGHAM_CVD              = 2.8
FRAMINGHAM_CURRENT_SMOKER   = 1.4
FRAMINGHAM_FORMER_SMOKER    = 1.15
FRAMINGHAM_BMI_TIERS: Tuple[Tuple[float, float], ...] = (
    (35.0, 1.5),
    (30.0, 1.3),
    (25.0, 1.1),
)
FRAMINGHAM_MICROALBUMINURIA = 2.2     # uACR 30–300
FRAMINGHAM_MACROALBUMINURIA = 3.5     # uACR > 300
UACR_MACRO                  = 300.0
FRAMINGHAM_CAP_PERCENT      = 80.0
FRAMINGHAM_LOW_BELOW        = 10.0
FRAMINGHAM_HIGH_ABOVE       = 20.0

EGFR_BUMP_BELOW = 90.0


@dataclass(frozen=True)
class ScoredResult:
    points: int
    risk: RiskTier                       # LOW or HIGH only
    components: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FraminghamResult:
    ten_year_percent: float
    band: RiskTier                       # LOW, MODERATE or HIGH
    baseline_percent: float
    factors: Tuple[Tuple[str, float], ...] = ()


@dataclass(frozen=True)
class ScreeningAssessment:
    scored: ScoredResult
    framingham: FraminghamResult
    risk_tier: RiskTier
    trigger: str


def scored_score(
    age: float,
    sex: Sex,
    comorbidities: ComorbidityProfile,
    uacr: Optional[float],
) -> ScoredResult:
    """SCORED points. SCORED alone flags screening urgency, it does not set the final tier."""
    points = 0
    components: List[str] = []

    for lower_bound, age_points in SCORED_AGE_POINTS:
        if age >= lower_bound:
            points += age_points
            components.append(f"age_ge_{int(lower_bound)}")
            break

    binary_items = (
        ("female", sex == Sex.FEMALE),
        ("hypertension", comorbidities.hypertension),
        ("diabetes", comorbidities.diabetes),
        ("cardiovascular_disease", comorbidities.cardiovascular_disease),
        ("peripheral_vascular_disease", comorbidities.peripheral_vascular_disease),
        ("uacr_ge_30", uacr is not None and uacr >= UACR_ALBUMINURIA),
    )
    for name, present in binary_items:
        if present:
            points += 1
            components.append(name)

    risk = RiskTier.HIGH if points >= SCORED_HIGH_THRESHOLD else RiskTier.LOW
    return ScoredResult(points=points, risk=risk, components=tuple(components))


def _framingham_band(percent: float) -> RiskTier:
    if percent < FRAMINGHAM_LOW_BELOW:
        return RiskTier.LOW
    if percent <= FRAMINGHAM_HIGH_ABOVE:
        return RiskTier.MODERATE
    return RiskTier.HIGH


def framingham_risk(
    age: float,
    comorbidities: ComorbidityProfile,
    bmi: Optional[float],
    uacr: Optional[float],
) -> FraminghamResult:
    """10-year CKD-development risk (%), capped at 80."""
    baseline = FRAMINGHAM_BASELINE_YOUNG
    for lower_bound, percent in FRAMINGHAM_BASELINE:
        if age >= lower_bound:
            baseline = percent
            break

    factors: List[Tuple[str, float]] = []
    if comorbidities.diabetes:
        factors.append(("diabetes", FRAMINGHAM_DIABETES))
    if comorbidities.hypertension:
        factors.append(("hypertension", FRAMINGHAM_HYPERTENSION))
    if comorbidities.cardiovascular_disease:
        factors.append(("cardiovascular_disease", FRAMINGHAM_CVD))

    if comorbidities.smoking == SmokingStatus.CURRENT:
        factors.append(("current_smoker", FRAMINGHAM_CURRENT_SMOKER))
    elif comorbidities.smoking == SmokingStatus.FORMER:
        factors.append(("former_smoker", FRAMINGHAM_FORMER_SMOKER))

    # Single highest applicable BMI tier, not cumulative
    if bmi is not None:
        for lower_bound, weight in FRAMINGHAM_BMI_TIERS:
            if bmi >= lower_bound:
                factors.append((f"bmi_ge_{int(lower_bound)}", weight))
                break

    if uacr is not None and uacr > UACR_MACRO:
        factors.append(("macroalbuminuria", FRAMINGHAM_MACROALBUMINURIA))
    elif uacr is not None and uacr >= UACR_ALBUMINURIA:
        factors.append(("microalbuminuria", FRAMINGHAM_MICROALBUMINURIA))

    multiplier = float(np.prod([w for _, w in factors])) if factors else 1.0
    percent = min(baseline * multiplier, FRAMINGHAM_CAP_PERCENT)

    return FraminghamResult(
        ten_year_percent=percent,
        band=_framingham_band(percent),
        baseline_percent=baseline,
        factors=tuple(factors),
    )


def merge_screening(
    scored: ScoredResult,
    framingham: FraminghamResult,
    egfr: float,
    uacr: Optional[float],
) -> Tuple[RiskTier, str]:
    """Asymmetric band merge. Returns (tier, trigger)."""
    if (
        scored.points >= SCORED_HIGH_THRESHOLD
        and uacr is not None
        and uacr >= UACR_ALBUMINURIA
    ):
        return RiskTier.HIGH, "scored_with_albuminuria"

    if framingham.band.rank > scored.risk.rank:
        tier, trigger = framingham.band, "framingham"
    elif scored.risk == RiskTier.HIGH:
        tier, trigger = scored.risk, "scored"
    else:
        tier, trigger = scored.risk, "baseline"

    if tier == RiskTier.LOW and egfr < EGFR_BUMP_BELOW:
        return RiskTier.MODERATE, "egfr_below_90_bump"
    return tier, trigger


def assess_screening(
    age: float,
    sex: Sex,
    comorbidities: ComorbidityProfile,
    bmi: Optional[float],
    egfr: float,
    uacr: Optional[float],
) -> ScreeningAssessment:
    scored = scored_score(age, sex, comorbidities, uacr)
    framingham = framingham_risk(age, comorbidities, bmi, uacr)
    tier, trigger = merge_screening(scored, framingham, egfr, uacr)
    return ScreeningAssessment(
        scored=scored,
        framingham=framingham,
        risk_tier=tier,
        trigger=trigger,
    )
