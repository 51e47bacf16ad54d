"""
Treatment Decision Rules

For each drug class, rules are evaluated in a fixed order and the first
one that fires sets the indication level:

    1. Hard contraindication  → CONTRAINDICATED (short-circuits everything)
    2. Strong indication      → STRONG
    3. Moderate indication    → MODERATE
    4. otherwise              → NOT_INDICATED

RAS inhibitor (ACE-I / ARB):
    contraindicated: potassium ≥ 5.5 mmol/L, bilateral renal artery stenosis
    strong:          uACR ≥ 30 (any eGFR)
    moderate:        hypertension without albuminuria

SGLT2 inhibitor:
    contraindicated: eGFR < 20, prior diabetic ketoacidosis on the class
    strong:          eGFR 20–75 and (diabetes or uACR ≥ 200 or heart failure)
    moderate:        CKD present and eGFR ≥ 20

Home monitoring is recommended iff eGFR < 60 or uACR ≥ 30, independent of
whether the patient is already monitoring.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from renalguard.utils import get_logger
from .base import (
    ClassificationResult,
    DrugClass,
    EvidenceReference,
    IndicationLevel,
    KFREResult,
    MonitoringFrequency,
    MonitoringRecommendation,
    RiskTier,
    TreatmentPlan,
    TreatmentRecommendation,
    UrgencyLevel,
)
from .snapshot import ComorbidityProfile, TreatmentStatus

logger = get_logger(__name__)

# ── Thresholds ────────────────────────────────────────────────────────────────

# RAS inhibitor
RAS_POTASSIUM_CONTRAINDICATION = 5.5     # mmol/L
RAS_STRONG_UACR                = 30.0    # mg/g

# SGLT2 inhibitor
SGLT2I_MIN_EGFR                = 20.0
SGLT2I_STRONG_MAX_EGFR         = 75.0
SGLT2I_STRONG_UACR             = 200.0

# Home monitoring
MONITORING_EGFR_BELOW          = 60.0
MONITORING_UACR_AT_LEAST       = 30.0
WEEKLY_EGFR_BELOW              = 30.0
WEEKLY_UACR_ON_SGLT2I          = 300.0
BIWEEKLY_EGFR_BELOW            = 45.0
BIWEEKLY_UACR_ON_SGLT2I        = 100.0

# Urgency
URGENT_KFRE_TWO_YEAR           = 0.10

SAFETY_CHECK_WEEKS = (1, 2)

EVIDENCE = {
    DrugClass.RAS_INHIBITOR: EvidenceReference(
        trial="RENAAL / IDNT / REIN",
        guideline_grade="KDIGO 2024 Grade 1B",
    ),
    DrugClass.SGLT2_INHIBITOR: EvidenceReference(
        trial="EMPA-KIDNEY / DAPA-CKD / CREDENCE",
        guideline_grade="KDIGO 2024 Grade 1A",
    ),
}

SAFETY_MONITORING = {
    DrugClass.RAS_INHIBITOR:   ("potassium", "serum_creatinine"),
    DrugClass.SGLT2_INHIBITOR: ("serum_creatinine", "egfr", "volume_status"),
}


@dataclass(frozen=True)
class DrugContext:
    """Everything a drug rule may look at, resolved once per patient."""
    egfr: float
    uacr: float
    potassium: Optional[float]
    comorbidities: ComorbidityProfile
    has_ckd: bool


# A rule returns the reason codes that made it fire; empty means it did not fire.
Rule = Callable[[DrugContext], List[str]]


# ── RAS inhibitor rules ───────────────────────────────────────────────────────

def ras_contraindication(ctx: DrugContext) -> List[str]:
    reasons = []
    if ctx.potassium is not None and ctx.potassium >= RAS_POTASSIUM_CONTRAINDICATION:
        reasons.append("potassium_ge_5.5")
    if ctx.comorbidities.bilateral_renal_artery_stenosis:
        reasons.append("bilateral_renal_artery_stenosis")
    return reasons


def ras_strong(ctx: DrugContext) -> List[str]:
    return ["uacr_ge_30"] if ctx.uacr >= RAS_STRONG_UACR else []


def ras_moderate(ctx: DrugContext) -> List[str]:
    if ctx.comorbidities.hypertension and ctx.uacr < RAS_STRONG_UACR:
        return ["hypertension_without_albuminuria"]
    return []


# ── SGLT2 inhibitor rules ─────────────────────────────────────────────────────

def sglt2i_contraindication(ctx: DrugContext) -> List[str]:
    reasons = []
    if ctx.egfr < SGLT2I_MIN_EGFR:
        reasons.append("egfr_lt_20")
    if ctx.comorbidities.sglt2i_ketoacidosis_history:
        reasons.append("ketoacidosis_history")
    return reasons


def sglt2i_strong(ctx: DrugContext) -> List[str]:
    if not (SGLT2I_MIN_EGFR <= ctx.egfr <= SGLT2I_STRONG_MAX_EGFR):
        return []
    reasons = []
    if ctx.comorbidities.diabetes:
        reasons.append("diabetes")
    if ctx.uacr >= SGLT2I_STRONG_UACR:
        reasons.append("uacr_ge_200")
    if ctx.comorbidities.heart_failure:
        reasons.append("heart_failure")
    if reasons:
        reasons.insert(0, "egfr_20_75")
    return reasons


def sglt2i_moderate(ctx: DrugContext) -> List[str]:
    if ctx.has_ckd and ctx.egfr >= SGLT2I_MIN_EGFR:
        return ["ckd_egfr_ge_20"]
    return []


# ── Registry: drug → ordered rules ────────────────────────────────────────────
DRUG_RULES: Tuple[Tuple[DrugClass, Sequence[Tuple[IndicationLevel, Rule]]], ...] = (
    (DrugClass.RAS_INHIBITOR, (
        (IndicationLevel.CONTRAINDICATED, ras_contraindication),
        (IndicationLevel.STRONG,          ras_strong),
        (IndicationLevel.MODERATE,        ras_moderate),
    )),
    (DrugClass.SGLT2_INHIBITOR, (
        (IndicationLevel.CONTRAINDICATED, sglt2i_contraindication),
        (IndicationLevel.STRONG,          sglt2i_strong),
        (IndicationLevel.MODERATE,        sglt2i_moderate),
    )),
)


def evaluate_drug(
    drug_class: DrugClass,
    ctx: DrugContext,
    currently_prescribed: bool = False,
) -> TreatmentRecommendation:
    """Run one drug's rules in order; the first that fires wins."""
    rules = dict(DRUG_RULES)[drug_class]

    level = IndicationLevel.NOT_INDICATED
    reasoning: List[str] = []
    for candidate, rule in rules:
        fired = rule(ctx)
        if fired:
            level, reasoning = candidate, fired
            break
    else:
        reasoning = ["no_criteria_met"]

    if drug_class == DrugClass.RAS_INHIBITOR and ctx.potassium is None:
        reasoning.append("potassium_unavailable")

    return TreatmentRecommendation(
        drug_class=drug_class,
        indication_level=level,
        evidence_reference=EVIDENCE[drug_class],
        safety_monitoring=SAFETY_MONITORING[drug_class],
        safety_check_weeks=SAFETY_CHECK_WEEKS,
        reasoning=tuple(reasoning),
        currently_prescribed=currently_prescribed,
    )


def recommend_monitoring(
    egfr: float,
    uacr: float,
    treatment: TreatmentStatus = TreatmentStatus.NONE,
) -> MonitoringRecommendation:
    """
    Home uACR monitoring. Frequency by severity:

        WEEKLY   eGFR < 30, or uACR ≥ 300 while on an SGLT2 inhibitor
        BIWEEKLY eGFR < 45, or uACR ≥ 100 while on an SGLT2 inhibitor
        MONTHLY  otherwise
    """
    if not (egfr < MONITORING_EGFR_BELOW or uacr >= MONITORING_UACR_AT_LEAST):
        return MonitoringRecommendation(recommended=False, reasoning=("no_ckd_markers",))

    on_sglt2i = treatment.includes(DrugClass.SGLT2_INHIBITOR)
    if egfr < WEEKLY_EGFR_BELOW:
        return MonitoringRecommendation(True, MonitoringFrequency.WEEKLY, ("egfr_lt_30",))
    if on_sglt2i and uacr >= WEEKLY_UACR_ON_SGLT2I:
        return MonitoringRecommendation(True, MonitoringFrequency.WEEKLY, ("uacr_ge_300_on_sglt2i",))
    if egfr < BIWEEKLY_EGFR_BELOW:
        return MonitoringRecommendation(True, MonitoringFrequency.BIWEEKLY, ("egfr_lt_45",))
    if on_sglt2i and uacr >= BIWEEKLY_UACR_ON_SGLT2I:
        return MonitoringRecommendation(True, MonitoringFrequency.BIWEEKLY, ("uacr_ge_100_on_sglt2i",))
    return MonitoringRecommendation(True, MonitoringFrequency.MONTHLY, ("ckd_markers_present",))


def treatment_urgency(
    classification: ClassificationResult,
    recommendations: Sequence[TreatmentRecommendation],
    kfre: Optional[KFREResult] = None,
) -> UrgencyLevel:
    if classification.risk_tier == RiskTier.VERY_HIGH:
        return UrgencyLevel.URGENT
    if kfre is not None and kfre.two_year >= URGENT_KFRE_TWO_YEAR:
        return UrgencyLevel.URGENT
    if any(r.indication_level.is_indicated for r in recommendations):
        return UrgencyLevel.ROUTINE
    if classification.has_ckd:
        return UrgencyLevel.MONITOR
    return UrgencyLevel.INFORMATIONAL


def build_treatment_plan(
    classification: ClassificationResult,
    egfr: float,
    uacr: float,
    potassium: Optional[float],
    comorbidities: ComorbidityProfile,
    treatment: TreatmentStatus = TreatmentStatus.NONE,
    kfre: Optional[KFREResult] = None,
) -> TreatmentPlan:
    """Evaluate every registered drug class for a completely classified patient."""
    ctx = DrugContext(
        egfr=egfr,
        uacr=uacr,
        potassium=potassium,
        comorbidities=comorbidities,
        has_ckd=classification.has_ckd,
    )

    recommendations = tuple(
        evaluate_drug(drug_class, ctx, currently_prescribed=treatment.includes(drug_class))
        for drug_class, _ in DRUG_RULES
    )
    new_initiations = tuple(
        r.drug_class for r in recommendations
        if r.indication_level.is_indicated and not r.currently_prescribed
    )
    urgency = treatment_urgency(classification, recommendations, kfre)

    logger.debug(
        "Treatment: "
        + ", ".join(f"{r.drug_class.value}={r.indication_level.value}" for r in recommendations)
        + f" urgency={urgency.value}"
    )
    return TreatmentPlan(
        recommendations=recommendations,
        urgency=urgency,
        new_initiations=new_initiations,
    )
