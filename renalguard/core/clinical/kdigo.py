"""
KDIGO Classifier

Pure lookups for patients on the CKD path:

    eGFR → G1 (≥90) · G2 (60–89) · G3a (45–59) · G3b (30–44) · G4 (15–29) · G5 (<15)
    uACR → A1 (<30) · A2 (30–300) · A3 (>300)

The risk tier comes from the explicit 6×3 heat map below, never from
arithmetic on the category indices.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .base import (
    AlbuminuriaCategory,
    ClinicalFlags,
    GFRCategory,
    KFREResult,
    RiskTier,
)
from .snapshot import LabPanel

# ── Category boundaries (lower bound inclusive) ─────────────────────────────
GFR_THRESHOLDS: Tuple[Tuple[float, GFRCategory], ...] = (
    (90.0, GFRCategory.G1),
    (60.0, GFRCategory.G2),
    (45.0, GFRCategory.G3A),
    (30.0, GFRCategory.G3B),
    (15.0, GFRCategory.G4),
)
UACR_A2_MIN = 30.0     # A2 starts at 30 inclusive
UACR_A2_MAX = 300.0    # A2 ends at 300 inclusive; A3 is > 300

GFR_DESCRIPTIONS = {
    GFRCategory.G1:  "Normal or High",
    GFRCategory.G2:  "Mildly Decreased",
    GFRCategory.G3A: "Mild to Moderate Decrease",
    GFRCategory.G3B: "Moderate to Severe Decrease",
    GFRCategory.G4:  "Severely Decreased",
    GFRCategory.G5:  "Kidney Failure",
}

ALBUMINURIA_DESCRIPTIONS = {
    AlbuminuriaCategory.A1: "Normal to Mildly Increased",
    AlbuminuriaCategory.A2: "Moderately Increased",
    AlbuminuriaCategory.A3: "Severely Increased",
}

_L, _M, _H, _VH = RiskTier.LOW, RiskTier.MODERATE, RiskTier.HIGH, RiskTier.VERY_HIGH

# ── KDIGO heat map: every (G, A) cell listed ────────────────────────────────
KDIGO_RISK_MATRIX: Dict[Tuple[GFRCategory, AlbuminuriaCategory], RiskTier] = {
    (GFRCategory.G1,  AlbuminuriaCategory.A1): _L,
    (GFRCategory.G1,  AlbuminuriaCategory.A2): _M,
    (GFRCategory.G1,  AlbuminuriaCategory.A3): _VH,
    (GFRCategory.G2,  AlbuminuriaCategory.A1): _L,
    (GFRCategory.G2,  AlbuminuriaCategory.A2): _M,
    (GFRCategory.G2,  AlbuminuriaCategory.A3): _VH,
    (GFRCategory.G3A, AlbuminuriaCategory.A1): _M,
    (GFRCategory.G3A, AlbuminuriaCategory.A2): _H,
    (GFRCategory.G3A, AlbuminuriaCategory.A3): _VH,
    (GFRCategory.G3B, AlbuminuriaCategory.A1): _H,
    (GFRCategory.G3B, AlbuminuriaCategory.A2): _VH,
    (GFRCategory.G3B, AlbuminuriaCategory.A3): _VH,
    (GFRCategory.G4,  AlbuminuriaCategory.A1): _VH,
    (GFRCategory.G4,  AlbuminuriaCategory.A2): _VH,
    (GFRCategory.G4,  AlbuminuriaCategory.A3): _VH,
    (GFRCategory.G5,  AlbuminuriaCategory.A1): _VH,
    (GFRCategory.G5,  AlbuminuriaCategory.A2): _VH,
    (GFRCategory.G5,  AlbuminuriaCategory.A3): _VH,
}

_STAGES = {
    GFRCategory.G1:  (1, "Stage 1 (Normal Function with Damage)"),
    GFRCategory.G2:  (2, "Stage 2 (Mild Decrease with Damage)"),
    GFRCategory.G3A: (3, "Stage 3a (Mild to Moderate)"),
    GFRCategory.G3B: (3, "Stage 3b (Moderate to Severe)"),
    GFRCategory.G4:  (4, "Stage 4 (Severe)"),
    GFRCategory.G5:  (5, "Stage 5 (Kidney Failure)"),
}

_SEVERITY_BY_STAGE = {1: "mild", 2: "mild", 3: "moderate", 4: "severe", 5: "kidney_failure"}

# ── Referral thresholds ─────────────────────────────────────────────────────
DIALYSIS_PLANNING_EGFR       = 20.0
KFRE_REFERRAL_FIVE_YEAR      = 0.05
KFRE_DIALYSIS_TWO_YEAR       = 0.40
TARGET_BP_NO_ALBUMINURIA     = (140, 90)
TARGET_BP_WITH_ALBUMINURIA   = (130, 80)


@dataclass(frozen=True)
class KdigoClassification:
    gfr_category: GFRCategory
    albuminuria_category: AlbuminuriaCategory
    health_state: str
    risk_tier: RiskTier
    ckd_stage: int
    ckd_stage_name: str
    severity: str


def gfr_category(egfr: float) -> GFRCategory:
    for lower_bound, category in GFR_THRESHOLDS:
        if egfr >= lower_bound:
            return category
    return GFRCategory.G5


def albuminuria_category(uacr: float) -> AlbuminuriaCategory:
    if uacr < UACR_A2_MIN:
        return AlbuminuriaCategory.A1
    if uacr <= UACR_A2_MAX:
        return AlbuminuriaCategory.A2
    return AlbuminuriaCategory.A3


def health_state(gfr: GFRCategory, albuminuria: AlbuminuriaCategory) -> str:
    return f"{gfr.value}-{albuminuria.value}"


def kdigo_risk_tier(gfr: GFRCategory, albuminuria: AlbuminuriaCategory) -> RiskTier:
    return KDIGO_RISK_MATRIX[(gfr, albuminuria)]


def ckd_stage(gfr: GFRCategory) -> Tuple[int, str, str]:
    """Return (stage number, stage name, severity) for a patient already on the CKD path."""
    stage, name = _STAGES[gfr]
    return stage, name, _SEVERITY_BY_STAGE[stage]


def classify_kdigo(egfr: float, uacr: float) -> KdigoClassification:
    gfr = gfr_category(egfr)
    alb = albuminuria_category(uacr)
    stage, stage_name, severity = ckd_stage(gfr)
    return KdigoClassification(
        gfr_category=gfr,
        albuminuria_category=alb,
        health_state=health_state(gfr, alb),
        risk_tier=kdigo_risk_tier(gfr, alb),
        ckd_stage=stage,
        ckd_stage_name=stage_name,
        severity=severity,
    )


def clinical_flags(
    gfr: GFRCategory,
    albuminuria: Optional[AlbuminuriaCategory],
    egfr: float,
    labs: LabPanel,
    kfre: Optional[KFREResult] = None,
) -> ClinicalFlags:
    """
    Nephrology referral, dialysis planning and blood-pressure target.

    Referral: G3b or worse, A3, or 5-year KFRE ≥ 5 %.
    Dialysis planning: G5, G4 with eGFR < 20, or 2-year KFRE ≥ 40 %.
    """
    reasons: List[str] = []

    referral = False
    if gfr in (GFRCategory.G3B, GFRCategory.G4, GFRCategory.G5):
        referral = True
        reasons.append(f"gfr_{gfr.value.lower()}")
    if albuminuria == AlbuminuriaCategory.A3:
        referral = True
        reasons.append("albuminuria_a3")
    if kfre is not None and kfre.five_year >= KFRE_REFERRAL_FIVE_YEAR:
        referral = True
        reasons.append("kfre_5y_ge_5pct")

    dialysis = False
    if gfr == GFRCategory.G5:
        dialysis = True
        reasons.append("kidney_failure_range")
    elif gfr == GFRCategory.G4 and egfr < DIALYSIS_PLANNING_EGFR:
        dialysis = True
        reasons.append("egfr_lt_20")
    if kfre is not None and kfre.two_year >= KFRE_DIALYSIS_TWO_YEAR:
        dialysis = True
        reasons.append("kfre_2y_ge_40pct")

    # Unknown albuminuria keeps the stricter target
    if albuminuria == AlbuminuriaCategory.A1:
        target = TARGET_BP_NO_ALBUMINURIA
    else:
        target = TARGET_BP_WITH_ALBUMINURIA

    bp_at_target = None
    if labs.systolic_bp is not None and labs.diastolic_bp is not None:
        bp_at_target = labs.systolic_bp < target[0] and labs.diastolic_bp < target[1]

    return ClinicalFlags(
        nephrology_referral=referral,
        dialysis_planning=dialysis,
        target_bp=f"<{target[0]}/{target[1]} mmHg",
        bp_at_target=bp_at_target,
        reasons=tuple(reasons),
    )
