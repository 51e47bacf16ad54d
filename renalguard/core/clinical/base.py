"""
Clinical Decision Layer — Base Types

Defines the data contracts that every component of the decision engine
produces. All outputs are frozen: created once per invocation, never
mutated, serialised with to_dict() for the prompt-building collaborator.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class UrgencyLevel(str, Enum):
    """
    Clinical urgency of a treatment plan.

    URGENT        – act within days (very high risk or high short-term KFRE)
    ROUTINE       – schedule an outpatient appointment
    MONITOR       – track over time; no immediate action required
    INFORMATIONAL – observation only
    """
    URGENT        = "urgent"
    ROUTINE       = "routine"
    MONITOR       = "monitor"
    INFORMATIONAL = "informational"


class RiskTier(str, Enum):
    """Single normalised risk output shared by both classification paths."""
    LOW       = "low"
    MODERATE  = "moderate"
    HIGH      = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    @property
    def color(self) -> str:
        return _TIER_COLORS[self]

    def shifted(self, steps: int) -> "RiskTier":
        """Move up (positive) or down (negative) the tier scale, saturating at the ends."""
        index = min(max(self.rank + steps, 0), len(_TIER_ORDER) - 1)
        return _TIER_ORDER[index]


_TIER_ORDER = (RiskTier.LOW, RiskTier.MODERATE, RiskTier.HIGH, RiskTier.VERY_HIGH)

_TIER_COLORS = {
    RiskTier.LOW:       "green",
    RiskTier.MODERATE:  "yellow",
    RiskTier.HIGH:      "orange",
    RiskTier.VERY_HIGH: "red",
}


class AssessmentMethod(str, Enum):
    KDIGO             = "kdigo"
    SCORED_FRAMINGHAM = "scored_framingham"


class GFRCategory(str, Enum):
    """KDIGO GFR categories, ordered from best to worst function."""
    G1  = "G1"
    G2  = "G2"
    G3A = "G3a"
    G3B = "G3b"
    G4  = "G4"
    G5  = "G5"

    @property
    def rank(self) -> int:
        return list(GFRCategory).index(self)


class AlbuminuriaCategory(str, Enum):
    A1 = "A1"
    A2 = "A2"
    A3 = "A3"

    @property
    def rank(self) -> int:
        return list(AlbuminuriaCategory).index(self)


class IndicationLevel(str, Enum):
    STRONG          = "strong"
    MODERATE        = "moderate"
    NOT_INDICATED   = "not_indicated"
    CONTRAINDICATED = "contraindicated"

    @property
    def is_indicated(self) -> bool:
        return self in (IndicationLevel.STRONG, IndicationLevel.MODERATE)


class DrugClass(str, Enum):
    RAS_INHIBITOR   = "ras_inhibitor"
    SGLT2_INHIBITOR = "sglt2_inhibitor"


class MonitoringFrequency(str, Enum):
    WEEKLY   = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY  = "monthly"


# ── Classification ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClassificationResult:
    """
    Output of the classifier for one snapshot.

    Exactly one path populates its fields: KDIGO fills the category/stage
    fields, SCORED_FRAMINGHAM fills the screening scores. An incomplete
    result carries ``missing_fields`` and never a risk tier.
    """
    method: Optional[AssessmentMethod]
    risk_tier: Optional[RiskTier]

    # ── KDIGO path ────────────────────────────────────────────────────────
    gfr_category: Optional[GFRCategory] = None
    albuminuria_category: Optional[AlbuminuriaCategory] = None
    gfr_description: Optional[str] = None
    albuminuria_description: Optional[str] = None
    health_state: Optional[str] = None                 # e.g. "G3a-A2"
    kdigo_risk_tier: Optional[RiskTier] = None         # pure heat-map cell
    ckd_stage: Optional[int] = None
    ckd_stage_name: Optional[str] = None
    severity: Optional[str] = None

    # ── SCORED / Framingham path ──────────────────────────────────────────
    scored_points: Optional[int] = None
    scored_risk: Optional[RiskTier] = None
    framingham_ten_year_percent: Optional[float] = None

    # ── Provenance ────────────────────────────────────────────────────────
    trigger: Optional[str] = None                      # rule that set risk_tier
    incomplete: bool = False
    missing_fields: Tuple[str, ...] = ()
    as_of_cycle: int = 0

    @property
    def has_ckd(self) -> bool:
        return self.method == AssessmentMethod.KDIGO

    @property
    def risk_color(self) -> Optional[str]:
        return self.risk_tier.color if self.risk_tier else None

    def risk_category_label(self) -> str:
        """Patient-list grouping label; incomplete results are never labelled with a tier."""
        if self.incomplete or self.risk_tier is None:
            missing = ", ".join(self.missing_fields) or "data"
            return f"Cannot classify — missing {missing}"
        if self.has_ckd:
            return _SEVERITY_LABELS.get(self.severity, "No CKD")
        if self.risk_tier in (RiskTier.HIGH, RiskTier.VERY_HIGH):
            return "High Risk"
        if self.risk_tier == RiskTier.MODERATE:
            return "Moderate Risk"
        return "Low Risk"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": _value(self.method),
            "risk_tier": _value(self.risk_tier),
            "risk_color": self.risk_color,
            "gfr_category": _value(self.gfr_category),
            "albuminuria_category": _value(self.albuminuria_category),
            "gfr_description": self.gfr_description,
            "albuminuria_description": self.albuminuria_description,
            "health_state": self.health_state,
            "kdigo_risk_tier": _value(self.kdigo_risk_tier),
            "ckd_stage": self.ckd_stage,
            "ckd_stage_name": self.ckd_stage_name,
            "severity": self.severity,
            "scored_points": self.scored_points,
            "scored_risk": _value(self.scored_risk),
            "framingham_ten_year_percent": (
                round(self.framingham_ten_year_percent, 2)
                if self.framingham_ten_year_percent is not None else None
            ),
            "trigger": self.trigger,
            "incomplete": self.incomplete,
            "missing_fields": list(self.missing_fields),
            "risk_category_label": self.risk_category_label(),
            "as_of_cycle": self.as_of_cycle,
        }


_SEVERITY_LABELS = {
    "mild":           "Mild CKD",
    "moderate":       "Moderate CKD",
    "severe":         "Severe CKD",
    "kidney_failure": "Kidney Failure",
}


@dataclass(frozen=True)
class KFREResult:
    """Kidney Failure Risk Equation probabilities, bounded to [0, 1]."""
    two_year: float
    five_year: float
    region: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "two_year_percent": round(self.two_year * 100, 2),
            "five_year_percent": round(self.five_year * 100, 2),
            "region": self.region,
        }


@dataclass(frozen=True)
class ClinicalFlags:
    """Referral and blood-pressure flags derived on the KDIGO path."""
    nephrology_referral: bool
    dialysis_planning: bool
    target_bp: str
    bp_at_target: Optional[bool] = None
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nephrology_referral": self.nephrology_referral,
            "dialysis_planning": self.dialysis_planning,
            "target_bp": self.target_bp,
            "bp_at_target": self.bp_at_target,
            "reasons": list(self.reasons),
        }


# ── Treatment & monitoring ──────────────────────────────────────────────────

@dataclass(frozen=True)
class EvidenceReference:
    trial: str
    guideline_grade: str

    def __str__(self) -> str:
        return f"{self.trial} ({self.guideline_grade})"


@dataclass(frozen=True)
class TreatmentRecommendation:
    """Indication decision for one drug class."""
    drug_class: DrugClass
    indication_level: IndicationLevel
    evidence_reference: EvidenceReference
    safety_monitoring: Tuple[str, ...]
    safety_check_weeks: Tuple[int, int]
    reasoning: Tuple[str, ...]                         # machine-readable reason codes
    currently_prescribed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug_class": self.drug_class.value,
            "indication_level": self.indication_level.value,
            "evidence_reference": str(self.evidence_reference),
            "safety_monitoring": list(self.safety_monitoring),
            "safety_check_weeks": list(self.safety_check_weeks),
            "reasoning": list(self.reasoning),
            "currently_prescribed": self.currently_prescribed,
        }


@dataclass(frozen=True)
class TreatmentPlan:
    recommendations: Tuple[TreatmentRecommendation, ...]
    urgency: UrgencyLevel
    new_initiations: Tuple[DrugClass, ...] = ()

    def get(self, drug_class: DrugClass) -> Optional[TreatmentRecommendation]:
        for rec in self.recommendations:
            if rec.drug_class == drug_class:
                return rec
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "urgency": self.urgency.value,
            "new_initiations": [d.value for d in self.new_initiations],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass(frozen=True)
class MonitoringRecommendation:
    """Home uACR monitoring advice, independent of current monitoring status."""
    recommended: bool
    frequency: Optional[MonitoringFrequency] = None
    reasoning: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended": self.recommended,
            "frequency": _value(self.frequency),
            "reasoning": list(self.reasoning),
        }


# ── Follow-up ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FollowUpPlan:
    interval_months_min: float
    interval_months_max: float
    required_tests: Tuple[str, ...]
    rationale_tag: str                                 # "<tier>:<trigger>[+<trigger>]"
    base_tier: RiskTier
    effective_tier: RiskTier
    triggers: Tuple[str, ...] = ()
    safety_checkpoint_weeks: Optional[Tuple[int, int]] = None
    safety_checkpoint_tests: Tuple[str, ...] = ()
    as_of_cycle: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval_months_min": self.interval_months_min,
            "interval_months_max": self.interval_months_max,
            "required_tests": list(self.required_tests),
            "rationale_tag": self.rationale_tag,
            "base_tier": self.base_tier.value,
            "effective_tier": self.effective_tier.value,
            "triggers": list(self.triggers),
            "safety_checkpoint_weeks": (
                list(self.safety_checkpoint_weeks) if self.safety_checkpoint_weeks else None
            ),
            "safety_checkpoint_tests": list(self.safety_checkpoint_tests),
            "as_of_cycle": self.as_of_cycle,
        }


# ── Adherence ───────────────────────────────────────────────────────────────

class AdherenceCategory(str, Enum):
    HIGH   = "high"       # MPR >= 0.80
    MEDIUM = "medium"     # 0.60 to 0.80
    LOW    = "low"


@dataclass(frozen=True)
class AdherenceResult:
    drug_class: DrugClass
    mpr: float
    adherent: bool
    category: AdherenceCategory
    days_supplied: int
    period_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drug_class": self.drug_class.value,
            "mpr": round(self.mpr, 3),
            "adherent": self.adherent,
            "category": self.category.value,
            "days_supplied": self.days_supplied,
            "period_days": self.period_days,
        }


def _value(member: Optional[Enum]) -> Optional[str]:
    return member.value if member is not None else None
