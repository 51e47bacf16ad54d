"""
Recommendation Consistency Validator

Checks a generated recommendation against the patient's current treatment
and home-monitoring status, and (when given) against the computed bundle.

Two sources of findings, combinable in one report:

    text rules   — a data-driven table of phrase patterns, each tied to the
                   status that makes the phrase contradictory
    claims       — structured RecommendationClaim objects, compared by enum
                   equality against status and bundle

The validator ANNOTATES. It never raises on a finding, never blocks, and
never rewrites the recommendation; every finding is logged at warning.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from renalguard.core.clinical.base import IndicationLevel
from renalguard.core.clinical.engine import AssessmentBundle
from renalguard.core.clinical.snapshot import PatientClinicalSnapshot, TreatmentStatus
from renalguard.utils import get_logger, log_context
from .claims import ClaimAction, ClaimSubject, RecommendationClaim

logger = get_logger(__name__)


class FindingKind(str, Enum):
    TREATMENT_CONTRADICTION  = "treatment_contradiction"
    SAFETY_CONTRADICTION     = "safety_contradiction"
    MONITORING_CONTRADICTION = "monitoring_contradiction"
    VAGUE_TIMING             = "vague_timing"
    TIMING_MISMATCH          = "timing_mismatch"


@dataclass
class ContradictionFinding:
    """A single inconsistency between the recommendation and the patient state."""
    finding_kind: FindingKind
    explanation: str
    rule_id: str
    matched_text: Optional[str] = None
    source: str = "text"              # 'text' | 'claim'

    def to_dict(self) -> Dict[str, Any]:
        return {
            "finding_kind": self.finding_kind.value,
            "explanation": self.explanation,
            "rule_id": self.rule_id,
            "matched_text": self.matched_text,
            "source": self.source,
        }


@dataclass
class ValidationReport:
    findings: List[ContradictionFinding] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return bool(self.findings)

    def kinds(self) -> List[FindingKind]:
        return [f.finding_kind for f in self.findings]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_findings": self.has_findings,
            "finding_count": len(self.findings),
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass(frozen=True)
class StatusContext:
    """The current-state facts a rule may be conditioned on."""
    treatment_active: bool
    monitoring_active: bool
    treatment_status: Optional[TreatmentStatus] = None

    def drug_active(self, subject: ClaimSubject) -> bool:
        drug = subject.drug_class
        if drug is not None and self.treatment_status is not None:
            return self.treatment_status.includes(drug)
        return self.treatment_active


@dataclass(frozen=True)
class TextRule:
    """
    One phrase rule.

    Fires when ``requires`` matches the context (None = unconditional), any
    pattern matches the text, and ``unless`` (if set) does not.
    """
    rule_id: str
    finding_kind: FindingKind
    patterns: Tuple[re.Pattern, ...]
    explanation: str
    requires: Optional[Tuple[str, bool]] = None      # (StatusContext attribute, value)
    unless: Optional[re.Pattern] = None

    def applies_to(self, ctx: StatusContext) -> bool:
        if self.requires is None:
            return True
        attr, expected = self.requires
        return getattr(ctx, attr) == expected

    def match(self, text: str) -> Optional[str]:
        for pattern in self.patterns:
            hit = pattern.search(text)
            if hit:
                if self.unless is not None and self.unless.search(text):
                    return None
                return hit.group(0)
        return None


def _compile(*patterns: str) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# ── Phrase groups ───────────────────────────────────────────────────────────
TREATMENT_START_PHRASES = _compile(
    r"initiat(e|ing) (ckd )?treatment",
    r"start(ing)? therapy",
    r"initiat(e|ing) (an? )?(ras|sglt2)",
    r"start(ing)? (an? )?(ras|sglt2)",
    r"consider starting (ckd )?treatment",
    r"begin (ckd )?treatment",
    r"not (currently )?on (ckd )?treatment",
    r"not (currently )?receiving treatment",
)
TREATMENT_CONTINUE_PHRASES = _compile(
    r"continue (current )?(ckd )?treatment",
    r"maintain (current )?therapy",
    r"optimi[sz]e (current )?therapy",
    r"continue (current )?regimen",
)
MONITORING_START_PHRASES = _compile(
    r"initiat(e|ing) (home )?monitoring",
    r"start(ing)? minuteful kidney",
    r"begin (home )?monitoring",
)
MONITORING_CONTINUE_PHRASES = _compile(
    r"continue (home )?monitoring",
    r"maintain minuteful kidney",
    r"continue (current )?testing",
)
FOLLOW_UP_PHRASES = _compile(r"follow.?up")
NUMERIC_INTERVAL = re.compile(r"\d+\s*-?\s*(day|week|month|year)s?", re.IGNORECASE)


DEFAULT_TEXT_RULES: Tuple[TextRule, ...] = (
    TextRule(
        rule_id="treatment_start_while_active",
        finding_kind=FindingKind.TREATMENT_CONTRADICTION,
        patterns=TREATMENT_START_PHRASES,
        explanation="Recommends starting treatment for a patient already on treatment",
        requires=("treatment_active", True),
    ),
    TextRule(
        rule_id="treatment_continue_while_inactive",
        finding_kind=FindingKind.TREATMENT_CONTRADICTION,
        patterns=TREATMENT_CONTINUE_PHRASES,
        explanation="Recommends continuing treatment for a patient not on treatment",
        requires=("treatment_active", False),
    ),
    TextRule(
        rule_id="monitoring_start_while_active",
        finding_kind=FindingKind.MONITORING_CONTRADICTION,
        patterns=MONITORING_START_PHRASES,
        explanation="Recommends starting home monitoring for a patient already monitoring",
        requires=("monitoring_active", True),
    ),
    TextRule(
        rule_id="monitoring_continue_while_inactive",
        finding_kind=FindingKind.MONITORING_CONTRADICTION,
        patterns=MONITORING_CONTINUE_PHRASES,
        explanation="Recommends continuing home monitoring for a patient not monitoring",
        requires=("monitoring_active", False),
    ),
    TextRule(
        rule_id="follow_up_without_interval",
        finding_kind=FindingKind.VAGUE_TIMING,
        patterns=FOLLOW_UP_PHRASES,
        explanation="Mentions follow-up without a numeric interval",
        unless=NUMERIC_INTERVAL,
    ),
)


# ── Claim checks ────────────────────────────────────────────────────────────

def _check_drug_claim(
    claim: RecommendationClaim,
    ctx: StatusContext,
    bundle: Optional[AssessmentBundle],
) -> List[ContradictionFinding]:
    findings = []
    active = ctx.drug_active(claim.subject)
    label = claim.subject.value

    if claim.action == ClaimAction.INITIATE and active:
        findings.append(ContradictionFinding(
            FindingKind.TREATMENT_CONTRADICTION,
            f"Claims to initiate {label} but it is already prescribed",
            rule_id=f"claim_initiate_active_{label}",
            source="claim",
        ))
    elif claim.action == ClaimAction.CONTINUE and not active:
        findings.append(ContradictionFinding(
            FindingKind.TREATMENT_CONTRADICTION,
            f"Claims to continue {label} but it is not prescribed",
            rule_id=f"claim_continue_inactive_{label}",
            source="claim",
        ))

    drug = claim.subject.drug_class
    if (
        drug is not None
        and claim.action in (ClaimAction.INITIATE, ClaimAction.CONTINUE)
        and bundle is not None
        and bundle.treatment is not None
    ):
        rec = bundle.treatment.get(drug)
        if rec is not None and rec.indication_level == IndicationLevel.CONTRAINDICATED:
            findings.append(ContradictionFinding(
                FindingKind.SAFETY_CONTRADICTION,
                f"Claims to {claim.action.value} {label} but it is contraindicated "
                f"({', '.join(rec.reasoning)})",
                rule_id=f"claim_contraindicated_{label}",
                source="claim",
            ))
    return findings


def _check_monitoring_claim(
    claim: RecommendationClaim,
    ctx: StatusContext,
    bundle: Optional[AssessmentBundle],
) -> List[ContradictionFinding]:
    if claim.action == ClaimAction.INITIATE and ctx.monitoring_active:
        return [ContradictionFinding(
            FindingKind.MONITORING_CONTRADICTION,
            "Claims to initiate home monitoring but the patient is already monitoring",
            rule_id="claim_initiate_active_monitoring",
            source="claim",
        )]
    if claim.action == ClaimAction.CONTINUE and not ctx.monitoring_active:
        return [ContradictionFinding(
            FindingKind.MONITORING_CONTRADICTION,
            "Claims to continue home monitoring but the patient is not monitoring",
            rule_id="claim_continue_inactive_monitoring",
            source="claim",
        )]
    return []


def _check_follow_up_claim(
    claim: RecommendationClaim,
    ctx: StatusContext,
    bundle: Optional[AssessmentBundle],
) -> List[ContradictionFinding]:
    if not claim.has_interval:
        return [ContradictionFinding(
            FindingKind.VAGUE_TIMING,
            "Follow-up claim carries no interval",
            rule_id="claim_follow_up_without_interval",
            source="claim",
        )]
    if bundle is None or bundle.follow_up is None:
        return []

    plan = bundle.follow_up
    claimed_min = claim.interval_months_min
    if claimed_min is None:
        claimed_min = claim.interval_months_max
    if claimed_min > plan.interval_months_max:
        return [ContradictionFinding(
            FindingKind.TIMING_MISMATCH,
            f"Claims follow-up in {claimed_min:g}+ months; computed plan is "
            f"{plan.interval_months_min:g}-{plan.interval_months_max:g} months",
            rule_id="claim_follow_up_too_late",
            source="claim",
        )]
    return []


CLAIM_CHECKS = {
    ClaimSubject.RAS_INHIBITOR:   _check_drug_claim,
    ClaimSubject.SGLT2_INHIBITOR: _check_drug_claim,
    ClaimSubject.TREATMENT:       _check_drug_claim,
    ClaimSubject.HOME_MONITORING: _check_monitoring_claim,
    ClaimSubject.FOLLOW_UP:       _check_follow_up_claim,
}


class RecommendationConsistencyValidator:
    """
    Annotates a generated recommendation with contradiction findings.

    Usage:
        validator = RecommendationConsistencyValidator()
        report = validator.validate(text, treatment_active=True, monitoring_active=False)
        if report.has_findings:
            surface(report.to_dict())
    """

    def __init__(self, rules: Optional[Sequence[TextRule]] = None):
        self.rules: Tuple[TextRule, ...] = tuple(rules) if rules is not None else DEFAULT_TEXT_RULES

    def validate(
        self,
        text: Optional[str],
        treatment_active: bool,
        monitoring_active: bool,
        claims: Optional[Sequence[RecommendationClaim]] = None,
        bundle: Optional[AssessmentBundle] = None,
        treatment_status: Optional[TreatmentStatus] = None,
        patient_id: Optional[str] = None,
    ) -> ValidationReport:
        """
        Run text rules over ``text`` and claim checks over ``claims``.

        Args:
            treatment_status: Per-drug status; lets drug-specific claims be checked
                against the right class. Falls back to ``treatment_active``.
        """
        ctx = StatusContext(
            treatment_active=treatment_active,
            monitoring_active=monitoring_active,
            treatment_status=treatment_status,
        )
        report = ValidationReport()

        if text:
            report.findings.extend(self._check_text(text, ctx))
        for claim in claims or ():
            report.findings.extend(CLAIM_CHECKS[claim.subject](claim, ctx, bundle))

        for finding in report.findings:
            logger.warning(
                f"Consistency: {finding.finding_kind.value} [{finding.rule_id}] {finding.explanation}",
                extra=log_context(patient_id),
            )
        return report

    def validate_for(
        self,
        snapshot: PatientClinicalSnapshot,
        text: Optional[str],
        claims: Optional[Sequence[RecommendationClaim]] = None,
        bundle: Optional[AssessmentBundle] = None,
    ) -> ValidationReport:
        """Validate using the status recorded on a snapshot."""
        return self.validate(
            text,
            treatment_active=snapshot.treatment.is_active,
            monitoring_active=snapshot.monitoring.active,
            claims=claims,
            bundle=bundle,
            treatment_status=snapshot.treatment,
            patient_id=snapshot.patient_id,
        )

    def _check_text(self, text: str, ctx: StatusContext) -> List[ContradictionFinding]:
        findings = []
        for rule in self.rules:
            if not rule.applies_to(ctx):
                continue
            matched = rule.match(text)
            if matched is not None:
                findings.append(ContradictionFinding(
                    finding_kind=rule.finding_kind,
                    explanation=rule.explanation,
                    rule_id=rule.rule_id,
                    matched_text=matched,
                ))
        return findings
