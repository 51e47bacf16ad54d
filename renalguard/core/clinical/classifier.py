"""
Risk Classifier — path routing

Every snapshot lands on exactly one path:

    eGFR < 60  or  uACR ≥ 30   → KDIGO
    otherwise                   → SCORED / Framingham

On the KDIGO path the reported tier is the higher of the heat-map cell and
the screening tier for the same inputs, so crossing into the CKD path never
lowers a patient's tier. The raw heat-map cell is kept as kdigo_risk_tier.

Missing eGFR or uACR yields an incomplete result, never a guessed tier.
"""
from __future__ import annotations

from typing import List, Optional

from renalguard.utils import InsufficientDataError, get_logger, log_context
from .base import AssessmentMethod, ClassificationResult
from .egfr import resolve_egfr
from .kdigo import (
    ALBUMINURIA_DESCRIPTIONS,
    GFR_DESCRIPTIONS,
    ckd_stage,
    classify_kdigo,
    gfr_category,
)
from .screening import assess_screening
from .snapshot import PatientClinicalSnapshot

logger = get_logger(__name__)

CKD_EGFR_BELOW   = 60.0
CKD_UACR_AT_LEAST = 30.0


def route(egfr: float, uacr: float) -> AssessmentMethod:
    """Total routing rule; depends only on eGFR and uACR."""
    if egfr < CKD_EGFR_BELOW or uacr >= CKD_UACR_AT_LEAST:
        return AssessmentMethod.KDIGO
    return AssessmentMethod.SCORED_FRAMINGHAM


def classify(
    snapshot: PatientClinicalSnapshot,
    egfr: Optional[float] = None,
) -> ClassificationResult:
    """
    Classify one snapshot.

    Args:
        snapshot: Patient snapshot.
        egfr:     Pre-resolved eGFR. Resolved from the snapshot when None.

    Raises:
        InvalidInputError: out-of-domain inputs (propagated, never defaulted).
    """
    missing: List[str] = []
    if egfr is None:
        try:
            egfr, _ = resolve_egfr(snapshot)
        except InsufficientDataError as exc:
            missing.extend(exc.missing_fields)

    uacr = snapshot.labs.uacr
    if uacr is None:
        missing.append("uacr")

    if missing:
        return _incomplete(snapshot, egfr, missing)

    method = route(egfr, uacr)
    screening = assess_screening(
        age=snapshot.age,
        sex=snapshot.sex,
        comorbidities=snapshot.comorbidities,
        bmi=snapshot.bmi,
        egfr=egfr,
        uacr=uacr,
    )

    if method == AssessmentMethod.SCORED_FRAMINGHAM:
        logger.debug(
            f"Classifier: SCORED={screening.scored.points} "
            f"Framingham={screening.framingham.ten_year_percent:.1f}% → {screening.risk_tier.value}",
            extra=log_context(snapshot.patient_id, snapshot.as_of_cycle),
        )
        return ClassificationResult(
            method=method,
            risk_tier=screening.risk_tier,
            scored_points=screening.scored.points,
            scored_risk=screening.scored.risk,
            framingham_ten_year_percent=screening.framingham.ten_year_percent,
            trigger=screening.trigger,
            as_of_cycle=snapshot.as_of_cycle,
        )

    kdigo = classify_kdigo(egfr, uacr)
    if screening.risk_tier.rank > kdigo.risk_tier.rank:
        tier, trigger = screening.risk_tier, f"screening_floor:{screening.trigger}"
    else:
        tier, trigger = kdigo.risk_tier, "kdigo_matrix"

    logger.debug(
        f"Classifier: {kdigo.health_state} heat-map={kdigo.risk_tier.value} → {tier.value} ({trigger})",
        extra=log_context(snapshot.patient_id, snapshot.as_of_cycle),
    )
    return ClassificationResult(
        method=method,
        risk_tier=tier,
        gfr_category=kdigo.gfr_category,
        albuminuria_category=kdigo.albuminuria_category,
        gfr_description=GFR_DESCRIPTIONS[kdigo.gfr_category],
        albuminuria_description=ALBUMINURIA_DESCRIPTIONS[kdigo.albuminuria_category],
        health_state=kdigo.health_state,
        kdigo_risk_tier=kdigo.risk_tier,
        ckd_stage=kdigo.ckd_stage,
        ckd_stage_name=kdigo.ckd_stage_name,
        severity=kdigo.severity,
        trigger=trigger,
        as_of_cycle=snapshot.as_of_cycle,
    )


def _incomplete(
    snapshot: PatientClinicalSnapshot,
    egfr: Optional[float],
    missing: List[str],
) -> ClassificationResult:
    """
    Partial result. With eGFR < 60 the route is known (KDIGO) even without
    uACR, so the GFR category is filled; the tier is never guessed.
    """
    logger.warning(
        f"Classifier: incomplete, missing {', '.join(missing)}",
        extra=log_context(snapshot.patient_id, snapshot.as_of_cycle),
    )
    if egfr is not None and egfr < CKD_EGFR_BELOW:
        gfr = gfr_category(egfr)
        stage, stage_name, severity = ckd_stage(gfr)
        return ClassificationResult(
            method=AssessmentMethod.KDIGO,
            risk_tier=None,
            gfr_category=gfr,
            gfr_description=GFR_DESCRIPTIONS[gfr],
            ckd_stage=stage,
            ckd_stage_name=stage_name,
            severity=severity,
            incomplete=True,
            missing_fields=tuple(missing),
            as_of_cycle=snapshot.as_of_cycle,
        )
    return ClassificationResult(
        method=None,
        risk_tier=None,
        incomplete=True,
        missing_fields=tuple(missing),
        as_of_cycle=snapshot.as_of_cycle,
    )
