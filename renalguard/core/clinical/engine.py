"""
Renal Decision Engine

Central dispatcher. Takes one PatientClinicalSnapshot and returns the full
structured bundle handed to the prompt-building collaborator:

    eGFR → classification (KDIGO | SCORED/Framingham) → KFRE (KDIGO only)
         → treatment plan + home monitoring → follow-up plan

Usage:
    from renalguard.core.clinical import RenalDecisionEngine

    engine = RenalDecisionEngine()
    bundle = engine.assess(snapshot)
    print(bundle.classification.health_state, bundle.follow_up.rationale_tag)

    outcomes = engine.assess_many(snapshots)       # per-patient isolation
    stats = RenalDecisionEngine.summarise([o.bundle for o in outcomes if o.success])
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from renalguard.config import settings
from renalguard.utils import InsufficientDataError, RenalGuardError, get_logger, log_context
from .adherence import assess_adherence
from .base import (
    AdherenceResult,
    AssessmentMethod,
    ClassificationResult,
    ClinicalFlags,
    DrugClass,
    FollowUpPlan,
    IndicationLevel,
    KFREResult,
    MonitoringRecommendation,
    RiskTier,
    TreatmentPlan,
)
from .classifier import classify
from .egfr import resolve_egfr
from .follow_up import resolve_follow_up
from .kdigo import clinical_flags
from .kfre import estimate_kfre
from .snapshot import PatientClinicalSnapshot
from .treatment import build_treatment_plan, recommend_monitoring

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssessmentBundle:
    """Everything the engine computed for one snapshot."""
    patient_id: str
    as_of_cycle: int
    classification: ClassificationResult
    egfr: Optional[float] = None
    egfr_source: Optional[str] = None
    kfre: Optional[KFREResult] = None
    clinical_flags: Optional[ClinicalFlags] = None
    treatment: Optional[TreatmentPlan] = None
    monitoring: Optional[MonitoringRecommendation] = None
    follow_up: Optional[FollowUpPlan] = None
    adherence: Tuple[AdherenceResult, ...] = ()
    engine_version: str = ""

    @property
    def incomplete(self) -> bool:
        return self.classification.incomplete

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "as_of_cycle": self.as_of_cycle,
            "engine_version": self.engine_version,
            "egfr": round(self.egfr, 1) if self.egfr is not None else None,
            "egfr_source": self.egfr_source,
            "incomplete": self.incomplete,
            "classification": self.classification.to_dict(),
            "kfre": self.kfre.to_dict() if self.kfre else None,
            "clinical_flags": self.clinical_flags.to_dict() if self.clinical_flags else None,
            "treatment": self.treatment.to_dict() if self.treatment else None,
            "monitoring": self.monitoring.to_dict() if self.monitoring else None,
            "follow_up": self.follow_up.to_dict() if self.follow_up else None,
            "adherence": [a.to_dict() for a in self.adherence],
        }


@dataclass(frozen=True)
class BatchOutcome:
    """One patient's result inside a batch; failures never abort the batch."""
    patient_id: str
    success: bool
    bundle: Optional[AssessmentBundle] = None
    error: Optional[Dict[str, Any]] = None


class RenalDecisionEngine:
    """
    Turns a PatientClinicalSnapshot into an AssessmentBundle.

    Stateless, so safe to call from multiple threads or concurrent requests.
    """

    def __init__(self, kfre_region: Optional[str] = None, max_workers: Optional[int] = None):
        self.kfre_region = kfre_region or settings.kfre_region
        self.max_workers = max_workers or settings.batch_max_workers
        logger.info(
            f"RenalDecisionEngine initialized (v{settings.engine_version}, "
            f"KFRE={self.kfre_region}, workers={self.max_workers})"
        )

    def assess(self, snapshot: PatientClinicalSnapshot) -> AssessmentBundle:
        """
        Run every component for one snapshot.

        Raises:
            InvalidInputError: out-of-domain inputs. Missing data never raises;
                it produces an incomplete bundle instead.
        """
        egfr: Optional[float] = None
        egfr_source: Optional[str] = None
        try:
            egfr, egfr_source = resolve_egfr(snapshot)
        except InsufficientDataError:
            pass  # reported through classification.missing_fields

        classification = classify(snapshot, egfr)

        adherence: Tuple[AdherenceResult, ...] = ()
        if snapshot.treatment.is_active:
            adherence = tuple(assess_adherence(snapshot.medication_fills, snapshot.treatment))

        if classification.incomplete:
            return AssessmentBundle(
                patient_id=snapshot.patient_id,
                as_of_cycle=snapshot.as_of_cycle,
                classification=classification,
                egfr=egfr,
                egfr_source=egfr_source,
                adherence=adherence,
                engine_version=settings.engine_version,
            )

        labs = snapshot.labs
        kfre = None
        flags = None
        if classification.has_ckd:
            kfre = estimate_kfre(snapshot.age, snapshot.sex, egfr, labs.uacr, region=self.kfre_region)
            flags = clinical_flags(
                classification.gfr_category,
                classification.albuminuria_category,
                egfr,
                labs,
                kfre,
            )

        treatment = build_treatment_plan(
            classification,
            egfr=egfr,
            uacr=labs.uacr,
            potassium=labs.potassium,
            comorbidities=snapshot.comorbidities,
            treatment=snapshot.treatment,
            kfre=kfre,
        )
        monitoring = recommend_monitoring(egfr, labs.uacr, snapshot.treatment)
        follow_up = resolve_follow_up(
            classification.risk_tier,
            has_ckd=classification.has_ckd,
            egfr=egfr,
            uacr=labs.uacr,
            prior=snapshot.prior,
            new_treatment_started=snapshot.new_treatment_started,
            as_of_cycle=snapshot.as_of_cycle,
        )

        return AssessmentBundle(
            patient_id=snapshot.patient_id,
            as_of_cycle=snapshot.as_of_cycle,
            classification=classification,
            egfr=egfr,
            egfr_source=egfr_source,
            kfre=kfre,
            clinical_flags=flags,
            treatment=treatment,
            monitoring=monitoring,
            follow_up=follow_up,
            adherence=adherence,
            engine_version=settings.engine_version,
        )

    def assess_many(
        self,
        snapshots: Sequence[PatientClinicalSnapshot],
        max_workers: Optional[int] = None,
    ) -> List[BatchOutcome]:
        """
        Assess a population. Each patient is isolated: an error becomes a
        failed BatchOutcome and the remaining patients continue.
        Results are returned in input order.
        """
        outcomes: Dict[int, BatchOutcome] = {}
        workers = max_workers or self.max_workers

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self.assess, snapshot): (index, snapshot.patient_id)
                for index, snapshot in enumerate(snapshots)
            }
            for future in as_completed(futures):
                index, patient_id = futures[future]
                try:
                    outcomes[index] = BatchOutcome(patient_id, True, bundle=future.result())
                except RenalGuardError as exc:
                    logger.warning(
                        f"RenalDecisionEngine: {exc.code}: {exc.message}",
                        extra=log_context(patient_id),
                    )
                    outcomes[index] = BatchOutcome(patient_id, False, error=exc.to_dict())
                except Exception as exc:
                    # One patient crashing must not block the rest of the batch
                    logger.error(
                        f"RenalDecisionEngine: assessment raised {exc}",
                        exc_info=True,
                        extra=log_context(patient_id),
                    )
                    outcomes[index] = BatchOutcome(
                        patient_id,
                        False,
                        error={"error": "INTERNAL_ERROR", "message": str(exc), "details": {}},
                    )

        ordered = [outcomes[i] for i in range(len(snapshots))]
        failed = sum(1 for o in ordered if not o.success)
        logger.info(f"RenalDecisionEngine: batch of {len(ordered)}, {len(ordered) - failed} ok, {failed} failed")
        return ordered

    @staticmethod
    def count_high_risk(bundles: Sequence[AssessmentBundle]) -> int:
        """Complete classifications at HIGH or VERY_HIGH."""
        return sum(
            1 for b in bundles
            if not b.incomplete
            and b.classification.risk_tier in (RiskTier.HIGH, RiskTier.VERY_HIGH)
        )

    @staticmethod
    def summarise(bundles: Sequence[AssessmentBundle]) -> Dict[str, Any]:
        """
        Build a compact population summary suitable for JSON API responses.

        Example output:
        {
            "total_patients": 3,
            "incomplete_count": 1,
            "by_risk_tier": {"low": 1, "moderate": 0, "high": 1, "very_high": 0},
            "by_method": {"kdigo": 1, "scored_framingham": 1},
            "high_risk_count": 1,
            "strong_indications": {"ras_inhibitor": 1, "sglt2_inhibitor": 0},
            "monitoring_recommended_count": 1,
            "egfr_mean": 71.3,
            "egfr_median": 68.0
        }
        """
        by_tier = {tier.value: 0 for tier in RiskTier}
        by_method = {method.value: 0 for method in AssessmentMethod}
        strong = {drug.value: 0 for drug in DrugClass}
        incomplete = 0
        monitoring = 0

        for b in bundles:
            if b.incomplete:
                incomplete += 1
                continue
            by_tier[b.classification.risk_tier.value] += 1
            by_method[b.classification.method.value] += 1
            if b.treatment is not None:
                for rec in b.treatment.recommendations:
                    if rec.indication_level == IndicationLevel.STRONG:
                        strong[rec.drug_class.value] += 1
            if b.monitoring is not None and b.monitoring.recommended:
                monitoring += 1

        egfr_values = np.array([b.egfr for b in bundles if b.egfr is not None], dtype=float)
        return {
            "total_patients": len(bundles),
            "incomplete_count": incomplete,
            "by_risk_tier": by_tier,
            "by_method": by_method,
            "high_risk_count": RenalDecisionEngine.count_high_risk(bundles),
            "strong_indications": strong,
            "monitoring_recommended_count": monitoring,
            "egfr_mean": round(float(np.mean(egfr_values)), 1) if egfr_values.size else None,
            "egfr_median": round(float(np.median(egfr_values)), 1) if egfr_values.size else None,
        }
