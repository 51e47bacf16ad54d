"""
Clinical Decision Layer

Turns a patient snapshot into a risk classification, treatment
recommendations, home-monitoring advice and a follow-up schedule.

Usage:
    from renalguard.core.clinical import RenalDecisionEngine, PatientClinicalSnapshot, LabPanel

    engine = RenalDecisionEngine()
    bundle = engine.assess(PatientClinicalSnapshot(
        patient_id="p-001", age=67, sex="female",
        labs=LabPanel(egfr=54, uacr=85, potassium=4.6),
    ))
"""
from .engine import AssessmentBundle, BatchOutcome, RenalDecisionEngine
from .base import (
    AdherenceCategory,
    AssessmentMethod,
    ClassificationResult,
    DrugClass,
    FollowUpPlan,
    IndicationLevel,
    MonitoringFrequency,
    RiskTier,
    TreatmentPlan,
    UrgencyLevel,
)
from .snapshot import (
    ComorbidityProfile,
    LabPanel,
    MedicationFill,
    MonitoringStatus,
    PatientClinicalSnapshot,
    PriorObservation,
    Sex,
    SmokingStatus,
    TreatmentStatus,
)

__all__ = [
    "RenalDecisionEngine",
    "AssessmentBundle",
    "BatchOutcome",
    "AdherenceCategory",
    "AssessmentMethod",
    "ClassificationResult",
    "DrugClass",
    "FollowUpPlan",
    "IndicationLevel",
    "MonitoringFrequency",
    "RiskTier",
    "TreatmentPlan",
    "UrgencyLevel",
    "ComorbidityProfile",
    "LabPanel",
    "MedicationFill",
    "MonitoringStatus",
    "PatientClinicalSnapshot",
    "PriorObservation",
    "Sex",
    "SmokingStatus",
    "TreatmentStatus",
]
