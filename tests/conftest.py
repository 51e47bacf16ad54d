"""
Pytest Configuration and Fixtures

Shared patient snapshots for decision-engine tests.
"""
import pytest
from pathlib import Path
import sys

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from renalguard.core.clinical import (
    ComorbidityProfile,
    LabPanel,
    MonitoringStatus,
    PatientClinicalSnapshot,
    PriorObservation,
    TreatmentStatus,
)


@pytest.fixture
def documented_case() -> PatientClinicalSnapshot:
    """eGFR 54 (prior 58), uACR 85, hypertensive, untreated, not monitoring."""
    return PatientClinicalSnapshot(
        patient_id="case-001",
        age=55,
        sex="male",
        labs=LabPanel(egfr=54, uacr=85, potassium=4.5, systolic_bp=138, diastolic_bp=84),
        comorbidities=ComorbidityProfile(hypertension=True, diabetes=False),
        prior=PriorObservation(egfr=58, uacr=70, years_elapsed=1.0),
        treatment=TreatmentStatus.NONE,
        monitoring=MonitoringStatus(active=False),
        as_of_cycle=3,
    )


@pytest.fixture
def healthy_adult() -> PatientClinicalSnapshot:
    """Young, no risk factors, normal kidney markers."""
    return PatientClinicalSnapshot(
        patient_id="healthy-001",
        age=35,
        sex="male",
        labs=LabPanel(egfr=105, uacr=8, potassium=4.2),
        bmi=23.0,
    )


@pytest.fixture
def advanced_ckd() -> PatientClinicalSnapshot:
    """G4-A3 diabetic on an SGLT2 inhibitor with home monitoring."""
    return PatientClinicalSnapshot(
        patient_id="ckd-004",
        age=71,
        sex="female",
        labs=LabPanel(egfr=22, uacr=650, potassium=5.0),
        comorbidities=ComorbidityProfile(diabetes=True, hypertension=True),
        treatment=TreatmentStatus.SGLT2I,
        monitoring=MonitoringStatus(active=True, device="minuteful_kidney", frequency="weekly"),
    )


@pytest.fixture
def missing_uacr() -> PatientClinicalSnapshot:
    """Reduced eGFR but no uACR on file."""
    return PatientClinicalSnapshot(
        patient_id="gap-001",
        age=64,
        sex="female",
        labs=LabPanel(egfr=41),
    )
