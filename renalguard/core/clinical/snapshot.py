"""
Patient Clinical Snapshot

The immutable input to every engine call: demographics, the current lab
panel, the previous observation (for trend modifiers), a fixed comorbidity
profile, and current treatment / home-monitoring status.

Values are validated on construction. Out-of-domain numerics raise
InvalidInputError; absent values stay None and are reported later as
insufficient data by whichever component needs them.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from renalguard.utils import InvalidInputError
from .base import DrugClass, MonitoringFrequency


class Sex(str, Enum):
    MALE   = "male"
    FEMALE = "female"


class SmokingStatus(str, Enum):
    NEVER   = "never"
    FORMER  = "former"
    CURRENT = "current"


class TreatmentStatus(str, Enum):
    """Current kidney-protective therapy."""
    NONE          = "none"
    RAS_INHIBITOR = "ras_inhibitor"
    SGLT2I        = "sglt2i"
    BOTH          = "both"

    @property
    def is_active(self) -> bool:
        return self != TreatmentStatus.NONE

    def includes(self, drug_class: DrugClass) -> bool:
        if self == TreatmentStatus.BOTH:
            return True
        if drug_class == DrugClass.RAS_INHIBITOR:
            return self == TreatmentStatus.RAS_INHIBITOR
        return self == TreatmentStatus.SGLT2I

    @property
    def drug_classes(self) -> Tuple[DrugClass, ...]:
        return tuple(d for d in DrugClass if self.includes(d))


def _require_non_negative(name: str, value: Optional[float]) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        raise InvalidInputError(f"{name} must be a finite number", field=name, value=value)
    if value < 0:
        raise InvalidInputError(f"{name} cannot be negative ({value})", field=name, value=value)


def _coerce_enum(obj, attr: str, enum_cls, label: str) -> None:
    value = getattr(obj, attr)
    if isinstance(value, enum_cls):
        return
    try:
        object.__setattr__(obj, attr, enum_cls(str(value).lower()))
    except ValueError:
        raise InvalidInputError(f"Unknown {label}: {value!r}", field=attr, value=value) from None


@dataclass(frozen=True)
class ComorbidityProfile:
    """
    Every comorbidity a rule may inspect, as one typed object.

    Adding a comorbidity means adding a field here; rules read attributes,
    never free-form dict keys.
    """
    diabetes: bool = False
    hypertension: bool = False
    cardiovascular_disease: bool = False
    peripheral_vascular_disease: bool = False
    heart_failure: bool = False
    bilateral_renal_artery_stenosis: bool = False
    sglt2i_ketoacidosis_history: bool = False
    smoking: SmokingStatus = SmokingStatus.NEVER

    def __post_init__(self):
        _coerce_enum(self, "smoking", SmokingStatus, "smoking status")


@dataclass(frozen=True)
class LabPanel:
    """Most recent observation set. Units: eGFR mL/min/1.73m², creatinine mg/dL, uACR mg/g, K mmol/L."""
    egfr: Optional[float] = None
    serum_creatinine: Optional[float] = None
    uacr: Optional[float] = None
    potassium: Optional[float] = None
    hba1c: Optional[float] = None
    systolic_bp: Optional[float] = None
    diastolic_bp: Optional[float] = None

    def __post_init__(self):
        # creatinine == 0 is rejected by the eGFR calculator, where it is used
        for name in ("egfr", "serum_creatinine", "uacr", "potassium", "hba1c",
                     "systolic_bp", "diastolic_bp"):
            _require_non_negative(name, getattr(self, name))


@dataclass(frozen=True)
class PriorObservation:
    """The previous lab set, used only for trend modifiers."""
    egfr: Optional[float] = None
    uacr: Optional[float] = None
    years_elapsed: float = 1.0

    def __post_init__(self):
        _require_non_negative("prior.egfr", self.egfr)
        _require_non_negative("prior.uacr", self.uacr)
        _require_non_negative("prior.years_elapsed", self.years_elapsed)
        if self.years_elapsed is None or self.years_elapsed <= 0:
            raise InvalidInputError(
                "years_elapsed between observations must be positive",
                field="prior.years_elapsed",
                value=self.years_elapsed,
            )


@dataclass(frozen=True)
class MonitoringStatus:
    """Current home-monitoring status."""
    active: bool = False
    device: Optional[str] = None
    frequency: Optional[MonitoringFrequency] = None

    def __post_init__(self):
        if self.frequency is not None:
            _coerce_enum(self, "frequency", MonitoringFrequency, "monitoring frequency")


@dataclass(frozen=True)
class MedicationFill:
    """One dispensing record for a kidney-protective drug class."""
    drug_class: DrugClass
    days_supply: int

    def __post_init__(self):
        _coerce_enum(self, "drug_class", DrugClass, "drug class")
        if self.days_supply is None or self.days_supply < 0:
            raise InvalidInputError(
                "days_supply cannot be negative", field="days_supply", value=self.days_supply
            )


@dataclass(frozen=True)
class PatientClinicalSnapshot:
    """Read-only input for one engine invocation."""
    patient_id: str
    age: float
    sex: Sex
    labs: LabPanel = field(default_factory=LabPanel)
    comorbidities: ComorbidityProfile = field(default_factory=ComorbidityProfile)
    bmi: Optional[float] = None
    prior: Optional[PriorObservation] = None
    treatment: TreatmentStatus = TreatmentStatus.NONE
    monitoring: MonitoringStatus = field(default_factory=MonitoringStatus)
    new_treatment_started: bool = False
    medication_fills: Tuple[MedicationFill, ...] = ()
    as_of_cycle: int = 0

    def __post_init__(self):
        if self.age is None:
            raise InvalidInputError("age is required", field="age")
        _require_non_negative("age", self.age)
        _require_non_negative("bmi", self.bmi)
        if self.bmi is not None and self.bmi <= 0:
            raise InvalidInputError(f"bmi must be positive ({self.bmi})", field="bmi", value=self.bmi)
        _coerce_enum(self, "sex", Sex, "sex")
        _coerce_enum(self, "treatment", TreatmentStatus, "treatment status")
        object.__setattr__(self, "medication_fills", tuple(self.medication_fills))
