"""
eGFR Calculator

CKD-EPI 2021 creatinine equation (race-free):

    eGFR = 142 × min(Scr/κ, 1)^α × max(Scr/κ, 1)^-1.200 × 0.9938^age × 1.012 [if female]

    κ = 0.7 (female) / 0.9 (male)
    α = -0.241 (female) / -0.302 (male)

No clamping: invalid inputs raise, they never default to a category.
"""
from __future__ import annotations

from typing import Tuple, Union

from renalguard.utils import InvalidInputError, InsufficientDataError, get_logger, log_context
from .snapshot import PatientClinicalSnapshot, Sex

logger = get_logger(__name__)

# ── CKD-EPI 2021 coefficients ────────────────────────────────────────────────
CKD_EPI_BASE          = 142.0
CKD_EPI_KAPPA         = {Sex.FEMALE: 0.7, Sex.MALE: 0.9}
CKD_EPI_ALPHA         = {Sex.FEMALE: -0.241, Sex.MALE: -0.302}
CKD_EPI_EXP_ABOVE     = -1.200
CKD_EPI_AGE_FACTOR    = 0.9938
CKD_EPI_FEMALE_FACTOR = 1.012

EGFR_SOURCE_MEASURED   = "measured"
EGFR_SOURCE_CALCULATED = "calculated"


def calculate_egfr(serum_creatinine: float, age: float, sex: Union[Sex, str]) -> float:
    """
    Estimate GFR (mL/min/1.73m²) from serum creatinine (mg/dL), age and sex.

    Raises:
        InvalidInputError: creatinine <= 0, age < 0, or unknown sex.
    """
    if serum_creatinine is None or serum_creatinine <= 0:
        raise InvalidInputError(
            f"serum creatinine must be positive ({serum_creatinine})",
            field="serum_creatinine",
            value=serum_creatinine,
        )
    if age is None or age < 0:
        raise InvalidInputError(f"age cannot be negative ({age})", field="age", value=age)
    try:
        sex = Sex(sex)
    except ValueError:
        raise InvalidInputError(f"Unknown sex: {sex!r}", field="sex", value=sex) from None

    ratio = serum_creatinine / CKD_EPI_KAPPA[sex]
    egfr = (
        CKD_EPI_BASE
        * min(ratio, 1.0) ** CKD_EPI_ALPHA[sex]
        * max(ratio, 1.0) ** CKD_EPI_EXP_ABOVE
        * CKD_EPI_AGE_FACTOR ** age
    )
    if sex == Sex.FEMALE:
        egfr *= CKD_EPI_FEMALE_FACTOR
    return egfr


def resolve_egfr(snapshot: PatientClinicalSnapshot) -> Tuple[float, str]:
    """
    Return (eGFR, source) for a snapshot.

    A measured eGFR on the panel wins; otherwise it is computed from creatinine.

    Raises:
        InsufficientDataError: neither eGFR nor creatinine is available.
        InvalidInputError: creatinine is out of domain.
    """
    labs = snapshot.labs
    if labs.egfr is not None:
        return float(labs.egfr), EGFR_SOURCE_MEASURED
    if labs.serum_creatinine is None:
        raise InsufficientDataError(
            "eGFR unavailable: no measured eGFR and no serum creatinine",
            missing_fields=["egfr"],
        )
    egfr = calculate_egfr(labs.serum_creatinine, snapshot.age, snapshot.sex)
    logger.debug(
        f"eGFR: calculated {egfr:.1f} from creatinine {labs.serum_creatinine}",
        extra=log_context(snapshot.patient_id, snapshot.as_of_cycle),
    )
    return egfr, EGFR_SOURCE_CALCULATED
