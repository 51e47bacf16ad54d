"""
Unit Tests for the eGFR Calculator

CKD-EPI 2021 race-free equation and snapshot eGFR resolution.
"""
import numpy as np
import pytest

from renalguard.core.clinical import LabPanel, PatientClinicalSnapshot, PriorObservation
from renalguard.core.clinical.engine import RenalDecisionEngine
from renalguard.core.clinical.egfr import (
    EGFR_SOURCE_CALCULATED,
    EGFR_SOURCE_MEASURED,
    calculate_egfr,
    resolve_egfr,
)
from renalguard.utils import InsufficientDataError, InvalidInputError


class TestCalculateEgfr:
    """Tests for calculate_egfr."""

    def test_male_at_kappa(self):
        """Creatinine equal to kappa leaves only the age term."""
        assert calculate_egfr(0.9, 40, "male") == pytest.approx(110.73, rel=1e-3)

    def test_female_factor(self):
        """Female result carries the 1.012 multiplier."""
        male = calculate_egfr(0.9, 40, "male")
        female = calculate_egfr(0.7, 40, "female")
        assert female == pytest.approx(male * 1.012, rel=1e-9)

    def test_reference_value(self):
        """Male, 60 years, creatinine 1.0 mg/dL."""
        assert calculate_egfr(1.0, 60, "male") == pytest.approx(86.2, rel=1e-2)

    def test_decreases_with_creatinine(self):
        """Higher creatinine never yields a higher eGFR."""
        values = [calculate_egfr(scr, 55, "female") for scr in np.linspace(0.3, 8.0, 60)]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_decreases_with_age(self):
        assert calculate_egfr(1.1, 30, "male") > calculate_egfr(1.1, 70, "male")

    @pytest.mark.parametrize("scr", [0, -0.5, None])
    def test_rejects_non_positive_creatinine(self, scr):
        """Invalid creatinine raises instead of defaulting."""
        with pytest.raises(InvalidInputError) as exc_info:
            calculate_egfr(scr, 50, "male")
        assert exc_info.value.field == "serum_creatinine"

    def test_rejects_negative_age(self):
        with pytest.raises(InvalidInputError):
            calculate_egfr(1.0, -1, "male")

    def test_rejects_unknown_sex(self):
        with pytest.raises(InvalidInputError):
            calculate_egfr(1.0, 50, "unknown")


class TestResolveEgfr:
    """Tests for resolve_egfr."""

    def test_measured_wins(self):
        """A measured eGFR is used even when creatinine is present."""
        snap = PatientClinicalSnapshot("p", 50, "male", labs=LabPanel(egfr=72, serum_creatinine=1.0))
        assert resolve_egfr(snap) == (72.0, EGFR_SOURCE_MEASURED)

    def test_calculated_from_creatinine(self):
        snap = PatientClinicalSnapshot("p", 60, "male", labs=LabPanel(serum_creatinine=1.0))
        egfr, source = resolve_egfr(snap)
        assert source == EGFR_SOURCE_CALCULATED
        assert egfr == pytest.approx(calculate_egfr(1.0, 60, "male"))

    def test_nothing_available(self):
        """No eGFR and no creatinine is insufficient data, not invalid input."""
        snap = PatientClinicalSnapshot("p", 60, "male", labs=LabPanel(uacr=12))
        with pytest.raises(InsufficientDataError) as exc_info:
            resolve_egfr(snap)
        assert exc_info.value.missing_fields == ["egfr"]

    def test_zero_creatinine_is_invalid(self):
        snap = PatientClinicalSnapshot("p", 60, "male", labs=LabPanel(serum_creatinine=0))
        with pytest.raises(InvalidInputError):
            resolve_egfr(snap)


class TestSnapshotValidation:
    """Out-of-domain values are rejected when the snapshot is built."""

    def test_negative_creatinine(self):
        with pytest.raises(InvalidInputError):
            LabPanel(serum_creatinine=-1.0)

    def test_nan_uacr(self):
        with pytest.raises(InvalidInputError):
            LabPanel(uacr=float("nan"))

    def test_negative_age(self):
        with pytest.raises(InvalidInputError):
            PatientClinicalSnapshot("p", -3, "female")

    @pytest.mark.parametrize("age", [float("nan"), float("inf")])
    def test_non_finite_age(self, age):
        with pytest.raises(InvalidInputError) as exc_info:
            PatientClinicalSnapshot("p", age, "female", labs=LabPanel(serum_creatinine=1.0, uacr=10))
        assert exc_info.value.details["field"] == "age"

    def test_nan_age_never_reaches_classification(self):
        """A NaN age must not be routed to screening and given a tier."""
        with pytest.raises(InvalidInputError):
            RenalDecisionEngine().assess(
                PatientClinicalSnapshot("p", float("nan"), "female", labs=LabPanel(serum_creatinine=1.0, uacr=10))
            )

    def test_nan_bmi(self):
        with pytest.raises(InvalidInputError):
            PatientClinicalSnapshot("p", 40, "female", bmi=float("nan"))

    def test_nan_years_elapsed(self):
        with pytest.raises(InvalidInputError):
            PriorObservation(egfr=60, uacr=20, years_elapsed=float("nan"))

    def test_zero_years_elapsed(self):
        with pytest.raises(InvalidInputError):
            PriorObservation(egfr=60, years_elapsed=0)

    def test_unknown_treatment_status(self):
        with pytest.raises(InvalidInputError):
            PatientClinicalSnapshot("p", 40, "female", treatment="statin")

    def test_string_enums_coerced(self):
        snap = PatientClinicalSnapshot("p", 40, "FEMALE", treatment="both")
        assert snap.sex.value == "female"
        assert snap.treatment.is_active
