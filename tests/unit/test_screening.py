"""
Unit Tests for the Non-CKD Screening Assessor

SCORED points, Framingham 10-year risk, and the band merge.
"""
import itertools

import pytest

from renalguard.core.clinical.base import RiskTier
from renalguard.core.clinical.screening import (
    FRAMINGHAM_CAP_PERCENT,
    assess_screening,
    framingham_risk,
    merge_screening,
    scored_score,
)
from renalguard.core.clinical.snapshot import ComorbidityProfile, Sex, SmokingStatus


class TestScored:
    """Tests for SCORED points."""

    def test_documented_example(self):
        """62-year-old woman with hypertension and diabetes scores 6."""
        result = scored_score(62, Sex.FEMALE, ComorbidityProfile(hypertension=True, diabetes=True), uacr=10)
        assert result.points == 6
        assert result.risk == RiskTier.HIGH

    @pytest.mark.parametrize("age,points", [(49, 0), (50, 2), (59.9, 2), (60, 3), (69, 3), (70, 4), (90, 4)])
    def test_age_bands(self, age, points):
        assert scored_score(age, Sex.MALE, ComorbidityProfile(), uacr=None).points == points

    def test_threshold(self):
        """Four points is HIGH, three is LOW."""
        three = scored_score(60, Sex.MALE, ComorbidityProfile(), uacr=5)
        four = scored_score(60, Sex.FEMALE, ComorbidityProfile(), uacr=5)
        assert three.risk == RiskTier.LOW
        assert four.risk == RiskTier.HIGH

    def test_albuminuria_point(self):
        result = scored_score(30, Sex.MALE, ComorbidityProfile(), uacr=30)
        assert result.points == 1
        assert "uacr_ge_30" in result.components


class TestFramingham:
    """Tests for the multiplicative Framingham estimate."""

    def test_baseline_only(self):
        result = framingham_risk(35, ComorbidityProfile(), bmi=None, uacr=None)
        assert result.ten_year_percent == pytest.approx(3.0)
        assert result.band == RiskTier.LOW

    def test_multiplicative_factors(self):
        result = framingham_risk(62, ComorbidityProfile(hypertension=True, diabetes=True), bmi=22, uacr=10)
        assert result.ten_year_percent == pytest.approx(15.0 * 1.8 * 1.6)
        assert result.band == RiskTier.HIGH

    def test_moderate_band(self):
        result = framingham_risk(55, ComorbidityProfile(hypertension=True), bmi=None, uacr=None)
        assert result.ten_year_percent == pytest.approx(12.8)
        assert result.band == RiskTier.MODERATE

    def test_single_bmi_tier(self):
        """Only the highest BMI tier applies."""
        result = framingham_risk(45, ComorbidityProfile(), bmi=36, uacr=None)
        assert result.ten_year_percent == pytest.approx(5.0 * 1.5)
        assert [name for name, _ in result.factors] == ["bmi_ge_35"]

    def test_smoking_status(self):
        current = framingham_risk(45, ComorbidityProfile(smoking=SmokingStatus.CURRENT), None, None)
        former = framingham_risk(45, ComorbidityProfile(smoking="former"), None, None)
        assert current.ten_year_percent == pytest.approx(7.0)
        assert former.ten_year_percent == pytest.approx(5.75)

    def test_capped(self):
        profile = ComorbidityProfile(
            diabetes=True, hypertension=True, cardiovascular_disease=True,
            smoking=SmokingStatus.CURRENT,
        )
        result = framingham_risk(75, profile, bmi=38, uacr=450)
        assert result.ten_year_percent == FRAMINGHAM_CAP_PERCENT

    def test_albuminuria_tiers(self):
        micro = framingham_risk(35, ComorbidityProfile(), None, uacr=300)
        macro = framingham_risk(35, ComorbidityProfile(), None, uacr=301)
        assert micro.ten_year_percent == pytest.approx(3.0 * 2.2)
        assert macro.ten_year_percent == pytest.approx(3.0 * 3.5)


class TestMerge:
    """Tests for the SCORED/Framingham band merge."""

    def test_scored_with_albuminuria_is_high(self):
        result = assess_screening(72, Sex.FEMALE, ComorbidityProfile(), None, egfr=95, uacr=30)
        assert result.risk_tier == RiskTier.HIGH
        assert result.trigger == "scored_with_albuminuria"

    def test_low_bumped_below_90(self):
        """Both scores LOW with eGFR in 60–89 becomes MODERATE."""
        result = assess_screening(35, Sex.MALE, ComorbidityProfile(), None, egfr=75, uacr=5)
        assert result.risk_tier == RiskTier.MODERATE
        assert result.trigger == "egfr_below_90_bump"

    def test_low_stays_low_at_90(self):
        result = assess_screening(35, Sex.MALE, ComorbidityProfile(), None, egfr=90, uacr=5)
        assert result.risk_tier == RiskTier.LOW
        assert result.trigger == "baseline"

    def test_framingham_outranks_scored(self):
        """SCORED LOW with Framingham MODERATE takes the Framingham band."""
        result = assess_screening(55, Sex.MALE, ComorbidityProfile(hypertension=True), None, egfr=95, uacr=5)
        assert result.scored.risk == RiskTier.LOW
        assert result.risk_tier == RiskTier.MODERATE
        assert result.trigger == "framingham"

    def test_never_very_high(self):
        """No combination of inputs produces VERY_HIGH."""
        for age, female, dm, htn, cvd, egfr, uacr in itertools.product(
            (30, 55, 75), (False, True), (False, True), (False, True), (False, True),
            (61, 95), (0, 29, 31, 400),
        ):
            profile = ComorbidityProfile(diabetes=dm, hypertension=htn, cardiovascular_disease=cvd)
            sex = Sex.FEMALE if female else Sex.MALE
            scored = scored_score(age, sex, profile, uacr)
            framingham = framingham_risk(age, profile, None, uacr)
            tier, _ = merge_screening(scored, framingham, egfr, uacr)
            assert tier != RiskTier.VERY_HIGH
