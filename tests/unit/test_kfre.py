"""
Unit Tests for the Kidney Failure Risk Equation
"""
import numpy as np
import pytest

from renalguard.core.clinical.kfre import estimate_kfre, kfre_linear_predictor
from renalguard.core.clinical.snapshot import Sex
from renalguard.utils import InvalidInputError


class TestEstimateKfre:
    """Tests for estimate_kfre."""

    def test_bounded_probabilities(self):
        for egfr in (5, 15, 30, 59):
            for uacr in (0, 10, 300, 3000):
                result = estimate_kfre(65, Sex.MALE, egfr, uacr, region="north_american")
                assert 0.0 <= result.two_year <= 1.0
                assert 0.0 <= result.five_year <= 1.0
                assert result.five_year >= result.two_year

    def test_lower_egfr_raises_risk(self):
        risks = [
            estimate_kfre(60, Sex.FEMALE, egfr, 200, region="north_american").two_year
            for egfr in np.linspace(55, 10, 10)
        ]
        assert all(a < b for a, b in zip(risks, risks[1:]))

    def test_higher_uacr_raises_risk(self):
        low = estimate_kfre(60, Sex.MALE, 35, 20, region="north_american")
        high = estimate_kfre(60, Sex.MALE, 35, 800, region="north_american")
        assert high.five_year > low.five_year

    def test_zero_uacr_floored(self):
        """uACR of zero is evaluated at the log floor instead of failing."""
        assert kfre_linear_predictor(60, Sex.MALE, 40, 0) == kfre_linear_predictor(60, Sex.MALE, 40, 1)

    def test_documented_case_low_short_term_risk(self):
        result = estimate_kfre(55, Sex.MALE, 54, 85, region="north_american")
        assert result.two_year < 0.01
        assert result.five_year < 0.05

    def test_region_calibration(self):
        """Non-North-American baseline survival is lower, so risk is higher."""
        na = estimate_kfre(65, Sex.MALE, 25, 400, region="north_american")
        non_na = estimate_kfre(65, Sex.MALE, 25, 400, region="non_north_american")
        assert non_na.two_year > na.two_year
        assert non_na.region == "non_north_american"

    def test_default_region_from_settings(self):
        from renalguard.config import settings
        assert estimate_kfre(65, Sex.MALE, 25, 400).region == settings.kfre_region

    def test_unknown_region(self):
        with pytest.raises(InvalidInputError):
            estimate_kfre(65, Sex.MALE, 25, 400, region="mars")

    def test_negative_input(self):
        with pytest.raises(InvalidInputError):
            estimate_kfre(65, Sex.MALE, -1, 400, region="north_american")

    def test_to_dict_percentages(self):
        data = estimate_kfre(70, Sex.FEMALE, 22, 650, region="north_american").to_dict()
        assert set(data) == {"two_year_percent", "five_year_percent", "region"}
        assert 0 <= data["two_year_percent"] <= 100
