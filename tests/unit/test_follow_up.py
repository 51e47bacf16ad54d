"""
Unit Tests for the Follow-Up Timing Resolver
"""
import itertools

import pytest

from renalguard.core.clinical.base import RiskTier
from renalguard.core.clinical.follow_up import (
    INTERVAL_FLOOR_MONTHS,
    SAFETY_CHECKPOINT_TESTS,
    base_interval,
    egfr_decline_per_year,
    has_tier_progression,
    resolve_follow_up,
)
from renalguard.core.clinical.snapshot import PriorObservation

TIERS = [RiskTier.LOW, RiskTier.MODERATE, RiskTier.HIGH, RiskTier.VERY_HIGH]


class TestBaseInterval:
    """Tests for the base interval table."""

    @pytest.mark.parametrize("tier,has_ckd,expected", [
        (RiskTier.VERY_HIGH, True, (1.0, 3.0)),
        (RiskTier.HIGH, True, (3.0, 6.0)),
        (RiskTier.MODERATE, False, (6.0, 12.0)),
        (RiskTier.LOW, True, (12.0, 12.0)),
        (RiskTier.LOW, False, (12.0, 24.0)),
    ])
    def test_table(self, tier, has_ckd, expected):
        assert base_interval(tier, has_ckd) == expected

    @pytest.mark.parametrize("has_ckd", [True, False])
    def test_higher_tier_never_longer(self, has_ckd):
        intervals = [base_interval(tier, has_ckd) for tier in TIERS]
        for lower, higher in zip(intervals, intervals[1:]):
            assert higher[0] <= lower[0]
            assert higher[1] <= lower[1]


class TestResolveFollowUp:
    """Tests for resolve_follow_up modifiers."""

    def test_documented_case(self):
        plan = resolve_follow_up(
            RiskTier.HIGH, has_ckd=True, egfr=54, uacr=85,
            prior=PriorObservation(egfr=58, uacr=70),
        )
        assert (plan.interval_months_min, plan.interval_months_max) == (3.0, 6.0)
        assert plan.rationale_tag == "high:base"
        assert plan.safety_checkpoint_weeks is None

    def test_very_high_rapid_decline_floored(self):
        """Halving 1–3 months gives 0.5–1.5; the minimum floors at 1 month."""
        plan = resolve_follow_up(
            RiskTier.VERY_HIGH, has_ckd=True, egfr=20,
            prior=PriorObservation(egfr=28, years_elapsed=1.0),
        )
        assert (plan.interval_months_min, plan.interval_months_max) == (1.0, 1.5)
        assert plan.rationale_tag == "very_high:rapid_egfr_decline"

    def test_decline_normalised_per_year(self):
        """An 8-point drop over two years is 4 per year, not rapid."""
        prior = PriorObservation(egfr=48, years_elapsed=2.0)
        assert egfr_decline_per_year(40, prior) == pytest.approx(4.0)
        plan = resolve_follow_up(RiskTier.HIGH, has_ckd=True, egfr=40, prior=prior)
        assert "rapid_egfr_decline" not in plan.triggers

    def test_uacr_rise(self):
        plan = resolve_follow_up(
            RiskTier.MODERATE, has_ckd=True, egfr=50, uacr=120,
            prior=PriorObservation(egfr=50, uacr=60),
        )
        assert (plan.interval_months_min, plan.interval_months_max) == (3.0, 6.0)
        assert plan.triggers == ("uacr_rise",)

    def test_uacr_rise_floored(self):
        plan = resolve_follow_up(
            RiskTier.HIGH, has_ckd=True, egfr=50, uacr=200,
            prior=PriorObservation(egfr=50, uacr=100),
        )
        assert (plan.interval_months_min, plan.interval_months_max) == (1.0, 1.0)

    def test_tier_progression_then_decline(self):
        """G2 → G3a moves MODERATE to the HIGH interval, then halves it."""
        plan = resolve_follow_up(
            RiskTier.MODERATE, has_ckd=True, egfr=55,
            prior=PriorObservation(egfr=62),
        )
        assert plan.effective_tier == RiskTier.HIGH
        assert (plan.interval_months_min, plan.interval_months_max) == (1.5, 3.0)
        assert plan.rationale_tag == "moderate:tier_progression+rapid_egfr_decline"

    def test_albuminuria_progression(self):
        assert has_tier_progression(70, 45, PriorObservation(egfr=70, uacr=20))
        assert not has_tier_progression(70, 45, PriorObservation(egfr=70, uacr=35))
        assert not has_tier_progression(70, 45, None)

    def test_new_treatment_checkpoint(self):
        plan = resolve_follow_up(RiskTier.HIGH, has_ckd=True, egfr=50, new_treatment_started=True)
        assert plan.safety_checkpoint_weeks == (1, 2)
        assert plan.safety_checkpoint_tests == SAFETY_CHECKPOINT_TESTS
        assert (plan.interval_months_min, plan.interval_months_max) == (3.0, 6.0)

    def test_required_tests_grow_with_tier(self):
        panels = [set(resolve_follow_up(t, True, 50).required_tests) for t in TIERS]
        for lower, higher in zip(panels, panels[1:]):
            assert lower < higher

    def test_as_of_cycle_threaded(self):
        plan = resolve_follow_up(RiskTier.LOW, has_ckd=False, egfr=95, as_of_cycle=7)
        assert plan.as_of_cycle == 7
        assert plan.to_dict()["as_of_cycle"] == 7

    def test_floor_and_ordering_hold_under_modifiers(self):
        """Every bound is at least one month, and higher tiers never wait longer."""
        priors = [None, PriorObservation(egfr=70, uacr=20), PriorObservation(egfr=45, uacr=10)]
        for prior, new_tx, has_ckd in itertools.product(priors, (False, True), (False, True)):
            plans = [
                resolve_follow_up(t, has_ckd, egfr=38, uacr=60, prior=prior, new_treatment_started=new_tx)
                for t in TIERS
            ]
            for plan in plans:
                assert plan.interval_months_min >= INTERVAL_FLOOR_MONTHS
                assert plan.interval_months_min <= plan.interval_months_max
            for lower, higher in zip(plans, plans[1:]):
                assert higher.interval_months_max <= lower.interval_months_max
