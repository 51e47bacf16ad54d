"""
Unit Tests for Structured Recommendation Claims
"""
import pytest
from pydantic import ValidationError

from renalguard.core.clinical.base import DrugClass
from renalguard.core.validation import ClaimAction, ClaimSubject, RecommendationClaim, parse_claims
from renalguard.utils import InvalidInputError


class TestParseClaims:
    """Tests for parse_claims."""

    def test_json_string(self):
        claims = parse_claims('[{"subject": "sglt2_inhibitor", "action": "initiate"}]')
        assert claims == [RecommendationClaim(subject=ClaimSubject.SGLT2_INHIBITOR, action=ClaimAction.INITIATE)]

    def test_case_insensitive(self):
        (claim,) = parse_claims([{"subject": "Home_Monitoring", "action": "CONTINUE"}])
        assert claim.subject == ClaimSubject.HOME_MONITORING
        assert claim.action == ClaimAction.CONTINUE

    def test_interval(self):
        (claim,) = parse_claims([
            {"subject": "follow_up", "action": "schedule", "interval_months_min": 3, "interval_months_max": 6}
        ])
        assert claim.has_interval
        assert claim.interval_months_max == 6

    def test_empty_list(self):
        assert parse_claims("[]") == []

    @pytest.mark.parametrize("payload", [
        '[{"subject": "statin", "action": "initiate"}]',
        '[{"subject": "follow_up", "action": "schedule", "interval_months_min": 6, "interval_months_max": 3}]',
        '[{"subject": "follow_up", "action": "schedule", "interval_months_min": -1}]',
        '{"subject": "treatment"}',
        "not json",
    ])
    def test_malformed(self, payload):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_claims(payload)
        assert exc_info.value.code == "INVALID_INPUT"
        assert exc_info.value.details["errors"]


class TestClaimModel:
    """Tests for RecommendationClaim."""

    def test_frozen(self):
        claim = RecommendationClaim(subject="treatment", action="stop")
        with pytest.raises(ValidationError):
            claim.action = ClaimAction.CONTINUE

    def test_drug_class_mapping(self):
        assert ClaimSubject.RAS_INHIBITOR.drug_class == DrugClass.RAS_INHIBITOR
        assert ClaimSubject.SGLT2_INHIBITOR.drug_class == DrugClass.SGLT2_INHIBITOR
        assert ClaimSubject.FOLLOW_UP.drug_class is None
