"""
Structured Recommendation Claims

The text-generation collaborator emits a short list of machine-readable
claims next to its prose, e.g.

    [{"subject": "ras_inhibitor", "action": "initiate"},
     {"subject": "follow_up", "action": "schedule",
      "interval_months_min": 3, "interval_months_max": 6}]

Claims are compared against the computed bundle by enum equality, so a
paraphrase in the prose cannot hide a contradiction.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from renalguard.core.clinical.base import DrugClass
from renalguard.utils import InvalidInputError


class ClaimSubject(str, Enum):
    RAS_INHIBITOR   = "ras_inhibitor"
    SGLT2_INHIBITOR = "sglt2_inhibitor"
    TREATMENT       = "treatment"          # kidney-protective therapy in general
    HOME_MONITORING = "home_monitoring"
    FOLLOW_UP       = "follow_up"

    @property
    def drug_class(self) -> Optional[DrugClass]:
        if self == ClaimSubject.RAS_INHIBITOR:
            return DrugClass.RAS_INHIBITOR
        if self == ClaimSubject.SGLT2_INHIBITOR:
            return DrugClass.SGLT2_INHIBITOR
        return None


class ClaimAction(str, Enum):
    INITIATE = "initiate"
    CONTINUE = "continue"
    STOP     = "stop"
    SCHEDULE = "schedule"


class RecommendationClaim(BaseModel):
    """One structured statement made by the generated recommendation."""
    model_config = ConfigDict(frozen=True)

    subject: ClaimSubject
    action: ClaimAction
    interval_months_min: Optional[float] = Field(None, ge=0)
    interval_months_max: Optional[float] = Field(None, ge=0)

    @field_validator("subject", "action", mode="before")
    @classmethod
    def _normalise_case(cls, value: Any) -> Any:
        # Generators emit both "RAS_INHIBITOR" and "ras_inhibitor"
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_interval(self) -> "RecommendationClaim":
        low, high = self.interval_months_min, self.interval_months_max
        if low is not None and high is not None and low > high:
            raise ValueError("interval_months_min cannot exceed interval_months_max")
        return self

    @property
    def has_interval(self) -> bool:
        return self.interval_months_min is not None or self.interval_months_max is not None


_CLAIM_LIST = TypeAdapter(List[RecommendationClaim])


def parse_claims(payload: Union[str, bytes, Sequence[Mapping[str, Any]]]) -> List[RecommendationClaim]:
    """
    Parse claims from a JSON string or an already-decoded list of dicts.

    Raises:
        InvalidInputError: payload is not a list of valid claims.
    """
    try:
        if isinstance(payload, (str, bytes)):
            return _CLAIM_LIST.validate_json(payload)
        return _CLAIM_LIST.validate_python(list(payload))
    except ValidationError as exc:
        raise InvalidInputError(
            f"Malformed recommendation claims ({exc.error_count()} error(s))",
            field="claims",
            details={"errors": [err["msg"] for err in exc.errors()]},
        ) from exc
