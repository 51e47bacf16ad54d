"""
Kidney-Failure Risk Estimator (4-variable KFRE)

    risk(t) = 1 − S0(t) ^ exp(Σ βᵢ (xᵢ − x̄ᵢ))

    x: age/10, male, eGFR/5, ln(uACR mg/g)

Applies only on the KDIGO path. The probabilities feed treatment urgency
and referral flags; they never gate a drug decision.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from renalguard.config import settings
from renalguard.utils import InvalidInputError, get_logger
from .base import KFREResult
from .snapshot import Sex

logger = get_logger(__name__)

KFRE_COEFFICIENTS = {
    "age":  -0.2201,
    "male":  0.2467,
    "egfr": -0.5567,
    "uacr":  0.4510,
}
KFRE_MEANS = {
    "age":  7.036,
    "male": 0.5642,
    "egfr": 7.222,
    "uacr": 5.137,
}

# Baseline survival S0(t) per calibration region
KFRE_BASELINE_SURVIVAL = {
    "north_american":     {"two_year": 0.9832, "five_year": 0.9365},
    "non_north_american": {"two_year": 0.9750, "five_year": 0.9240},
}

UACR_LOG_FLOOR = 1.0   # mg/g; keeps ln(uACR) defined for uACR == 0


def kfre_linear_predictor(age: float, sex: Sex, egfr: float, uacr: float) -> float:
    male = 1.0 if Sex(sex) == Sex.MALE else 0.0
    return (
        KFRE_COEFFICIENTS["age"] * (age / 10.0 - KFRE_MEANS["age"])
        + KFRE_COEFFICIENTS["male"] * (male - KFRE_MEANS["male"])
        + KFRE_COEFFICIENTS["egfr"] * (egfr / 5.0 - KFRE_MEANS["egfr"])
        + KFRE_COEFFICIENTS["uacr"] * (float(np.log(max(uacr, UACR_LOG_FLOOR))) - KFRE_MEANS["uacr"])
    )


def estimate_kfre(
    age: float,
    sex: Sex,
    egfr: float,
    uacr: float,
    region: Optional[str] = None,
) -> KFREResult:
    """
    2-year and 5-year probability of kidney failure.

    Args:
        region: 'north_american' or 'non_north_american'. Defaults to settings.kfre_region.
    """
    region = region or settings.kfre_region
    baseline = KFRE_BASELINE_SURVIVAL.get(region)
    if baseline is None:
        raise InvalidInputError(f"Unknown KFRE region: {region!r}", field="kfre_region", value=region)
    if egfr < 0 or uacr < 0 or age < 0:
        raise InvalidInputError(
            "KFRE inputs cannot be negative",
            field="kfre",
            value={"age": age, "egfr": egfr, "uacr": uacr},
        )

    hazard_multiplier = float(np.exp(kfre_linear_predictor(age, sex, egfr, uacr)))
    two_year = float(np.clip(1.0 - baseline["two_year"] ** hazard_multiplier, 0.0, 1.0))
    five_year = float(np.clip(1.0 - baseline["five_year"] ** hazard_multiplier, 0.0, 1.0))

    logger.debug(f"KFRE ({region}): 2y={two_year:.4f} 5y={five_year:.4f}")
    return KFREResult(two_year=two_year, five_year=five_year, region=region)
