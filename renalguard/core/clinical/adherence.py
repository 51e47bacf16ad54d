"""
Medication Adherence — Medication Possession Ratio

    MPR = min(1, Σ days supplied / days in period)

Adherent when MPR ≥ 0.80. The category bands are high (≥ 0.80), medium
(≥ 0.60) and low. Only drug classes the patient is currently
taking are assessed.
"""
from __future__ import annotations

from typing import Iterable, List

from renalguard.utils import InvalidInputError
from .base import AdherenceCategory, AdherenceResult
from .snapshot import MedicationFill, TreatmentStatus

DEFAULT_PERIOD_DAYS = 90
ADHERENCE_THRESHOLD = 0.80
MEDIUM_ADHERENCE_THRESHOLD = 0.60


def medication_possession_ratio(days_supplied: int, period_days: int = DEFAULT_PERIOD_DAYS) -> float:
    if period_days <= 0:
        raise InvalidInputError("period_days must be positive", field="period_days", value=period_days)
    if days_supplied < 0:
        raise InvalidInputError("days_supplied cannot be negative", field="days_supplied", value=days_supplied)
    return min(1.0, days_supplied / period_days)


def adherence_category(mpr: float) -> AdherenceCategory:
    if mpr >= ADHERENCE_THRESHOLD:
        return AdherenceCategory.HIGH
    if mpr >= MEDIUM_ADHERENCE_THRESHOLD:
        return AdherenceCategory.MEDIUM
    return AdherenceCategory.LOW


def assess_adherence(
    fills: Iterable[MedicationFill],
    treatment: TreatmentStatus,
    period_days: int = DEFAULT_PERIOD_DAYS,
) -> List[AdherenceResult]:
    fills = list(fills)
    results = []
    for drug_class in treatment.drug_classes:
        days = sum(f.days_supply for f in fills if f.drug_class == drug_class)
        mpr = medication_possession_ratio(days, period_days)
        results.append(AdherenceResult(
            drug_class=drug_class,
            mpr=mpr,
            adherent=mpr >= ADHERENCE_THRESHOLD,
            category=adherence_category(mpr),
            days_supplied=days,
            period_days=period_days,
        ))
    return results
