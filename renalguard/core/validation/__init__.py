"""
Validation Module

Post-generation consistency checks for recommendations produced by the
text-generation collaborator. Findings annotate; they never block.
"""
from .consistency import (
    ContradictionFinding,
    FindingKind,
    RecommendationConsistencyValidator,
    TextRule,
    ValidationReport,
)
from .claims import ClaimAction, ClaimSubject, RecommendationClaim, parse_claims

__all__ = [
    "RecommendationConsistencyValidator",
    "ContradictionFinding",
    "FindingKind",
    "TextRule",
    "ValidationReport",
    "RecommendationClaim",
    "ClaimSubject",
    "ClaimAction",
    "parse_claims",
]
