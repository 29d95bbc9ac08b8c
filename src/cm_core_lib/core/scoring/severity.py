"""Severity scoring for corruption cases.

Centralized weight and lookup tables plus the scorer that combines them.
Score = 0.4 * losses + 0.3 * government level + 0.2 * corruption type
        + 0.1 * case status, clamped to [0, 10].

Any missing field contributes 0 to its term; scoring never raises.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

from cm_core_lib.models.case import CaseRecord


SEVERITY_WEIGHTS: Dict[str, float] = {
    "losses": 0.4,
    "government_level": 0.3,
    "corruption_type": 0.2,
    "case_status": 0.1,
}

GOVERNMENT_LEVEL_SCORES: Dict[str, float] = {
    "national": 10,
    "provincial": 8,
    "regency": 6,
    "city": 6,
    "district": 4,
    "village": 2,
}

CORRUPTION_TYPE_SCORES: Dict[str, float] = {
    "embezzlement": 9,
    "bribery": 8,
    "extortion": 8,
    "fraud": 7,
    "abuse_of_power": 6,
    "nepotism": 5,
    "conflict_of_interest": 4,
}

UNKNOWN_CORRUPTION_TYPE_SCORE = 5

CASE_STATUS_SCORES: Dict[str, float] = {
    "convicted": 10,
    "trial": 8,
    "investigation": 6,
    "reported": 4,
    "dismissed": 2,
}

# Losses are scored on a log scale relative to one million IDR
LOSSES_BASELINE = 1_000_000

MIN_SCORE = 0.0
MAX_SCORE = 10.0


def _clamp(value: float, low: float = MIN_SCORE, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def _normalize_label(label: str) -> str:
    return label.strip().lower().replace("-", "_").replace(" ", "_")


@dataclass(frozen=True)
class SeverityBreakdown:
    """Weighted contribution of each factor to a severity score"""

    losses: float
    government_level: float
    corruption_type: float
    case_status: float

    @property
    def total(self) -> float:
        return _clamp(self.losses + self.government_level + self.corruption_type + self.case_status)


class SeverityScorer:
    """Derives a 0-10 severity score from a case's attributes.

    Usage:
        scorer = SeverityScorer()
        score = scorer.score(case)
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        """Initialize scorer.

        Args:
            weights: Override for SEVERITY_WEIGHTS (same four keys)
        """
        self.weights = dict(SEVERITY_WEIGHTS)
        if weights:
            unknown = set(weights) - set(SEVERITY_WEIGHTS)
            if unknown:
                raise ValueError(f"Unknown severity weight(s): {sorted(unknown)}")
            self.weights.update(weights)

    # Sub-scores, each on a 0-10 scale

    @staticmethod
    def losses_subscore(estimated_losses: Optional[int]) -> float:
        if not estimated_losses or estimated_losses <= 0:
            return 0.0
        return _clamp(math.log10(estimated_losses / LOSSES_BASELINE) * 2)

    @staticmethod
    def government_level_subscore(government_level: Optional[str]) -> float:
        if not government_level:
            return 0.0
        return float(GOVERNMENT_LEVEL_SCORES.get(government_level.strip().lower(), 0))

    @staticmethod
    def corruption_type_subscore(corruption_types) -> float:
        """Highest score among the listed types; unlisted labels score 5"""
        if not corruption_types:
            return 0.0
        return float(max(
            CORRUPTION_TYPE_SCORES.get(_normalize_label(label), UNKNOWN_CORRUPTION_TYPE_SCORE)
            for label in corruption_types
        ))

    @staticmethod
    def case_status_subscore(case_status: Optional[str]) -> float:
        if not case_status:
            return 0.0
        return float(CASE_STATUS_SCORES.get(case_status.strip().lower(), 0))

    def breakdown(self, case: CaseRecord) -> SeverityBreakdown:
        """Weighted contribution of each factor for ``case``"""
        return SeverityBreakdown(
            losses=self.losses_subscore(case.estimated_losses) * self.weights["losses"],
            government_level=(
                self.government_level_subscore(case.government_level)
                * self.weights["government_level"]
            ),
            corruption_type=(
                self.corruption_type_subscore(case.corruption_type)
                * self.weights["corruption_type"]
            ),
            case_status=self.case_status_subscore(case.case_status) * self.weights["case_status"],
        )

    def score(self, case: CaseRecord) -> float:
        """Severity of ``case`` in [0, 10]"""
        return self.breakdown(case).total

    def with_severity(self, case: CaseRecord) -> CaseRecord:
        """Return ``case`` with severity_score filled in when it is absent"""
        if case.severity_score is not None:
            return case
        return case.model_copy(update={"severity_score": self.score(case)})


_default_scorer = SeverityScorer()


def calculate_severity_score(case: CaseRecord) -> float:
    """Score ``case`` with the default weights"""
    return _default_scorer.score(case)
