# watton_engine/risk.py

from __future__ import annotations
from typing import Optional

from .types import VulnerabilityLabel, VulnerabilityRating


# (savings % of current annual cost, score, label), checked top-down
_UPPER_TIERS = (
    (30.0, 9, VulnerabilityLabel.CRITICAL),
    (20.0, 8, VulnerabilityLabel.ELEVATED),
)
LOW_SAVINGS_PCT = 5.0

DEFAULT_RATING = VulnerabilityRating(score=5, label=VulnerabilityLabel.MEDIUM)
LOW_RATING = VulnerabilityRating(score=3, label=VulnerabilityLabel.LOW)


def savings_as_percent(savings_annual: float, current_annual: float) -> float:
    if current_annual <= 0:
        return 0.0
    return savings_annual / current_annual * 100


def classify(savings: float, current_annual: Optional[float] = None) -> VulnerabilityRating:
    """
    Larger savings mean the customer is overpaying today, hence more exposed.

    `savings` is a percent of current annual cost; when `current_annual` is
    given it is read as euros per year and converted to that percent first.
    """
    pct = savings if current_annual is None else savings_as_percent(savings, current_annual)

    for threshold, score, label in _UPPER_TIERS:
        if pct > threshold:
            return VulnerabilityRating(score=score, label=label)

    if pct < LOW_SAVINGS_PCT:
        return LOW_RATING

    return DEFAULT_RATING
