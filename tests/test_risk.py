import pytest

from watton_engine.risk import classify
from watton_engine.types import VulnerabilityLabel


@pytest.mark.parametrize(
    "savings_pct,score,label",
    [
        (45.0, 9, VulnerabilityLabel.CRITICAL),
        (30.01, 9, VulnerabilityLabel.CRITICAL),
        (30.0, 8, VulnerabilityLabel.ELEVATED),
        (20.01, 8, VulnerabilityLabel.ELEVATED),
        (20.0, 5, VulnerabilityLabel.MEDIUM),
        (8.0, 5, VulnerabilityLabel.MEDIUM),
        (5.0, 5, VulnerabilityLabel.MEDIUM),
        (4.99, 3, VulnerabilityLabel.LOW),
        (0.0, 3, VulnerabilityLabel.LOW),
        (-12.0, 3, VulnerabilityLabel.LOW),
    ],
)
def test_tiers(savings_pct, score, label):
    rating = classify(savings_pct)
    assert rating.score == score
    assert rating.label is label


def test_euro_savings_are_converted_to_percent():
    """3100 € of 10000 € → 31% → critical"""
    rating = classify(3100.0, current_annual=10000.0)
    assert rating.label is VulnerabilityLabel.CRITICAL


def test_euro_savings_without_current_cost():
    rating = classify(500.0, current_annual=0.0)
    assert rating.label is VulnerabilityLabel.LOW
