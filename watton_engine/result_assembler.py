# watton_engine/result_assembler.py

from __future__ import annotations
from dataclasses import replace
from typing import Iterable, Optional

from .risk import classify
from .types import (
    PERIODS,
    PRICE_FIELDS,
    AutoSwitchConfig,
    CalculationResult,
    MarginSummary,
    PriceSet,
    SimulationResult,
    StrategicAnalysis,
    VulnerabilityRating,
)


def best_margin_period(margins: PriceSet) -> str:
    """Energy period with the largest margin, negative or not; earlier periods win ties."""
    best = PERIODS[0]
    best_margin = margins.get(best)
    for p in PERIODS[1:]:
        if margins.get(p) > best_margin:
            best, best_margin = p, margins.get(p)
    return best


def assemble(
    calc: CalculationResult,
    bases: PriceSet,
    proposed: PriceSet,
    prior: Optional[SimulationResult] = None,
    *,
    ai_insights: Optional[StrategicAnalysis] = None,
    auto_switch: Optional[AutoSwitchConfig] = None,
    margin_summary: Optional[MarginSummary] = None,
    vulnerability: Optional[VulnerabilityRating] = None,
    validation_messages: Iterable[str] = (),
) -> SimulationResult:
    """
    Build the SimulationResult. Narrative and auto-switch state come from
    `prior` unless passed explicitly.
    """
    margins = PriceSet(**{f: proposed.get(f) - bases.get(f) for f in PRICE_FIELDS})

    if prior is not None:
        ai_insights = ai_insights if ai_insights is not None else prior.ai_insights
        auto_switch = auto_switch if auto_switch is not None else prior.auto_switch
    if auto_switch is None:
        auto_switch = AutoSwitchConfig()

    messages = list(validation_messages)
    if calc.estimated:
        messages.append(
            "Current cost estimated from the invoice total without VAT; "
            "per-period prices were missing."
        )

    return SimulationResult(
        calculation=calc,
        bases=bases,
        margins=margins,
        proposed=proposed,
        best_margin_opportunity=best_margin_period(margins),
        vulnerability=vulnerability or classify(calc.savings_percent),
        margin_summary=margin_summary,
        ai_insights=ai_insights,
        auto_switch=auto_switch,
        validation_messages=tuple(messages),
    )


def merge_insights(result: SimulationResult, insights: StrategicAnalysis) -> SimulationResult:
    """Attach a freshly generated narrative to an existing result."""
    return replace(result, ai_insights=insights)
