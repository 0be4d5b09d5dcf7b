# watton_engine/engine.py

from __future__ import annotations
import logging
from typing import Mapping, Optional

from .billing_period import resolve_billing_period
from .cost_engine import CostEngine, round_money
from .pricing_strategy import apply_overrides, derive_proposal, resolve_price_edits
from .result_assembler import assemble
from .risk import classify
from .tariff_model import lookup_base_prices
from .types import (
    AutoSwitchConfig,
    CalculationResult,
    InvoiceData,
    MarginSummary,
    Overrides,
    PriceSet,
    SimulationResult,
)

logger = logging.getLogger(__name__)


def _margin_summary(calc: CalculationResult, base_annual: float) -> MarginSummary:
    margin_annual = round_money(calc.proposed_annual - base_annual)
    margin_percent = (
        round_money(margin_annual / calc.proposed_annual * 100)
        if calc.proposed_annual > 0 else 0.0
    )
    return MarginSummary(
        base_annual=base_annual,
        margin_annual=margin_annual,
        margin_percent=margin_percent,
    )


def _run(
    invoice: InvoiceData,
    bases: PriceSet,
    proposed: PriceSet,
    prior: Optional[SimulationResult] = None,
    auto_switch: Optional[AutoSwitchConfig] = None,
) -> SimulationResult:

    # ------------------------------------------------------
    # 1) One billing period for both sides
    # ------------------------------------------------------
    period = resolve_billing_period(invoice.start_date, invoice.end_date)
    cost_engine = CostEngine(period.days)

    # ------------------------------------------------------
    # 2) Current vs proposed totals
    # ------------------------------------------------------
    calc = cost_engine.aggregate(
        invoice.consumption,
        invoice.prices,
        proposed.energy(),
        invoice.power_daily_price,
        proposed.power_daily,
        invoice.invoice_total_with_vat,
    )

    # ------------------------------------------------------
    # 3) Margin bookkeeping at base prices
    # ------------------------------------------------------
    base_annual = cost_engine.annual_cost_at(invoice.consumption, bases.energy(), bases.power_daily)

    messages = []
    if period.is_fallback:
        messages.append(
            f"Billing dates missing or invalid; assumed a {period.days}-day period."
        )

    # ------------------------------------------------------
    # 4) Risk + assembly
    # ------------------------------------------------------
    return assemble(
        calc,
        bases,
        proposed,
        prior,
        auto_switch=auto_switch,
        margin_summary=_margin_summary(calc, base_annual),
        vulnerability=classify(calc.savings_percent),
        validation_messages=messages,
    )


def calculate_simulation(invoice: InvoiceData) -> SimulationResult:
    """
    Fresh simulation: base costs from the tariff table, proposal from the
    target-savings policy.
    """
    bases = lookup_base_prices(invoice.voltage_class, invoice.cycle, invoice.contracted_power_kva)
    proposed = derive_proposal(invoice.current_prices(), bases)

    result = _run(invoice, bases, proposed)
    logger.info(
        "Simulation for %s: current %.2f €/yr, proposed %.2f €/yr (%.2f%%)",
        invoice.tax_id or "<no tax id>",
        result.calculation.current_annual,
        result.calculation.proposed_annual,
        result.calculation.savings_percent,
    )
    return result


def _auto_switch_override(overrides: Mapping[str, object]) -> Optional[AutoSwitchConfig]:
    value = overrides.get("auto_switch")
    if isinstance(value, AutoSwitchConfig):
        return value
    if isinstance(value, Mapping):
        try:
            return AutoSwitchConfig.from_dict(value)
        except (TypeError, ValueError):
            logger.debug("Ignoring invalid auto_switch override %r", value)
    return None


def recompute_simulation(
    invoice: InvoiceData,
    overrides: Optional[Overrides] = None,
    prior: Optional[SimulationResult] = None,
) -> SimulationResult:
    """
    The single recomputation entry point for every edit.

    Bases and margins start from `prior`; `overrides` may replace any of
    them (base_*, margin_*, proposed_*). Customer-side edits come in as an
    updated `invoice` with no overrides. Without a prior this is a fresh run.
    """
    if prior is None:
        return calculate_simulation(invoice)

    overrides = overrides or {}
    bases, margins = resolve_price_edits(prior.bases, prior.margins, overrides)
    proposed = apply_overrides(bases, margins)

    return _run(invoice, bases, proposed, prior, _auto_switch_override(overrides))
