# watton_engine/cost_engine.py

from __future__ import annotations
import logging
import math

from .billing_period import DAYS_PER_YEAR, annualization_factor
from .types import PERIODS, CalculationResult, CostBreakdown, PeriodValues

logger = logging.getLogger(__name__)


# Portuguese standard VAT (23%); divides the net amount out of an invoice total
VAT_FACTOR = 1.23


def round_money(value: float) -> float:
    """Round half-up to cents."""
    return math.floor(value * 100 + 0.5) / 100


# ============================================================
# CANONICAL FORMULA
# annual = (period total / billing days) * 365, rounded to cents
# ============================================================

def calculate_annual_cost(period_total: float, billing_days: int) -> float:
    if billing_days <= 0:
        logger.warning("Invalid billing days: %s", billing_days)
        return 0.0

    daily_cost = period_total / billing_days
    return round_money(daily_cost * DAYS_PER_YEAR)


class CostEngine:
    """
    Current vs proposed cost for one billing period.
    Both sides always use the same billing_days.
    """

    def __init__(self, billing_days: int):
        self.billing_days = billing_days

    def energy_cost(self, consumption, prices) -> PeriodValues:
        return PeriodValues(**{p: consumption.get(p) * prices.get(p) for p in PERIODS})

    def power_cost(self, power_daily: float) -> float:
        return power_daily * self.billing_days

    def period_total(self, consumption, prices, power_daily: float) -> float:
        return self.energy_cost(consumption, prices).total() + self.power_cost(power_daily)

    def annual_cost_at(self, consumption, prices, power_daily: float) -> float:
        """Annual cost of this consumption at an arbitrary price set."""
        return calculate_annual_cost(
            self.period_total(consumption, prices, power_daily),
            self.billing_days,
        )

    def aggregate(
        self,
        consumption,
        current_prices,
        proposed_prices,
        power_daily_current: float,
        power_daily_proposed: float,
        invoice_total_with_vat: float = 0.0,
    ) -> CalculationResult:

        days = self.billing_days

        # -------------------------
        # CURRENT
        # -------------------------
        energy_current = self.energy_cost(consumption, current_prices)
        energy_current_total = energy_current.total()
        power_current = self.power_cost(power_daily_current)

        current_total = energy_current_total + power_current

        # No usable per-period prices: estimate from the invoice total without VAT
        estimated = False
        if current_total == 0 and invoice_total_with_vat > 0:
            current_total = invoice_total_with_vat / VAT_FACTOR
            estimated = True
            logger.info(
                "Current cost estimated from invoice total %.2f (VAT removed)",
                invoice_total_with_vat,
            )

        current_annual = calculate_annual_cost(current_total, days)

        # -------------------------
        # PROPOSED (never uses the invoice total)
        # -------------------------
        energy_proposed = self.energy_cost(consumption, proposed_prices)
        energy_proposed_total = energy_proposed.total()
        power_proposed = self.power_cost(power_daily_proposed)

        proposed_total = energy_proposed_total + power_proposed
        proposed_annual = calculate_annual_cost(proposed_total, days)

        # -------------------------
        # SAVINGS (not clamped)
        # -------------------------
        savings_period = current_total - proposed_total
        savings_annual = current_annual - proposed_annual
        savings_percent = (savings_annual / current_annual) * 100 if current_annual > 0 else 0.0

        breakdown = CostBreakdown(
            energy_current=PeriodValues(**{p: round_money(energy_current.get(p)) for p in PERIODS}),
            energy_current_total=round_money(energy_current_total),
            energy_proposed=PeriodValues(**{p: round_money(energy_proposed.get(p)) for p in PERIODS}),
            energy_proposed_total=round_money(energy_proposed_total),
            power_current=round_money(power_current),
            power_proposed=round_money(power_proposed),
            billing_days=days,
            annualization_factor=annualization_factor(days) if days > 0 else 0.0,
        )

        return CalculationResult(
            current_period_total=round_money(current_total),
            proposed_period_total=round_money(proposed_total),
            savings_period=round_money(savings_period),
            current_annual=current_annual,
            proposed_annual=proposed_annual,
            savings_annual=round_money(savings_annual),
            savings_percent=round_money(savings_percent),
            breakdown=breakdown,
            estimated=estimated,
        )
