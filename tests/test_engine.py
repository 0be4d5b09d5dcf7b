import pytest

from watton_engine.cost_engine import CostEngine
from watton_engine.engine import calculate_simulation, recompute_simulation
from watton_engine.form_input import apply_client_update
from watton_engine.pricing_strategy import MIN_MARGIN_EUR_KWH, derive_proposal
from watton_engine.result_assembler import merge_insights
from watton_engine.types import (
    PERIODS,
    PRICE_FIELDS,
    AutoSwitchConfig,
    AutoSwitchStatus,
    MarginSummary,
    PeriodValues,
    PriceSet,
    StrategicAnalysis,
    VulnerabilityLabel,
)

from generators import make_invoice


# ------------------------------------------------------------
# 1. Fresh simulation on the reference invoice
# ------------------------------------------------------------
def test_fresh_simulation(simulation):
    """
    Proposed = max(base + 0.001, current * 0.92):
      peak 0.184, full 0.138, off-peak 0.092, super off-peak 0.0828, power 1.38
    """
    proposed = simulation.proposed
    assert proposed.peak == pytest.approx(0.184)
    assert proposed.full == pytest.approx(0.138)
    assert proposed.off_peak == pytest.approx(0.092)
    assert proposed.super_off_peak == pytest.approx(0.0828)
    assert proposed.power_daily == pytest.approx(1.38)

    calc = simulation.calculation
    assert calc.breakdown.billing_days == 30
    assert calc.current_annual == pytest.approx(9003.33)
    assert calc.proposed_annual == pytest.approx(8283.07)
    assert calc.savings_percent == pytest.approx(8.0)

    assert simulation.bases.peak == pytest.approx(0.094782)
    assert simulation.best_margin_opportunity == "peak"
    assert simulation.vulnerability.label is VulnerabilityLabel.MEDIUM
    assert simulation.validation_messages == ()


def test_dashboard_aliases_read_canonical_totals(simulation):
    assert simulation.current_annual_cost == simulation.calculation.current_annual
    assert simulation.proposed_annual_cost == simulation.calculation.proposed_annual
    assert simulation.savings_total == simulation.calculation.savings_annual


def test_margin_identity(simulation):
    for f in PRICE_FIELDS:
        assert simulation.proposed.get(f) == pytest.approx(
            simulation.bases.get(f) + simulation.margins.get(f)
        )


def test_margin_summary_at_base_prices(simulation):
    summary = simulation.margin_summary
    assert summary.base_annual < simulation.calculation.proposed_annual
    assert summary.margin_annual == pytest.approx(
        simulation.calculation.proposed_annual - summary.base_annual, abs=0.01
    )


# ------------------------------------------------------------
# 2. Recomputation
# ------------------------------------------------------------
def test_recompute_without_edits_is_idempotent(invoice, simulation):
    again = recompute_simulation(invoice, {}, simulation)

    assert again.calculation.current_annual == simulation.calculation.current_annual
    assert again.calculation.proposed_annual == pytest.approx(simulation.calculation.proposed_annual)
    for f in PRICE_FIELDS:
        assert again.proposed.get(f) == pytest.approx(simulation.proposed.get(f))


def test_recompute_without_prior_is_a_fresh_run(invoice, simulation):
    assert recompute_simulation(invoice) == simulation


def test_margin_override(invoice, simulation):
    result = recompute_simulation(invoice, {"margin_peak": "0,1"}, simulation)

    assert result.margins.peak == pytest.approx(0.1)
    assert result.proposed.peak == pytest.approx(0.194782)
    # other fields untouched
    assert result.proposed.full == pytest.approx(simulation.proposed.full)


def test_final_price_override(invoice, simulation):
    """0.15 - 0.086418 = 0.063582"""
    result = recompute_simulation(invoice, {"proposed_full": 0.15}, simulation)

    assert result.margins.full == pytest.approx(0.063582)
    assert result.proposed.full == pytest.approx(0.15)


def test_base_override_keeps_margin(invoice, simulation):
    result = recompute_simulation(invoice, {"base_peak": 0.09}, simulation)

    assert result.bases.peak == 0.09
    assert result.margins.peak == pytest.approx(simulation.margins.peak)


def test_unparseable_override_changes_nothing(invoice, simulation):
    result = recompute_simulation(invoice, {"margin_peak": "abc"}, simulation)
    assert result.proposed.peak == pytest.approx(simulation.proposed.peak)


def test_insights_survive_recompute(invoice, simulation):
    insights = StrategicAnalysis(executive_summary="Resumo", hedging_strategy="Fixar preço")
    prior = merge_insights(simulation, insights)

    result = recompute_simulation(invoice, {"margin_peak": 0.05}, prior)

    assert result.ai_insights == insights


def test_auto_switch_override(invoice, simulation):
    result = recompute_simulation(
        invoice,
        {"auto_switch": {"is_enabled": True, "status": "scanning"}},
        simulation,
    )

    assert result.auto_switch.is_enabled
    assert result.auto_switch.status is AutoSwitchStatus.SCANNING


# ------------------------------------------------------------
# 3. Customer-side edits keep the offer
# ------------------------------------------------------------
def test_client_price_edit_keeps_proposal(invoice, simulation):
    """peak 0.20 → 0.25: current +50 € per period, proposed unchanged"""
    edited = apply_client_update(invoice, {"price_peak": "0,25"})
    result = recompute_simulation(edited, {}, simulation)

    assert result.calculation.current_period_total == pytest.approx(790.0)
    assert result.calculation.proposed_period_total == pytest.approx(
        simulation.calculation.proposed_period_total
    )
    for f in PRICE_FIELDS:
        assert result.proposed.get(f) == pytest.approx(simulation.proposed.get(f))


def test_client_consumption_edit_changes_both_sides(invoice, simulation):
    edited = apply_client_update(invoice, {"consumption_peak": 2000})
    result = recompute_simulation(edited, {}, simulation)

    assert result.calculation.current_period_total > simulation.calculation.current_period_total
    assert result.calculation.proposed_period_total > simulation.calculation.proposed_period_total


# ------------------------------------------------------------
# 4. Degraded inputs are reported, not raised
# ------------------------------------------------------------
def test_missing_dates_fall_back_with_message():
    result = calculate_simulation(make_invoice(start_date="", end_date=""))

    assert result.calculation.breakdown.billing_days == 30
    assert any("30-day" in m for m in result.validation_messages)


def test_invoice_total_estimate_with_message():
    invoice = make_invoice(
        prices=PeriodValues(),
        power_daily_price=0.0,
        invoice_total_with_vat=1230.0,
    )

    result = calculate_simulation(invoice)

    assert result.calculation.estimated
    assert result.calculation.current_period_total == pytest.approx(1000.0)
    assert any("estimated" in m for m in result.validation_messages)


def test_unknown_prices_get_markup_over_base():
    invoice = make_invoice(prices=PeriodValues(), power_daily_price=0.0)
    result = calculate_simulation(invoice)

    for p in PERIODS:
        assert result.proposed.get(p) == pytest.approx(
            max(result.bases.get(p) * 1.10, result.bases.get(p) + 0.001)
        )


# ------------------------------------------------------------
# 5. Edits that reproduce or invalidate the prior offer
# ------------------------------------------------------------
def test_recompute_with_own_bases_and_margins_is_idempotent(invoice, simulation):
    overrides = {}
    for f in PRICE_FIELDS:
        overrides[f"base_{f}"] = simulation.bases.get(f)
        overrides[f"margin_{f}"] = simulation.margins.get(f)

    again = recompute_simulation(invoice, overrides, simulation)

    assert again.calculation == simulation.calculation
    for f in PRICE_FIELDS:
        assert again.proposed.get(f) == pytest.approx(simulation.proposed.get(f))


@pytest.mark.parametrize(
    "bad",
    [
        {"status": "paused"},          # not a known status
        {"enabled": True},             # not a known field
        {"is_enabled": True, "status": 3},
    ],
)
def test_invalid_auto_switch_override_keeps_prior(invoice, simulation, bad):
    prior = recompute_simulation(
        invoice, {"auto_switch": {"is_enabled": True, "status": "found"}}, simulation
    )

    result = recompute_simulation(invoice, {"auto_switch": bad, "margin_peak": 0.05}, prior)

    assert result.auto_switch == AutoSwitchConfig(is_enabled=True, status=AutoSwitchStatus.FOUND)
    assert result.margins.peak == pytest.approx(0.05)


def test_all_negative_margins_pick_least_negative_period(invoice, simulation):
    overrides = {
        "margin_peak": -0.01,
        "margin_full": -0.002,
        "margin_off_peak": -0.03,
        "margin_super_off_peak": -0.04,
    }

    result = recompute_simulation(invoice, overrides, simulation)

    assert result.best_margin_opportunity == "full"


def test_margin_summary_from_dict_ignores_unknown_keys(simulation):
    data = dict(simulation.margin_summary.to_dict(), currency="EUR")
    assert MarginSummary.from_dict(data) == simulation.margin_summary


# ------------------------------------------------------------
# 6. Tri-hourly offer against custom bases
# ------------------------------------------------------------
def test_tri_hourly_offer_on_custom_bases():
    """
    current  0.15 / 0.12 / 0.08 / 0 €/kWh, 1.00 €/day, 1000 kWh in each of the first three periods
    bases    0.0950 / 0.0780 / 0.0650 / 0.0550

    proposed peak = max(0.096, 0.15 * 0.92)   = 0.138
    current total = 150 + 120 + 80 + 30       = 380
    proposed total = 138 + 110.4 + 73.6 + 27.6 = 349.6
    """
    consumption = PeriodValues(peak=1000, full=1000, off_peak=1000, super_off_peak=0)
    current = PriceSet(peak=0.15, full=0.12, off_peak=0.08, super_off_peak=0.0, power_daily=1.0)
    bases = PriceSet(peak=0.0950, full=0.0780, off_peak=0.0650, super_off_peak=0.0550, power_daily=0.015)

    proposed = derive_proposal(current, bases)
    calc = CostEngine(30).aggregate(
        consumption, current.energy(), proposed.energy(), current.power_daily, proposed.power_daily
    )

    assert proposed.peak == pytest.approx(0.138)
    for f in PRICE_FIELDS:
        if proposed.get(f):
            assert proposed.get(f) >= bases.get(f) + MIN_MARGIN_EUR_KWH - 1e-12
    assert calc.current_period_total == pytest.approx(380.0)
    assert calc.proposed_period_total == pytest.approx(349.6)
    assert calc.savings_percent > 0
