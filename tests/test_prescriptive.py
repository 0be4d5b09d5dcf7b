import pytest

from watton_engine.engine import calculate_simulation
from watton_engine.prescriptive import profile_efficiency_score, run_prescriptive_analysis
from watton_engine.types import PeriodValues

from generators import make_invoice


def test_profile_hot_spots(invoice, simulation):
    """
    consumption 1000 / 2000 / 1500 / 500 → full
    cost        200 / 300 / 150 / 45     → full
    """
    analysis = run_prescriptive_analysis(invoice, simulation)

    assert analysis.highest_consumption_period == "full"
    assert analysis.highest_cost_period == "full"


def test_efficiency_score_is_non_peak_share():
    """4000 of 5000 kWh outside peak → 80"""
    consumption = PeriodValues(peak=1000, full=2000, off_peak=1500, super_off_peak=500)
    assert profile_efficiency_score(consumption) == 80


def test_efficiency_score_empty_profile():
    assert profile_efficiency_score(PeriodValues()) == 100


def test_savings_projection(invoice, simulation):
    projection = run_prescriptive_analysis(invoice, simulation).savings_projection

    assert projection.fixed_contract_savings == simulation.calculation.savings_annual
    assert projection.index_contract_savings == pytest.approx(
        round(simulation.calculation.savings_annual * 1.12, 2)
    )
    assert projection.best_option == "indexed"


def test_load_shifting_suggested_for_peak_heavy_profile():
    invoice = make_invoice(
        consumption=PeriodValues(peak=4000, full=1000, off_peak=500, super_off_peak=0),
    )
    analysis = run_prescriptive_analysis(invoice, calculate_simulation(invoice))

    assert analysis.profile_efficiency_score < 60
    assert analysis.optimization.load_shifting_viability.startswith("High")


def test_reading_and_services_flags():
    invoice = make_invoice(reading_type="Estimada", additional_services=("Assistência Casa",))
    optimization = run_prescriptive_analysis(invoice, calculate_simulation(invoice)).optimization

    assert optimization.estimated_reading_risk.startswith("Critical")
    assert "Assistência Casa" in optimization.additional_services_impact


# ------------------------------------------------------------
# Margin strategy
# ------------------------------------------------------------
def test_standard_margin_when_offer_saves_enough(invoice, simulation):
    """Base * 1.15 is well under the customer's prices → 15% markup, peak 0.094782 * 0.15"""
    margin = run_prescriptive_analysis(invoice, simulation).margin_analysis

    assert margin.applied_strategy == "standard"
    assert margin.margins.peak == pytest.approx(0.014217)


def test_maximum_viable_margin_when_customer_is_already_cheap():
    """
    Customer pays barely above base: current * 0.95 - base is tiny or
    negative in every period → margin clamps to 0.001.
    """
    invoice = make_invoice(
        prices=PeriodValues(peak=0.10, full=0.09, off_peak=0.087, super_off_peak=0.084),
        power_daily_price=0.02,
    )
    margin = run_prescriptive_analysis(invoice, calculate_simulation(invoice)).margin_analysis

    assert margin.applied_strategy == "maximum_viable_margin"
    for p in ("peak", "full", "off_peak", "super_off_peak"):
        assert margin.margins.get(p) == pytest.approx(0.001)


def test_to_dict_shape(invoice, simulation):
    data = run_prescriptive_analysis(invoice, simulation).to_dict()

    assert set(data) == {
        "highest_consumption_period",
        "highest_cost_period",
        "profile_efficiency_score",
        "savings_projection",
        "optimization",
        "margin_analysis",
    }
    assert data["margin_analysis"]["margins"]["peak"] == pytest.approx(0.014217)
