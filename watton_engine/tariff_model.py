# watton_engine/tariff_model.py

from __future__ import annotations
import logging
from typing import Dict, Mapping

from .types import BillingCycle, PeriodValues, PriceSet, VoltageClass

logger = logging.getLogger(__name__)


# Low-voltage-normal tables split on contracted power (strictly above → HIGH)
BTN_POWER_THRESHOLD_KVA = 20.7


class TariffTableError(RuntimeError):
    """The static tariff table itself is unusable."""


# ============================================================
# Internal wholesale price sheet (ZUG forward 2026, €/MWh)
# Reference line: start Q+1, 12 months (01.01.2026 - 31.12.2026)
# Cycle entries are listed in declaration order; that order is the
# last fallback when neither the requested cycle nor tri-hourly exists.
# ============================================================

ZUG_FORWARD_2026_MWH: Dict[str, Dict[BillingCycle, Dict[str, float]]] = {
    # Baixa Tensão Normal (<= 20.7 kVA)
    "BTN_LOW": {
        BillingCycle.SIMPLE:       {"peak": 90.338, "full": 0.0, "off_peak": 0.0, "super_off_peak": 0.0},
        BillingCycle.BI_HOURLY:    {"peak": 0.0, "full": 89.531, "off_peak": 90.224, "super_off_peak": 0.0},
        BillingCycle.TRI_HOURLY:   {"peak": 100.570, "full": 85.055, "off_peak": 93.079, "super_off_peak": 0.0},
    },

    # Baixa Tensão Normal (> 20.7 kVA)
    "BTN_HIGH": {
        BillingCycle.SIMPLE:       {"peak": 97.498, "full": 0.0, "off_peak": 0.0, "super_off_peak": 0.0},
        BillingCycle.BI_HOURLY:    {"peak": 0.0, "full": 84.300, "off_peak": 90.375, "super_off_peak": 0.0},
        BillingCycle.TRI_HOURLY:   {"peak": 99.777, "full": 85.016, "off_peak": 90.224, "super_off_peak": 0.0},
    },

    # Baixa Tensão Especial
    "BTE": {
        BillingCycle.TETRA_HOURLY: {"peak": 94.782, "full": 86.418, "off_peak": 83.063, "super_off_peak": 80.196},
        BillingCycle.TRI_HOURLY:   {"peak": 95.017, "full": 87.820, "off_peak": 84.211, "super_off_peak": 0.0},
    },

    # Média Tensão (also used for Alta Tensão)
    "MT": {
        BillingCycle.TETRA_HOURLY: {"peak": 84.589, "full": 81.126, "off_peak": 75.210, "super_off_peak": 73.843},
        BillingCycle.TRI_HOURLY:   {"peak": 93.918, "full": 79.445, "off_peak": 74.253, "super_off_peak": 0.0},
    },
}


# Network access tariffs (ERSE 2025, simplified): daily power base price, €/kVA/day
ACCESS_POWER_DAILY: Dict[str, float] = {
    "BTE": 0.0150,
    "BTN": 0.0250,
    "MT": 0.0100,
}


def _validate_table(table: Mapping[str, Mapping[BillingCycle, Mapping[str, float]]]) -> None:
    """Fail fast on a malformed sheet; lookups assume every category is usable."""
    if not table:
        raise TariffTableError("Tariff table is empty.")
    for category, cycles in table.items():
        if not cycles:
            raise TariffTableError(f"Tariff category '{category}' has no cycle entries.")
        if BillingCycle.TRI_HOURLY not in cycles:
            logger.debug("Tariff category %s has no tri-hourly entry", category)
        for cycle, row in cycles.items():
            missing = [p for p in ("peak", "full", "off_peak", "super_off_peak") if p not in row]
            if missing:
                raise TariffTableError(
                    f"Tariff category '{category}' / {cycle.value} is missing periods {missing}."
                )


_validate_table(ZUG_FORWARD_2026_MWH)


# ============================================================
# Lookup
# ============================================================

def _coerce_voltage(voltage_class) -> VoltageClass | None:
    if isinstance(voltage_class, VoltageClass):
        return voltage_class
    try:
        return VoltageClass(str(voltage_class).strip().upper())
    except ValueError:
        return None


def _coerce_cycle(cycle) -> BillingCycle | None:
    if isinstance(cycle, BillingCycle):
        return cycle
    try:
        return BillingCycle(cycle)
    except ValueError:
        return None


def _category_for(voltage: VoltageClass | None, contracted_power_kva: float) -> str:
    if voltage in (VoltageClass.MT, VoltageClass.AT):
        return "MT"
    if voltage is VoltageClass.BTE:
        return "BTE"
    # BTN, generic BT and anything unrecognised: split on contracted power
    if (contracted_power_kva or 0.0) > BTN_POWER_THRESHOLD_KVA:
        return "BTN_HIGH"
    return "BTN_LOW"


def lookup_base_cost(voltage_class, cycle, contracted_power_kva: float) -> PeriodValues:
    """
    Wholesale energy cost per period in €/kWh (6 decimals).

    Cycle fallback: exact cycle → tri-hourly → first entry of the category.
    Never raises for unknown voltage/cycle combinations.
    """
    voltage = _coerce_voltage(voltage_class)
    wanted = _coerce_cycle(cycle)
    category = _category_for(voltage, contracted_power_kva)
    table = ZUG_FORWARD_2026_MWH[category]

    row = table.get(wanted) if wanted is not None else None
    if row is None:
        row = table.get(BillingCycle.TRI_HOURLY) or next(iter(table.values()))
        logger.debug(
            "No %s entry for cycle %r; using fallback row of the category",
            category, cycle,
        )

    return PeriodValues(
        peak=round(row["peak"] / 1000, 6),
        full=round(row["full"] / 1000, 6),
        off_peak=round(row["off_peak"] / 1000, 6),
        super_off_peak=round(row["super_off_peak"] / 1000, 6),
    )


def base_power_cost(voltage_class) -> float:
    """Daily power base price from the access tariffs (BTN, MT, else BTE)."""
    voltage = _coerce_voltage(voltage_class)
    if voltage is VoltageClass.BTN:
        return ACCESS_POWER_DAILY["BTN"]
    if voltage is VoltageClass.MT:
        return ACCESS_POWER_DAILY["MT"]
    return ACCESS_POWER_DAILY["BTE"]


def lookup_base_prices(voltage_class, cycle, contracted_power_kva: float) -> PriceSet:
    """Base energy costs plus the base daily power price as one PriceSet."""
    energy = lookup_base_cost(voltage_class, cycle, contracted_power_kva)
    return PriceSet(
        peak=energy.peak,
        full=energy.full,
        off_peak=energy.off_peak,
        super_off_peak=energy.super_off_peak,
        power_daily=base_power_cost(voltage_class),
    )
