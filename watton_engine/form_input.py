# watton_engine/form_input.py
"""
Permissive edit buffers and the parsing that turns them into engine input.

Forms hold raw strings so partial entries like "0," or "-" survive while the
user types. Only commit points (form submit, override/edit application)
parse them, and the engine only ever sees the strict InvoiceData.
"""

from __future__ import annotations
import logging
import math
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Type

from .types import (
    PERIODS,
    BillingCycle,
    InvoiceData,
    PeriodValues,
    TimeOption,
    VoltageClass,
    default_invoice,
)

logger = logging.getLogger(__name__)


def parse_decimal(raw) -> Optional[float]:
    """
    "0,145" → 0.145. Returns None for empty, unparseable, NaN or infinite input.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip().replace(",", ".")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None

    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _enum_or_default(enum_cls: Type[Enum], raw: str, default: Enum) -> Enum:
    try:
        return enum_cls(raw.strip())
    except ValueError:
        return default


def _digits(raw: str) -> str:
    return re.sub(r"\D", "", raw or "")


# ============================================================
# InvoiceForm: string buffer behind the validation step
# ============================================================

@dataclass(frozen=True)
class InvoiceForm:
    customer_name: str = ""
    tax_id: str = ""
    address: str = ""
    meter_id: str = ""

    voltage_class: str = VoltageClass.BTE.value
    cycle: str = BillingCycle.TETRA_HOURLY.value
    time_option: str = TimeOption.WEEKLY.value
    contracted_power_kva: str = ""

    start_date: str = ""
    end_date: str = ""

    consumption_peak: str = ""
    consumption_full: str = ""
    consumption_off_peak: str = ""
    consumption_super_off_peak: str = ""

    price_peak: str = ""
    price_full: str = ""
    price_off_peak: str = ""
    price_super_off_peak: str = ""

    power_daily_price: str = ""
    invoice_total_with_vat: str = ""

    @classmethod
    def from_invoice(cls, invoice: InvoiceData) -> "InvoiceForm":
        values = {
            "customer_name": invoice.customer_name,
            "tax_id": invoice.tax_id,
            "address": invoice.address,
            "meter_id": invoice.meter_id,
            "voltage_class": invoice.voltage_class.value,
            "cycle": invoice.cycle.value,
            "time_option": invoice.time_option.value,
            "contracted_power_kva": str(invoice.contracted_power_kva),
            "start_date": invoice.start_date,
            "end_date": invoice.end_date,
            "power_daily_price": str(invoice.power_daily_price),
            "invoice_total_with_vat": str(invoice.invoice_total_with_vat),
        }
        for p in PERIODS:
            values[f"consumption_{p}"] = str(invoice.consumption.get(p))
            values[f"price_{p}"] = str(invoice.prices.get(p))
        return cls(**values)

    @classmethod
    def blank(cls) -> "InvoiceForm":
        return cls.from_invoice(default_invoice())

    def edit(self, name: str, raw: str) -> "InvoiceForm":
        """Store a keystroke as-is; nothing is parsed here."""
        if name not in {f.name for f in fields(self)}:
            raise KeyError(f"Unknown form field: {name}")
        return replace(self, **{name: raw})

    def _number(self, name: str) -> float:
        value = parse_decimal(getattr(self, name))
        return 0.0 if value is None else value

    def commit(self) -> InvoiceData:
        """Parse the buffer into a strict InvoiceData; blanks become 0."""
        return InvoiceData(
            customer_name=self.customer_name.strip(),
            tax_id=_digits(self.tax_id),
            address=self.address.strip(),
            meter_id=self.meter_id.strip(),
            voltage_class=_enum_or_default(VoltageClass, self.voltage_class.upper(), VoltageClass.BTE),
            cycle=_enum_or_default(BillingCycle, self.cycle, BillingCycle.TETRA_HOURLY),
            time_option=_enum_or_default(TimeOption, self.time_option, TimeOption.WEEKLY),
            contracted_power_kva=self._number("contracted_power_kva"),
            start_date=self.start_date.strip(),
            end_date=self.end_date.strip(),
            consumption=PeriodValues(**{p: self._number(f"consumption_{p}") for p in PERIODS}),
            prices=PeriodValues(**{p: self._number(f"price_{p}") for p in PERIODS}),
            power_daily_price=self._number("power_daily_price"),
            invoice_total_with_vat=self._number("invoice_total_with_vat"),
        )


# ============================================================
# Edits applied after the first simulation
# ============================================================

def parse_overrides(raw: Mapping[str, object]) -> Dict[str, float]:
    """Keep only the entries that parse to a finite number."""
    parsed: Dict[str, float] = {}
    for key, value in raw.items():
        number = parse_decimal(value)
        if number is None:
            logger.debug("Dropping override %s=%r", key, value)
            continue
        parsed[key] = number
    return parsed


_SCALAR_CLIENT_FIELDS = ("power_daily_price", "invoice_total_with_vat", "contracted_power_kva")


def apply_client_update(invoice: InvoiceData, raw_updates: Mapping[str, object]) -> InvoiceData:
    """
    Apply customer-side edits (price_<period>, consumption_<period>,
    power_daily_price, ...) to an invoice. Values that do not parse leave
    the field untouched.
    """
    updates = parse_overrides(raw_updates)

    prices = {p: updates[f"price_{p}"] for p in PERIODS if f"price_{p}" in updates}
    consumption = {p: updates[f"consumption_{p}"] for p in PERIODS if f"consumption_{p}" in updates}
    scalars = {k: updates[k] for k in _SCALAR_CLIENT_FIELDS if k in updates}

    changes = dict(scalars)
    if prices:
        changes["prices"] = replace(invoice.prices, **prices)
    if consumption:
        changes["consumption"] = replace(invoice.consumption, **consumption)

    if not changes:
        return invoice
    return replace(invoice, **changes)
