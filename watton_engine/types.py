# watton_engine/types.py

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


def known_fields(cls, data: Mapping) -> Dict[str, object]:
    """Entries of `data` that name a field of dataclass `cls`."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# Time-of-use periods in declaration order (Ponta / Cheia / Vazio / Super Vazio)
PERIODS: Tuple[str, ...] = ("peak", "full", "off_peak", "super_off_peak")

# Price fields: the four energy periods plus the daily power charge
PRICE_FIELDS: Tuple[str, ...] = PERIODS + ("power_daily",)


# ============================================================
# Enums: values are the labels printed on Portuguese invoices
# ============================================================

class VoltageClass(str, Enum):
    BTN = "BTN"    # baixa tensão normal
    BTE = "BTE"    # baixa tensão especial
    MT = "MT"      # média tensão
    AT = "AT"      # alta tensão (> 45 kV)
    BT = "BT"      # baixa tensão (genérico)


class BillingCycle(str, Enum):
    SIMPLE = "Simples"
    BI_HOURLY = "Bi-Horário"
    TRI_HOURLY = "Tri-Horário"
    TETRA_HOURLY = "Tetra-Horário"


class TimeOption(str, Enum):
    DAILY = "Diário"
    WEEKLY = "Semanal"
    WEEKLY_WITH_HOLIDAYS = "Semanal c/ Feriados"
    WEEKLY_WITHOUT_HOLIDAYS = "Semanal s/ Feriados"


class VulnerabilityLabel(str, Enum):
    LOW = "BAIXO"
    MEDIUM = "MÉDIO"
    ELEVATED = "ELEVADO"
    CRITICAL = "CRÍTICO"


class AutoSwitchStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    FOUND = "found"
    APPLIED = "applied"


# ============================================================
# PeriodValues: one number per time-of-use period
# ============================================================

@dataclass(frozen=True)
class PeriodValues:
    peak: float = 0.0
    full: float = 0.0
    off_peak: float = 0.0
    super_off_peak: float = 0.0

    def get(self, period: str) -> float:
        return getattr(self, period)

    def total(self) -> float:
        return self.peak + self.full + self.off_peak + self.super_off_peak

    def to_dict(self):
        return {p: self.get(p) for p in PERIODS}

    @classmethod
    def from_dict(cls, data: Mapping) -> "PeriodValues":
        return cls(**{p: float(data.get(p) or 0.0) for p in PERIODS})


# ============================================================
# PriceSet: energy price per period + daily power price
# Used for proposed prices, base costs and margins alike.
# ============================================================

@dataclass(frozen=True)
class PriceSet:
    peak: float = 0.0              # €/kWh
    full: float = 0.0              # €/kWh
    off_peak: float = 0.0          # €/kWh
    super_off_peak: float = 0.0    # €/kWh
    power_daily: float = 0.0       # €/day

    def get(self, name: str) -> float:
        return getattr(self, name)

    def energy(self) -> PeriodValues:
        return PeriodValues(self.peak, self.full, self.off_peak, self.super_off_peak)

    def replace_fields(self, values: Mapping[str, float]) -> "PriceSet":
        """Return a copy with only the given fields replaced."""
        return replace(self, **{k: v for k, v in values.items() if k in PRICE_FIELDS})

    def to_dict(self):
        return {f: self.get(f) for f in PRICE_FIELDS}

    @classmethod
    def from_dict(cls, data: Mapping) -> "PriceSet":
        return cls(**{f: float(data.get(f) or 0.0) for f in PRICE_FIELDS})


# ============================================================
# InvoiceData: normalized, user-confirmed invoice facts
# ============================================================

@dataclass(frozen=True)
class InvoiceData:
    # Customer
    customer_name: str = ""
    tax_id: str = ""                   # NIF
    address: str = ""
    meter_id: str = ""                 # CPE

    # Contract
    voltage_class: VoltageClass = VoltageClass.BTE
    cycle: BillingCycle = BillingCycle.TETRA_HOURLY
    time_option: TimeOption = TimeOption.WEEKLY
    contracted_power_kva: float = 0.0

    # Billing window (ISO dates)
    start_date: str = ""
    end_date: str = ""

    consumption: PeriodValues = field(default_factory=PeriodValues)   # kWh
    prices: PeriodValues = field(default_factory=PeriodValues)        # €/kWh
    power_daily_price: float = 0.0                                     # €/day

    invoice_total_with_vat: float = 0.0

    # Extra facts picked up during extraction
    contract_type: Optional[str] = None
    reading_type: Optional[str] = None     # "Real" / "Estimada" / "Mista"
    additional_services: Tuple[str, ...] = ()
    energy_mix: Optional[str] = None

    def current_prices(self) -> PriceSet:
        """The customer's own prices as a PriceSet."""
        return PriceSet(
            peak=self.prices.peak,
            full=self.prices.full,
            off_peak=self.prices.off_peak,
            super_off_peak=self.prices.super_off_peak,
            power_daily=self.power_daily_price,
        )

    def to_dict(self):
        return {
            "customer_name": self.customer_name,
            "tax_id": self.tax_id,
            "address": self.address,
            "meter_id": self.meter_id,
            "voltage_class": self.voltage_class.value,
            "cycle": self.cycle.value,
            "time_option": self.time_option.value,
            "contracted_power_kva": self.contracted_power_kva,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "consumption": self.consumption.to_dict(),
            "prices": self.prices.to_dict(),
            "power_daily_price": self.power_daily_price,
            "invoice_total_with_vat": self.invoice_total_with_vat,
            "contract_type": self.contract_type,
            "reading_type": self.reading_type,
            "additional_services": list(self.additional_services),
            "energy_mix": self.energy_mix,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "InvoiceData":
        data = dict(data)
        data["voltage_class"] = VoltageClass(data.get("voltage_class", VoltageClass.BTE.value))
        data["cycle"] = BillingCycle(data.get("cycle", BillingCycle.TETRA_HOURLY.value))
        data["time_option"] = TimeOption(data.get("time_option", TimeOption.WEEKLY.value))
        data["consumption"] = PeriodValues.from_dict(data.get("consumption") or {})
        data["prices"] = PeriodValues.from_dict(data.get("prices") or {})
        data["additional_services"] = tuple(data.get("additional_services") or ())
        for key in ("contracted_power_kva", "power_daily_price", "invoice_total_with_vat"):
            data[key] = float(data.get(key) or 0.0)
        return cls(**data)


def default_invoice() -> InvoiceData:
    """Fresh invoice used to seed a manual-entry form."""
    return InvoiceData(
        voltage_class=VoltageClass.BTE,
        cycle=BillingCycle.TETRA_HOURLY,
        time_option=TimeOption.WEEKLY,
        contracted_power_kva=41.4,
    )


# ============================================================
# CalculationResult: canonical totals, current vs proposed
# ============================================================

@dataclass(frozen=True)
class CostBreakdown:
    energy_current: PeriodValues       # € per period
    energy_current_total: float
    energy_proposed: PeriodValues
    energy_proposed_total: float
    power_current: float               # € for the billing period
    power_proposed: float
    billing_days: int
    annualization_factor: float        # 365 / billing_days

    def to_dict(self):
        return {
            "energy_current": self.energy_current.to_dict(),
            "energy_current_total": self.energy_current_total,
            "energy_proposed": self.energy_proposed.to_dict(),
            "energy_proposed_total": self.energy_proposed_total,
            "power_current": self.power_current,
            "power_proposed": self.power_proposed,
            "billing_days": self.billing_days,
            "annualization_factor": self.annualization_factor,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "CostBreakdown":
        data = dict(data)
        data["energy_current"] = PeriodValues.from_dict(data["energy_current"])
        data["energy_proposed"] = PeriodValues.from_dict(data["energy_proposed"])
        data["billing_days"] = int(data["billing_days"])
        return cls(**data)


@dataclass(frozen=True)
class CalculationResult:
    # Billing period totals
    current_period_total: float
    proposed_period_total: float
    savings_period: float

    # Annual totals (canonical, never re-derived)
    current_annual: float
    proposed_annual: float
    savings_annual: float
    savings_percent: float

    breakdown: CostBreakdown

    # True when the current total came from the invoice total (VAT removed)
    estimated: bool = False

    def to_dict(self):
        return {
            "current_period_total": self.current_period_total,
            "proposed_period_total": self.proposed_period_total,
            "savings_period": self.savings_period,
            "current_annual": self.current_annual,
            "proposed_annual": self.proposed_annual,
            "savings_annual": self.savings_annual,
            "savings_percent": self.savings_percent,
            "breakdown": self.breakdown.to_dict(),
            "estimated": self.estimated,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "CalculationResult":
        data = dict(data)
        data["breakdown"] = CostBreakdown.from_dict(data["breakdown"])
        return cls(**data)


# ============================================================
# Risk + margin bookkeeping
# ============================================================

@dataclass(frozen=True)
class VulnerabilityRating:
    score: int
    label: VulnerabilityLabel

    def to_dict(self):
        return {"score": self.score, "label": self.label.value}

    @classmethod
    def from_dict(cls, data: Mapping) -> "VulnerabilityRating":
        return cls(score=int(data["score"]), label=VulnerabilityLabel(data["label"]))


@dataclass(frozen=True)
class MarginSummary:
    base_annual: float       # €/year at base prices
    margin_annual: float     # €/year kept as margin
    margin_percent: float    # margin as % of the proposed annual cost

    def to_dict(self):
        return {
            "base_annual": self.base_annual,
            "margin_annual": self.margin_annual,
            "margin_percent": self.margin_percent,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "MarginSummary":
        return cls(**known_fields(cls, data))


# ============================================================
# Carry-over records (filled by outside collaborators)
# ============================================================

@dataclass(frozen=True)
class TacticalMeasure:
    action: str
    impact: str
    difficulty: str
    estimated_savings_pct: float

    def to_dict(self):
        return {
            "action": self.action,
            "impact": self.impact,
            "difficulty": self.difficulty,
            "estimated_savings_pct": self.estimated_savings_pct,
        }


@dataclass(frozen=True)
class StrategicAnalysis:
    executive_summary: str
    hedging_strategy: str
    tactical_measures: Tuple[TacticalMeasure, ...] = ()

    def to_dict(self):
        return {
            "executive_summary": self.executive_summary,
            "hedging_strategy": self.hedging_strategy,
            "tactical_measures": [m.to_dict() for m in self.tactical_measures],
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "StrategicAnalysis":
        return cls(
            executive_summary=data.get("executive_summary", ""),
            hedging_strategy=data.get("hedging_strategy", ""),
            tactical_measures=tuple(
                TacticalMeasure(**m) for m in data.get("tactical_measures") or ()
            ),
        )


@dataclass(frozen=True)
class AutoSwitchConfig:
    is_enabled: bool = False
    status: AutoSwitchStatus = AutoSwitchStatus.IDLE
    last_check: Optional[str] = None
    potential_extra_savings: Optional[float] = None

    def to_dict(self):
        return {
            "is_enabled": self.is_enabled,
            "status": self.status.value,
            "last_check": self.last_check,
            "potential_extra_savings": self.potential_extra_savings,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "AutoSwitchConfig":
        data = dict(data)
        data["status"] = AutoSwitchStatus(data.get("status", AutoSwitchStatus.IDLE.value))
        return cls(**data)


# ============================================================
# SimulationResult: what the dashboards and reports consume
# ============================================================

@dataclass(frozen=True)
class SimulationResult:
    calculation: CalculationResult

    bases: PriceSet
    margins: PriceSet          # proposed - base, per field
    proposed: PriceSet

    best_margin_opportunity: str   # period key
    vulnerability: VulnerabilityRating
    margin_summary: Optional[MarginSummary] = None

    ai_insights: Optional[StrategicAnalysis] = None
    auto_switch: Optional[AutoSwitchConfig] = None

    validation_messages: Tuple[str, ...] = ()

    # Aliases used by the dashboards
    @property
    def current_annual_cost(self) -> float:
        return self.calculation.current_annual

    @property
    def proposed_annual_cost(self) -> float:
        return self.calculation.proposed_annual

    @property
    def savings_total(self) -> float:
        return self.calculation.savings_annual

    @property
    def savings_percent(self) -> float:
        return self.calculation.savings_percent

    def to_dict(self):
        return {
            "calculation": self.calculation.to_dict(),
            "bases": self.bases.to_dict(),
            "margins": self.margins.to_dict(),
            "proposed": self.proposed.to_dict(),
            "best_margin_opportunity": self.best_margin_opportunity,
            "vulnerability": self.vulnerability.to_dict(),
            "margin_summary": self.margin_summary.to_dict() if self.margin_summary else None,
            "ai_insights": self.ai_insights.to_dict() if self.ai_insights else None,
            "auto_switch": self.auto_switch.to_dict() if self.auto_switch else None,
            "validation_messages": list(self.validation_messages),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "SimulationResult":
        margin_summary = data.get("margin_summary")
        ai_insights = data.get("ai_insights")
        auto_switch = data.get("auto_switch")
        return cls(
            calculation=CalculationResult.from_dict(data["calculation"]),
            bases=PriceSet.from_dict(data["bases"]),
            margins=PriceSet.from_dict(data["margins"]),
            proposed=PriceSet.from_dict(data["proposed"]),
            best_margin_opportunity=data.get("best_margin_opportunity", PERIODS[0]),
            vulnerability=VulnerabilityRating.from_dict(data["vulnerability"]),
            margin_summary=MarginSummary.from_dict(margin_summary) if margin_summary else None,
            ai_insights=StrategicAnalysis.from_dict(ai_insights) if ai_insights else None,
            auto_switch=AutoSwitchConfig.from_dict(auto_switch) if auto_switch else None,
            validation_messages=tuple(data.get("validation_messages") or ()),
        )


# ============================================================
# Persistence shapes
# ============================================================

@dataclass(frozen=True)
class ClientRecord:
    id: str
    data: InvoiceData
    simulation: SimulationResult
    created_at: str            # ISO timestamp

    def to_dict(self):
        return {
            "id": self.id,
            "data": self.data.to_dict(),
            "simulation": self.simulation.to_dict(),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class SaveOutcome:
    success: bool
    message: str
    record_id: Optional[str] = None

    def to_dict(self):
        return {
            "success": self.success,
            "message": self.message,
            "record_id": self.record_id,
        }


# ============================================================
# Aliases
# ============================================================

Overrides = Dict[str, object]
