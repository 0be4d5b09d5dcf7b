# ============================================================
# Watton Engine: Backend API
# simulate + recalculate + client edits + portfolio
# ============================================================

import logging
import os
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Engine imports
from watton_engine.engine import calculate_simulation, recompute_simulation
from watton_engine.form_input import apply_client_update
from watton_engine.market import MarketPoint, PointType, analyze_market_trend
from watton_engine.prescriptive import run_prescriptive_analysis
from watton_engine.result_assembler import merge_insights
from watton_engine.storage import ClientStore
from watton_engine.tariff_model import lookup_base_prices
from watton_engine.types import (
    BillingCycle,
    InvoiceData,
    SimulationResult,
    StrategicAnalysis,
    TimeOption,
    VoltageClass,
)


logging.basicConfig(
    level=os.getenv("WATTON_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# ============================================================
# FASTAPI INIT
# ============================================================

app = FastAPI(title="Watton Engine")

_default_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
_allowed_origins = [
    origin.strip()
    for origin in os.getenv("WATTON_CORS_ORIGINS", "").split(",")
    if origin.strip()
] or _default_cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

store = ClientStore()


# ============================================================
# REQUEST MODELS
# ============================================================

class PeriodValuesPayload(BaseModel):
    peak: float = 0.0
    full: float = 0.0
    off_peak: float = 0.0
    super_off_peak: float = 0.0


class InvoicePayload(BaseModel):
    # Customer
    customer_name: str = ""
    tax_id: str = ""
    address: str = ""
    meter_id: str = ""

    # Contract
    voltage_class: VoltageClass = VoltageClass.BTE
    cycle: BillingCycle = BillingCycle.TETRA_HOURLY
    time_option: TimeOption = TimeOption.WEEKLY
    contracted_power_kva: float = 0.0

    # Billing window (ISO dates)
    start_date: str = ""
    end_date: str = ""

    # Consumption (kWh) / prices (€/kWh, €/day)
    consumption: PeriodValuesPayload = Field(default_factory=PeriodValuesPayload)
    prices: PeriodValuesPayload = Field(default_factory=PeriodValuesPayload)
    power_daily_price: float = 0.0
    invoice_total_with_vat: float = 0.0

    contract_type: Optional[str] = None
    reading_type: Optional[str] = None
    additional_services: list[str] = []
    energy_mix: Optional[str] = None

    def to_invoice(self) -> InvoiceData:
        return InvoiceData.from_dict(self.model_dump(mode="json"))


def _prior_from(payload: dict) -> SimulationResult:
    try:
        return SimulationResult.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid simulation payload: {exc}")


# ============================================================
# TARIFFS
# ============================================================

@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/tariffs/base_cost")
def base_cost(
    voltage_class: str = VoltageClass.BTE.value,
    cycle: str = BillingCycle.TETRA_HOURLY.value,
    contracted_power_kva: float = 0.0,
):
    """Base prices (€/kWh per period, €/day for power). Never fails."""
    return lookup_base_prices(voltage_class, cycle, contracted_power_kva).to_dict()


# ============================================================
# SIMULATION
# ============================================================

@app.post("/simulate")
def simulate(req: InvoicePayload):
    return calculate_simulation(req.to_invoice()).to_dict()


class RecalculateRequest(BaseModel):
    invoice: InvoicePayload
    simulation: dict
    # base_*, margin_*, proposed_* (numbers or "0,145"-style strings), auto_switch
    overrides: Dict[str, Any] = {}


@app.post("/recalculate")
def recalculate(req: RecalculateRequest):
    prior = _prior_from(req.simulation)
    return recompute_simulation(req.invoice.to_invoice(), req.overrides, prior).to_dict()


class ClientUpdateRequest(BaseModel):
    invoice: InvoicePayload
    simulation: dict
    updates: Dict[str, Any] = {}


@app.post("/client_update")
def client_update(req: ClientUpdateRequest):
    """Customer-side edits; bases and margins of the prior simulation are kept."""
    prior = _prior_from(req.simulation)
    invoice = apply_client_update(req.invoice.to_invoice(), req.updates)
    result = recompute_simulation(invoice, {}, prior)
    return {"invoice": invoice.to_dict(), "simulation": result.to_dict()}


class InsightsRequest(BaseModel):
    simulation: dict
    insights: dict


@app.post("/insights")
def insights(req: InsightsRequest):
    prior = _prior_from(req.simulation)
    return merge_insights(prior, StrategicAnalysis.from_dict(req.insights)).to_dict()


class PrescriptiveRequest(BaseModel):
    invoice: InvoicePayload
    simulation: dict


@app.post("/prescriptive")
def prescriptive(req: PrescriptiveRequest):
    prior = _prior_from(req.simulation)
    return run_prescriptive_analysis(req.invoice.to_invoice(), prior).to_dict()


# ============================================================
# MARKET
# ============================================================

class MarketPointPayload(BaseModel):
    date: str
    type: PointType
    price: Optional[float] = None
    forecast: Optional[float] = None
    confidence_upper: Optional[float] = None
    confidence_lower: Optional[float] = None
    volume: float = 0.0


class MarketTrendRequest(BaseModel):
    points: list[MarketPointPayload]


@app.post("/market/trend")
def market_trend(req: MarketTrendRequest):
    points = [MarketPoint.from_dict(p.model_dump(mode="json")) for p in req.points]
    return {"trend": analyze_market_trend(points).value}


# ============================================================
# CLIENT PORTFOLIO
# ============================================================

class SaveClientRequest(BaseModel):
    id: Optional[str] = None
    data: InvoicePayload
    simulation: dict


@app.post("/clients/{owner_id}")
def save_client(owner_id: str, req: SaveClientRequest):
    simulation = _prior_from(req.simulation)
    return store.save(owner_id, req.data.to_invoice(), simulation, record_id=req.id).to_dict()


@app.get("/clients/{owner_id}")
def list_clients(owner_id: str):
    return {"records": [r.to_dict() for r in store.list(owner_id)]}


@app.delete("/clients/{owner_id}/{record_id}")
def delete_client(owner_id: str, record_id: str):
    if store.get(owner_id, record_id) is None:
        raise HTTPException(status_code=404, detail=f"Client record '{record_id}' not found.")
    store.delete(owner_id, record_id)
    return {"deleted": record_id}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
