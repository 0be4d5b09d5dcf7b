# watton_engine/market.py

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from .types import known_fields


class PointType(str, Enum):
    HISTORY = "HISTORY"       # OMIE spot
    FORECAST = "FORECAST"     # OMIP futures


class MarketTrend(str, Enum):
    UP = "ALTA"
    DOWN = "BAIXA"
    NEUTRAL = "NEUTRA"


TREND_BAND_EUR_MWH = 2.0
TREND_LOOKBACK_POINTS = 7


@dataclass(frozen=True)
class MarketPoint:
    date: str
    type: PointType
    price: Optional[float] = None              # €/MWh, history only
    forecast: Optional[float] = None           # €/MWh, forecast only
    confidence_upper: Optional[float] = None
    confidence_lower: Optional[float] = None
    volume: float = 0.0

    def to_dict(self):
        return {
            "date": self.date,
            "type": self.type.value,
            "price": self.price,
            "forecast": self.forecast,
            "confidence_upper": self.confidence_upper,
            "confidence_lower": self.confidence_lower,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "MarketPoint":
        data = known_fields(cls, data)
        data["type"] = PointType(data["type"])
        return cls(**data)


def analyze_market_trend(points: Sequence[MarketPoint]) -> MarketTrend:
    """
    Mean of the last three spot prices against the price a week earlier.
    Needs at least a week of history; otherwise NEUTRAL.
    """
    history: List[MarketPoint] = [p for p in points if p.type is PointType.HISTORY]
    if len(history) < TREND_LOOKBACK_POINTS:
        return MarketTrend.NEUTRAL

    avg_last3 = sum((p.price or 0.0) for p in history[-3:]) / 3
    week_ago = history[-TREND_LOOKBACK_POINTS].price or 0.0

    if avg_last3 > week_ago + TREND_BAND_EUR_MWH:
        return MarketTrend.UP
    if avg_last3 < week_ago - TREND_BAND_EUR_MWH:
        return MarketTrend.DOWN
    return MarketTrend.NEUTRAL
