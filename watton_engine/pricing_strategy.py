# watton_engine/pricing_strategy.py

from __future__ import annotations
import logging
from typing import Mapping, Tuple

from .form_input import parse_decimal
from .types import PRICE_FIELDS, PriceSet

logger = logging.getLogger(__name__)


TARGET_SAVINGS_PCT = 0.08       # aim 8% under the customer's current price
MIN_MARGIN_EUR_KWH = 0.001      # never price at or below base
UNKNOWN_PRICE_MARKUP = 1.10     # current price unknown → base + 10%
MARGIN_DECIMALS = 6


# ============================================================
# Contract A: proposal from current prices and base costs
# ============================================================

def propose_price(current: float, base: float) -> float:
    floor = base + MIN_MARGIN_EUR_KWH

    if not current:
        return max(base * UNKNOWN_PRICE_MARKUP, floor)

    return max(floor, current * (1 - TARGET_SAVINGS_PCT))


def derive_proposal(current: PriceSet, bases: PriceSet) -> PriceSet:
    """Proposed price per period and for the power charge."""
    return PriceSet(**{f: propose_price(current.get(f), bases.get(f)) for f in PRICE_FIELDS})


# ============================================================
# Contract B: proposed = base + margin
# ============================================================

def apply_overrides(bases: PriceSet, margins: PriceSet) -> PriceSet:
    return PriceSet(**{f: bases.get(f) + margins.get(f) for f in PRICE_FIELDS})


def merge_overrides(prior: PriceSet, overrides: Mapping[str, object], prefix: str) -> PriceSet:
    """
    Replace the fields of `prior` named `<prefix><field>` in `overrides`.
    Absent keys and values that do not parse keep the prior value.
    """
    updates = {}
    for f in PRICE_FIELDS:
        key = prefix + f
        if key not in overrides:
            continue
        value = parse_decimal(overrides[key])
        if value is None:
            logger.debug("Ignoring unparseable override %s=%r", key, overrides[key])
            continue
        updates[f] = value
    return prior.replace_fields(updates)


# ============================================================
# Contract C: final price edited directly
# ============================================================

def derive_margin_from_final_price(base: float, new_final_price: float) -> float:
    return round(new_final_price - base, MARGIN_DECIMALS)


def resolve_price_edits(
    prior_bases: PriceSet,
    prior_margins: PriceSet,
    overrides: Mapping[str, object],
) -> Tuple[PriceSet, PriceSet]:
    """
    Apply one batch of edits to the prior bases and margins.

    Keys: base_<field>, margin_<field>, proposed_<field>. A proposed_ edit
    is turned into a margin against the (possibly edited) base and wins
    over a margin_ edit for the same field.
    """
    bases = merge_overrides(prior_bases, overrides, "base_")
    margins = merge_overrides(prior_margins, overrides, "margin_")

    back_solved = {}
    for f in PRICE_FIELDS:
        key = "proposed_" + f
        if key not in overrides:
            continue
        final_price = parse_decimal(overrides[key])
        if final_price is None:
            logger.debug("Ignoring unparseable final price %s=%r", key, overrides[key])
            continue
        back_solved[f] = derive_margin_from_final_price(bases.get(f), final_price)

    return bases, margins.replace_fields(back_solved)
