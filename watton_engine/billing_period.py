# watton_engine/billing_period.py

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)


FALLBACK_BILLING_DAYS = 30
DAYS_PER_YEAR = 365

DateLike = Union[str, date, datetime, None]


@dataclass(frozen=True)
class BillingPeriod:
    days: int
    is_fallback: bool

    @property
    def annualization_factor(self) -> float:
        return annualization_factor(self.days)


def _naive_utc(value: datetime) -> datetime:
    # aware values are shifted to UTC; naive ones are taken as-is
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def _parse(value: DateLike) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return _naive_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def resolve_billing_period(start: DateLike, end: DateLike) -> BillingPeriod:
    """
    Number of days an invoice covers.

    Both dates must parse and be 1..365 days apart (in either order);
    anything else falls back to 30 days. Partial days round up.
    """
    start_dt = _parse(start)
    end_dt = _parse(end)

    if start_dt is not None and end_dt is not None:
        seconds = abs((end_dt - start_dt).total_seconds())
        days = math.ceil(seconds / 86400)
        if 0 < days < 366:
            return BillingPeriod(days=days, is_fallback=False)

    logger.debug("Billing dates %r..%r unusable; assuming %d days", start, end, FALLBACK_BILLING_DAYS)
    return BillingPeriod(days=FALLBACK_BILLING_DAYS, is_fallback=True)


def resolve_billing_days(start: DateLike, end: DateLike) -> int:
    return resolve_billing_period(start, end).days


def annualization_factor(billing_days: int) -> float:
    """365 / billing_days."""
    return DAYS_PER_YEAR / billing_days
