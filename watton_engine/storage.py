# watton_engine/storage.py

from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional

from .types import ClientRecord, InvoiceData, SaveOutcome, SimulationResult

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClientStore:
    """
    In-memory client portfolio per owner (consultant).
    One record per tax id; saving under an existing record id updates it.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._records: Dict[str, List[ClientRecord]] = {}
        self._lock = Lock()
        self._clock = clock or _utc_now

    def save(
        self,
        owner_id: str,
        data: InvoiceData,
        simulation: SimulationResult,
        record_id: Optional[str] = None,
    ) -> SaveOutcome:
        with self._lock:
            current = self._records.get(owner_id, [])

            existing = next((r for r in current if r.data.tax_id == data.tax_id), None)
            if existing is not None and existing.id != record_id:
                logger.warning(
                    "Rejected save for owner %s: tax id %s already belongs to record %s",
                    owner_id, data.tax_id, existing.id,
                )
                return SaveOutcome(
                    success=False,
                    message=(
                        f"Tax id {data.tax_id} already exists in the portfolio "
                        f"for client \"{existing.data.customer_name}\"."
                    ),
                )

            record = ClientRecord(
                id=record_id or str(uuid.uuid4()),
                data=data,
                simulation=simulation,
                created_at=self._clock().isoformat(),
            )
            self._records[owner_id] = [r for r in current if r.id != record.id] + [record]

        logger.info("Saved client record %s for owner %s", record.id, owner_id)
        return SaveOutcome(success=True, message="Client saved.", record_id=record.id)

    def list(self, owner_id: str) -> List[ClientRecord]:
        """Newest first."""
        with self._lock:
            records = list(self._records.get(owner_id, []))
        return sorted(records, key=lambda r: datetime.fromisoformat(r.created_at), reverse=True)

    def get(self, owner_id: str, record_id: str) -> Optional[ClientRecord]:
        with self._lock:
            return next((r for r in self._records.get(owner_id, []) if r.id == record_id), None)

    def delete(self, owner_id: str, record_id: str) -> None:
        with self._lock:
            current = self._records.get(owner_id, [])
            self._records[owner_id] = [r for r in current if r.id != record_id]
