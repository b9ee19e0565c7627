# profast/services/tracking.py
import logging
from typing import Callable, List, Optional

from profast.core.errors import InvalidInput
from profast.db import TRACKINGS
from profast.repos.base import DocumentStore
from profast.services.clock import utcnow

logger = logging.getLogger(__name__)


class TrackingLedger:
    """Append-only per-parcel event log keyed by the public tracking id."""

    def __init__(self, store: DocumentStore, clock: Callable = utcnow):
        self.store = store
        self.clock = clock

    async def append(self, tracking_id: Optional[str], status: Optional[str], note: Optional[str] = None) -> str:
        if not tracking_id or not str(tracking_id).strip():
            raise InvalidInput("tracking_id is required")
        if not status or not str(status).strip():
            raise InvalidInput("status is required")

        doc = {
            "tracking_id": str(tracking_id).strip(),
            "status": str(status).strip(),
            "note": note or "",
            "timestamp": self.clock(),
        }
        event_id = await self.store.insert_one(TRACKINGS, doc)
        logger.debug("Tracking %s -> %s", doc["tracking_id"], doc["status"])
        return event_id

    async def history(self, tracking_id: str) -> List[dict]:
        return await self.store.find(
            TRACKINGS,
            {"tracking_id": tracking_id},
            sort=[("timestamp", 1), ("_id", 1)],
        )
