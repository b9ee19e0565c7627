"""
Parcel lifecycle.

The engine owns ``delivery_status``, ``cashout_status`` and the lifecycle
timestamps. By default status writes are unconditional, matching the
behaviour the clients were built against; with ``enforce_transitions`` the
write is conditional on the current status being a legal source in
``TRANSITIONS`` and a miss on an existing parcel is a ``Conflict``.
"""

import logging
import secrets
from typing import Callable, Dict, List, Optional

from profast.core.errors import Conflict, NotFound
from profast.core.states import (
    STATUS_STAMPS,
    CashoutStatus,
    DeliveryStatus,
    PaymentStatus,
    sources_for,
)
from profast.db import PARCELS
from profast.repos.base import DocumentStore
from profast.services.clock import utcnow
from profast.services.tracking import TrackingLedger

logger = logging.getLogger(__name__)


def new_tracking_id(now) -> str:
    return f"TRK-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class ParcelService:
    def __init__(
        self,
        store: DocumentStore,
        tracking: TrackingLedger,
        enforce_transitions: bool = False,
        clock: Callable = utcnow,
    ):
        self.store = store
        self.tracking = tracking
        self.enforce_transitions = enforce_transitions
        self.clock = clock

    async def create(self, data: dict, creator_email: str) -> str:
        now = self.clock()
        doc = dict(data)
        doc.update({
            "tracking_id": doc.get("tracking_id") or new_tracking_id(now),
            "created_by": creator_email,
            "payment_status": PaymentStatus.UNPAID.value,
            "delivery_status": DeliveryStatus.PENDING.value,
            "cashout_status": CashoutStatus.NOT_CASHED.value,
            "created_at": now,
            "picked_at": None,
            "delivered_at": None,
            "cashout_at": None,
        })
        doc.pop("_id", None)
        doc.pop("assigned_rider", None)

        parcel_id = await self.store.insert_one(PARCELS, doc)
        logger.info("Parcel %s created by %s (%s)", parcel_id, creator_email, doc["tracking_id"])
        await self.tracking.append(doc["tracking_id"], "parcel_created", f"Parcel created by {creator_email}")
        return parcel_id

    async def get(self, parcel_id: str) -> dict:
        parcel = await self.store.find_one(PARCELS, {"_id": parcel_id})
        if not parcel:
            raise NotFound("Parcel", parcel_id)
        return parcel

    async def find_by_tracking_id(self, tracking_id: str) -> dict:
        parcel = await self.store.find_one(PARCELS, {"tracking_id": tracking_id})
        if not parcel:
            raise NotFound("Parcel", tracking_id)
        return parcel

    async def query(
        self,
        email: Optional[str] = None,
        payment_status: Optional[str] = None,
        delivery_status: Optional[str] = None,
    ) -> List[dict]:
        q = {}
        if email:
            q["created_by"] = email
        if payment_status:
            q["payment_status"] = PaymentStatus(payment_status).value
        if delivery_status:
            q["delivery_status"] = DeliveryStatus(delivery_status).value
        return await self.store.find(PARCELS, q, sort=[("created_at", -1)])

    async def status_counts(self, scope: Optional[dict] = None) -> Dict[str, int]:
        rows = await self.store.aggregate(PARCELS, [
            {"$match": scope or {}},
            {"$group": {"_id": "$delivery_status", "count": {"$sum": 1}}},
        ])
        return {row["_id"]: row["count"] for row in rows}

    async def advance_status(self, parcel_id: str, target: DeliveryStatus) -> dict:
        target = DeliveryStatus(target)
        now = self.clock()
        patch = {"delivery_status": target.value}
        stamp = STATUS_STAMPS.get(target)
        if stamp:
            patch[stamp] = now

        q = {"_id": parcel_id}
        if self.enforce_transitions:
            q["delivery_status"] = {"$in": sources_for(target)}

        matched = await self.store.update_one(PARCELS, q, {"$set": patch})
        if not matched:
            current = await self.get(parcel_id)
            raise Conflict(
                f"Cannot move parcel from {current.get('delivery_status')} to {target.value}",
                details={"from": current.get("delivery_status"), "to": target.value},
            )

        parcel = await self.get(parcel_id)
        logger.info("Parcel %s -> %s", parcel_id, target.value)
        await self.tracking.append(parcel["tracking_id"], target.value)
        return parcel

    async def cash_out(self, parcel_id: str) -> dict:
        q = {"_id": parcel_id}
        if self.enforce_transitions:
            q["delivery_status"] = DeliveryStatus.DELIVERED.value

        matched = await self.store.update_one(PARCELS, q, {
            "$set": {"cashout_status": CashoutStatus.CASH_OUT.value, "cashout_at": self.clock()},
        })
        if not matched:
            current = await self.get(parcel_id)
            raise Conflict(
                "Only delivered parcels can be cashed out",
                details={"delivery_status": current.get("delivery_status")},
            )
        logger.info("Parcel %s cashed out", parcel_id)
        return await self.get(parcel_id)

    async def delete(self, parcel_id: str) -> None:
        deleted = await self.store.delete_one(PARCELS, {"_id": parcel_id})
        if not deleted:
            raise NotFound("Parcel", parcel_id)
        logger.info("Parcel %s deleted", parcel_id)
