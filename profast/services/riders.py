"""
Rider assignment and rider records.

``assign`` and the approval cascade touch two documents each. They are issued
as two independent writes with no transaction and no compensation: when the
second write fails the first one stays committed, and the caller gets the
failure.
"""

import logging
from typing import Callable, List

from profast.core.errors import AppError, Conflict, NotFound
from profast.core.policy import Role
from profast.core.states import (
    CLOSED_DELIVERY,
    OPEN_DELIVERY,
    DeliveryStatus,
    RiderStatus,
    WorkStatus,
)
from profast.db import PARCELS, RIDERS, USERS
from profast.repos.base import DocumentStore
from profast.services.clock import utcnow
from profast.services.tracking import TrackingLedger

logger = logging.getLogger(__name__)


def _values(statuses) -> List[str]:
    return [s.value for s in statuses]


class RiderService:
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

    async def create(self, data: dict) -> str:
        doc = dict(data)
        doc.pop("_id", None)
        doc.update({
            "status": RiderStatus.PENDING.value,
            "work_status": WorkStatus.AVAILABLE.value,
            "created_at": self.clock(),
        })
        rider_id = await self.store.insert_one(RIDERS, doc)
        logger.info("Rider application %s from %s", rider_id, doc.get("email"))
        return rider_id

    async def get(self, rider_id: str) -> dict:
        rider = await self.store.find_one(RIDERS, {"_id": rider_id})
        if not rider:
            raise NotFound("Rider", rider_id)
        return rider

    # ---------- Assignment ----------

    async def assign(self, parcel_id: str, rider_id: str, rider_name: str, rider_email: str) -> None:
        parcel_q = {"_id": parcel_id}
        if self.enforce_transitions:
            parcel_q["delivery_status"] = DeliveryStatus.PENDING.value
        parcel_patch = {"$set": {
            "delivery_status": DeliveryStatus.RIDER_ASSIGNED.value,
            "assigned_rider": {"id": rider_id, "name": rider_name, "email": rider_email},
        }}
        rider_patch = {"$set": {"work_status": WorkStatus.IN_DELIVERY.value}}

        # both writes are attempted whatever the other's outcome
        errors = []
        parcel_matched = rider_matched = 0
        try:
            parcel_matched = await self.store.update_one(PARCELS, parcel_q, parcel_patch)
        except AppError as exc:
            errors.append(exc)
        try:
            rider_matched = await self.store.update_one(RIDERS, {"_id": rider_id}, rider_patch)
        except AppError as exc:
            errors.append(exc)

        if errors:
            logger.warning(
                "Assignment of parcel %s to rider %s partially failed (parcel=%s rider=%s)",
                parcel_id, rider_id, parcel_matched, rider_matched,
            )
            raise errors[0]
        if not parcel_matched:
            current = await self.store.find_one(PARCELS, {"_id": parcel_id})
            if not current:
                raise NotFound("Parcel", parcel_id)
            raise Conflict(
                f"Cannot assign a rider to a {current.get('delivery_status')} parcel",
                details={"from": current.get("delivery_status"), "to": DeliveryStatus.RIDER_ASSIGNED.value},
            )
        if not rider_matched:
            raise NotFound("Rider", rider_id)

        parcel = await self.store.find_one(PARCELS, {"_id": parcel_id})
        logger.info("Parcel %s assigned to rider %s", parcel_id, rider_id)
        if parcel and parcel.get("tracking_id"):
            await self.tracking.append(parcel["tracking_id"], DeliveryStatus.RIDER_ASSIGNED.value,
                                       f"Assigned to {rider_name}")

    async def set_approval_status(self, rider_id: str, status: RiderStatus, email: str) -> None:
        status = RiderStatus(status)
        matched = await self.store.update_one(RIDERS, {"_id": rider_id}, {"$set": {"status": status.value}})
        if not matched:
            raise NotFound("Rider", rider_id)
        logger.info("Rider %s status -> %s", rider_id, status.value)

        if status is RiderStatus.ACTIVE:
            promoted = await self.store.update_one(USERS, {"email": email}, {"$set": {"role": Role.RIDER.value}})
            if not promoted:
                logger.warning("Rider %s approved but no user %s to promote", rider_id, email)

    async def _set_work_status(self, rider_id: str, work_status: WorkStatus) -> None:
        matched = await self.store.update_one(RIDERS, {"_id": rider_id}, {"$set": {"work_status": work_status.value}})
        if not matched:
            raise NotFound("Rider", rider_id)

    async def mark_busy(self, rider_id: str) -> None:
        await self._set_work_status(rider_id, WorkStatus.BUSY)

    async def mark_available(self, rider_id: str) -> None:
        await self._set_work_status(rider_id, WorkStatus.AVAILABLE)

    # ---------- Reads ----------

    async def list_by_region(self, region: str) -> List[dict]:
        return await self.store.find(RIDERS, {"region": region})

    async def list_pending(self) -> List[dict]:
        return await self.store.find(RIDERS, {"status": RiderStatus.PENDING.value})

    async def list_active(self) -> List[dict]:
        return await self.store.find(RIDERS, {"status": RiderStatus.ACTIVE.value})

    async def list_available(self, district: str) -> List[dict]:
        return await self.store.find(RIDERS, {
            "district": district,
            "status": RiderStatus.ACTIVE.value,
            "work_status": WorkStatus.AVAILABLE.value,
        })

    async def list_assigned_parcels(self, rider_email: str, open_only: bool = True) -> List[dict]:
        statuses = OPEN_DELIVERY if open_only else CLOSED_DELIVERY
        return await self.store.find(
            PARCELS,
            {"assigned_rider.email": rider_email, "delivery_status": {"$in": _values(statuses)}},
            sort=[("created_at", -1)],
        )

    async def earnings(self, rider_email: str) -> List[dict]:
        return await self.store.find(
            PARCELS,
            {"assigned_rider.email": rider_email, "delivery_status": DeliveryStatus.DELIVERED.value},
            sort=[("cashout_at", -1)],
        )
