"""
Payment ledger.

``record_payment`` is the guard against double charging: the parcel is
flipped from unpaid to paid with a conditional update first, and a Payment
document is inserted only when that update matched.
"""

import logging
from typing import Callable, List, Optional, Protocol

from profast.core.errors import Conflict, GatewayError, NotFound
from profast.core.states import PaymentStatus
from profast.db import PARCELS, PAYMENTS
from profast.repos.base import DocumentStore
from profast.services.clock import utcnow
from profast.services.tracking import TrackingLedger

logger = logging.getLogger(__name__)


class ChargeGateway(Protocol):
    async def create_payment_intent(self, amount_minor_units: int, currency: str = "usd") -> str: ...


class PaymentService:
    def __init__(
        self,
        store: DocumentStore,
        tracking: TrackingLedger,
        gateway: Optional[ChargeGateway] = None,
        currency: str = "usd",
        clock: Callable = utcnow,
    ):
        self.store = store
        self.tracking = tracking
        self.gateway = gateway
        self.currency = currency
        self.clock = clock

    async def create_intent(self, amount_minor_units: int) -> str:
        if self.gateway is None:
            raise GatewayError("Payment gateway is not configured")
        # gateway errors reach the caller as raised
        return await self.gateway.create_payment_intent(amount_minor_units, currency=self.currency)

    async def record_payment(
        self,
        parcel_id: str,
        email: str,
        amount: float,
        method: str,
        transaction_id: str,
    ) -> str:
        matched = await self.store.update_one(
            PARCELS,
            {"_id": parcel_id, "payment_status": PaymentStatus.UNPAID.value},
            {"$set": {"payment_status": PaymentStatus.PAID.value}},
        )
        if not matched:
            parcel = await self.store.find_one(PARCELS, {"_id": parcel_id})
            if not parcel:
                raise NotFound("Parcel", parcel_id)
            raise Conflict("Parcel already paid", details={"parcel_id": parcel_id})

        payment_id = await self.store.insert_one(PAYMENTS, {
            "parcel_id": parcel_id,
            "email": email,
            "amount": amount,
            "payment_method": method,
            "transaction_id": transaction_id,
            "paid_at": self.clock(),
        })
        logger.info("Payment %s recorded for parcel %s (%s)", payment_id, parcel_id, transaction_id)

        parcel = await self.store.find_one(PARCELS, {"_id": parcel_id})
        if parcel and parcel.get("tracking_id"):
            await self.tracking.append(parcel["tracking_id"], PaymentStatus.PAID.value, f"Transaction {transaction_id}")
        return payment_id

    async def list_payments(self, email: Optional[str] = None) -> List[dict]:
        q = {"email": email} if email else {}
        return await self.store.find(PAYMENTS, q, sort=[("paid_at", -1)])

    async def delete_payment(self, payment_id: str) -> None:
        # the parcel keeps payment_status=paid
        deleted = await self.store.delete_one(PAYMENTS, {"_id": payment_id})
        if not deleted:
            raise NotFound("Payment", payment_id)
        logger.info("Payment %s deleted", payment_id)
