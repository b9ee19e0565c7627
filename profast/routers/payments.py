# profast/routers/payments.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from profast.core.errors import Forbidden
from profast.core.policy import Role
from profast.core.security import Principal, authorize, get_principal, lookup_role, require_role
from profast.deps import get_payment_service, get_store
from profast.repos.base import DocumentStore
from profast.schemas import IntentIn, IntentOut, PaymentIn, PaymentOut, PaymentRecorded
from profast.services.payments import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/intent", response_model=IntentOut)
async def create_payment_intent(
    body: IntentIn,
    principal: Principal = Depends(get_principal),
    payments: PaymentService = Depends(get_payment_service),
):
    return IntentOut(client_secret=await payments.create_intent(body.amount_cents))


@router.get("", response_model=List[PaymentOut])
async def list_payments(
    email: Optional[str] = Query(None),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    payments: PaymentService = Depends(get_payment_service),
):
    if email:
        if email != principal.email and await lookup_role(store, principal.email) is not Role.ADMIN:
            raise Forbidden()
    else:
        # the unscoped ledger is the admin view
        await authorize(store, principal, Role.ADMIN)
    return [PaymentOut.from_doc(p) for p in await payments.list_payments(email)]


@router.post("", response_model=PaymentRecorded, status_code=status.HTTP_201_CREATED)
async def record_payment(
    body: PaymentIn,
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    payments: PaymentService = Depends(get_payment_service),
):
    payer = body.email or principal.email
    if payer != principal.email and await lookup_role(store, principal.email) is not Role.ADMIN:
        raise Forbidden("Payments are recorded for the signed-in payer")
    payment_id = await payments.record_payment(
        body.parcel_id, payer, body.amount, body.payment_method, body.transaction_id,
    )
    return PaymentRecorded(inserted_id=payment_id)


@router.delete("/{payment_id}")
async def delete_payment(
    payment_id: str,
    admin: Principal = Depends(require_role(Role.ADMIN)),
    payments: PaymentService = Depends(get_payment_service),
):
    await payments.delete_payment(payment_id)
    return {"deleted": True}
