# profast/routers/parcels.py
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from profast.core.errors import Forbidden
from profast.core.policy import Role
from profast.core.security import Principal, get_principal, lookup_role, require_role
from profast.core.states import DeliveryStatus, PaymentStatus
from profast.deps import get_parcel_service, get_rider_service, get_store
from profast.repos.base import DocumentStore
from profast.schemas import AssignIn, ParcelIn, ParcelOut, StatusUpdate
from profast.services.parcels import ParcelService
from profast.services.riders import RiderService

router = APIRouter(prefix="/parcels", tags=["parcels"])


def _ensure_assigned_to(parcel: dict, principal: Principal):
    # riders may only act on parcels assigned to them
    if principal.role is Role.RIDER and (parcel.get("assigned_rider") or {}).get("email") != principal.email:
        raise Forbidden("Rider can only update assigned parcels")


@router.get("", response_model=List[ParcelOut])
async def list_parcels(
    email: Optional[str] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    delivery_status: Optional[DeliveryStatus] = Query(None),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    parcels: ParcelService = Depends(get_parcel_service),
):
    if await lookup_role(store, principal.email) is not Role.ADMIN:
        if email and email != principal.email:
            raise Forbidden()
        email = principal.email
    docs = await parcels.query(email=email, payment_status=payment_status, delivery_status=delivery_status)
    return [ParcelOut.from_doc(d) for d in docs]


@router.get("/status-count")
async def my_status_count(
    principal: Principal = Depends(get_principal),
    parcels: ParcelService = Depends(get_parcel_service),
) -> Dict[str, int]:
    return await parcels.status_counts({"created_by": principal.email})


@router.get("/delivery/status-count")
async def delivery_status_count(
    admin: Principal = Depends(require_role(Role.ADMIN)),
    parcels: ParcelService = Depends(get_parcel_service),
) -> Dict[str, int]:
    return await parcels.status_counts()


@router.get("/track/{tracking_id}", response_model=ParcelOut)
async def get_by_tracking_id(tracking_id: str, parcels: ParcelService = Depends(get_parcel_service)):
    return ParcelOut.from_doc(await parcels.find_by_tracking_id(tracking_id))


@router.get("/{parcel_id}", response_model=ParcelOut)
async def get_parcel(
    parcel_id: str,
    principal: Principal = Depends(get_principal),
    parcels: ParcelService = Depends(get_parcel_service),
):
    return ParcelOut.from_doc(await parcels.get(parcel_id))


@router.post("", response_model=ParcelOut, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    body: ParcelIn,
    principal: Principal = Depends(get_principal),
    parcels: ParcelService = Depends(get_parcel_service),
):
    parcel_id = await parcels.create(body.model_dump(), principal.email)
    return ParcelOut.from_doc(await parcels.get(parcel_id))


@router.patch("/{parcel_id}/status", response_model=ParcelOut)
async def update_status(
    parcel_id: str,
    body: StatusUpdate,
    principal: Principal = Depends(require_role(Role.RIDER, Role.ADMIN)),
    parcels: ParcelService = Depends(get_parcel_service),
):
    _ensure_assigned_to(await parcels.get(parcel_id), principal)
    return ParcelOut.from_doc(await parcels.advance_status(parcel_id, body.delivery_status))


@router.patch("/{parcel_id}/assign", response_model=ParcelOut)
async def assign_rider(
    parcel_id: str,
    body: AssignIn,
    admin: Principal = Depends(require_role(Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
    parcels: ParcelService = Depends(get_parcel_service),
):
    await riders.assign(parcel_id, body.rider_id, body.rider_name, body.rider_email)
    return ParcelOut.from_doc(await parcels.get(parcel_id))


@router.patch("/{parcel_id}/cashout", response_model=ParcelOut)
async def cash_out(
    parcel_id: str,
    principal: Principal = Depends(require_role(Role.RIDER)),
    parcels: ParcelService = Depends(get_parcel_service),
):
    _ensure_assigned_to(await parcels.get(parcel_id), principal)
    return ParcelOut.from_doc(await parcels.cash_out(parcel_id))


@router.delete("/{parcel_id}")
async def delete_parcel(
    parcel_id: str,
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    parcels: ParcelService = Depends(get_parcel_service),
):
    parcel = await parcels.get(parcel_id)
    if parcel.get("created_by") != principal.email and await lookup_role(store, principal.email) is not Role.ADMIN:
        raise Forbidden("Only the sender or an admin can delete a parcel")
    await parcels.delete(parcel_id)
    return {"deleted": True}
