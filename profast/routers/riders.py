# profast/routers/riders.py
from typing import List

from fastapi import APIRouter, Depends, Query, status

from profast.core.errors import Forbidden
from profast.core.policy import Role
from profast.core.security import Principal, get_principal, lookup_role, require_role
from profast.deps import get_rider_service, get_store
from profast.repos.base import DocumentStore
from profast.schemas import ParcelOut, RiderIn, RiderOut, RiderStatusIn
from profast.services.riders import RiderService

router = APIRouter(prefix="/riders", tags=["riders"])


def _riders_out(docs) -> List[RiderOut]:
    return [RiderOut.from_doc(d) for d in docs]


@router.post("", status_code=status.HTTP_201_CREATED)
async def apply_as_rider(
    body: RiderIn,
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    riders: RiderService = Depends(get_rider_service),
):
    if body.email != principal.email and await lookup_role(store, principal.email) is not Role.ADMIN:
        raise Forbidden("Riders apply with their own email")
    rider_id = await riders.create(body.model_dump())
    return {"id": rider_id, "status": "pending"}


@router.get("", response_model=List[RiderOut])
async def list_by_region(
    region: str = Query(...),
    principal: Principal = Depends(get_principal),
    riders: RiderService = Depends(get_rider_service),
):
    return _riders_out(await riders.list_by_region(region))


@router.get("/pending", response_model=List[RiderOut])
async def pending_riders(
    admin: Principal = Depends(require_role(Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
):
    return _riders_out(await riders.list_pending())


@router.get("/active", response_model=List[RiderOut])
async def active_riders(
    admin: Principal = Depends(require_role(Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
):
    return _riders_out(await riders.list_active())


@router.get("/available", response_model=List[RiderOut])
async def available_riders(
    district: str = Query(...),
    admin: Principal = Depends(require_role(Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
):
    return _riders_out(await riders.list_available(district))


@router.patch("/{rider_id}/status")
async def set_rider_status(
    rider_id: str,
    body: RiderStatusIn,
    admin: Principal = Depends(require_role(Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
):
    await riders.set_approval_status(rider_id, body.status, body.email)
    return {"updated": True, "status": body.status}


async def _own_rider(riders: RiderService, rider_id: str, principal: Principal) -> None:
    rider = await riders.get(rider_id)
    if principal.role is Role.RIDER and rider.get("email") != principal.email:
        raise Forbidden("Riders can only change their own work status")


@router.patch("/{rider_id}/busy")
async def mark_busy(
    rider_id: str,
    principal: Principal = Depends(require_role(Role.RIDER, Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
):
    await _own_rider(riders, rider_id, principal)
    await riders.mark_busy(rider_id)
    return {"updated": True, "work_status": "busy"}


@router.patch("/{rider_id}/available")
async def mark_available(
    rider_id: str,
    principal: Principal = Depends(require_role(Role.RIDER, Role.ADMIN)),
    riders: RiderService = Depends(get_rider_service),
):
    await _own_rider(riders, rider_id, principal)
    await riders.mark_available(rider_id)
    return {"updated": True, "work_status": "available"}


# ----------- Rider views -----------

@router.get("/parcels", response_model=List[ParcelOut])
async def assigned_parcels(
    rider: Principal = Depends(require_role(Role.RIDER)),
    riders: RiderService = Depends(get_rider_service),
):
    return [ParcelOut.from_doc(p) for p in await riders.list_assigned_parcels(rider.email, open_only=True)]


@router.get("/completed-parcels", response_model=List[ParcelOut])
async def completed_parcels(
    rider: Principal = Depends(require_role(Role.RIDER)),
    riders: RiderService = Depends(get_rider_service),
):
    return [ParcelOut.from_doc(p) for p in await riders.list_assigned_parcels(rider.email, open_only=False)]


@router.get("/earnings", response_model=List[ParcelOut])
async def earnings(
    rider: Principal = Depends(require_role(Role.RIDER)),
    riders: RiderService = Depends(get_rider_service),
):
    return [ParcelOut.from_doc(p) for p in await riders.earnings(rider.email)]
