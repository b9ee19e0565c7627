# profast/routers/tracking.py
from typing import List

from fastapi import APIRouter, Depends, status

from profast.deps import get_tracking
from profast.schemas import TrackingEventOut, TrackingIn
from profast.services.tracking import TrackingLedger

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def append_event(body: TrackingIn, tracking: TrackingLedger = Depends(get_tracking)):
    event_id = await tracking.append(body.tracking_id, body.status, body.note)
    return {"id": event_id}


@router.get("/{tracking_id}", response_model=List[TrackingEventOut])
async def history(tracking_id: str, tracking: TrackingLedger = Depends(get_tracking)):
    return [TrackingEventOut.from_doc(e) for e in await tracking.history(tracking_id)]
