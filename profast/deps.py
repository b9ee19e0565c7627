# profast/deps.py
from fastapi import Depends, Request

from profast.core.config import Settings, settings
from profast.repos.base import DocumentStore
from profast.services.parcels import ParcelService
from profast.services.payments import PaymentService
from profast.services.riders import RiderService
from profast.services.tracking import TrackingLedger
from profast.services.users import UserService


def build_store(cfg: Settings) -> DocumentStore:
    """Called once from the app lifespan; the result lives on app.state."""
    if cfg.use_mongo:
        from profast.db import create_client
        from profast.repos.mongo import MongoRepo
        return MongoRepo(create_client(cfg.mongo_uri), cfg.mongo_db)

    from profast.repos.inmemory import InMemoryRepo
    return InMemoryRepo()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_tracking(store: DocumentStore = Depends(get_store)) -> TrackingLedger:
    return TrackingLedger(store)


def get_parcel_service(
    store: DocumentStore = Depends(get_store),
    tracking: TrackingLedger = Depends(get_tracking),
) -> ParcelService:
    return ParcelService(store, tracking, enforce_transitions=settings.enforce_transitions)


def get_rider_service(
    store: DocumentStore = Depends(get_store),
    tracking: TrackingLedger = Depends(get_tracking),
) -> RiderService:
    return RiderService(store, tracking, enforce_transitions=settings.enforce_transitions)


def get_payment_service(
    request: Request,
    store: DocumentStore = Depends(get_store),
    tracking: TrackingLedger = Depends(get_tracking),
) -> PaymentService:
    return PaymentService(store, tracking, gateway=request.app.state.charge, currency=settings.payment_currency)


def get_user_service(store: DocumentStore = Depends(get_store)) -> UserService:
    return UserService(store)
