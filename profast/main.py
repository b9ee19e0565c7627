# profast/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from profast.core.config import settings
from profast.core.errors import AppError, app_error_handler, unhandled_error_handler
from profast.core.logging_config import setup_logging
from profast.core.security import JWTVerifier
from profast.deps import build_store
from profast.middleware.request_log import RequestLogMiddleware
from profast.routers import parcels as parcels_router
from profast.routers import payments as payments_router
from profast.routers import riders as riders_router
from profast.routers import tracking as tracking_router
from profast.routers import users as users_router
from profast.services.charge import StripeCharge

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one store per process, handed to every request through app.state
    store = build_store(settings)
    await store.ensure_indexes()
    app.state.store = store
    app.state.verifier = JWTVerifier()
    app.state.charge = StripeCharge(
        settings.stripe_secret_key,
        api_base=settings.stripe_api_base,
        timeout=settings.gateway_timeout_s,
    )
    logger.info("Started with %s store", "mongo" if settings.use_mongo else "in-memory")

    yield

    await store.close()


# --- Create app FIRST ---
app = FastAPI(lifespan=lifespan, title=settings.app_name)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogMiddleware)

# ---------------- Include routers ----------------
app.include_router(parcels_router.router)     # /parcels
app.include_router(users_router.router)       # /users
app.include_router(riders_router.router)      # /riders
app.include_router(payments_router.router)    # /payments
app.include_router(tracking_router.router)    # /tracking


@app.get("/")
def root():
    return {"message": "parcel server is running"}


# Health
@app.get("/health")
def health():
    return {"ok": True}
