# profast/db.py
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

# --------------------------------------------------
# Collections
# --------------------------------------------------
PARCELS = "parcels"
PAYMENTS = "payments"
USERS = "users"
RIDERS = "riders"
TRACKINGS = "trackings"


def new_id() -> str:
    return str(ObjectId())


def create_client(uri: str) -> AsyncIOMotorClient:
    # tz_aware so timestamps read back as UTC-aware datetimes
    return AsyncIOMotorClient(uri, tz_aware=True, uuidRepresentation="standard")
