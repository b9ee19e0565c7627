# profast/core/indexes.py
from pymongo import ASCENDING, DESCENDING


async def ensure_indexes(db):
    # Users: one document per email
    await db.users.create_index("email", unique=True)
    # Parcels: creator lists, rider lists, public tracking
    await db.parcels.create_index([("created_by", ASCENDING), ("created_at", DESCENDING)])
    await db.parcels.create_index([("assigned_rider.email", ASCENDING), ("delivery_status", ASCENDING)])
    await db.parcels.create_index("tracking_id")
    await db.parcels.create_index("delivery_status")
    # Riders
    await db.riders.create_index("status")
    await db.riders.create_index([("district", ASCENDING), ("work_status", ASCENDING)])
    await db.riders.create_index("region")
    # Payments & tracking
    await db.payments.create_index([("email", ASCENDING), ("paid_at", DESCENDING)])
    await db.trackings.create_index([("tracking_id", ASCENDING), ("timestamp", ASCENDING)])
