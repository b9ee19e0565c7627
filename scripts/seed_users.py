import asyncio
import sys
from datetime import datetime, timezone

from profast.core.config import settings
from profast.core.jwt import create_access_token
from profast.core.policy import Role
from profast.db import USERS, create_client, new_id


async def main(email: str):
    client = create_client(settings.mongo_uri)
    db = client[settings.mongo_db]
    now = datetime.now(timezone.utc)
    await db[USERS].update_one(
        {"email": email},
        {"$set": {"role": Role.ADMIN.value, "last_log_in": now},
         "$setOnInsert": {"_id": new_id(), "name": "Admin", "created_at": now}},
        upsert=True,
    )
    client.close()
    print("Admin seeded:", email)
    print("Dev token:", create_access_token({"sub": email, "email": email}))

if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "admin@profast.io"))
