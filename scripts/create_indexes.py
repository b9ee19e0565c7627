import asyncio

from profast.core.config import settings
from profast.core.indexes import ensure_indexes
from profast.db import create_client


async def main():
    client = create_client(settings.mongo_uri)
    try:
        await ensure_indexes(client[settings.mongo_db])
    finally:
        client.close()
    print("Indexes ensured on", settings.mongo_db)

if __name__ == "__main__":
    asyncio.run(main())
