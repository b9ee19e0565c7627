# profast/services/users.py
import logging
import re
from typing import Callable, List, Tuple

from profast.core.errors import Conflict, NotFound
from profast.core.policy import Role
from profast.db import USERS
from profast.repos.base import DocumentStore
from profast.services.clock import utcnow

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: DocumentStore, clock: Callable = utcnow):
        self.store = store
        self.clock = clock

    async def search(self, email_fragment: str, limit: int = 10) -> List[dict]:
        # user input is matched literally, case-insensitive
        pattern = re.escape(email_fragment)
        return await self.store.find(USERS, {"email": {"$regex": pattern, "$options": "i"}}, limit=limit)

    async def get_by_email(self, email: str) -> dict:
        user = await self.store.find_one(USERS, {"email": email})
        if not user:
            raise NotFound("User", email)
        return user

    async def get_role(self, email: str) -> str:
        user = await self.get_by_email(email)
        return user.get("role", Role.USER.value)

    async def create_if_absent(self, data: dict) -> Tuple[dict, bool]:
        """Return ``(user, created)``; an existing email only refreshes last_log_in."""
        email = data["email"]
        now = self.clock()
        existing = await self.store.find_one(USERS, {"email": email})
        if existing:
            await self.store.update_one(USERS, {"email": email}, {"$set": {"last_log_in": now}})
            existing["last_log_in"] = now
            return existing, False

        doc = dict(data)
        doc.pop("_id", None)
        doc.update({"role": Role.USER.value, "created_at": now, "last_log_in": now})
        try:
            doc["_id"] = await self.store.insert_one(USERS, doc)
        except Conflict:
            # lost a race against the unique email index
            return await self.get_by_email(email), False
        logger.info("User %s registered", email)
        return doc, True

    async def set_role(self, user_id: str, role: Role) -> dict:
        role = Role(role)
        matched = await self.store.update_one(USERS, {"_id": user_id}, {"$set": {"role": role.value}})
        if not matched:
            raise NotFound("User", user_id)
        logger.info("User %s role -> %s", user_id, role.value)
        return await self.store.find_one(USERS, {"_id": user_id})

