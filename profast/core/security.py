"""
Authentication and role checks.

``authenticate`` turns an ``Authorization: Bearer <token>`` header into a
verified Principal; ``authorize`` compares the role stored for that email
against the roles a route accepts. Both are wrapped as FastAPI dependencies.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from fastapi import Depends, Header, Request
from pydantic import BaseModel

from profast.core.errors import Forbidden, Unauthenticated
from profast.core.jwt import decode_access_token
from profast.core.policy import Role, parse_role, role_allows
from profast.db import USERS
from profast.deps import get_store
from profast.repos.base import DocumentStore

logger = logging.getLogger(__name__)


class Principal(BaseModel):
    email: str
    claims: Dict[str, Any] = {}
    role: Optional[Role] = None


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Dict[str, Any]:
        """Return the token claims or raise ``Unauthenticated``."""


class JWTVerifier:
    """Verifies HS256 tokens signed with ``settings.jwt_secret``."""

    async def verify(self, token: str) -> Dict[str, Any]:
        claims = decode_access_token(token)
        if claims is None:
            raise Unauthenticated("Invalid token")
        return claims


async def authenticate(authorization: Optional[str], verifier: TokenVerifier) -> Principal:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthenticated("Missing token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise Unauthenticated("Missing token")

    claims = await verifier.verify(token)
    email = claims.get("email")
    if not email:
        raise Unauthenticated("Token carries no email")
    return Principal(email=email, claims=claims)


async def lookup_role(store: DocumentStore, email: str) -> Optional[Role]:
    user = await store.find_one(USERS, {"email": email})
    if not user:
        return None
    return parse_role(user.get("role"))


async def authorize(store: DocumentStore, principal: Principal, *roles: Role) -> Role:
    role = await lookup_role(store, principal.email)
    if not role_allows(role, roles):
        logger.info("Denied %s (role=%s), requires %s", principal.email, role, [r.value for r in roles])
        raise Forbidden(details={"required": [r.value for r in roles]})
    return role


# ---------- Dependencies ----------

def get_verifier(request: Request) -> TokenVerifier:
    return request.app.state.verifier


async def get_principal(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_verifier),
) -> Principal:
    return await authenticate(authorization, verifier)


def require_role(*roles: Role):
    """
    Dependency factory for role-gated routes.

    Usage:
        @router.get("/riders/pending")
        async def pending(principal: Principal = Depends(require_role(Role.ADMIN))):
            ...
    """
    async def checker(
        principal: Principal = Depends(get_principal),
        store: DocumentStore = Depends(get_store),
    ) -> Principal:
        role = await authorize(store, principal, *roles)
        return principal.model_copy(update={"role": role})

    return checker
