# profast/routers/users.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from profast.core.errors import InvalidInput
from profast.core.policy import Role
from profast.core.security import Principal, get_principal, require_role
from profast.deps import get_user_service
from profast.schemas import RoleIn, RoleOut, UserIn, UserOut
from profast.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=List[UserOut])
async def search_users(
    email: Optional[str] = Query(None),
    principal: Principal = Depends(get_principal),
    users: UserService = Depends(get_user_service),
):
    if not email or not email.strip():
        raise InvalidInput("missing email query")
    return [UserOut.from_doc(u) for u in await users.search(email.strip())]


@router.get("/role/{email}", response_model=RoleOut)
async def get_role(
    email: str,
    principal: Principal = Depends(get_principal),
    users: UserService = Depends(get_user_service),
):
    return RoleOut(email=email, role=await users.get_role(email))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserIn, response: Response, users: UserService = Depends(get_user_service)):
    user, created = await users.create_if_absent(body.model_dump())
    if not created:
        response.status_code = status.HTTP_200_OK
    return UserOut.from_doc(user)


@router.patch("/{user_id}/role", response_model=UserOut)
async def set_role(
    user_id: str,
    body: RoleIn,
    admin: Principal = Depends(require_role(Role.ADMIN)),
    users: UserService = Depends(get_user_service),
):
    return UserOut.from_doc(await users.set_role(user_id, body.role))
