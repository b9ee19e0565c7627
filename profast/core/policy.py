from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Disjoint capability sets; there is no ordering between roles."""
    USER = "user"
    RIDER = "rider"
    ADMIN = "admin"


def parse_role(value) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


def role_allows(role: Optional[Role], allowed) -> bool:
    # exact membership: an admin does not implicitly pass a rider-only check
    return role is not None and role in set(allowed)
