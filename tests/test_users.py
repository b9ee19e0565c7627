import pytest

from profast.core.errors import NotFound
from profast.core.policy import Role
from profast.services.users import UserService

pytestmark = pytest.mark.anyio


@pytest.fixture
def users(repo, clock):
    return UserService(repo, clock=clock)


async def test_create_if_absent(users):
    user, created = await users.create_if_absent({"email": "a@x.com", "name": "A", "role": "admin"})
    assert created
    assert user["role"] == "user"

    again, created = await users.create_if_absent({"email": "a@x.com", "name": "Other"})
    assert not created
    assert again["_id"] == user["_id"]
    assert again["name"] == "A"
    assert again["last_log_in"] > user["last_log_in"]

    stored = await users.get_by_email("a@x.com")
    assert stored["last_log_in"] > user["last_log_in"]


async def test_search_is_literal_and_case_insensitive(users):
    await users.create_if_absent({"email": "Alice@x.com"})
    await users.create_if_absent({"email": "bob@x.com"})
    await users.create_if_absent({"email": "alicex-com@y.com"})

    assert [u["email"] for u in await users.search("alice@")] == ["Alice@x.com"]
    # the dot is not a wildcard
    assert [u["email"] for u in await users.search("x.com")] == ["Alice@x.com", "bob@x.com"]


async def test_roles(users):
    user, _ = await users.create_if_absent({"email": "a@x.com"})
    assert await users.get_role("a@x.com") == "user"

    updated = await users.set_role(user["_id"], Role.ADMIN)
    assert updated["role"] == "admin"

    with pytest.raises(NotFound):
        await users.get_role("nobody@x.com")
    with pytest.raises(NotFound):
        await users.set_role("missing", Role.RIDER)
