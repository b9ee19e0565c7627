import pytest

from profast.core.errors import Conflict, NotFound
from profast.core.states import DeliveryStatus
from profast.db import PARCELS
from profast.services.parcels import ParcelService

pytestmark = pytest.mark.anyio


def parcel_data(**over):
    data = {
        "title": "Books",
        "parcel_type": "document",
        "cost": 120,
        "sender_name": "Alice",
        "sender_district": "Dhaka",
        "receiver_name": "Bob",
        "receiver_district": "Khulna",
    }
    data.update(over)
    return data


@pytest.fixture
def svc(repo, tracking, clock):
    return ParcelService(repo, tracking, clock=clock)


@pytest.fixture
def strict(repo, tracking, clock):
    return ParcelService(repo, tracking, enforce_transitions=True, clock=clock)


async def test_create_sets_engine_owned_fields(svc, tracking):
    pid = await svc.create(parcel_data(delivery_status="delivered", _id="nope"), "a@x.com")
    p = await svc.get(pid)

    assert pid != "nope"
    assert p["created_by"] == "a@x.com"
    assert p["payment_status"] == "unpaid"
    assert p["delivery_status"] == "pending"
    assert p["cashout_status"] == "not_cashed"
    assert p["picked_at"] is None and p["delivered_at"] is None
    assert p["tracking_id"].startswith("TRK-20250101-")

    events = await tracking.history(p["tracking_id"])
    assert [e["status"] for e in events] == ["parcel_created"]


async def test_create_keeps_client_tracking_id(svc):
    pid = await svc.create(parcel_data(tracking_id="TRK-CUSTOM"), "a@x.com")
    assert (await svc.find_by_tracking_id("TRK-CUSTOM"))["_id"] == pid


async def test_query_filters_and_newest_first(svc, repo):
    first = await svc.create(parcel_data(title="one"), "a@x.com")
    await svc.create(parcel_data(title="other"), "b@x.com")
    second = await svc.create(parcel_data(title="two"), "a@x.com")
    await repo.update_one(PARCELS, {"_id": first}, {"$set": {"payment_status": "paid"}})

    mine = await svc.query(email="a@x.com")
    assert [p["_id"] for p in mine] == [second, first]

    paid = await svc.query(email="a@x.com", payment_status="paid")
    assert [p["_id"] for p in paid] == [first]
    assert len(await svc.query()) == 3
    assert await svc.query(delivery_status="delivered") == []


async def test_advance_status_stamps_timestamps(svc, tracking):
    pid = await svc.create(parcel_data(), "a@x.com")

    p = await svc.advance_status(pid, DeliveryStatus.IN_TRANSIT)
    picked = p["picked_at"]
    assert p["delivery_status"] == "in_transit"
    assert picked is not None and p["delivered_at"] is None

    p = await svc.advance_status(pid, DeliveryStatus.DELIVERED)
    assert p["delivered_at"] > picked

    # repeating a stamped status overwrites the stamp
    p = await svc.advance_status(pid, DeliveryStatus.IN_TRANSIT)
    assert p["picked_at"] > picked

    statuses = [e["status"] for e in await tracking.history(p["tracking_id"])]
    assert statuses == ["parcel_created", "in_transit", "delivered", "in_transit"]


async def test_advance_status_unknown_parcel(svc):
    with pytest.raises(NotFound):
        await svc.advance_status("missing", DeliveryStatus.IN_TRANSIT)


async def test_strict_mode_rejects_skipped_steps(strict, repo):
    pid = await strict.create(parcel_data(), "a@x.com")

    with pytest.raises(Conflict) as ei:
        await strict.advance_status(pid, DeliveryStatus.DELIVERED)
    assert ei.value.details == {"from": "pending", "to": "delivered"}
    assert (await strict.get(pid))["delivery_status"] == "pending"

    await repo.update_one(PARCELS, {"_id": pid}, {"$set": {"delivery_status": "rider_assigned"}})
    await strict.advance_status(pid, DeliveryStatus.IN_TRANSIT)
    p = await strict.advance_status(pid, DeliveryStatus.SERVICE_CENTER_DELIVERED)
    assert p["delivery_status"] == "service_center_delivered"
    assert p["delivered_at"] is not None


async def test_cash_out(svc, strict):
    pid = await svc.create(parcel_data(), "a@x.com")

    # loose mode does not look at the delivery status
    p = await svc.cash_out(pid)
    assert p["cashout_status"] == "cash_out"
    assert p["cashout_at"] is not None

    other = await strict.create(parcel_data(), "a@x.com")
    with pytest.raises(Conflict):
        await strict.cash_out(other)
    with pytest.raises(NotFound):
        await strict.cash_out("missing")


async def test_status_counts(svc):
    a = await svc.create(parcel_data(), "a@x.com")
    await svc.create(parcel_data(), "a@x.com")
    await svc.create(parcel_data(), "b@x.com")
    await svc.advance_status(a, DeliveryStatus.DELIVERED)

    assert await svc.status_counts() == {"pending": 2, "delivered": 1}
    assert await svc.status_counts({"created_by": "a@x.com"}) == {"pending": 1, "delivered": 1}
    assert await svc.status_counts({"created_by": "nobody@x.com"}) == {}


async def test_lookup_and_delete(svc):
    pid = await svc.create(parcel_data(), "a@x.com")
    with pytest.raises(NotFound):
        await svc.find_by_tracking_id("TRK-NOPE")

    await svc.delete(pid)
    with pytest.raises(NotFound):
        await svc.get(pid)
    with pytest.raises(NotFound):
        await svc.delete(pid)
