import pytest

from profast.core.errors import Conflict, NotFound, StoreError
from profast.core.states import DeliveryStatus, RiderStatus
from profast.db import PARCELS, RIDERS, USERS
from profast.repos.inmemory import InMemoryRepo
from profast.services.parcels import ParcelService
from profast.services.riders import RiderService
from profast.services.tracking import TrackingLedger

pytestmark = pytest.mark.anyio


class FailingRepo(InMemoryRepo):
    """Raises StoreError on updates to one collection."""

    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on

    async def update_one(self, collection, filter, update):
        if collection == self.fail_on:
            raise StoreError()
        return await super().update_one(collection, filter, update)


def rider_data(email="r@x.com", district="Dhaka", **over):
    data = {"name": "Rahim", "email": email, "region": "Dhaka", "district": district}
    data.update(over)
    return data


async def _setup(repo, clock=None):
    tracking = TrackingLedger(repo) if clock is None else TrackingLedger(repo, clock=clock)
    kw = {} if clock is None else {"clock": clock}
    parcels = ParcelService(repo, tracking, **kw)
    riders = RiderService(repo, tracking, **kw)
    pid = await parcels.create({"title": "Box", "cost": 50, "sender_name": "A", "receiver_name": "B"}, "a@x.com")
    rid = await riders.create(rider_data())
    return parcels, riders, pid, rid


async def test_create_rider_defaults(repo):
    _, riders, _, rid = await _setup(repo)
    rider = await riders.get(rid)
    assert rider["status"] == "pending"
    assert rider["work_status"] == "available"
    with pytest.raises(NotFound):
        await riders.get("missing")


async def test_assign_updates_parcel_and_rider(repo, clock):
    parcels, riders, pid, rid = await _setup(repo, clock)

    await riders.assign(pid, rid, "Rahim", "r@x.com")

    p = await parcels.get(pid)
    assert p["delivery_status"] == "rider_assigned"
    assert p["assigned_rider"] == {"id": rid, "name": "Rahim", "email": "r@x.com"}
    assert (await riders.get(rid))["work_status"] == "in_delivery"
    statuses = [e["status"] for e in await riders.tracking.history(p["tracking_id"])]
    assert statuses == ["parcel_created", "rider_assigned"]


async def test_assign_unknown_rider_leaves_parcel_write(repo):
    parcels, riders, pid, _ = await _setup(repo)
    with pytest.raises(NotFound) as ei:
        await riders.assign(pid, "ghost", "Ghost", "g@x.com")
    assert ei.value.details["resource"] == "Rider"
    # no compensation for the committed half
    assert (await parcels.get(pid))["delivery_status"] == "rider_assigned"


async def test_assign_unknown_parcel(repo):
    _, riders, _, rid = await _setup(repo)
    with pytest.raises(NotFound) as ei:
        await riders.assign("missing", rid, "Rahim", "r@x.com")
    assert ei.value.details["resource"] == "Parcel"


async def test_assign_partial_failure_on_rider_write():
    repo = FailingRepo(fail_on=RIDERS)
    parcels, riders, pid, rid = await _setup(repo)

    with pytest.raises(StoreError):
        await riders.assign(pid, rid, "Rahim", "r@x.com")

    p = await parcels.get(pid)
    assert p["delivery_status"] == "rider_assigned"
    assert p["assigned_rider"]["id"] == rid
    assert (await riders.get(rid))["work_status"] == "available"


async def test_assign_attempts_rider_write_when_parcel_write_fails():
    repo = FailingRepo(fail_on=PARCELS)
    parcels, riders, pid, rid = await _setup(repo)

    with pytest.raises(StoreError):
        await riders.assign(pid, rid, "Rahim", "r@x.com")

    assert (await parcels.get(pid))["delivery_status"] == "pending"
    assert (await riders.get(rid))["work_status"] == "in_delivery"


async def test_strict_assign_requires_pending(repo):
    tracking = TrackingLedger(repo)
    parcels = ParcelService(repo, tracking)
    riders = RiderService(repo, tracking, enforce_transitions=True)
    pid = await parcels.create({"title": "Box", "cost": 1, "sender_name": "A", "receiver_name": "B"}, "a@x.com")
    rid = await riders.create(rider_data())
    await parcels.advance_status(pid, DeliveryStatus.DELIVERED)

    with pytest.raises(Conflict):
        await riders.assign(pid, rid, "Rahim", "r@x.com")


async def test_approval_promotes_user(repo):
    _, riders, _, rid = await _setup(repo)
    await repo.insert_one(USERS, {"email": "r@x.com", "role": "user"})

    await riders.set_approval_status(rid, RiderStatus.ACTIVE, "r@x.com")

    assert (await riders.get(rid))["status"] == "active"
    assert (await repo.find_one(USERS, {"email": "r@x.com"}))["role"] == "rider"


async def test_rejection_does_not_promote(repo):
    _, riders, _, rid = await _setup(repo)
    await repo.insert_one(USERS, {"email": "r@x.com", "role": "user"})

    await riders.set_approval_status(rid, RiderStatus.REJECTED, "r@x.com")

    assert (await riders.get(rid))["status"] == "rejected"
    assert (await repo.find_one(USERS, {"email": "r@x.com"}))["role"] == "user"


async def test_approval_of_unknown_rider_touches_nothing(repo):
    _, riders, _, _ = await _setup(repo)
    await repo.insert_one(USERS, {"email": "r@x.com", "role": "user"})

    with pytest.raises(NotFound):
        await riders.set_approval_status("ghost", RiderStatus.ACTIVE, "r@x.com")
    assert (await repo.find_one(USERS, {"email": "r@x.com"}))["role"] == "user"


async def test_approval_without_user_record(repo):
    _, riders, _, rid = await _setup(repo)
    await riders.set_approval_status(rid, RiderStatus.ACTIVE, "nobody@x.com")
    assert (await riders.get(rid))["status"] == "active"


async def test_work_status_and_availability(repo):
    _, riders, _, rid = await _setup(repo)
    other = await riders.create(rider_data(email="s@x.com"))
    await riders.create(rider_data(email="t@x.com", district="Khulna"))
    await riders.set_approval_status(rid, RiderStatus.ACTIVE, "r@x.com")
    await riders.set_approval_status(other, RiderStatus.ACTIVE, "s@x.com")

    await riders.mark_busy(other)
    assert [r["_id"] for r in await riders.list_available("Dhaka")] == [rid]

    await riders.mark_available(other)
    assert {r["_id"] for r in await riders.list_available("Dhaka")} == {rid, other}
    assert len(await riders.list_pending()) == 1
    assert len(await riders.list_active()) == 2
    assert len(await riders.list_by_region("Dhaka")) == 3

    with pytest.raises(NotFound):
        await riders.mark_busy("ghost")


async def test_assigned_parcels_and_earnings(repo, clock):
    parcels, riders, first, rid = await _setup(repo, clock)
    second = await parcels.create({"title": "Bag", "cost": 80, "sender_name": "A", "receiver_name": "B"}, "a@x.com")
    third = await parcels.create({"title": "Tin", "cost": 30, "sender_name": "A", "receiver_name": "B"}, "a@x.com")
    for pid in (first, second, third):
        await riders.assign(pid, rid, "Rahim", "r@x.com")

    await parcels.advance_status(first, DeliveryStatus.DELIVERED)
    await parcels.advance_status(second, DeliveryStatus.DELIVERED)
    await parcels.advance_status(third, DeliveryStatus.IN_TRANSIT)
    await parcels.cash_out(first)
    await parcels.cash_out(second)

    assert [p["_id"] for p in await riders.list_assigned_parcels("r@x.com")] == [third]
    done = await riders.list_assigned_parcels("r@x.com", open_only=False)
    assert {p["_id"] for p in done} == {first, second}

    earned = await riders.earnings("r@x.com")
    assert [p["_id"] for p in earned] == [second, first]
    assert await riders.earnings("someone@x.com") == []


async def test_earnings_count_delivered_parcels_only(repo, clock):
    parcels, riders, cashed, rid = await _setup(repo, clock)
    body = {"title": "Bag", "cost": 80, "sender_name": "A", "receiver_name": "B"}
    uncashed = await parcels.create(body, "a@x.com")
    early = await parcels.create(body, "a@x.com")
    for pid in (cashed, uncashed, early):
        await riders.assign(pid, rid, "Rahim", "r@x.com")

    await parcels.advance_status(cashed, DeliveryStatus.DELIVERED)
    await parcels.cash_out(cashed)
    await parcels.advance_status(uncashed, DeliveryStatus.DELIVERED)
    # loose mode lets a rider cash out before delivery
    await parcels.advance_status(early, DeliveryStatus.IN_TRANSIT)
    await parcels.cash_out(early)

    earned = await riders.earnings("r@x.com")
    assert [p["_id"] for p in earned] == [cashed, uncashed]
    assert earned[1]["cashout_at"] is None
