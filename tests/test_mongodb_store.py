from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from salonbook.core.exceptions import NotFoundError, SlotUnavailable, StoreUnavailable
from salonbook.db.mongodb import MongoBookingStore
from salonbook.schemas.booking import BookingStatus, Customer
from salonbook.scheduling.conflicts import Interval

SALON_ID = "salon-1"

test_customer = Customer(name="Jana Client", email="jana@example.com", phone="+420777000111")

test_booking_data = {
    "serviceId": "service-1",
    "date": datetime(2026, 10, 19, 10, 30),
    "duration": 60,
    "status": BookingStatus.CONFIRMED.value,
    "totalAmount": 650.0,
}


class FakeTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Stands in for a motor client session; records transaction options."""

    def __init__(self):
        self.transaction_options = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def start_transaction(self, **options):
        self.transaction_options.append(options)
        return FakeTransaction()


def transient(error):
    error._add_error_label("TransientTransactionError")
    return error


def write_conflict():
    return transient(OperationFailure("WriteConflict error", code=112))


def fake_db(calls, existing=None, known_client=None):
    """Collections that record the order of calls made inside a transaction."""
    db = MagicMock()

    async def bump_guard(query, update, upsert=False, session=None):
        calls.append(("guard", query["_id"], upsert, session))

    def find_bookings(query, session=None):
        calls.append(("read", query["salonId"], None, session))
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.to_list = AsyncMock(return_value=[dict(b) for b in existing or []])
        return cursor

    async def insert_client(document, session=None):
        document["_id"] = ObjectId()
        calls.append(("client", document["email"], None, session))

    async def insert_booking(document, session=None):
        document["_id"] = ObjectId()
        calls.append(("insert", document["salonId"], None, session))

    db.booking_guards.update_one = AsyncMock(side_effect=bump_guard)
    db.bookings.find = MagicMock(side_effect=find_bookings)
    db.users.find_one = AsyncMock(return_value=known_client)
    db.users.insert_one = AsyncMock(side_effect=insert_client)
    db.bookings.insert_one = AsyncMock(side_effect=insert_booking)
    return db


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def make_store(session):
    def _make_store(db=None, retries=3):
        client = MagicMock()
        client.start_session = AsyncMock(return_value=session)
        store = MongoBookingStore(client, "salonbook_test", transaction_retries=retries)
        store.db = db if db is not None else MagicMock()
        return store

    return _make_store


def candidate():
    return Interval.from_duration(datetime(2026, 10, 19, 10, 30), 60)


@pytest.mark.asyncio
async def test_insert_bumps_guard_then_reads_then_writes(make_store, session):
    calls = []
    store = make_store(fake_db(calls))

    booking = await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert [call[0] for call in calls] == ["guard", "read", "client", "insert"]
    assert calls[0][1] == SALON_ID
    assert calls[0][2] is True
    assert all(call[3] is session for call in calls)
    assert session.transaction_options[0]["read_concern"].level == "snapshot"
    assert booking["salonId"] == SALON_ID
    assert booking["client"]["email"] == "jana@example.com"
    assert "_id" not in booking
    assert isinstance(booking["id"], str)


@pytest.mark.asyncio
async def test_insert_rejects_overlap_without_writing(make_store):
    calls = []
    existing = [{
        "_id": ObjectId(),
        "salonId": SALON_ID,
        "date": datetime(2026, 10, 19, 10, 0),
        "duration": 60,
        "status": BookingStatus.CONFIRMED.value,
    }]
    store = make_store(fake_db(calls, existing=existing))

    with pytest.raises(SlotUnavailable):
        await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert [call[0] for call in calls] == ["guard", "read"]


@pytest.mark.asyncio
async def test_insert_allows_back_to_back_booking(make_store):
    calls = []
    existing = [{
        "_id": ObjectId(),
        "salonId": SALON_ID,
        "date": datetime(2026, 10, 19, 9, 30),
        "duration": 60,
        "status": BookingStatus.CONFIRMED.value,
    }]
    store = make_store(fake_db(calls, existing=existing))

    booking = await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert booking["date"] == datetime(2026, 10, 19, 10, 30)
    assert calls[-1][0] == "insert"


@pytest.mark.asyncio
async def test_insert_reuses_client_with_same_email(make_store):
    calls = []
    client_id = ObjectId()
    known_client = {"_id": client_id, "email": "jana@example.com", "name": "Jana", "phone": None}
    db = fake_db(calls, known_client=known_client)
    store = make_store(db)

    booking = await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert booking["clientId"] == str(client_id)
    db.users.insert_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_write_conflict_is_retried_until_it_commits(make_store):
    store = make_store()
    store._insert_in_transaction = AsyncMock(side_effect=[write_conflict(), write_conflict(), {"id": "booking-1"}])

    booking = await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert booking == {"id": "booking-1"}
    assert store._insert_in_transaction.await_count == 3


@pytest.mark.asyncio
async def test_write_conflicts_exhausting_retries_mean_slot_taken(make_store):
    store = make_store(retries=3)
    store._insert_in_transaction = AsyncMock(side_effect=[write_conflict() for _ in range(3)])

    with pytest.raises(SlotUnavailable):
        await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert store._insert_in_transaction.await_count == 3


@pytest.mark.asyncio
async def test_duplicate_key_exhausting_retries_means_slot_taken(make_store):
    store = make_store(retries=2)
    store._insert_in_transaction = AsyncMock(
        side_effect=[DuplicateKeyError("E11000 duplicate key", code=11000) for _ in range(2)]
    )

    with pytest.raises(SlotUnavailable):
        await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert store._insert_in_transaction.await_count == 2


@pytest.mark.asyncio
async def test_network_failure_in_transaction_is_store_unavailable(make_store):
    store = make_store(retries=3)
    store._insert_in_transaction = AsyncMock(
        side_effect=[transient(AutoReconnect("connection refused")) for _ in range(3)]
    )

    with pytest.raises(StoreUnavailable) as exc_info:
        await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.__cause__, AutoReconnect)


@pytest.mark.asyncio
async def test_last_failure_decides_the_error(make_store):
    store = make_store(retries=2)
    store._insert_in_transaction = AsyncMock(
        side_effect=[write_conflict(), transient(AutoReconnect("connection reset"))]
    )

    with pytest.raises(StoreUnavailable):
        await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)


@pytest.mark.asyncio
async def test_non_transient_driver_error_is_not_retried(make_store):
    store = make_store(retries=3)
    store._insert_in_transaction = AsyncMock(side_effect=OperationFailure("not authorized", code=13))

    with pytest.raises(StoreUnavailable):
        await store.insert_booking_if_free(SALON_ID, candidate(), test_booking_data, test_customer)

    assert store._insert_in_transaction.await_count == 1


@pytest.mark.asyncio
async def test_malformed_id_is_not_found(make_store):
    store = make_store()
    store.db.bookings.find_one = AsyncMock()

    with pytest.raises(NotFoundError):
        await store.get_booking("not-an-object-id")

    store.db.bookings.find_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_service_is_not_found(make_store):
    store = make_store()
    store.db.services.find_one = AsyncMock(return_value=None)

    with pytest.raises(NotFoundError):
        await store.get_service(str(ObjectId()))


@pytest.mark.asyncio
async def test_driver_error_is_store_unavailable(make_store):
    store = make_store()
    store.db.salons.find_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers available"))

    with pytest.raises(StoreUnavailable) as exc_info:
        await store.get_salon(str(ObjectId()))

    assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)


@pytest.mark.asyncio
async def test_documents_come_back_with_string_id(make_store):
    store = make_store()
    service_id = ObjectId()
    store.db.services.find_one = AsyncMock(
        return_value={"_id": service_id, "salonId": SALON_ID, "name": "Haircut", "duration": 60}
    )

    service = await store.get_service(str(service_id))

    assert service["id"] == str(service_id)
    assert "_id" not in service
    store.db.services.find_one.assert_awaited_once_with({"_id": service_id})
