import functools
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from salonbook.core.config import Settings
from salonbook.core.exceptions import NotFoundError, SlotUnavailable, StoreUnavailable
from salonbook.db.store import BookingStore
from salonbook.schemas.booking import ACTIVE_STATUSES, BookingStatus, Customer
from salonbook.schemas.user import UserRole
from salonbook.scheduling.conflicts import Interval, booking_intervals, conflicts, lookup_window

logger = logging.getLogger(__name__)

# Server error code for a transaction write conflict
WRITE_CONFLICT = 112


def _serialize(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Replace the ObjectId ``_id`` with a string ``id``."""
    if document is None:
        return None
    document["id"] = str(document.pop("_id"))
    return document


def _object_id(value: str, what: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{what} not found")


def _lost_to_concurrent_writer(error: Optional[PyMongoError]) -> bool:
    """True if the last failed attempt lost a race with another booking writer."""
    if isinstance(error, DuplicateKeyError):
        return True
    return isinstance(error, OperationFailure) and error.code == WRITE_CONFLICT


def _store_call(func):
    """Translate driver failures into StoreUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"MongoDB operation {func.__name__} failed: {e}")
            raise StoreUnavailable() from e

    return wrapper


class MongoBookingStore(BookingStore):
    """
    MongoDB-backed store.

    Booking inserts run in a multi-document transaction (replica set or
    sharded cluster required). Each transaction first bumps the salon's
    ``booking_guards`` document, so two transactions for the same salon
    write-conflict and cannot both commit; salons never block each other.
    """

    def __init__(self, client: AsyncIOMotorClient, db_name: str, transaction_retries: int = 3):
        self.client = client
        self.db = client[db_name]
        self.transaction_retries = transaction_retries

    @classmethod
    async def connect(cls, settings: Settings) -> "MongoBookingStore":
        """Connect to MongoDB."""
        try:
            logger.info("Connecting to MongoDB...")
            client = AsyncIOMotorClient(
                settings.MONGO_URI,
                serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
                socketTimeoutMS=settings.MONGO_TIMEOUT_MS,
            )
            store = cls(client, settings.DB_NAME, settings.TRANSACTION_RETRIES)
            await store.create_indexes()
            logger.info("Connected to MongoDB.")
            return store
        except PyMongoError as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            raise StoreUnavailable("Could not connect to MongoDB") from e

    async def close(self) -> None:
        """Close MongoDB connection."""
        logger.info("Closing MongoDB connection...")
        self.client.close()
        logger.info("MongoDB connection closed.")

    async def create_indexes(self) -> None:
        """Create indexes for collections."""
        # Users collection indexes
        await self.db.users.create_index("email", unique=True)
        await self.db.users.create_index(
            "authId",
            unique=True,
            partialFilterExpression={"authId": {"$type": "string"}},
        )

        # Salons collection indexes
        await self.db.salons.create_index("code", unique=True)
        await self.db.salons.create_index("ownerId", unique=True)

        # Services collection indexes
        await self.db.services.create_index([("salonId", ASCENDING), ("active", ASCENDING)])

        # Bookings collection indexes
        await self.db.bookings.create_index([("salonId", ASCENDING), ("status", ASCENDING), ("date", ASCENDING)])
        await self.db.bookings.create_index([("salonId", ASCENDING), ("date", DESCENDING)])
        await self.db.bookings.create_index("clientId")

        logger.info("MongoDB indexes created successfully.")

    # Availability engine

    async def _find_active(self, salon_id: str, start: datetime, end: datetime, session=None) -> List[Dict[str, Any]]:
        query = {
            "salonId": salon_id,
            "status": {"$in": [status.value for status in ACTIVE_STATUSES]},
            "date": {"$gte": start, "$lt": end},
        }
        cursor = self.db.bookings.find(query, session=session).sort("date", ASCENDING)
        bookings = await cursor.to_list(length=None)
        return [_serialize(booking) for booking in bookings]

    @_store_call
    async def find_active_bookings(self, salon_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        return await self._find_active(salon_id, start, end)

    @_store_call
    async def insert_booking_if_free(
        self,
        salon_id: str,
        candidate: Interval,
        booking_data: Dict[str, Any],
        customer: Customer,
    ) -> Dict[str, Any]:
        last_error: Optional[PyMongoError] = None
        for attempt in range(1, self.transaction_retries + 1):
            try:
                async with await self.client.start_session() as session:
                    async with session.start_transaction(
                        read_concern=ReadConcern("snapshot"),
                        write_concern=WriteConcern("majority"),
                    ):
                        return await self._insert_in_transaction(
                            session, salon_id, candidate, booking_data, customer
                        )
            except DuplicateKeyError as e:
                # Concurrent guest client creation with the same e-mail
                logger.warning(f"Booking insert for salon {salon_id} hit duplicate key (attempt {attempt}): {e}")
                last_error = e
            except PyMongoError as e:
                if not e.has_error_label("TransientTransactionError"):
                    raise
                logger.warning(f"Booking transaction for salon {salon_id} failed transiently (attempt {attempt}): {e}")
                last_error = e

        if _lost_to_concurrent_writer(last_error):
            raise SlotUnavailable()
        logger.error(f"Booking transaction for salon {salon_id} gave up after {self.transaction_retries} attempts: {last_error}")
        raise StoreUnavailable() from last_error

    async def _insert_in_transaction(
        self,
        session,
        salon_id: str,
        candidate: Interval,
        booking_data: Dict[str, Any],
        customer: Customer,
    ) -> Dict[str, Any]:
        await self.db.booking_guards.update_one(
            {"_id": salon_id},
            {"$inc": {"version": 1}, "$set": {"updatedAt": datetime.utcnow()}},
            upsert=True,
            session=session,
        )

        day_start = datetime.combine(candidate.start.date(), datetime.min.time())
        window = lookup_window(day_start)
        active = await self._find_active(salon_id, window.start, window.end, session=session)
        if conflicts(candidate, booking_intervals(active)):
            logger.info(f"Slot {candidate.start} rejected for salon {salon_id}: overlaps active booking")
            raise SlotUnavailable()

        client = await self.db.users.find_one({"email": customer.email}, session=session)
        if client is None:
            client = {
                "authId": None,
                "email": customer.email,
                "name": customer.name,
                "phone": customer.phone,
                "role": UserRole.CLIENT.value,
                "createdAt": datetime.utcnow(),
            }
            await self.db.users.insert_one(client, session=session)
        client_id = str(client["_id"])

        booking = dict(booking_data)
        booking["salonId"] = salon_id
        booking["clientId"] = client_id
        booking["client"] = {
            "id": client_id,
            "name": client.get("name", ""),
            "email": client["email"],
            "phone": client.get("phone"),
        }
        booking["createdAt"] = datetime.utcnow()
        await self.db.bookings.insert_one(booking, session=session)
        return _serialize(booking)

    @_store_call
    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Dict[str, Any]:
        booking = await self.db.bookings.find_one_and_update(
            {"_id": _object_id(booking_id, "Booking")},
            {"$set": {"status": BookingStatus(status).value, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if booking is None:
            raise NotFoundError("Booking not found")
        return _serialize(booking)

    @_store_call
    async def get_salon_working_hours(self, salon_id: str) -> Dict[str, Any]:
        salon = await self.db.salons.find_one(
            {"_id": _object_id(salon_id, "Salon")}, {"workingHours": 1}
        )
        if salon is None:
            raise NotFoundError("Salon not found")
        return salon.get("workingHours") or {}

    @_store_call
    async def get_service(self, service_id: str) -> Dict[str, Any]:
        service = await self.db.services.find_one({"_id": _object_id(service_id, "Service")})
        if service is None:
            raise NotFoundError("Service not found")
        return _serialize(service)

    # Salons

    @_store_call
    async def get_salon(self, salon_id: str) -> Dict[str, Any]:
        salon = await self.db.salons.find_one({"_id": _object_id(salon_id, "Salon")})
        if salon is None:
            raise NotFoundError("Salon not found")
        return _serialize(salon)

    @_store_call
    async def get_salon_by_code(self, code: str) -> Dict[str, Any]:
        salon = await self.db.salons.find_one({"code": code})
        if salon is None:
            raise NotFoundError("Salon not found")
        return _serialize(salon)

    @_store_call
    async def get_salon_by_owner(self, owner_id: str) -> Optional[Dict[str, Any]]:
        return _serialize(await self.db.salons.find_one({"ownerId": owner_id}))

    @_store_call
    async def salon_code_exists(self, code: str) -> bool:
        return await self.db.salons.count_documents({"code": code}, limit=1) > 0

    @_store_call
    async def create_owner_with_salon(self, user_data: Dict[str, Any], salon_data: Dict[str, Any]) -> Dict[str, Any]:
        async with await self.client.start_session() as session:
            async with session.start_transaction(write_concern=WriteConcern("majority")):
                user = dict(user_data)
                await self.db.users.insert_one(user, session=session)
                salon = dict(salon_data)
                salon["ownerId"] = str(user["_id"])
                await self.db.salons.insert_one(salon, session=session)

        created = _serialize(user)
        created["salon"] = _serialize(salon)
        return created

    @_store_call
    async def update_salon_working_hours(self, salon_id: str, working_hours: Dict[str, Any]) -> Dict[str, Any]:
        salon = await self.db.salons.find_one_and_update(
            {"_id": _object_id(salon_id, "Salon")},
            {"$set": {"workingHours": working_hours, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if salon is None:
            raise NotFoundError("Salon not found")
        return _serialize(salon)

    # Services

    @_store_call
    async def list_services(self, salon_id: str, active_only: bool = False) -> List[Dict[str, Any]]:
        query = {"salonId": salon_id}
        if active_only:
            query["active"] = True
        services = await self.db.services.find(query).to_list(length=None)
        return [_serialize(service) for service in services]

    @_store_call
    async def create_service(self, service_data: Dict[str, Any]) -> Dict[str, Any]:
        service = dict(service_data)
        await self.db.services.insert_one(service)
        return _serialize(service)

    @_store_call
    async def update_service(self, service_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        service = await self.db.services.find_one_and_update(
            {"_id": _object_id(service_id, "Service")},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )
        if service is None:
            raise NotFoundError("Service not found")
        return _serialize(service)

    # Bookings

    @_store_call
    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        booking = await self.db.bookings.find_one({"_id": _object_id(booking_id, "Booking")})
        if booking is None:
            raise NotFoundError("Booking not found")
        return _serialize(booking)

    @_store_call
    async def list_salon_bookings(self, salon_id: str) -> List[Dict[str, Any]]:
        cursor = self.db.bookings.find({"salonId": salon_id}).sort("date", DESCENDING)
        bookings = await cursor.to_list(length=None)
        return [_serialize(booking) for booking in bookings]

    # Users

    @_store_call
    async def get_user_by_auth_id(self, auth_id: str) -> Optional[Dict[str, Any]]:
        return _serialize(await self.db.users.find_one({"authId": auth_id}))

    @_store_call
    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return _serialize(await self.db.users.find_one({"email": email}))

    @_store_call
    async def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        user = dict(user_data)
        await self.db.users.insert_one(user)
        return _serialize(user)

    @_store_call
    async def set_user_auth_id(self, user_id: str, auth_id: str) -> Dict[str, Any]:
        user = await self.db.users.find_one_and_update(
            {"_id": _object_id(user_id, "User")},
            {"$set": {"authId": auth_id, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if user is None:
            raise NotFoundError("User not found")
        return _serialize(user)
