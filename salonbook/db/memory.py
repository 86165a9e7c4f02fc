import asyncio
import copy
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId

from salonbook.core.exceptions import NotFoundError, SlotUnavailable
from salonbook.db.store import BookingStore
from salonbook.schemas.booking import ACTIVE_STATUSES, BookingStatus, Customer
from salonbook.schemas.user import UserRole
from salonbook.scheduling.conflicts import Interval, booking_intervals, conflicts, lookup_window

logger = logging.getLogger(__name__)


class InMemoryBookingStore(BookingStore):
    """
    Single-process store. Writers for one salon are serialized by a per-salon
    asyncio.Lock held across read, conflict check and insert.
    """

    def __init__(self) -> None:
        self._salons: Dict[str, Dict[str, Any]] = {}
        self._services: Dict[str, Dict[str, Any]] = {}
        self._bookings: Dict[str, Dict[str, Any]] = {}
        self._users: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @staticmethod
    def _new_id() -> str:
        return str(ObjectId())

    @staticmethod
    def _copy(record: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(record) if record is not None else None

    def _require(self, collection: Dict[str, Dict[str, Any]], record_id: str, what: str) -> Dict[str, Any]:
        record = collection.get(record_id)
        if record is None:
            raise NotFoundError(f"{what} not found")
        return record

    # Availability engine

    async def find_active_bookings(self, salon_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        return [
            self._copy(booking)
            for booking in sorted(self._bookings.values(), key=lambda b: b["date"])
            if booking["salonId"] == salon_id
            and booking["status"] in ACTIVE_STATUSES
            and start <= booking["date"] < end
        ]

    async def insert_booking_if_free(
        self,
        salon_id: str,
        candidate: Interval,
        booking_data: Dict[str, Any],
        customer: Customer,
    ) -> Dict[str, Any]:
        async with self._locks[salon_id]:
            day_start = datetime.combine(candidate.start.date(), datetime.min.time())
            window = lookup_window(day_start)
            active = await self.find_active_bookings(salon_id, window.start, window.end)

            if conflicts(candidate, booking_intervals(active)):
                logger.info(f"Slot {candidate.start} rejected for salon {salon_id}: overlaps active booking")
                raise SlotUnavailable()

            client = self._find_user_by_email(customer.email)
            if client is None:
                client = {
                    "id": self._new_id(),
                    "authId": None,
                    "email": customer.email,
                    "name": customer.name,
                    "phone": customer.phone,
                    "role": UserRole.CLIENT.value,
                    "createdAt": datetime.utcnow(),
                }
                self._users[client["id"]] = client

            booking = copy.deepcopy(booking_data)
            booking["id"] = self._new_id()
            booking["salonId"] = salon_id
            booking["clientId"] = client["id"]
            booking["client"] = {
                "id": client["id"],
                "name": client["name"],
                "email": client["email"],
                "phone": client.get("phone"),
            }
            booking["createdAt"] = datetime.utcnow()
            self._bookings[booking["id"]] = booking
            return self._copy(booking)

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Dict[str, Any]:
        booking = self._require(self._bookings, booking_id, "Booking")
        booking["status"] = BookingStatus(status).value
        booking["updatedAt"] = datetime.utcnow()
        return self._copy(booking)

    async def get_salon_working_hours(self, salon_id: str) -> Dict[str, Any]:
        salon = self._require(self._salons, salon_id, "Salon")
        return self._copy(salon.get("workingHours") or {})

    async def get_service(self, service_id: str) -> Dict[str, Any]:
        return self._copy(self._require(self._services, service_id, "Service"))

    # Salons

    async def get_salon(self, salon_id: str) -> Dict[str, Any]:
        return self._copy(self._require(self._salons, salon_id, "Salon"))

    async def get_salon_by_code(self, code: str) -> Dict[str, Any]:
        for salon in self._salons.values():
            if salon["code"] == code:
                return self._copy(salon)
        raise NotFoundError("Salon not found")

    async def get_salon_by_owner(self, owner_id: str) -> Optional[Dict[str, Any]]:
        for salon in self._salons.values():
            if salon["ownerId"] == owner_id:
                return self._copy(salon)
        return None

    async def salon_code_exists(self, code: str) -> bool:
        return any(salon["code"] == code for salon in self._salons.values())

    async def create_owner_with_salon(self, user_data: Dict[str, Any], salon_data: Dict[str, Any]) -> Dict[str, Any]:
        user = copy.deepcopy(user_data)
        user["id"] = self._new_id()
        salon = copy.deepcopy(salon_data)
        salon["id"] = self._new_id()
        salon["ownerId"] = user["id"]
        self._users[user["id"]] = user
        self._salons[salon["id"]] = salon

        created = self._copy(user)
        created["salon"] = self._copy(salon)
        return created

    async def update_salon_working_hours(self, salon_id: str, working_hours: Dict[str, Any]) -> Dict[str, Any]:
        salon = self._require(self._salons, salon_id, "Salon")
        salon["workingHours"] = copy.deepcopy(working_hours)
        salon["updatedAt"] = datetime.utcnow()
        return self._copy(salon)

    # Services

    async def list_services(self, salon_id: str, active_only: bool = False) -> List[Dict[str, Any]]:
        return [
            self._copy(service)
            for service in self._services.values()
            if service["salonId"] == salon_id and (service["active"] or not active_only)
        ]

    async def create_service(self, service_data: Dict[str, Any]) -> Dict[str, Any]:
        service = copy.deepcopy(service_data)
        service["id"] = self._new_id()
        self._services[service["id"]] = service
        return self._copy(service)

    async def update_service(self, service_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        service = self._require(self._services, service_id, "Service")
        service.update(copy.deepcopy(update_data))
        return self._copy(service)

    # Bookings

    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        return self._copy(self._require(self._bookings, booking_id, "Booking"))

    async def list_salon_bookings(self, salon_id: str) -> List[Dict[str, Any]]:
        bookings = [b for b in self._bookings.values() if b["salonId"] == salon_id]
        bookings.sort(key=lambda b: b["date"], reverse=True)
        return [self._copy(b) for b in bookings]

    # Users

    def _find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        for user in self._users.values():
            if user["email"] == email:
                return user
        return None

    async def get_user_by_auth_id(self, auth_id: str) -> Optional[Dict[str, Any]]:
        for user in self._users.values():
            if user.get("authId") == auth_id:
                return self._copy(user)
        return None

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self._copy(self._find_user_by_email(email))

    async def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        user = copy.deepcopy(user_data)
        user["id"] = self._new_id()
        self._users[user["id"]] = user
        return self._copy(user)

    async def set_user_auth_id(self, user_id: str, auth_id: str) -> Dict[str, Any]:
        user = self._require(self._users, user_id, "User")
        user["authId"] = auth_id
        user["updatedAt"] = datetime.utcnow()
        return self._copy(user)
