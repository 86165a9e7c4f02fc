from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from salonbook.schemas.booking import BookingStatus, Customer
from salonbook.scheduling.conflicts import Interval


class BookingStore(ABC):
    """
    Persistence collaborator for salons, services, users and bookings.

    Records are plain dicts with a string ``id``. Getters for salons, services
    and bookings raise NotFoundError; user lookups return None when missing.
    Infrastructure failures surface as StoreUnavailable.
    """

    # Availability engine

    @abstractmethod
    async def find_active_bookings(
        self, salon_id: str, start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        """PENDING/CONFIRMED bookings of the salon with start <= date < end."""
        raise NotImplementedError

    @abstractmethod
    async def insert_booking_if_free(
        self,
        salon_id: str,
        candidate: Interval,
        booking_data: Dict[str, Any],
        customer: Customer,
    ) -> Dict[str, Any]:
        """
        Atomically resolve the client by e-mail, re-check the candidate against
        the salon's active bookings and insert the booking.

        Linearizable per salon: of two overlapping concurrent inserts exactly
        one succeeds, the other raises SlotUnavailable. The client record and
        the booking are written together or not at all.
        """
        raise NotImplementedError

    @abstractmethod
    async def update_booking_status(
        self, booking_id: str, status: BookingStatus
    ) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def get_salon_working_hours(self, salon_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def get_service(self, service_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    # Salons

    @abstractmethod
    async def get_salon(self, salon_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def get_salon_by_code(self, code: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def get_salon_by_owner(self, owner_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def salon_code_exists(self, code: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def create_owner_with_salon(
        self, user_data: Dict[str, Any], salon_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Insert an owner and their salon together; returns the user with ``salon``."""
        raise NotImplementedError

    @abstractmethod
    async def update_salon_working_hours(
        self, salon_id: str, working_hours: Dict[str, Any]
    ) -> Dict[str, Any]:
        raise NotImplementedError

    # Services

    @abstractmethod
    async def list_services(
        self, salon_id: str, active_only: bool = False
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def create_service(self, service_data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def update_service(
        self, service_id: str, update_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        raise NotImplementedError

    # Bookings

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def list_salon_bookings(self, salon_id: str) -> List[Dict[str, Any]]:
        """All bookings of the salon, newest first."""
        raise NotImplementedError

    # Users

    @abstractmethod
    async def get_user_by_auth_id(self, auth_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def set_user_auth_id(self, user_id: str, auth_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections. Called once at process shutdown."""
        return None
