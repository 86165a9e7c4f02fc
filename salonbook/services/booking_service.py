from typing import Dict, Any, List
from datetime import datetime, time
from zoneinfo import ZoneInfo
import logging

from salonbook.core.exceptions import ForbiddenError, NotFoundError, SlotUnavailable
from salonbook.db.store import BookingStore
from salonbook.schemas.booking import AvailableSlotsRequest, BookingCreate, BookingStatus
from salonbook.scheduling.conflicts import Interval, booking_intervals, lookup_window
from salonbook.scheduling.slots import available_slots_for_day, fits_working_hours
from salonbook.services.salon_service import get_owned_salon

logger = logging.getLogger(__name__)

def to_wall_clock(instant: datetime, timezone: str) -> datetime:
    """
    Naive wall-clock datetime in the salon's timezone.

    Aware instants are converted; naive ones are already wall-clock.
    """
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)

async def get_bookable_service(store: BookingStore, salon_id: str, service_id: str) -> Dict[str, Any]:
    """
    Get an active service offered by the salon
    """
    service = await store.get_service(service_id)
    if service["salonId"] != salon_id or not service.get("active", True):
        raise NotFoundError("Service not found")
    return service

async def get_available_slots(store: BookingStore, request: AvailableSlotsRequest) -> List[str]:
    """
    Get the start times still free for a service on a date
    """
    service = await get_bookable_service(store, request.salonId, request.serviceId)
    working_hours = await store.get_salon_working_hours(request.salonId)

    window = lookup_window(datetime.combine(request.date, time.min))
    active = await store.find_active_bookings(request.salonId, window.start, window.end)

    return available_slots_for_day(
        working_hours,
        int(service["duration"]),
        booking_intervals(active),
        request.date,
    )

async def create_booking(store: BookingStore, booking_in: BookingCreate, timezone: str = "UTC") -> Dict[str, Any]:
    """
    Create a confirmed booking if the slot is still free.

    The conflict check runs again inside the store's atomic insert, so a slot
    taken since the client last listed availability raises SlotUnavailable.
    """
    service = await get_bookable_service(store, booking_in.salonId, booking_in.serviceId)
    working_hours = await store.get_salon_working_hours(booking_in.salonId)

    start = to_wall_clock(booking_in.date, timezone)
    duration = int(service["duration"])
    candidate = Interval.from_duration(start, duration)

    if not fits_working_hours(working_hours, candidate):
        raise SlotUnavailable("The requested time is outside the salon's working hours")

    booking_data = {
        "serviceId": service["id"],
        "date": start,
        "duration": duration,
        "status": BookingStatus.CONFIRMED.value,
        "totalAmount": float(service["price"]),
        "service": {
            "id": service["id"],
            "name": service["name"],
            "duration": duration,
            "price": float(service["price"]),
        },
    }

    customer = booking_in.customer()
    customer.email = customer.email.lower()

    booking = await store.insert_booking_if_free(booking_in.salonId, candidate, booking_data, customer)
    logger.info(f"Booking {booking['id']} confirmed for salon {booking_in.salonId} at {start.isoformat()}")
    return booking

async def get_salon_bookings(store: BookingStore, owner: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Get all bookings of the owner's salon, newest first
    """
    salon = await get_owned_salon(store, owner)
    return await store.list_salon_bookings(salon["id"])

async def update_booking_status(
    store: BookingStore,
    booking_id: str,
    new_status: BookingStatus,
    requested_by: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Set a booking's status on behalf of the salon owner.

    Any status may follow any other. CANCELLED, COMPLETED and NO_SHOW free
    the slot for later availability queries; the booking itself is kept.
    """
    booking = await store.get_booking(booking_id)
    salon = await store.get_salon(booking["salonId"])
    if salon["ownerId"] != requested_by["id"]:
        raise ForbiddenError("You don't have access to this booking")

    updated_booking = await store.update_booking_status(booking_id, new_status)
    logger.info(f"Booking {booking_id} status {booking['status']} -> {new_status.value}")
    return updated_booking
