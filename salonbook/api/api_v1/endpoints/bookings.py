from fastapi import APIRouter, Depends, status
from typing import Dict, Any

from salonbook.api.deps import get_settings, get_store
from salonbook.core.auth import require_salon_owner
from salonbook.core.config import Settings
from salonbook.db.store import BookingStore
from salonbook.schemas.booking import (
    AvailableSlotsRequest, AvailableSlotsResponse, BookingCreate,
    BookingEnvelope, BookingListEnvelope, BookingStatusUpdate
)
from salonbook.schemas.salon import SalonEnvelope
from salonbook.services.booking_service import (
    create_booking, get_available_slots, get_salon_bookings, update_booking_status
)
from salonbook.services.salon_service import get_salon_with_services

router = APIRouter()

@router.get("/salon/{code}", response_model=SalonEnvelope)
async def get_salon_by_code(code: str, store: BookingStore = Depends(get_store)):
    """
    Get a salon and its active services by public code (for clients)
    """
    salon = await get_salon_with_services(store, code)
    return {"salon": salon}

@router.post("/available-slots", response_model=AvailableSlotsResponse)
async def list_available_slots(
    slots_in: AvailableSlotsRequest,
    store: BookingStore = Depends(get_store),
):
    """
    Get the free start times ("HH:MM") for a service on a date
    """
    slots = await get_available_slots(store, slots_in)
    return {"slots": slots}

@router.post("/book", response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
async def book_slot(
    booking_in: BookingCreate,
    store: BookingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Create a confirmed booking

    - **date**: ISO start instant of the chosen slot
    - **customerEmail**: used to find or create the client
    """
    booking = await create_booking(store, booking_in, settings.SALON_TIMEZONE)
    return {"booking": booking}

@router.get("/salon-bookings", response_model=BookingListEnvelope)
async def list_salon_bookings(
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Get bookings for the current salon owner, newest first
    """
    bookings = await get_salon_bookings(store, current_user)
    return {"bookings": bookings}

@router.patch("/{booking_id}/status", response_model=BookingEnvelope)
async def change_booking_status(
    booking_id: str,
    status_in: BookingStatusUpdate,
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Update booking status (salon owner only)
    """
    booking = await update_booking_status(store, booking_id, status_in.status, current_user)
    return {"booking": booking}
