from fastapi import Request

from salonbook.core.config import Settings
from salonbook.db.store import BookingStore


def get_store(request: Request) -> BookingStore:
    """Store constructed at start-up and held on the application state."""
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
