from typing import Dict, Any, Optional
from datetime import datetime
import logging
import random
import string

from salonbook.core.exceptions import BookingError
from salonbook.db.store import BookingStore
from salonbook.schemas.salon import WorkingHours
from salonbook.schemas.user import RegisterRequest, UserRole
from salonbook.scheduling.slots import DEFAULT_WORKING_HOURS

logger = logging.getLogger(__name__)

SALON_CODE_LENGTH = 6

def generate_salon_code() -> str:
    """
    Generate a short upper-case code clients use to find a salon
    """
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=SALON_CODE_LENGTH))

async def get_owned_salon(store: BookingStore, owner: Dict[str, Any]) -> Dict[str, Any]:
    """
    Get the salon owned by the user, failing when there is none
    """
    salon = await store.get_salon_by_owner(owner["id"])
    if not salon:
        raise BookingError("No salon found for user")
    return salon

async def get_salon_with_services(store: BookingStore, code: str) -> Dict[str, Any]:
    """
    Get a salon by its public code together with its active services
    """
    salon = await store.get_salon_by_code(code.strip().upper())
    services = await store.list_services(salon["id"], active_only=True)
    salon["services"] = sorted(services, key=lambda s: s["name"].lower())
    return salon

async def register_owner(
    store: BookingStore,
    auth_id: str,
    email: str,
    registration: RegisterRequest,
) -> Dict[str, Any]:
    """
    Create a salon owner and their salon for an already verified identity
    """
    email = email.lower()
    if await store.get_user_by_auth_id(auth_id) or await store.get_user_by_email(email):
        raise BookingError("User already exists. Please login instead.")

    code = generate_salon_code()
    while await store.salon_code_exists(code):
        code = generate_salon_code()

    now = datetime.utcnow()
    user_data = {
        "authId": auth_id,
        "email": email,
        "name": registration.name,
        "phone": registration.phone,
        "role": UserRole.SALON_OWNER.value,
        "createdAt": now,
    }
    salon_data = {
        "name": registration.salonName,
        "email": email,
        "phone": registration.phone or "",
        "code": code,
        "workingHours": DEFAULT_WORKING_HOURS,
        "createdAt": now,
    }

    user = await store.create_owner_with_salon(user_data, salon_data)
    logger.info(f"Salon {user['salon']['id']} created with code {code} for owner {user['id']}")
    return user

async def update_working_hours(
    store: BookingStore,
    owner: Dict[str, Any],
    working_hours: WorkingHours,
) -> Dict[str, Any]:
    """
    Replace the owner's weekly working hours.

    Weekdays left out fall back to the default hours in availability queries.
    """
    salon = await get_owned_salon(store, owner)
    hours = working_hours.model_dump(exclude_none=True)
    return await store.update_salon_working_hours(salon["id"], hours)

async def find_owned_salon(store: BookingStore, user: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Get the user's salon, if any, for profile responses
    """
    if user.get("role") != UserRole.SALON_OWNER.value:
        return None
    return await store.get_salon_by_owner(user["id"])
