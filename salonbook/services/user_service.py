from typing import Dict, Any
from datetime import datetime
import logging

from salonbook.core.exceptions import NotFoundError
from salonbook.db.store import BookingStore
from salonbook.schemas.user import SyncUserRequest, UserRole
from salonbook.services.salon_service import find_owned_salon

logger = logging.getLogger(__name__)

async def with_salon(store: BookingStore, user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Attach the user's owned salon (or None) under ``salon``
    """
    user["salon"] = await find_owned_salon(store, user)
    return user

async def sync_user(store: BookingStore, sync_in: SyncUserRequest) -> Dict[str, Any]:
    """
    Link an identity-provider account to a local user.

    Looks the user up by authId, then by e-mail (attaching the authId), and
    otherwise creates a CLIENT user.
    """
    user = await store.get_user_by_auth_id(sync_in.authId)
    if user:
        return await with_salon(store, user)

    email = sync_in.email.lower()
    user = await store.get_user_by_email(email)
    if user:
        logger.info(f"Attaching authId to existing user {user['id']}")
        user = await store.set_user_auth_id(user["id"], sync_in.authId)
        return await with_salon(store, user)

    user = await store.create_user({
        "authId": sync_in.authId,
        "email": email,
        "name": sync_in.name or email.split("@")[0],
        "phone": None,
        "role": UserRole.CLIENT.value,
        "createdAt": datetime.utcnow(),
    })
    logger.info(f"Created client user {user['id']}")
    return await with_salon(store, user)

async def get_profile(store: BookingStore, auth_id: str) -> Dict[str, Any]:
    """
    Get the local user for an identity with their salon
    """
    user = await store.get_user_by_auth_id(auth_id)
    if not user:
        raise NotFoundError("User not found")
    return await with_salon(store, user)
