from typing import Dict, Any, List
from datetime import datetime
import logging

from salonbook.core.exceptions import NotFoundError
from salonbook.db.store import BookingStore
from salonbook.schemas.service import ServiceCreate, ServiceUpdate
from salonbook.services.salon_service import get_owned_salon

logger = logging.getLogger(__name__)

async def get_active_services(store: BookingStore, salon_id: str) -> List[Dict[str, Any]]:
    """
    Get a salon's active services sorted by name
    """
    await store.get_salon(salon_id)
    services = await store.list_services(salon_id, active_only=True)
    return sorted(services, key=lambda s: s["name"].lower())

async def get_owner_services(store: BookingStore, owner: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Get every service of the owner's salon, newest first
    """
    salon = await get_owned_salon(store, owner)
    services = await store.list_services(salon["id"])
    return sorted(services, key=lambda s: s["createdAt"], reverse=True)

async def create_service(store: BookingStore, owner: Dict[str, Any], service_in: ServiceCreate) -> Dict[str, Any]:
    """
    Add a service to the owner's salon
    """
    salon = await get_owned_salon(store, owner)

    service_data = service_in.model_dump()
    service_data["salonId"] = salon["id"]
    service_data["active"] = True
    service_data["createdAt"] = datetime.utcnow()

    service = await store.create_service(service_data)
    logger.info(f"Service {service['id']} created for salon {salon['id']}")
    return service

async def _get_owned_service(store: BookingStore, owner: Dict[str, Any], service_id: str) -> Dict[str, Any]:
    salon = await get_owned_salon(store, owner)
    service = await store.get_service(service_id)
    if service["salonId"] != salon["id"]:
        raise NotFoundError("Service not found")
    return service

async def update_service(
    store: BookingStore,
    owner: Dict[str, Any],
    service_id: str,
    service_update: ServiceUpdate,
) -> Dict[str, Any]:
    """
    Update a service of the owner's salon.

    Existing bookings keep the duration and price they were made with.
    """
    service = await _get_owned_service(store, owner, service_id)

    # Update only provided fields
    update_data = service_update.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        return service

    update_data["updatedAt"] = datetime.utcnow()
    return await store.update_service(service_id, update_data)

async def deactivate_service(store: BookingStore, owner: Dict[str, Any], service_id: str) -> Dict[str, Any]:
    """
    Soft delete a service so it is no longer bookable
    """
    await _get_owned_service(store, owner, service_id)
    service = await store.update_service(service_id, {"active": False, "updatedAt": datetime.utcnow()})
    logger.info(f"Service {service_id} deactivated")
    return service
