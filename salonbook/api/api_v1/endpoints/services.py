from fastapi import APIRouter, Depends, status
from typing import Dict, Any

from salonbook.api.deps import get_store
from salonbook.core.auth import require_salon_owner
from salonbook.db.store import BookingStore
from salonbook.schemas.service import (
    ServiceCreate, ServiceUpdate, ServiceEnvelope, ServiceListEnvelope
)
from salonbook.services.catalog_service import (
    get_active_services, get_owner_services, create_service,
    update_service, deactivate_service
)

router = APIRouter()

@router.get("/salon/{salon_id}", response_model=ServiceListEnvelope)
async def get_services_by_salon(salon_id: str, store: BookingStore = Depends(get_store)):
    """
    Get all active services offered by a salon
    """
    services = await get_active_services(store, salon_id)
    return {"services": services}

@router.get("/my-services", response_model=ServiceListEnvelope)
async def get_my_services(
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Get all services of the current owner's salon, including inactive ones
    """
    services = await get_owner_services(store, current_user)
    return {"services": services}

@router.post("", response_model=ServiceEnvelope, status_code=status.HTTP_201_CREATED)
async def add_salon_service(
    service_in: ServiceCreate,
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Add a new service to the current owner's salon
    """
    service = await create_service(store, current_user, service_in)
    return {"service": service}

@router.put("/{service_id}", response_model=ServiceEnvelope)
async def update_salon_service(
    service_id: str,
    service_update: ServiceUpdate,
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Update an existing service of the current owner's salon
    """
    service = await update_service(store, current_user, service_id, service_update)
    return {"service": service}

@router.delete("/{service_id}", response_model=Dict[str, Any])
async def delete_salon_service(
    service_id: str,
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Remove a service from booking (soft delete)
    """
    await deactivate_service(store, current_user, service_id)
    return {"message": "Service deleted successfully"}
