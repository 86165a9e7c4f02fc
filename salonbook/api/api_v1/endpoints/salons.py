from fastapi import APIRouter, Depends
from typing import Dict, Any

from salonbook.api.deps import get_store
from salonbook.core.auth import require_salon_owner
from salonbook.db.store import BookingStore
from salonbook.schemas.salon import SalonEnvelope, WorkingHours
from salonbook.services.salon_service import get_owned_salon, update_working_hours

router = APIRouter()

@router.get("/me", response_model=SalonEnvelope)
async def get_my_salon(
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Get the current owner's salon
    """
    salon = await get_owned_salon(store, current_user)
    return {"salon": salon}

@router.put("/me/working-hours", response_model=SalonEnvelope)
async def update_my_working_hours(
    working_hours: WorkingHours,
    current_user: Dict[str, Any] = Depends(require_salon_owner),
    store: BookingStore = Depends(get_store),
):
    """
    Replace the current owner's weekly working hours

    Set open == close to mark a day closed; omitted days use 09:00-18:00.
    """
    salon = await update_working_hours(store, current_user, working_hours)
    return {"salon": salon}
