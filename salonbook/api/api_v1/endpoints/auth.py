from fastapi import APIRouter, Depends, HTTPException, status
from typing import Dict, Any

from salonbook.api.deps import get_store
from salonbook.core.auth import get_identity
from salonbook.db.store import BookingStore
from salonbook.schemas.user import (
    RegisterRequest, RegisterResponse, SyncUserRequest, SyncUserResponse, UserEnvelope
)
from salonbook.services.salon_service import register_owner
from salonbook.services.user_service import get_profile, sync_user

router = APIRouter()

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    registration: RegisterRequest,
    identity: Dict[str, Any] = Depends(get_identity),
    store: BookingStore = Depends(get_store),
):
    """
    Register the signed-in identity as a salon owner and create their salon
    """
    if not identity.get("email"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token has no email address"
        )

    user = await register_owner(store, identity["authId"], identity["email"], registration)
    return {"message": "Registration successful", "user": user}

@router.post("/sync-user", response_model=SyncUserResponse)
async def sync_current_user(
    sync_in: SyncUserRequest,
    identity: Dict[str, Any] = Depends(get_identity),
    store: BookingStore = Depends(get_store),
):
    """
    Link the signed-in identity to a local user after login
    """
    if sync_in.authId != identity["authId"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="authId does not match the signed-in user"
        )

    user = await sync_user(store, sync_in)
    return {"success": True, "user": user}

@router.get("/me", response_model=UserEnvelope)
async def read_current_user(
    identity: Dict[str, Any] = Depends(get_identity),
    store: BookingStore = Depends(get_store),
):
    """
    Get the current user and their salon
    """
    user = await get_profile(store, identity["authId"])
    return {"user": user}
