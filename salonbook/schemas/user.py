from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from enum import Enum

from salonbook.schemas.salon import SalonResponse

class UserRole(str, Enum):
    CLIENT = "CLIENT"
    SALON_OWNER = "SALON_OWNER"

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    salonName: str = Field(..., min_length=1)

class SyncUserRequest(BaseModel):
    authId: str = Field(..., min_length=1)
    email: EmailStr
    name: Optional[str] = None

class UserResponse(BaseModel):
    id: str
    email: EmailStr
    name: str
    phone: Optional[str] = None
    role: UserRole
    salon: Optional[SalonResponse] = None

    class Config:
        populate_by_name = True

class UserEnvelope(BaseModel):
    user: UserResponse

class RegisterResponse(BaseModel):
    message: str
    user: UserResponse

class SyncUserResponse(BaseModel):
    success: bool
    user: UserResponse
