from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    duration: int = Field(..., gt=0, le=1440)  # Duration in minutes, at most a day

class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, gt=0, le=1440)
    active: Optional[bool] = None

class ServiceResponse(BaseModel):
    id: str
    salonId: str
    name: str
    description: Optional[str] = None
    price: float
    duration: int
    active: bool
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    class Config:
        populate_by_name = True

class ServiceEnvelope(BaseModel):
    service: ServiceResponse

class ServiceListEnvelope(BaseModel):
    services: List[ServiceResponse]
