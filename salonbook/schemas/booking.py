from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import date as date_type, datetime
from enum import Enum

class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

# Only these statuses occupy a slot
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

class AvailableSlotsRequest(BaseModel):
    salonId: str
    serviceId: str
    date: date_type

class AvailableSlotsResponse(BaseModel):
    slots: List[str]

class Customer(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None

class BookingCreate(BaseModel):
    salonId: str
    serviceId: str
    date: datetime
    customerName: str = Field(..., min_length=1)
    customerEmail: EmailStr
    customerPhone: Optional[str] = None

    def customer(self) -> Customer:
        return Customer(
            name=self.customerName,
            email=self.customerEmail,
            phone=self.customerPhone,
        )

class BookingStatusUpdate(BaseModel):
    status: BookingStatus

class ServiceSummary(BaseModel):
    id: str
    name: str
    duration: int
    price: float

class ClientSummary(BaseModel):
    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None

class BookingResponse(BaseModel):
    id: str
    salonId: str
    serviceId: str
    clientId: str
    date: datetime
    duration: int
    status: BookingStatus
    totalAmount: float
    service: Optional[ServiceSummary] = None
    client: Optional[ClientSummary] = None
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    class Config:
        populate_by_name = True

class BookingEnvelope(BaseModel):
    booking: BookingResponse

class BookingListEnvelope(BaseModel):
    bookings: List[BookingResponse]
