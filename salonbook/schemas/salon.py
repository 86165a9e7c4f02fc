from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime

from salonbook.schemas.service import ServiceResponse
from salonbook.scheduling.slots import parse_clock

class DayHours(BaseModel):
    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        try:
            return parse_clock(value).strftime("%H:%M")
        except ValueError:
            raise ValueError("Time must be in HH:MM 24h format")

    @model_validator(mode="after")
    def validate_order(self) -> "DayHours":
        # open == close marks a closed day
        if parse_clock(self.close) < parse_clock(self.open):
            raise ValueError("Closing time must not be before opening time")
        return self

class WorkingHours(BaseModel):
    monday: Optional[DayHours] = None
    tuesday: Optional[DayHours] = None
    wednesday: Optional[DayHours] = None
    thursday: Optional[DayHours] = None
    friday: Optional[DayHours] = None
    saturday: Optional[DayHours] = None
    sunday: Optional[DayHours] = None

class SalonResponse(BaseModel):
    id: str
    ownerId: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    code: str
    workingHours: Dict[str, DayHours] = Field(default_factory=dict)
    services: Optional[List[ServiceResponse]] = None
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    class Config:
        populate_by_name = True

class SalonEnvelope(BaseModel):
    salon: SalonResponse
