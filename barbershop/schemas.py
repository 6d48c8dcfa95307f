from datetime import datetime, date, time
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import AppointmentStatus, DayOfWeek

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

def _naive(value: datetime) -> datetime:
    # wall-clock times only; an offset, if sent, is dropped
    return value.replace(tzinfo=None) if value.tzinfo else value

class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    first_name: Optional[str] = None
    last_name: Optional[str] = None

class UserOut(CamelModel):
    id: int
    email: EmailStr
    first_name: Optional[str]
    last_name: Optional[str]
    role: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class ServiceCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0)
    duration_minutes: int = Field(gt=0)

class ServiceUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    active: Optional[bool] = None

class ServiceOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int
    active: bool

class BarberCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: str
    specialties: Optional[str] = None
    experience_years: Optional[int] = Field(default=None, ge=0)
    phone_number: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

class BarberUpdate(CamelModel):
    display_name: Optional[str] = None
    specialties: Optional[str] = None
    experience_years: Optional[int] = Field(default=None, ge=0)
    phone_number: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    active: Optional[bool] = None

class BarberAvailabilityUpdate(CamelModel):
    available: bool

class BarberOut(CamelModel):
    id: int
    user_id: int
    display_name: str
    specialties: Optional[str] = None
    experience_years: Optional[int] = None
    phone_number: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    available: bool
    active: bool

class WorkScheduleCreate(CamelModel):
    barber_id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    active: bool = True

class MyScheduleCreate(CamelModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    active: bool = True

class WorkScheduleUpdate(CamelModel):
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    active: Optional[bool] = None

class WorkScheduleOut(CamelModel):
    id: int
    barber_id: int
    day_of_week: DayOfWeek
    day_display_name: str
    start_time: time
    end_time: time
    active: bool
    working_minutes: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class AvailableSlotOut(CamelModel):
    barber_id: int
    barber_name: Optional[str] = None
    date: date
    start_time: time
    end_time: time
    start_date_time: datetime
    end_date_time: datetime
    duration_minutes: int
    available: bool = True

class DaySummaryOut(CamelModel):
    date: date
    day_of_week: DayOfWeek
    available_slots: int
    has_availability: bool
    first_available_time: Optional[time] = None
    last_available_time: Optional[time] = None

class AppointmentCreate(CamelModel):
    client_id: int
    barber_id: int
    service_id: int
    start_time: datetime
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("start_time")
    @classmethod
    def strip_offset(cls, v: datetime) -> datetime:
        return _naive(v)

class AppointmentOut(CamelModel):
    id: int
    client_id: int
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    barber_id: int
    barber_name: Optional[str] = None
    service_id: int
    service_name: Optional[str] = None
    service_duration: Optional[int] = None
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    total_price: float
    created_at: datetime
    updated_at: datetime
