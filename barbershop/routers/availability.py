# barbershop/routers/availability.py
from datetime import date, time
from typing import List

from fastapi import APIRouter, Depends, Query

from .. import schemas
from ..deps import get_availability_service
from ..services.availability import AvailabilityService, Slot

router = APIRouter(prefix="/availability", tags=["availability"])


def slot_out(slot: Slot) -> schemas.AvailableSlotOut:
    return schemas.AvailableSlotOut(
        barber_id=slot.barber_id,
        barber_name=slot.barber_name,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        start_date_time=slot.start_datetime,
        end_date_time=slot.end_datetime,
        duration_minutes=slot.duration_minutes,
    )


@router.get("/barber/{barber_id}", response_model=List[schemas.AvailableSlotOut])
def barber_slots(
    barber_id: int,
    day: date = Query(..., alias="date"),
    duration: int = Query(...),
    bookable_only: bool = Query(False, alias="bookableOnly"),
    availability: AvailabilityService = Depends(get_availability_service),
):
    if bookable_only:
        return [slot_out(s) for s in availability.bookable_slots(barber_id, day, duration)]
    return [slot_out(s) for s in availability.available_slots(barber_id, day, duration)]


@router.get("/barbers", response_model=List[schemas.AvailableSlotOut])
def barbers_at(
    day: date = Query(..., alias="date"),
    at: time = Query(..., alias="time"),
    duration: int = Query(...),
    availability: AvailabilityService = Depends(get_availability_service),
):
    return [slot_out(s) for s in availability.available_barbers_at(day, at, duration)]


@router.get("/barber/{barber_id}/slot", response_model=bool)
def slot_free(
    barber_id: int,
    day: date = Query(..., alias="date"),
    start_time: time = Query(..., alias="startTime"),
    duration: int = Query(...),
    availability: AvailabilityService = Depends(get_availability_service),
):
    return availability.is_slot_free(barber_id, day, start_time, duration)


@router.get("/barber/{barber_id}/summary", response_model=List[schemas.DaySummaryOut])
def summary(
    barber_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    duration: int = Query(30),
    availability: AvailabilityService = Depends(get_availability_service),
):
    return [
        schemas.DaySummaryOut(
            date=d.date,
            day_of_week=d.day_of_week,
            available_slots=d.available_slots,
            has_availability=d.has_availability,
            first_available_time=d.first_available_time,
            last_available_time=d.last_available_time,
        )
        for d in availability.availability_summary(barber_id, start_date, end_date, duration)
    ]


@router.get("/barber/{barber_id}/next-available", response_model=List[schemas.AvailableSlotOut])
def next_available(
    barber_id: int,
    duration: int = Query(30),
    limit: int = Query(5),
    availability: AvailabilityService = Depends(get_availability_service),
):
    return [slot_out(s) for s in availability.next_available_slots(barber_id, duration, limit)]
