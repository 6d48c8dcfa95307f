# barbershop/routers/schedules.py
from datetime import time
from typing import List

from fastapi import APIRouter, Depends, Query, status

from .. import schemas
from ..deps import RequireBarber, RequireBarberOrAdmin, get_current_actor, get_schedule_service
from ..models import DayOfWeek
from ..policy import Actor
from ..services.schedules import ScheduleService

router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.get("/available", response_model=List[schemas.WorkScheduleOut])
def barbers_working_at(
    day_of_week: DayOfWeek = Query(..., alias="dayOfWeek"),
    at: time = Query(..., alias="time"),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    return schedules.find_available_at(day_of_week, at)


@router.get("/my-schedules", response_model=List[schemas.WorkScheduleOut])
def my_schedules(actor: Actor = Depends(RequireBarber), schedules: ScheduleService = Depends(get_schedule_service)):
    return schedules.list_for_actor(actor)


@router.post("/my-schedules", response_model=schemas.WorkScheduleOut, status_code=status.HTTP_201_CREATED)
def create_my_schedule(
    payload: schemas.MyScheduleCreate,
    actor: Actor = Depends(RequireBarber),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    return schedules.create_for_actor(payload.day_of_week, payload.start_time, payload.end_time, actor, payload.active)


@router.get("/barber/{barber_id}", response_model=List[schemas.WorkScheduleOut])
def barber_schedules(barber_id: int, actor: Actor = Depends(get_current_actor), schedules: ScheduleService = Depends(get_schedule_service)):
    return schedules.list_by_barber(barber_id, actor)


@router.get("/barber/{barber_id}/active", response_model=List[schemas.WorkScheduleOut])
def barber_active_schedules(barber_id: int, schedules: ScheduleService = Depends(get_schedule_service)):
    return schedules.list_active_by_barber(barber_id)


@router.get("/barber/{barber_id}/available", response_model=bool)
def is_barber_available(
    barber_id: int,
    day_of_week: DayOfWeek = Query(..., alias="dayOfWeek"),
    at: time = Query(..., alias="time"),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    return schedules.is_barber_available_at(barber_id, day_of_week, at)


@router.get("/{schedule_id}", response_model=schemas.WorkScheduleOut, dependencies=[Depends(RequireBarberOrAdmin)])
def get_schedule(schedule_id: int, schedules: ScheduleService = Depends(get_schedule_service)):
    return schedules.get(schedule_id)


@router.post("", response_model=schemas.WorkScheduleOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: schemas.WorkScheduleCreate,
    actor: Actor = Depends(RequireBarberOrAdmin),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    return schedules.create(
        payload.barber_id, payload.day_of_week, payload.start_time, payload.end_time, actor, payload.active
    )


@router.put("/{schedule_id}", response_model=schemas.WorkScheduleOut)
def update_schedule(
    schedule_id: int,
    payload: schemas.WorkScheduleUpdate,
    actor: Actor = Depends(RequireBarberOrAdmin),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    return schedules.update(
        schedule_id, actor,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time,
        end_time=payload.end_time,
        active=payload.active,
    )


@router.delete("/{schedule_id}", response_model=schemas.WorkScheduleOut)
def delete_schedule(
    schedule_id: int,
    actor: Actor = Depends(RequireBarberOrAdmin),
    schedules: ScheduleService = Depends(get_schedule_service),
):
    return schedules.delete(schedule_id, actor)
