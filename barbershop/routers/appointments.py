# barbershop/routers/appointments.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from .. import schemas
from ..deps import RequireAdmin, RequireBarberOrAdmin, RequireClientOrAdmin, get_appointment_service, get_current_actor
from ..models import Appointment, AppointmentStatus
from ..policy import Actor
from ..services.appointments import AppointmentService
from ..store import Store

router = APIRouter(prefix="/appointments", tags=["appointments"])


def appointment_out(store: Store, appt: Appointment) -> schemas.AppointmentOut:
    client = store.get_user(appt.client_id)
    barber = store.get_barber(appt.barber_id)
    service = store.get_service(appt.service_id)
    return schemas.AppointmentOut(
        id=appt.id,
        client_id=appt.client_id,
        client_name=client.full_name if client else None,
        client_email=client.email if client else None,
        barber_id=appt.barber_id,
        barber_name=barber.display_name if barber else None,
        service_id=appt.service_id,
        service_name=service.name if service else None,
        service_duration=service.duration_minutes if service else None,
        start_time=appt.start_time,
        end_time=appt.end_time,
        status=appt.status,
        notes=appt.notes,
        total_price=appt.total_price,
        created_at=appt.created_at,
        updated_at=appt.updated_at,
    )


@router.post("", response_model=schemas.AppointmentOut, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: schemas.AppointmentCreate,
    actor: Actor = Depends(RequireClientOrAdmin),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    appt = appointments.create(
        payload.client_id, payload.barber_id, payload.service_id, payload.start_time, actor, notes=payload.notes
    )
    return appointment_out(appointments.store, appt)


@router.get("", response_model=List[schemas.AppointmentOut])
def list_all_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    actor: Actor = Depends(RequireAdmin),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return [appointment_out(appointments.store, a) for a in appointments.list_all(actor, status_filter)]


@router.get("/my-appointments", response_model=List[schemas.AppointmentOut])
def my_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return [appointment_out(appointments.store, a) for a in appointments.list_for_actor(actor, status_filter)]


@router.get("/barber/{barber_id}/conflicts", response_model=bool)
def check_conflicts(
    barber_id: int,
    start_time: datetime = Query(..., alias="startTime"),
    end_time: datetime = Query(..., alias="endTime"),
    actor: Actor = Depends(RequireBarberOrAdmin),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return appointments.has_conflicts(barber_id, start_time, end_time, actor)


@router.get("/{appointment_id}", response_model=schemas.AppointmentOut)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return appointment_out(appointments.store, appointments.get(appointment_id, actor))


@router.patch("/{appointment_id}/cancel", response_model=schemas.AppointmentOut)
def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return appointment_out(appointments.store, appointments.cancel(appointment_id, actor))


@router.patch("/{appointment_id}/confirm", response_model=schemas.AppointmentOut)
def confirm_appointment(
    appointment_id: int,
    actor: Actor = Depends(RequireBarberOrAdmin),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return appointment_out(appointments.store, appointments.confirm(appointment_id, actor))


@router.patch("/{appointment_id}/complete", response_model=schemas.AppointmentOut)
def complete_appointment(
    appointment_id: int,
    actor: Actor = Depends(RequireBarberOrAdmin),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    return appointment_out(appointments.store, appointments.complete(appointment_id, actor))
