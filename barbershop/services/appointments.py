"""Appointment service - booking lifecycle and conflict-serialized writes.

    PENDING --confirm--> CONFIRMED --complete--> COMPLETED
       |                    |
     cancel               cancel
       v                    v
    CANCELLED            CANCELLED

NO_SHOW is terminal and only set out of band. Creation holds the per-barber
lock (Store.lock_barber) across the overlap check and the insert.
"""

import logging
import time as _time
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import OperationalError

from ..clock import Clock
from ..config import settings
from ..errors import (
    AppointmentConflict,
    BarberUnavailable,
    EntityMissing,
    InvalidStatusTransition,
    OutsideWorkingHours,
    TimeInPast,
)
from ..models import ACTIVE_STATUSES, Appointment, AppointmentStatus, Barber, Role, Service, User
from ..policy import Action, Actor, Target, enforce
from ..store import Store

logger = logging.getLogger(__name__)

# action -> (allowed current statuses, resulting status)
TRANSITIONS = {
    "confirm": ({AppointmentStatus.PENDING}, AppointmentStatus.CONFIRMED),
    "complete": ({AppointmentStatus.CONFIRMED}, AppointmentStatus.COMPLETED),
    "cancel": ({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}, AppointmentStatus.CANCELLED),
}

TRANSITION_ACTIONS = {
    "confirm": Action.CONFIRM_APPOINTMENT,
    "complete": Action.COMPLETE_APPOINTMENT,
    "cancel": Action.CANCEL_APPOINTMENT,
}


def next_status(current: AppointmentStatus, action: str) -> Optional[AppointmentStatus]:
    """Resulting status, or None when the transition is not on the diagram."""
    allowed, result = TRANSITIONS[action]
    return result if current in allowed else None


class AppointmentService:
    def __init__(self, store: Store, clock: Clock):
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------

    def _load(self, appointment_id: int) -> Appointment:
        appointment = self.store.get_appointment(appointment_id)
        if not appointment:
            raise EntityMissing("Appointment", appointment_id)
        return appointment

    def _target(self, appointment: Appointment) -> Target:
        barber = self.store.get_barber(appointment.barber_id)
        return Target(
            client_id=appointment.client_id,
            barber_owner_id=barber.user_id if barber else None,
        )

    def get(self, appointment_id: int, actor: Actor) -> Appointment:
        appointment = self._load(appointment_id)
        enforce(actor, Action.VIEW_APPOINTMENT, self._target(appointment))
        return appointment

    def list_for_actor(self, actor: Actor, status: Optional[AppointmentStatus] = None) -> list[Appointment]:
        enforce(actor, Action.LIST_OWN_APPOINTMENTS)
        status_value = status.value if status else None
        logger.info("Listing appointments for actor %s (%s) status=%s", actor.id, actor.role.value, status_value)
        if actor.role == Role.CLIENT:
            return self.store.list_appointments(client_id=actor.id, status=status_value)
        if actor.role == Role.BARBER:
            barber_ids = self.store.barber_ids_owned_by(actor.id)
            if not barber_ids:
                logger.warning("No barber profile for user %s", actor.id)
                return []
            return self.store.list_appointments(barber_ids=barber_ids, status=status_value)
        return self.store.list_appointments(status=status_value)

    def list_all(self, actor: Actor, status: Optional[AppointmentStatus] = None) -> list[Appointment]:
        enforce(actor, Action.LIST_ALL_APPOINTMENTS)
        return self.store.list_appointments(status=status.value if status else None)

    def has_conflicts(self, barber_id: int, start: datetime, end: datetime, actor: Actor) -> bool:
        enforce(actor, Action.CHECK_CONFLICTS)
        conflicts = self.store.find_appointments_overlapping(barber_id, start, end, ACTIVE_STATUSES)
        if conflicts:
            logger.warning("Found %d conflicting appointments for barber %s", len(conflicts), barber_id)
        return bool(conflicts)

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def _resolve(self, client_id: int, barber_id: int, service_id: int) -> tuple[User, Barber, Service]:
        client = self.store.get_user(client_id)
        if not client or not client.is_active:
            raise EntityMissing("Client", client_id)
        barber = self.store.get_barber(barber_id)
        if not barber:
            raise EntityMissing("Barber", barber_id)
        service = self.store.get_service(service_id)
        if not service or not service.active:
            raise EntityMissing("Service", service_id)
        return client, barber, service

    def _check_working_window(self, barber: Barber, start: datetime, end: datetime) -> None:
        if not barber.has_working_window():
            logger.debug("Barber %s has no working window configured", barber.id)
            return
        if start.time() < barber.start_time or end.time() > barber.end_time or end.date() != start.date():
            raise OutsideWorkingHours(
                f"Appointment {start.time()}-{end.time()} is outside barber {barber.id} "
                f"working hours {barber.start_time}-{barber.end_time}"
            )

    def _insert(self, client: User, barber: Barber, service: Service, start: datetime, end: datetime, notes: Optional[str]) -> Appointment:
        """One locked transaction: overlap re-check, window check, insert."""
        try:
            self.store.lock_barber(barber.id)
            conflicts = self.store.find_appointments_overlapping(barber.id, start, end, ACTIVE_STATUSES)
            if conflicts:
                logger.warning(
                    "Conflict for barber %s at %s-%s with appointment %s",
                    barber.id, start, end, conflicts[0].id,
                )
                raise AppointmentConflict("The selected time is no longer available. Please choose another slot.")
            self._check_working_window(barber, start, end)

            now = self.clock.now()
            appointment = Appointment(
                client_id=client.id,
                barber_id=barber.id,
                service_id=service.id,
                start_time=start,
                end_time=end,
                status=AppointmentStatus.PENDING.value,
                notes=notes,
                total_price=service.price,
                created_at=now,
                updated_at=now,
            )
            self.store.add(appointment)
            self.store.commit()
        except Exception as e:
            self.store.rollback()
            raise e
        self.store.refresh(appointment)
        return appointment

    def create(
        self,
        client_id: int,
        barber_id: int,
        service_id: int,
        start: datetime,
        actor: Actor,
        notes: Optional[str] = None,
    ) -> Appointment:
        logger.info(
            "Creating appointment for client %s with barber %s at %s by actor %s",
            client_id, barber_id, start, actor.id,
        )
        enforce(actor, Action.CREATE_APPOINTMENT, Target(client_id=client_id))

        if start < self.clock.now():
            raise TimeInPast(start)

        client, barber, service = self._resolve(client_id, barber_id, service_id)
        if not barber.active or not barber.available:
            raise BarberUnavailable(f"Barber {barber.id} is not accepting appointments")

        end = start + timedelta(minutes=service.duration_minutes)

        attempts = max(1, settings.BOOKING_MAX_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                appointment = self._insert(client, barber, service, start, end, notes)
            except OperationalError as e:
                # lock wait or serialization failure; everything was rolled back
                logger.warning("Booking attempt %d/%d for barber %s failed: %s", attempt, attempts, barber.id, e)
                if attempt < attempts:
                    _time.sleep(settings.BOOKING_RETRY_BASE_DELAY * (2 ** (attempt - 1)))
                continue
            logger.info("Appointment %s created for client %s with barber %s", appointment.id, client.id, barber.id)
            return appointment

        raise AppointmentConflict("The selected time could not be reserved. Please try again.")

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------

    def _transition(self, appointment_id: int, action: str, actor: Actor) -> Appointment:
        logger.info("%s appointment %s by actor %s", action.capitalize(), appointment_id, actor.id)
        appointment = self._load(appointment_id)
        enforce(actor, TRANSITION_ACTIONS[action], self._target(appointment))

        current = AppointmentStatus(appointment.status)
        new = next_status(current, action)
        if new is None:
            raise InvalidStatusTransition(appointment.id, current.value, action)

        appointment.status = new.value
        appointment.updated_at = self.clock.now()
        try:
            self.store.commit()
        except Exception as e:
            self.store.rollback()
            raise e
        self.store.refresh(appointment)
        logger.info("Appointment %s is now %s", appointment.id, new.value)
        return appointment

    def confirm(self, appointment_id: int, actor: Actor) -> Appointment:
        return self._transition(appointment_id, "confirm", actor)

    def complete(self, appointment_id: int, actor: Actor) -> Appointment:
        return self._transition(appointment_id, "complete", actor)

    def cancel(self, appointment_id: int, actor: Actor) -> Appointment:
        return self._transition(appointment_id, "cancel", actor)
