"""Store - database operations for the booking core"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .models import Appointment, Barber, DayOfWeek, Service, User, WorkSchedule


def _status_values(statuses: Iterable) -> list[str]:
    return [getattr(s, "value", s) for s in statuses]


class Store:
    """Repository over one SQLAlchemy session. Callers own commit/rollback."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------

    def add(self, row):
        self.db.add(row)
        self.db.flush()
        return row

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, row) -> None:
        self.db.refresh(row)

    def lock_barber(self, barber_id: int) -> None:
        """Take the per-barber booking lock for the current transaction.

        The UPDATE holds a row lock until commit on server databases and the
        database write lock on SQLite, so concurrent bookings for the same
        barber run their overlap check one at a time.
        """
        self.db.execute(
            update(Barber)
            .where(Barber.id == barber_id)
            .values(booking_seq=Barber.booking_seq + 1)
            .execution_options(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # users / catalog
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_barber(self, barber_id: int) -> Optional[Barber]:
        return self.db.get(Barber, barber_id)

    def get_barber_by_user(self, user_id: int) -> Optional[Barber]:
        return self.db.query(Barber).filter(Barber.user_id == user_id).first()

    def list_barbers(self, active_only: bool = True) -> list[Barber]:
        q = self.db.query(Barber)
        if active_only:
            q = q.filter(Barber.active.is_(True))
        return q.order_by(Barber.id).all()

    def list_bookable_barbers(self) -> list[Barber]:
        return (
            self.db.query(Barber)
            .filter(Barber.active.is_(True), Barber.available.is_(True))
            .order_by(Barber.id)
            .all()
        )

    def get_service(self, service_id: int) -> Optional[Service]:
        return self.db.get(Service, service_id)

    def get_active_service_by_name(self, name: str) -> Optional[Service]:
        return (
            self.db.query(Service)
            .filter(Service.name == name, Service.active.is_(True))
            .first()
        )

    def list_services(self, active_only: bool = True) -> list[Service]:
        q = self.db.query(Service)
        if active_only:
            q = q.filter(Service.active.is_(True))
        return q.order_by(Service.name).all()

    # ------------------------------------------------------------------
    # schedules
    # ------------------------------------------------------------------

    def get_schedule(self, schedule_id: int) -> Optional[WorkSchedule]:
        return self.db.get(WorkSchedule, schedule_id)

    def find_schedule_for(self, barber_id: int, day_of_week: DayOfWeek) -> Optional[WorkSchedule]:
        return (
            self.db.query(WorkSchedule)
            .filter(WorkSchedule.barber_id == barber_id, WorkSchedule.day_of_week == day_of_week.value)
            .first()
        )

    def list_schedules(self, barber_id: int, active_only: bool = False) -> list[WorkSchedule]:
        q = self.db.query(WorkSchedule).filter(WorkSchedule.barber_id == barber_id)
        if active_only:
            q = q.filter(WorkSchedule.active.is_(True))
        # day_of_week is stored by name, so order in Python
        return sorted(q.all(), key=lambda s: DayOfWeek(s.day_of_week).ordinal)

    def list_active_schedules(self, barber_id: int) -> list[WorkSchedule]:
        return self.list_schedules(barber_id, active_only=True)

    def find_schedules_covering(self, day_of_week: DayOfWeek, at: time) -> list[WorkSchedule]:
        return (
            self.db.query(WorkSchedule)
            .join(Barber, Barber.id == WorkSchedule.barber_id)
            .filter(
                WorkSchedule.day_of_week == day_of_week.value,
                WorkSchedule.active.is_(True),
                WorkSchedule.start_time <= at,
                WorkSchedule.end_time >= at,
                Barber.active.is_(True),
            )
            .order_by(WorkSchedule.barber_id)
            .all()
        )

    # ------------------------------------------------------------------
    # appointments
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.get(Appointment, appointment_id)

    def find_appointments_overlapping(
        self, barber_id: int, start: datetime, end: datetime, statuses: Iterable
    ) -> list[Appointment]:
        return (
            self.db.query(Appointment)
            .filter(
                Appointment.barber_id == barber_id,
                Appointment.status.in_(_status_values(statuses)),
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
            .order_by(Appointment.start_time)
            .all()
        )

    def find_appointments_for_barber_on_date(self, barber_id: int, day: date) -> list[Appointment]:
        day_start = datetime.combine(day, time.min)
        return (
            self.db.query(Appointment)
            .filter(
                Appointment.barber_id == barber_id,
                Appointment.start_time >= day_start,
                Appointment.start_time < day_start + timedelta(days=1),
            )
            .order_by(Appointment.start_time)
            .all()
        )

    def list_appointments(
        self,
        client_id: Optional[int] = None,
        barber_ids: Optional[list[int]] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        q = self.db.query(Appointment)
        if client_id is not None:
            q = q.filter(Appointment.client_id == client_id)
        if barber_ids is not None:
            q = q.filter(Appointment.barber_id.in_(barber_ids))
        if status is not None:
            q = q.filter(Appointment.status == status)
        return q.order_by(Appointment.start_time).all()

    def barber_ids_owned_by(self, user_id: int) -> list[int]:
        return [b.id for b in self.db.query(Barber.id).filter(Barber.user_id == user_id).all()]


