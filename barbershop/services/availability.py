"""Availability service - bookable slot enumeration.

Slots tile the barber's weekly schedule for the day at multiples of the
requested duration, starting at the schedule's start time:

    schedule 09:00-18:00, duration 30  ->  09:00, 09:30, ..., 17:30
    schedule 09:00-18:00, duration 45  ->  09:00, 09:45, ..., 17:15

The grid never shifts to pack around existing appointments, so a slot that
overlaps a PENDING or CONFIRMED appointment is simply dropped. Overlap is
judged on full datetimes, so a booking running past midnight still blocks
the slots it covers on either day.

`available_slots` depends only on the schedule, the blocking appointments
and the duration. `bookable_slots` further drops slots that create() would
reject anyway: ones already started today and ones outside the barber's
working window. Both are advisory; the appointment create transaction is
the authority.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..clock import Clock
from ..config import settings
from ..errors import AvailabilityInputInvalid, EntityMissing
from ..models import ACTIVE_STATUSES, Appointment, Barber, DayOfWeek, WorkSchedule
from ..store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    barber_id: int
    date: date
    start_time: time
    end_time: time
    duration_minutes: int
    barber_name: Optional[str] = field(default=None, compare=False)

    @property
    def start_datetime(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def end_datetime(self) -> datetime:
        return datetime.combine(self.date, self.end_time)

    def contains(self, at: time) -> bool:
        return self.start_time <= at < self.end_time

    def overlaps(self, appointment: Appointment) -> bool:
        return (
            self.start_datetime < appointment.end_time
            and self.end_datetime > appointment.start_time
        )


@dataclass(frozen=True)
class DaySummary:
    date: date
    day_of_week: DayOfWeek
    available_slots: int
    first_available_time: Optional[time] = None
    last_available_time: Optional[time] = None

    @property
    def has_availability(self) -> bool:
        return self.available_slots > 0


def generate_slots(schedule: WorkSchedule, day: date, duration_minutes: int, barber_id: int) -> list[Slot]:
    slots = []
    step = timedelta(minutes=duration_minutes)
    current = datetime.combine(day, schedule.start_time)
    end = datetime.combine(day, schedule.end_time)
    while current + step <= end:
        slots.append(Slot(barber_id, day, current.time(), (current + step).time(), duration_minutes))
        current += step
    return slots


def filter_blocked(slots: list[Slot], appointments: list[Appointment]) -> list[Slot]:
    blocking = [a for a in appointments if a.status in {s.value for s in ACTIVE_STATUSES}]
    return [slot for slot in slots if not any(slot.overlaps(a) for a in blocking)]


class AvailabilityService:
    def __init__(self, store: Store, clock: Clock):
        self.store = store
        self.clock = clock

    def _validate_date_and_duration(self, day: date, duration_minutes: int) -> None:
        if duration_minutes is None or not 1 <= duration_minutes <= settings.MAX_SLOT_DURATION_MINUTES:
            raise AvailabilityInputInvalid(
                "durationMinutes", duration_minutes,
                f"must be between 1 and {settings.MAX_SLOT_DURATION_MINUTES} minutes",
            )
        if day is None:
            raise AvailabilityInputInvalid("date", None, "date is required")
        if day < self.clock.today():
            raise AvailabilityInputInvalid("date", day.isoformat(), "date must be today or in the future")

    def _barber(self, barber_id: int) -> Barber:
        if barber_id is None or barber_id <= 0:
            raise AvailabilityInputInvalid("barberId", barber_id, "must be a positive id")
        barber = self.store.get_barber(barber_id)
        if not barber:
            raise EntityMissing("Barber", barber_id)
        if not barber.active:
            raise AvailabilityInputInvalid("barberId", barber_id, "barber is not active")
        return barber

    def _drop_unbookable(self, slots: list[Slot], barber: Barber, day: date) -> list[Slot]:
        if day == self.clock.today():
            now = self.clock.now().time()
            slots = [s for s in slots if s.start_time >= now]
        if barber.has_working_window():
            slots = [s for s in slots if barber.start_time <= s.start_time and s.end_time <= barber.end_time]
        return slots

    def _slots_for(self, barber: Barber, day: date, duration_minutes: int) -> list[Slot]:
        if not barber.available:
            return []
        schedule = self.store.find_schedule_for(barber.id, DayOfWeek.of(day))
        if schedule is None or not schedule.active:
            logger.info("No schedule for barber %s on %s", barber.id, DayOfWeek.of(day).value)
            return []

        day_start = datetime.combine(day, time.min)
        blocking = self.store.find_appointments_overlapping(
            barber.id, day_start, day_start + timedelta(days=1), ACTIVE_STATUSES
        )
        candidates = generate_slots(schedule, day, duration_minutes, barber.id)
        free = filter_blocked(candidates, blocking)
        logger.debug(
            "Barber %s on %s: %d candidate slots, %d free",
            barber.id, day.isoformat(), len(candidates), len(free),
        )
        return free

    def available_slots(self, barber_id: int, day: date, duration_minutes: int) -> list[Slot]:
        logger.info("Computing slots for barber %s on %s (%s min)", barber_id, day, duration_minutes)
        self._validate_date_and_duration(day, duration_minutes)
        barber = self._barber(barber_id)
        return self._slots_for(barber, day, duration_minutes)

    def bookable_slots(self, barber_id: int, day: date, duration_minutes: int) -> list[Slot]:
        """Slots from available_slots that create() would also accept right now."""
        self._validate_date_and_duration(day, duration_minutes)
        barber = self._barber(barber_id)
        return self._drop_unbookable(self._slots_for(barber, day, duration_minutes), barber, day)

    def available_barbers_at(self, day: date, at: time, duration_minutes: int) -> list[Slot]:
        logger.info("Finding barbers free on %s at %s (%s min)", day, at, duration_minutes)
        self._validate_date_and_duration(day, duration_minutes)
        if at is None:
            raise AvailabilityInputInvalid("time", None, "time is required")

        matches = []
        for barber in self.store.list_bookable_barbers():
            for slot in self._slots_for(barber, day, duration_minutes):
                if slot.contains(at):
                    matches.append(Slot(
                        slot.barber_id, slot.date, slot.start_time, slot.end_time,
                        slot.duration_minutes, barber_name=barber.display_name,
                    ))
                    break
        return matches

    def is_slot_free(self, barber_id: int, day: date, start: time, duration_minutes: int) -> bool:
        return any(s.start_time == start for s in self.available_slots(barber_id, day, duration_minutes))

    def availability_summary(self, barber_id: int, start_date: date, end_date: date, duration_minutes: int) -> list[DaySummary]:
        if start_date > end_date:
            raise AvailabilityInputInvalid("startDate", start_date.isoformat(), "must not be after endDate")
        if (end_date - start_date).days >= settings.SUMMARY_MAX_DAYS:
            raise AvailabilityInputInvalid(
                "endDate", end_date.isoformat(), f"range cannot exceed {settings.SUMMARY_MAX_DAYS} days"
            )
        self._validate_date_and_duration(start_date, duration_minutes)
        barber = self._barber(barber_id)

        summary = []
        day = start_date
        while day <= end_date:
            slots = self._slots_for(barber, day, duration_minutes)
            summary.append(DaySummary(
                date=day,
                day_of_week=DayOfWeek.of(day),
                available_slots=len(slots),
                first_available_time=slots[0].start_time if slots else None,
                last_available_time=slots[-1].start_time if slots else None,
            ))
            day += timedelta(days=1)
        return summary

    def next_available_slots(self, barber_id: int, duration_minutes: int, limit: int = 5) -> list[Slot]:
        if limit is None or limit < 1:
            raise AvailabilityInputInvalid("limit", limit, "must be at least 1")
        today = self.clock.today()
        self._validate_date_and_duration(today, duration_minutes)
        barber = self._barber(barber_id)

        found: list[Slot] = []
        for offset in range(settings.NEXT_AVAILABLE_LOOKAHEAD_DAYS):
            day = today + timedelta(days=offset)
            found.extend(self._drop_unbookable(self._slots_for(barber, day, duration_minutes), barber, day))
            if len(found) >= limit:
                break
        return found[:limit]
