"""Schedule service - weekly recurring working hours per barber"""

import logging
from datetime import time
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..clock import Clock
from ..errors import EntityMissing, InvalidSchedule, ScheduleConflict
from ..models import Barber, DayOfWeek, WorkSchedule
from ..policy import Action, Actor, Target, enforce
from ..store import Store

logger = logging.getLogger(__name__)

EARLIEST = time(0, 1)
LATEST = time(23, 59)


def validate_times(start: Optional[time], end: Optional[time]) -> None:
    if start is None or end is None:
        raise InvalidSchedule("Start and end times are required")
    if start >= end:
        raise InvalidSchedule(f"Start time {start} must be before end time {end}")
    if start < EARLIEST or end > LATEST:
        raise InvalidSchedule(f"Schedule {start}-{end} must fall within the same day (00:01 - 23:59)")


class ScheduleService:
    def __init__(self, store: Store, clock: Clock):
        self.store = store
        self.clock = clock

    def _barber(self, barber_id: int) -> Barber:
        barber = self.store.get_barber(barber_id)
        if not barber:
            raise EntityMissing("Barber", barber_id)
        return barber

    def _target(self, barber: Barber) -> Target:
        return Target(barber_owner_id=barber.user_id)

    def get(self, schedule_id: int) -> WorkSchedule:
        schedule = self.store.get_schedule(schedule_id)
        if not schedule:
            raise EntityMissing("Schedule", schedule_id)
        return schedule

    def list_by_barber(self, barber_id: int, actor: Actor) -> list[WorkSchedule]:
        barber = self._barber(barber_id)
        enforce(actor, Action.VIEW_SCHEDULES, self._target(barber))
        return self.store.list_schedules(barber_id)

    def list_active_by_barber(self, barber_id: int) -> list[WorkSchedule]:
        self._barber(barber_id)
        return self.store.list_active_schedules(barber_id)

    def list_for_actor(self, actor: Actor) -> list[WorkSchedule]:
        barber = self.store.get_barber_by_user(actor.id)
        if not barber:
            raise EntityMissing("Barber profile for user", actor.id)
        return self.store.list_schedules(barber.id)

    def create(
        self,
        barber_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        actor: Actor,
        active: bool = True,
    ) -> WorkSchedule:
        logger.info("Creating %s schedule for barber %s by actor %s", day_of_week.value, barber_id, actor.id)
        barber = self._barber(barber_id)
        enforce(actor, Action.MANAGE_SCHEDULE, self._target(barber))
        validate_times(start_time, end_time)

        if self.store.find_schedule_for(barber_id, day_of_week):
            raise ScheduleConflict(barber_id, day_of_week.value)

        now = self.clock.now()
        schedule = WorkSchedule(
            barber_id=barber_id,
            day_of_week=day_of_week.value,
            start_time=start_time,
            end_time=end_time,
            active=active,
            created_at=now,
            updated_at=now,
        )
        try:
            self.store.add(schedule)
            self.store.commit()
        except IntegrityError:
            # lost a race with another insert for the same (barber, day)
            self.store.rollback()
            raise ScheduleConflict(barber_id, day_of_week.value)
        self.store.refresh(schedule)
        logger.info("Schedule %s created for barber %s", schedule.id, barber_id)
        return schedule

    def create_for_actor(self, day_of_week: DayOfWeek, start_time: time, end_time: time, actor: Actor, active: bool = True) -> WorkSchedule:
        barber = self.store.get_barber_by_user(actor.id)
        if not barber:
            raise EntityMissing("Barber profile for user", actor.id)
        return self.create(barber.id, day_of_week, start_time, end_time, actor, active)

    def update(
        self,
        schedule_id: int,
        actor: Actor,
        day_of_week: Optional[DayOfWeek] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        active: Optional[bool] = None,
    ) -> WorkSchedule:
        logger.info("Updating schedule %s by actor %s", schedule_id, actor.id)
        schedule = self.get(schedule_id)
        enforce(actor, Action.MANAGE_SCHEDULE, self._target(self._barber(schedule.barber_id)))

        # validate everything before touching the row
        new_day = schedule.day_of_week
        if day_of_week is not None and day_of_week.value != schedule.day_of_week:
            if self.store.find_schedule_for(schedule.barber_id, day_of_week):
                raise ScheduleConflict(schedule.barber_id, day_of_week.value)
            new_day = day_of_week.value

        new_start, new_end = schedule.start_time, schedule.end_time
        if start_time is not None or end_time is not None:
            new_start = start_time if start_time is not None else schedule.start_time
            new_end = end_time if end_time is not None else schedule.end_time
            validate_times(new_start, new_end)

        schedule.day_of_week = new_day
        schedule.start_time = new_start
        schedule.end_time = new_end
        if active is not None:
            schedule.active = active
        schedule.updated_at = self.clock.now()
        try:
            self.store.commit()
        except IntegrityError:
            self.store.rollback()
            raise ScheduleConflict(schedule.barber_id, new_day)
        self.store.refresh(schedule)
        return schedule

    def delete(self, schedule_id: int, actor: Actor) -> WorkSchedule:
        """Logical delete; the row keeps its (barber, day) slot."""
        logger.info("Deactivating schedule %s by actor %s", schedule_id, actor.id)
        schedule = self.get(schedule_id)
        enforce(actor, Action.MANAGE_SCHEDULE, self._target(self._barber(schedule.barber_id)))
        schedule.active = False
        schedule.updated_at = self.clock.now()
        self.store.commit()
        self.store.refresh(schedule)
        return schedule

    def find_available_at(self, day_of_week: DayOfWeek, at: time) -> list[WorkSchedule]:
        return self.store.find_schedules_covering(day_of_week, at)

    def is_barber_available_at(self, barber_id: int, day_of_week: DayOfWeek, at: time) -> bool:
        schedule = self.store.find_schedule_for(barber_id, day_of_week)
        return schedule is not None and schedule.contains(at)
