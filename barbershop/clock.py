"""Time source for the booking core.

All "now" comparisons (past-time rejection, availability date checks,
created/updated stamps) go through a clock object so tests can pin time.
Times are naive local wall-clock values.
"""
from datetime import date, datetime


class Clock:
    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class FixedClock(Clock):
    """Clock frozen at a given instant; `advance` moves it forward."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, delta) -> None:
        self.current = self.current + delta


system_clock = SystemClock()


def get_clock() -> Clock:
    return system_clock
