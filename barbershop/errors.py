"""Typed failures raised by the booking core.

Each kind carries a ``type`` tag for programmatic consumers; the HTTP
status for each kind is decided in ``main.py`` and nowhere else.
"""


class BookingError(Exception):
    type = "ERROR"

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class EntityMissing(BookingError):
    type = "ENTITY_NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} with id {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailure(BookingError):
    type = "VALIDATION_ERROR"


class AuthMissing(BookingError):
    type = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class Forbidden(BookingError):
    type = "FORBIDDEN"


class UserAlreadyExists(BookingError):
    type = "USER_ALREADY_EXISTS"


class AppointmentConflict(BookingError):
    type = "APPOINTMENT_CONFLICT"


class InvalidStatusTransition(BookingError):
    type = "INVALID_APPOINTMENT_STATUS"

    def __init__(self, appointment_id, current: str, action: str):
        super().__init__(
            f"Cannot {action} appointment {appointment_id} in status {current}",
            currentStatus=current,
        )
        self.appointment_id = appointment_id
        self.current = current
        self.action = action


class TimeInPast(BookingError):
    type = "INVALID_APPOINTMENT_TIME"

    def __init__(self, start):
        super().__init__(f"Appointment start {start.isoformat()} is in the past")


class BarberUnavailable(BookingError):
    type = "BARBER_NOT_AVAILABLE"


class OutsideWorkingHours(BookingError):
    type = "OUTSIDE_WORKING_HOURS"


class InvalidSchedule(ValidationFailure):
    type = "INVALID_SCHEDULE"


class ScheduleConflict(InvalidSchedule):
    def __init__(self, barber_id, day_of_week: str):
        super().__init__(f"Barber {barber_id} already has a schedule for {day_of_week}")


class AvailabilityInputInvalid(BookingError):
    type = "AVAILABILITY_ERROR"

    def __init__(self, field: str, value, reason: str):
        super().__init__(f"Invalid {field} '{value}': {reason}", field=field)
