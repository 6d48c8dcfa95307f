from datetime import date, datetime, timedelta

import pytest

from barbershop.models import ACTIVE_STATUSES, Appointment, AppointmentStatus

MONDAY = date(2025, 1, 20)


@pytest.fixture()
def add_appointment(db, barber, client_user, service):
    def _add(start, minutes=30, status=AppointmentStatus.PENDING):
        appt = Appointment(
            client_id=client_user.id,
            barber_id=barber.id,
            service_id=service.id,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            status=status.value,
            total_price=service.price,
            created_at=start,
            updated_at=start,
        )
        db.add(appt)
        db.commit()
        return appt
    return _add


def test_appointments_on_date_match_start_day_and_any_status(store, barber, add_appointment):
    late_sunday = add_appointment(datetime(2025, 1, 19, 23, 30), minutes=60)
    morning = add_appointment(datetime(2025, 1, 20, 9, 0), status=AppointmentStatus.CANCELLED)
    evening = add_appointment(datetime(2025, 1, 20, 17, 0), status=AppointmentStatus.COMPLETED)
    add_appointment(datetime(2025, 1, 21, 0, 0))

    found = store.find_appointments_for_barber_on_date(barber.id, MONDAY)
    assert [a.id for a in found] == [morning.id, evening.id]
    assert late_sunday.id not in [a.id for a in found]


def test_overlapping_appointments_filter_status(store, barber, add_appointment):
    kept = add_appointment(datetime(2025, 1, 20, 10, 0), status=AppointmentStatus.CONFIRMED)
    add_appointment(datetime(2025, 1, 20, 10, 0), status=AppointmentStatus.CANCELLED)
    add_appointment(datetime(2025, 1, 20, 10, 30))  # touches the window end only

    found = store.find_appointments_overlapping(
        barber.id, datetime(2025, 1, 20, 9, 30), datetime(2025, 1, 20, 10, 30), ACTIVE_STATUSES
    )
    assert [a.id for a in found] == [kept.id]


def test_overlapping_appointments_include_previous_day_spill(store, barber, add_appointment):
    spill = add_appointment(datetime(2025, 1, 19, 23, 30), minutes=60)
    day_start = datetime(2025, 1, 20)

    found = store.find_appointments_overlapping(
        barber.id, day_start, day_start + timedelta(days=1), ACTIVE_STATUSES
    )
    assert [a.id for a in found] == [spill.id]
