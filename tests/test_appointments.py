import threading
from datetime import datetime, time

import pytest
from sqlalchemy.exc import OperationalError

from barbershop.config import settings
from barbershop.errors import (
    AppointmentConflict,
    BarberUnavailable,
    EntityMissing,
    Forbidden,
    InvalidStatusTransition,
    OutsideWorkingHours,
    TimeInPast,
)
from barbershop.models import Appointment, AppointmentStatus, Role
from barbershop.policy import Actor
from barbershop.services.appointments import AppointmentService, next_status
from barbershop.store import Store

from conftest import actor_for, make_barber

TEN = datetime(2025, 1, 20, 10, 0)


@pytest.fixture()
def appointments(store, clock):
    return AppointmentService(store, clock)


@pytest.fixture()
def booked(appointments, client_user, barber, service):
    return appointments.create(client_user.id, barber.id, service.id, TEN, actor_for(client_user))


def active_rows(db, barber_id):
    db.expire_all()
    return (
        db.query(Appointment)
        .filter(Appointment.barber_id == barber_id, Appointment.status.in_(["PENDING", "CONFIRMED"]))
        .all()
    )


def assert_no_overlap(rows):
    rows = sorted(rows, key=lambda a: a.start_time)
    for a, b in zip(rows, rows[1:]):
        assert a.end_time <= b.start_time


def test_create_sets_end_price_and_status(booked, service, clock):
    assert booked.status == AppointmentStatus.PENDING.value
    assert booked.end_time == datetime(2025, 1, 20, 10, 30)
    assert booked.total_price == 25.0
    assert booked.created_at == clock.now()


def test_overlapping_create_is_rejected(appointments, booked, other_client, barber, service, db):
    with pytest.raises(AppointmentConflict):
        appointments.create(other_client.id, barber.id, service.id, datetime(2025, 1, 20, 10, 15), actor_for(other_client))
    assert [a.id for a in active_rows(db, barber.id)] == [booked.id]


def test_back_to_back_bookings_are_allowed(appointments, booked, other_client, barber, service, db):
    appointments.create(other_client.id, barber.id, service.id, datetime(2025, 1, 20, 10, 30), actor_for(other_client))
    appointments.create(other_client.id, barber.id, service.id, datetime(2025, 1, 20, 9, 30), actor_for(other_client))
    rows = active_rows(db, barber.id)
    assert len(rows) == 3
    assert_no_overlap(rows)


def test_same_time_with_another_barber_is_fine(appointments, booked, other_client, other_barber, service):
    appt = appointments.create(other_client.id, other_barber.id, service.id, TEN, actor_for(other_client))
    assert appt.barber_id == other_barber.id


def test_cancelled_slot_can_be_rebooked(appointments, booked, client_user, other_client, barber, service):
    appointments.cancel(booked.id, actor_for(client_user))
    appt = appointments.create(other_client.id, barber.id, service.id, TEN, actor_for(other_client))
    assert appt.status == "PENDING"


def test_start_in_the_past(appointments, client_user, barber, service):
    with pytest.raises(TimeInPast):
        appointments.create(client_user.id, barber.id, service.id, datetime(2025, 1, 15, 8, 30), actor_for(client_user))


def test_client_cannot_book_for_someone_else(appointments, client_user, other_client, barber, service):
    with pytest.raises(Forbidden):
        appointments.create(other_client.id, barber.id, service.id, TEN, actor_for(client_user))


def test_admin_can_book_for_a_client(appointments, admin, client_user, barber, service):
    appt = appointments.create(client_user.id, barber.id, service.id, TEN, actor_for(admin))
    assert appt.client_id == client_user.id


def test_unknown_references(appointments, client_user, barber, service, admin):
    with pytest.raises(EntityMissing):
        appointments.create(client_user.id, 999, service.id, TEN, actor_for(client_user))
    with pytest.raises(EntityMissing):
        appointments.create(client_user.id, barber.id, 999, TEN, actor_for(client_user))
    with pytest.raises(EntityMissing):
        appointments.create(999, barber.id, service.id, TEN, actor_for(admin))


def test_inactive_service_cannot_be_booked(appointments, client_user, barber, service, db):
    service.active = False
    db.commit()
    with pytest.raises(EntityMissing):
        appointments.create(client_user.id, barber.id, service.id, TEN, actor_for(client_user))


@pytest.mark.parametrize("field", ["available", "active"])
def test_barber_not_accepting_bookings(appointments, client_user, barber, service, db, field):
    setattr(barber, field, False)
    db.commit()
    with pytest.raises(BarberUnavailable):
        appointments.create(client_user.id, barber.id, service.id, TEN, actor_for(client_user))


def test_outside_working_window(appointments, client_user, service, db):
    barber = make_barber(db, "wendy@example.com", display_name="Wendy", start_time=time(10, 0), end_time=time(12, 0))
    with pytest.raises(OutsideWorkingHours):
        appointments.create(client_user.id, barber.id, service.id, datetime(2025, 1, 20, 11, 45), actor_for(client_user))
    appt = appointments.create(client_user.id, barber.id, service.id, datetime(2025, 1, 20, 11, 30), actor_for(client_user))
    assert appt.end_time == datetime(2025, 1, 20, 12, 0)


def test_confirm_then_complete(appointments, booked, barber_user):
    barber_actor = actor_for(barber_user)
    assert appointments.confirm(booked.id, barber_actor).status == "CONFIRMED"
    assert appointments.complete(booked.id, barber_actor).status == "COMPLETED"

    with pytest.raises(InvalidStatusTransition) as exc:
        appointments.complete(booked.id, barber_actor)
    assert exc.value.extra["currentStatus"] == "COMPLETED"


def test_transition_updates_timestamp(appointments, booked, barber_user, clock):
    clock.current = datetime(2025, 1, 16, 8, 0)
    appt = appointments.confirm(booked.id, actor_for(barber_user))
    assert appt.updated_at == datetime(2025, 1, 16, 8, 0)
    assert appt.created_at == datetime(2025, 1, 15, 9, 0)


def test_cancel_twice_fails(appointments, booked, client_user):
    appointments.cancel(booked.id, actor_for(client_user))
    with pytest.raises(InvalidStatusTransition):
        appointments.cancel(booked.id, actor_for(client_user))


def test_complete_requires_confirmation(appointments, booked, barber_user, db):
    with pytest.raises(InvalidStatusTransition):
        appointments.complete(booked.id, actor_for(barber_user))
    db.expire_all()
    assert db.get(Appointment, booked.id).status == "PENDING"


def test_other_client_cannot_cancel(appointments, booked, other_client, db):
    with pytest.raises(Forbidden):
        appointments.cancel(booked.id, actor_for(other_client))
    db.expire_all()
    assert db.get(Appointment, booked.id).status == "PENDING"


def test_other_barber_cannot_confirm(appointments, booked, other_barber, db):
    with pytest.raises(Forbidden):
        appointments.confirm(booked.id, Actor(id=other_barber.user_id, role=Role.BARBER))


def test_client_cannot_confirm_own_appointment(appointments, booked, client_user):
    with pytest.raises(Forbidden):
        appointments.confirm(booked.id, actor_for(client_user))


def test_missing_appointment(appointments, admin):
    with pytest.raises(EntityMissing):
        appointments.cancel(42, actor_for(admin))


@pytest.mark.parametrize(
    "current,action,expected",
    [
        (AppointmentStatus.PENDING, "confirm", AppointmentStatus.CONFIRMED),
        (AppointmentStatus.PENDING, "cancel", AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, "cancel", AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, "complete", AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, "complete", None),
        (AppointmentStatus.CONFIRMED, "confirm", None),
        (AppointmentStatus.COMPLETED, "cancel", None),
        (AppointmentStatus.CANCELLED, "confirm", None),
        (AppointmentStatus.NO_SHOW, "cancel", None),
        (AppointmentStatus.NO_SHOW, "complete", None),
    ],
)
def test_next_status(current, action, expected):
    assert next_status(current, action) is expected


def test_listing_is_scoped_to_actor(appointments, booked, client_user, other_client, barber_user, other_barber, admin, service):
    other = appointments.create(other_client.id, other_barber.id, service.id, TEN, actor_for(other_client))

    assert [a.id for a in appointments.list_for_actor(actor_for(client_user))] == [booked.id]
    assert [a.id for a in appointments.list_for_actor(actor_for(barber_user))] == [booked.id]
    assert {a.id for a in appointments.list_all(actor_for(admin))} == {booked.id, other.id}

    with pytest.raises(Forbidden):
        appointments.list_all(actor_for(client_user))


def test_listing_filters_by_status(appointments, booked, client_user):
    actor = actor_for(client_user)
    assert appointments.list_for_actor(actor, AppointmentStatus.CANCELLED) == []
    appointments.cancel(booked.id, actor)
    assert [a.id for a in appointments.list_for_actor(actor, AppointmentStatus.CANCELLED)] == [booked.id]


def test_conflict_check(appointments, booked, barber, barber_user, client_user):
    actor = actor_for(barber_user)
    assert appointments.has_conflicts(barber.id, datetime(2025, 1, 20, 10, 15), datetime(2025, 1, 20, 10, 45), actor)
    assert not appointments.has_conflicts(barber.id, datetime(2025, 1, 20, 10, 30), datetime(2025, 1, 20, 11, 0), actor)
    with pytest.raises(Forbidden):
        appointments.has_conflicts(barber.id, TEN, TEN, actor_for(client_user))


def test_lock_errors_are_retried_then_reported_as_conflict(appointments, client_user, barber, service, monkeypatch, db):
    calls = []

    def locked(barber_id):
        calls.append(barber_id)
        raise OperationalError("UPDATE barbers", {}, Exception("database is locked"))

    monkeypatch.setattr(settings, "BOOKING_RETRY_BASE_DELAY", 0)
    monkeypatch.setattr(appointments.store, "lock_barber", locked)

    with pytest.raises(AppointmentConflict):
        appointments.create(client_user.id, barber.id, service.id, TEN, actor_for(client_user))
    assert len(calls) == settings.BOOKING_MAX_ATTEMPTS
    assert active_rows(db, barber.id) == []


def test_lock_error_then_success(appointments, client_user, barber, service, monkeypatch):
    real_lock = appointments.store.lock_barber
    attempts = []

    def flaky(barber_id):
        attempts.append(barber_id)
        if len(attempts) == 1:
            raise OperationalError("UPDATE barbers", {}, Exception("database is locked"))
        real_lock(barber_id)

    monkeypatch.setattr(settings, "BOOKING_RETRY_BASE_DELAY", 0)
    monkeypatch.setattr(appointments.store, "lock_barber", flaky)

    appt = appointments.create(client_user.id, barber.id, service.id, TEN, actor_for(client_user))
    assert appt.id is not None
    assert len(attempts) == 2


def test_concurrent_creates_for_one_slot(session_factory, clock, client_user, other_client, barber, service, db):
    clients = [client_user, other_client] * 3
    starts = [TEN, datetime(2025, 1, 20, 10, 15)] * 3
    barrier = threading.Barrier(len(clients))
    results = []
    lock = threading.Lock()

    def worker(user, start):
        session = session_factory()
        try:
            svc = AppointmentService(Store(session), clock)
            barrier.wait()
            try:
                svc.create(user.id, barber.id, service.id, start, Actor(id=user.id, role=Role.CLIENT))
                outcome = "created"
            except AppointmentConflict:
                outcome = "conflict"
            with lock:
                results.append(outcome)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(u, s)) for u, s in zip(clients, starts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("created") == 1
    assert results.count("conflict") == len(clients) - 1
    rows = active_rows(db, barber.id)
    assert len(rows) == 1
    assert_no_overlap(rows)
