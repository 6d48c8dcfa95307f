import os

# must be set before the app modules read settings
os.environ["SEED_DATA"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from barbershop.auth import create_access_token
from barbershop.clock import FixedClock, get_clock
from barbershop.database import Base, get_db, make_engine
from barbershop.main import app
from barbershop.models import Barber, DayOfWeek, Role, Service, User, WorkSchedule
from barbershop.policy import Actor
from barbershop.store import Store

NOW = datetime(2025, 1, 15, 9, 0)  # a Wednesday
WEEKDAYS = [DayOfWeek.MONDAY, DayOfWeek.TUESDAY, DayOfWeek.WEDNESDAY, DayOfWeek.THURSDAY, DayOfWeek.FRIDAY]

# bcrypt is slow; fixtures that never sign in skip it
DUMMY_HASH = "not-a-real-hash"


@pytest.fixture()
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def store(db):
    return Store(db)


@pytest.fixture()
def clock():
    return FixedClock(NOW)


@pytest.fixture()
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role=Role.CLIENT, first_name="Test", last_name="User", hashed_password=DUMMY_HASH):
    user = User(
        email=email,
        hashed_password=hashed_password,
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_barber(db, email, display_name="Barber", days=WEEKDAYS, start=time(9, 0), end=time(18, 0), **fields):
    user = make_user(db, email, role=Role.BARBER, first_name=display_name)
    barber = Barber(user_id=user.id, display_name=display_name, **fields)
    db.add(barber)
    db.commit()
    for day in days:
        db.add(WorkSchedule(
            barber_id=barber.id,
            day_of_week=day.value,
            start_time=start,
            end_time=end,
            active=True,
        ))
    db.commit()
    db.refresh(barber)
    return barber


def actor_for(user) -> Actor:
    return Actor(id=user.id, role=Role(user.role))


def auth_header(user) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin(db):
    return make_user(db, "admin@example.com", role=Role.ADMIN, first_name="Ada")


@pytest.fixture()
def client_user(db):
    return make_user(db, "carl@example.com", first_name="Carl", last_name="Client")


@pytest.fixture()
def other_client(db):
    return make_user(db, "dana@example.com", first_name="Dana", last_name="Client")


@pytest.fixture()
def barber(db):
    return make_barber(db, "bob@example.com", display_name="Bob")


@pytest.fixture()
def other_barber(db):
    return make_barber(db, "ben@example.com", display_name="Ben")


@pytest.fixture()
def barber_user(db, barber):
    return db.get(User, barber.user_id)


@pytest.fixture()
def service(db):
    svc = Service(name="Classic Cut", description="Cut and wash", price=25.0, duration_minutes=30)
    db.add(svc)
    db.commit()
    db.refresh(svc)
    return svc
