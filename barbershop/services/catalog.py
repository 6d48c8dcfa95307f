"""Catalog service - service offerings, barber profiles and accounts"""

import logging
from datetime import time
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..auth import get_password_hash, verify_password
from ..clock import Clock
from ..errors import AuthMissing, EntityMissing, UserAlreadyExists, ValidationFailure
from ..models import Barber, Role, Service, User
from ..policy import Action, Actor, Target, enforce
from ..store import Store

logger = logging.getLogger(__name__)

SERVICE_FIELDS = ("name", "description", "price", "duration_minutes", "active")
BARBER_FIELDS = (
    "display_name", "specialties", "experience_years", "phone_number",
    "start_time", "end_time", "available", "active",
)


def _check_window(start: Optional[time], end: Optional[time]) -> None:
    if (start is None) != (end is None):
        raise ValidationFailure("Working window needs both start and end time")
    if start is not None and start >= end:
        raise ValidationFailure(f"Working window start {start} must be before end {end}")


class CatalogService:
    def __init__(self, store: Store, clock: Clock):
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # accounts
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, first_name: Optional[str], last_name: Optional[str], role: Role = Role.CLIENT) -> User:
        if self.store.get_user_by_email(email):
            raise UserAlreadyExists(f"Email {email} is already registered")
        user = User(
            email=email,
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            created_at=self.clock.now(),
        )
        try:
            self.store.add(user)
            self.store.commit()
        except IntegrityError:
            self.store.rollback()
            raise UserAlreadyExists(f"Email {email} is already registered")
        self.store.refresh(user)
        logger.info("Registered %s account %s", role.value, user.id)
        return user

    def login(self, email: str, password: str) -> User:
        user = self.store.get_user_by_email(email)
        if not user or not user.is_active or not verify_password(password, user.hashed_password):
            raise AuthMissing("Invalid credentials")
        return user

    # ------------------------------------------------------------------
    # services
    # ------------------------------------------------------------------

    def list_services(self) -> list[Service]:
        return self.store.list_services()

    def get_service(self, service_id: int) -> Service:
        svc = self.store.get_service(service_id)
        if not svc or not svc.active:
            raise EntityMissing("Service", service_id)
        return svc

    def _check_service_values(self, data: dict, current: Optional[Service] = None) -> None:
        if "duration_minutes" in data and (data["duration_minutes"] is None or data["duration_minutes"] <= 0):
            raise ValidationFailure("Duration must be a positive number of minutes")
        if "price" in data and (data["price"] is None or data["price"] <= 0):
            raise ValidationFailure("Price must be positive")
        name = data.get("name")
        reactivating = current is not None and not current.active and data.get("active") is True
        if not name and reactivating:
            name = current.name
        if name and (current is None or current.active or reactivating):
            existing = self.store.get_active_service_by_name(name)
            if existing and (current is None or existing.id != current.id):
                raise ValidationFailure("Service already exists")

    def create_service(self, data: dict, actor: Actor) -> Service:
        enforce(actor, Action.WRITE_CATALOG)
        self._check_service_values(data)
        now = self.clock.now()
        svc = Service(**{k: v for k, v in data.items() if k in SERVICE_FIELDS}, created_at=now, updated_at=now)
        self.store.add(svc)
        self.store.commit()
        self.store.refresh(svc)
        logger.info("Service %s created: %s", svc.id, svc.name)
        return svc

    def update_service(self, service_id: int, data: dict, actor: Actor) -> Service:
        enforce(actor, Action.WRITE_CATALOG)
        svc = self.store.get_service(service_id)
        if not svc:
            raise EntityMissing("Service", service_id)
        self._check_service_values(data, svc)
        for k, v in data.items():
            if k in SERVICE_FIELDS:
                setattr(svc, k, v)
        svc.updated_at = self.clock.now()
        self.store.commit()
        self.store.refresh(svc)
        return svc

    def delete_service(self, service_id: int, actor: Actor) -> Service:
        """Logical delete; appointments keep referencing the row."""
        enforce(actor, Action.WRITE_CATALOG)
        svc = self.store.get_service(service_id)
        if not svc:
            raise EntityMissing("Service", service_id)
        svc.active = False
        svc.updated_at = self.clock.now()
        self.store.commit()
        self.store.refresh(svc)
        return svc

    # ------------------------------------------------------------------
    # barbers
    # ------------------------------------------------------------------

    def list_barbers(self, include_inactive: bool = False) -> list[Barber]:
        return self.store.list_barbers(active_only=not include_inactive)

    def get_barber(self, barber_id: int) -> Barber:
        barber = self.store.get_barber(barber_id)
        if not barber:
            raise EntityMissing("Barber", barber_id)
        return barber

    def create_barber(self, data: dict, actor: Actor) -> Barber:
        """Create the barber's user account and profile in one transaction."""
        enforce(actor, Action.WRITE_CATALOG)
        _check_window(data.get("start_time"), data.get("end_time"))
        if self.store.get_user_by_email(data["email"]):
            raise UserAlreadyExists(f"Email {data['email']} is already registered")

        now = self.clock.now()
        try:
            user = self.store.add(User(
                email=data["email"],
                hashed_password=get_password_hash(data["password"]),
                first_name=data.get("first_name"),
                last_name=data.get("last_name"),
                role=Role.BARBER.value,
                created_at=now,
            ))
            barber = self.store.add(Barber(
                user_id=user.id,
                **{k: v for k, v in data.items() if k in BARBER_FIELDS and v is not None},
                created_at=now,
                updated_at=now,
            ))
            self.store.commit()
        except Exception as e:
            self.store.rollback()
            raise e
        self.store.refresh(barber)
        logger.info("Barber %s created for user %s", barber.id, user.id)
        return barber

    def update_barber(self, barber_id: int, data: dict, actor: Actor) -> Barber:
        enforce(actor, Action.WRITE_CATALOG)
        barber = self.get_barber(barber_id)
        _check_window(
            data.get("start_time", barber.start_time),
            data.get("end_time", barber.end_time),
        )
        for k, v in data.items():
            if k in BARBER_FIELDS:
                setattr(barber, k, v)
        barber.updated_at = self.clock.now()
        self.store.commit()
        self.store.refresh(barber)
        return barber

    def delete_barber(self, barber_id: int, actor: Actor) -> Barber:
        """Logical delete; existing appointments are left untouched."""
        enforce(actor, Action.WRITE_CATALOG)
        barber = self.get_barber(barber_id)
        barber.active = False
        barber.updated_at = self.clock.now()
        self.store.commit()
        self.store.refresh(barber)
        return barber

    def set_barber_availability(self, barber_id: int, available: bool, actor: Actor) -> Barber:
        barber = self.get_barber(barber_id)
        enforce(actor, Action.SET_BARBER_AVAILABILITY, Target(barber_owner_id=barber.user_id))
        barber.available = available
        barber.updated_at = self.clock.now()
        self.store.commit()
        self.store.refresh(barber)
        logger.info("Barber %s available=%s", barber.id, available)
        return barber
