from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .auth import TokenAuthenticator
from .clock import Clock, get_clock
from .database import get_db
from .errors import Forbidden
from .models import Role
from .policy import Actor
from .services.appointments import AppointmentService
from .services.availability import AvailabilityService
from .services.catalog import CatalogService
from .services.schedules import ScheduleService
from .store import Store

# auto_error is off so missing credentials surface as AuthMissing in the error envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/signin", auto_error=False)


def get_store(db: Session = Depends(get_db)) -> Store:
    return Store(db)


def get_current_actor(store: Store = Depends(get_store), token: Optional[str] = Depends(oauth2_scheme)) -> Actor:
    return TokenAuthenticator(store).authenticate(token)


def require_roles(*roles: Role):
    """Advisory route gate; the policy inside each service makes the final call."""
    def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise Forbidden("Insufficient permissions")
        return actor
    return checker

RequireAdmin = require_roles(Role.ADMIN)
RequireBarberOrAdmin = require_roles(Role.BARBER, Role.ADMIN)
RequireClientOrAdmin = require_roles(Role.CLIENT, Role.ADMIN)
RequireBarber = require_roles(Role.BARBER)


def get_schedule_service(store: Store = Depends(get_store), clock: Clock = Depends(get_clock)) -> ScheduleService:
    return ScheduleService(store, clock)


def get_availability_service(store: Store = Depends(get_store), clock: Clock = Depends(get_clock)) -> AvailabilityService:
    return AvailabilityService(store, clock)


def get_appointment_service(store: Store = Depends(get_store), clock: Clock = Depends(get_clock)) -> AppointmentService:
    return AppointmentService(store, clock)


def get_catalog_service(store: Store = Depends(get_store), clock: Clock = Depends(get_clock)) -> CatalogService:
    return CatalogService(store, clock)
