import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import Base, engine, SessionLocal
from .config import settings
from .auth import get_password_hash
from .errors import (
    AppointmentConflict,
    AuthMissing,
    AvailabilityInputInvalid,
    BarberUnavailable,
    BookingError,
    EntityMissing,
    Forbidden,
    InvalidStatusTransition,
    OutsideWorkingHours,
    TimeInPast,
    UserAlreadyExists,
    ValidationFailure,
)
from .routers import auth as auth_router
from .routers import services as services_router
from .routers import barbers as barbers_router
from .routers import schedules as schedules_router
from .routers import availability as availability_router
from .routers import appointments as appointments_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Only place where failure kinds become HTTP statuses
STATUS_BY_ERROR = {
    EntityMissing: 404,
    ValidationFailure: 400,
    AuthMissing: 401,
    Forbidden: 403,
    AppointmentConflict: 409,
    UserAlreadyExists: 409,
    InvalidStatusTransition: 400,
    TimeInPast: 400,
    BarberUnavailable: 400,
    OutsideWorkingHours: 400,
    AvailabilityInputInvalid: 400,
}

app = FastAPI(title="Barbershop Booking API")


def status_for(exc: BookingError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def error_body(message: str, type_: str = None, **extra) -> dict:
    body = {"message": message, "status": "error"}
    if type_:
        body["type"] = type_
    body.update(extra)
    return body


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    code = status_for(exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthMissing) else None
    if code >= 500:
        logger.error("Unmapped booking error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content=error_body(exc.message, exc.type, **exc.extra), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        errors[field or "request"] = err.get("msg", "invalid value")
    return JSONResponse(
        status_code=400,
        content=error_body("Validation error", ValidationFailure.type, errors=errors),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)), headers=exc.headers)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error", "INTERNAL_ERROR"))


@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)
    if settings.SEED_DATA:
        seed_data()


def seed_data():
    from .models import User, Role, Service

    with SessionLocal() as db:
        admin_email = settings.ADMIN_EMAIL
        user = db.query(User).filter(User.email == admin_email).first()
        if not user:
            user = User(
                email=admin_email,
                hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
                role=Role.ADMIN.value,
                first_name="Shop",
                last_name="Owner",
            )
            db.add(user)
            db.commit()
            logger.info("Seeded admin account %s", admin_email)

        sample_services = [
            {
                "name": "Classic Cut",
                "price": 25.0,
                "duration_minutes": 30,
                "description": "Scissor or clipper cut with a wash.",
            },
            {
                "name": "Beard Trim",
                "price": 15.0,
                "duration_minutes": 15,
                "description": "Shape up and hot towel finish.",
            },
            {
                "name": "Cut & Beard",
                "price": 35.0,
                "duration_minutes": 45,
                "description": "Classic cut plus a full beard trim.",
            },
        ]

        for svc_data in sample_services:
            exists = db.query(Service).filter(Service.name == svc_data["name"]).first()
            if not exists:
                db.add(Service(**svc_data))

        db.commit()

app.include_router(auth_router.router)
app.include_router(services_router.router)
app.include_router(barbers_router.router)
app.include_router(schedules_router.router)
app.include_router(availability_router.router)
app.include_router(appointments_router.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

@app.get("/health")
def health():
    return {"status": "ok"}
