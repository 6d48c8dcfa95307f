# barbershop/config.py
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./barbershop.db"

    JWT_SECRET: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    ADMIN_EMAIL: str = "admin@barbershop.local"
    ADMIN_PASSWORD: str = "Admin@12345"
    SEED_DATA: bool = True

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Booking transaction retries on database lock errors
    BOOKING_MAX_ATTEMPTS: int = 3
    BOOKING_RETRY_BASE_DELAY: float = 0.05

    MAX_SLOT_DURATION_MINUTES: int = 480
    SUMMARY_MAX_DAYS: int = 31
    NEXT_AVAILABLE_LOOKAHEAD_DAYS: int = 30

    class Config:
        env_file = ".env"

settings = Settings()
