# barbershop/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings
from .errors import AuthMissing
from .models import Role
from .policy import Actor
from .store import Store

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


class TokenAuthenticator:
    """Resolves a bearer token to the Actor performing the request."""

    def __init__(self, store: Store):
        self.store = store

    def authenticate(self, token: Optional[str]) -> Actor:
        if not token:
            raise AuthMissing()
        payload = decode_token(token)
        if not payload or "sub" not in payload:
            raise AuthMissing("Invalid token")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise AuthMissing("Invalid token")
        user = self.store.get_user(user_id)
        if not user or not user.is_active:
            logger.info("Rejected token for missing or inactive user %s", user_id)
            raise AuthMissing("Inactive or not found")
        return Actor(id=user.id, role=Role(user.role))
