"""Security utilities: password hashing and JWT token handling."""
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def get_unusable_password_hash() -> str:
    """Hash of a random secret nobody knows. Used for Google-only accounts."""
    return pwd_context.hash(secrets.token_urlsafe(32))


class TokenService:
    """Issues and verifies signed, time-limited access tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_days: int = 30):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_days = expire_days

    def issue(self, user_id: str | UUID, expires_delta: timedelta | None = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=self.expire_days))
        to_encode = {"sub": str(user_id), "exp": expire, "type": "access"}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> UUID | None:
        """Return the user id the token was issued for, or None if it is not valid."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("type") != "access":
            return None
        try:
            return UUID(str(payload.get("sub")))
        except ValueError:
            return None
