from jose import JWTError
from jose.jwt import encode, decode
import bcrypt
from api.config import settings
from api.schemas.auth_schemas import AuthTokenPayload
from api.utils.logger import configure_logging
from typing import Optional

logger = configure_logging()

# Password hashing


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.warning("password hash could not be checked error=%s", e)
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(data: AuthTokenPayload) -> str:
    """Create a JWT access token."""
    return encode(data.model_dump(exclude_none=True), settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: Optional[str]) -> Optional[AuthTokenPayload]:
    """Decode a token. Returns None when it is missing, malformed or expired."""
    if not token:
        return None
    try:
        payload = decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return AuthTokenPayload(**payload)
    except JWTError as e:
        logger.info("token rejected error=%s", e)
        return None
