from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Cookie, Depends, Response, WebSocket
from sqlalchemy.orm import Session

from api.config import get_db, settings
from api.models.models import User as DbUser
from api.schemas.auth_schemas import AuthTokenPayload
from api.schemas.user_schemas import User
from api.utils.common import get_or_create_profile
from api.utils.jwt import verify_token, get_password_hash, create_access_token, verify_password
from api.utils.logger import configure_logging
from progression.errors import InvalidSubmission, Unauthenticated

logger = configure_logging()


def _token_from_ws_scope(scope: dict) -> Optional[str]:
    """Extract access_token from Cookie or query (?token=) in WebSocket scope. Returns None if missing."""
    qs = scope.get("query_string") or b""
    if qs:
        for part in qs.split(b"&"):
            if part.startswith(b"token="):
                return part[6:].decode("utf-8", errors="replace").strip()
    for name, value in scope.get("headers") or []:
        if name.lower() == b"cookie":
            cookie = value.decode("utf-8", errors="replace")
            for part in cookie.split(";"):
                part = part.strip()
                if part.startswith("access_token="):
                    return part[13:].strip()
            break
    return None


def _user_from_token(token: Optional[str], db: Session) -> Optional[DbUser]:
    payload = verify_token(token)
    if payload is None or not payload.sub:
        return None
    return get_user_by_email(payload.sub, db)


def get_current_user(access_token: Optional[str] = Cookie(None), db: Session = Depends(get_db)) -> User:
    if not access_token:
        raise Unauthenticated("Missing token")
    user = _user_from_token(access_token, db)
    if user is None:
        raise Unauthenticated("Invalid token")
    return User(id=int(user.id), email=user.email, preferences=user.preferences)


def set_auth_cookie(response: Response, user: DbUser) -> None:
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    token = create_access_token(AuthTokenPayload(sub=user.email, exp=datetime.now(timezone.utc) + timedelta(minutes=minutes)))
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=minutes * 60,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key="access_token",
        httponly=True,
        secure=False,
        samesite="lax"
    )


def get_user_from_websocket(websocket: WebSocket, db: Session) -> Optional[User]:
    """Resolve the caller of a WebSocket (cookie or query token). Returns None if unauthenticated."""
    user = _user_from_token(_token_from_ws_scope(websocket.scope), db)
    if user is None:
        return None
    return User(id=int(user.id), email=user.email, preferences=user.preferences)


def get_user_by_email(email: str, db: Session) -> Optional[DbUser]:
    return db.query(DbUser).filter(DbUser.email == email.strip().lower()).first()


def create_user(email: str, password: str, db: Session, name: Optional[str] = None) -> DbUser:
    email = email.strip().lower()
    if get_user_by_email(email, db) is not None:
        raise InvalidSubmission("Email already registered")
    logger.info("creating user email=%s", email)
    user = DbUser(
        email=email,
        hashed_password=get_password_hash(password),
        preferences={"name": name} if name else None,
    )
    db.add(user)
    db.flush()
    get_or_create_profile(int(user.id), db)
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(email: str, password: str, db: Session) -> Optional[DbUser]:
    user = get_user_by_email(email, db)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user
