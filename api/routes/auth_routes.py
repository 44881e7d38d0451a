from fastapi import APIRouter, HTTPException, Response, status, Depends
from sqlalchemy.orm import Session

from api.config import get_db
from api.schemas.auth_schemas import LoginRequest, RegisterRequest, LoginResponse, RegisterResponse, LogoutResponse
from api.schemas.user_schemas import User, MeResponse
from api.utils.auth import (
    authenticate_user,
    clear_auth_cookie,
    create_user,
    get_current_user,
    set_auth_cookie,
)
from api.utils.common import display_name
from api.utils.logger import configure_logging

auth_routes = APIRouter()
logger = configure_logging()


@auth_routes.post("/login")
def login(request: LoginRequest, response: Response, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate user and set HTTP-only cookie with token."""
    user = authenticate_user(request.email, request.password, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )
    set_auth_cookie(response, user)
    logger.info("login user_id=%s", user.id)
    return LoginResponse(message="Login successful", token_set=True)


@auth_routes.post("/register", status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, response: Response, db: Session = Depends(get_db)) -> RegisterResponse:
    """Register a new user and sign them in."""
    if request.password != request.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match"
        )
    user = create_user(request.email, request.password, db, name=request.name)
    set_auth_cookie(response, user)
    return RegisterResponse(message="Registration successful", user_id=int(user.id))


@auth_routes.post("/logout")
def logout(response: Response) -> LogoutResponse:
    """Clear the authentication cookie."""
    clear_auth_cookie(response)
    return LogoutResponse(message="Logout successful - cookie cleared")


@auth_routes.get("/me")
def get_current_user_info(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        name=display_name(current_user.email, current_user.preferences),
    )
