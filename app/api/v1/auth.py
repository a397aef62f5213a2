from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.config import settings
from ...api.deps import get_current_user, rate_limit_check
from ...services.auth_service import AuthService
from ...schemas.common import APIResponse
from ...schemas.auth import (
    UserLogin, UserRegister, UserResponse, AuthData,
    UpdateProfile, ChangePassword
)
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
    )

@router.post(
    "/register",
    response_model=APIResponse[AuthData],
    status_code=status.HTTP_201_CREATED
)
def register(
    user_data: UserRegister,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new user."""
    auth_service = AuthService(db)
    auth_data = auth_service.register_user(user_data)
    _set_auth_cookie(response, auth_data.token)

    return APIResponse(message="User registered successfully", data=auth_data)

@router.post("/login", response_model=APIResponse[AuthData])
def login(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
):
    """Authenticate user and return a session token."""
    auth_service = AuthService(db)
    auth_data = auth_service.authenticate_user(login_data)
    _set_auth_cookie(response, auth_data.token)

    return APIResponse(message="Login successful", data=auth_data)

@router.get("/me", response_model=APIResponse[UserResponse])
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return APIResponse(data=UserResponse.model_validate(current_user))

@router.post("/logout", response_model=APIResponse[None])
def logout(
    response: Response,
    current_user: User = Depends(get_current_user)
):
    """Stateless logout; the client discards its token."""
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return APIResponse(message="Logged out successfully")

@router.put("/update-profile", response_model=APIResponse[UserResponse])
def update_profile(
    profile_data: UpdateProfile,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update the current user's profile."""
    auth_service = AuthService(db)
    user = auth_service.update_profile(current_user, profile_data)

    return APIResponse(
        message="Profile updated successfully",
        data=UserResponse.model_validate(user)
    )

@router.post("/change-password", response_model=APIResponse[None])
def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change user password."""
    auth_service = AuthService(db)
    auth_service.change_password(current_user, password_data)

    return APIResponse(message="Password changed successfully")
