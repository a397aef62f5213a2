from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional, Sequence
import logging

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    security, verify_token, token_issued_before, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload, PATIENT_ROLES, PROFESSIONAL_ROLES
)
from ..models.user import User

logger = logging.getLogger(__name__)

def get_current_user_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify the JWT from the Authorization header or session cookie."""
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(settings.AUTH_COOKIE_NAME)

    if not token:
        raise AuthenticationError("Not authorized to access this resource - No token provided")

    # Verify token
    token_payload = verify_token(token)
    if not token_payload or not token_payload.sub:
        raise AuthenticationError("Not authorized to access this resource - Invalid token")

    return token_payload

def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    try:
        user_id = int(token_payload.sub)
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found - Token is invalid")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    if token_issued_before(token_payload.iat, user.password_changed_at):
        raise AuthenticationError("Password recently changed, please log in again")

    return user

# Role-based access control dependencies
def require_role(allowed_roles: Sequence[UserRole]):
    """Create a dependency that requires specific user roles."""
    def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.user_type not in allowed_roles:
            raise AuthorizationError(
                f"User type '{UserRole(current_user.user_type).value}' is not "
                f"authorized to access this resource"
            )
        return current_user

    return role_checker

# Specific role dependencies
def get_patient_user(
    current_user: User = Depends(require_role(PATIENT_ROLES))
) -> User:
    """Require an adult or adolescent account."""
    return current_user

def get_health_professional_user(
    current_user: User = Depends(require_role(PROFESSIONAL_ROLES))
) -> User:
    """Require a health professional account."""
    return current_user

# Rate limiting dependency
def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting for registration."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:register:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_MAX_REQUESTS:
            logger.warning(f"Registration rate limit hit for {client_ip}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
