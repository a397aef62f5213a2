from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional
import logging

from ..models.user import User
from ..core.config import settings
from ..core.exceptions import ConflictError, AccountLockedError, ValidationFailure
from ..core.security import (
    verify_password, get_password_hash, create_access_token,
    AuthenticationError, AuthorizationError, UserRole
)
from ..schemas.auth import (
    UserLogin, UserRegister, UserResponse, AuthData,
    UpdateProfile, ChangePassword
)

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(
            User.email == email.strip().lower()
        ).first()

    def register_user(self, user_data: UserRegister) -> AuthData:
        """Register a new user and issue a session token."""
        if self.get_user_by_email(user_data.email):
            raise ConflictError("Email already in use")

        new_user = User(
            name=user_data.name,
            email=user_data.email.lower(),
            password_hash=get_password_hash(user_data.password),
            user_type=user_data.user_type,
            is_active=True,
            is_email_verified=False,
            failed_login_attempts=0,
        )

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)

        logger.info(f"Registered user {new_user.id} as {new_user.user_type.value}")

        return AuthData(
            user=UserResponse.model_validate(new_user),
            token=create_access_token(new_user.id),
        )

    def authenticate_user(self, login_data: UserLogin) -> AuthData:
        """Authenticate user and return a session token."""
        user = self.get_user_by_email(login_data.email)

        if not user:
            raise AuthenticationError("Invalid email or password")

        # Check account lockout
        if user.is_locked:
            raise AccountLockedError()

        if not user.is_active:
            raise AuthorizationError("Account is deactivated")

        # Verify password
        if not verify_password(login_data.password, user.password_hash):
            self._handle_failed_login(user)
            raise AuthenticationError("Invalid email or password")

        # Reset failed login attempts
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = datetime.utcnow()

        self.db.commit()
        self.db.refresh(user)

        return AuthData(
            user=UserResponse.model_validate(user),
            token=create_access_token(user.id),
        )

    def update_profile(self, user: User, profile_data: UpdateProfile) -> User:
        """Update name and, between patient roles only, the user type."""
        if profile_data.name is not None:
            user.name = profile_data.name

        if profile_data.user_type is not None and profile_data.user_type != user.user_type:
            current_role = UserRole(user.user_type)
            if not (current_role.is_patient and profile_data.user_type.is_patient):
                raise AuthorizationError(
                    "User type can only be changed between adult and adolescent"
                )
            user.user_type = profile_data.user_type

        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user: User, password_data: ChangePassword) -> None:
        """Replace the password; tokens issued earlier stop working."""
        if not verify_password(password_data.current_password, user.password_hash):
            raise ValidationFailure("Current password is incorrect")

        user.password_hash = get_password_hash(password_data.new_password)
        # Back-dated so a token issued in the same second is still accepted
        user.password_changed_at = datetime.utcnow() - timedelta(seconds=1)

        self.db.commit()
        logger.info(f"Password changed for user {user.id}")

    def _handle_failed_login(self, user: User):
        """Count a failed attempt and lock the account at the threshold."""
        now = datetime.utcnow()

        if user.locked_until and user.locked_until <= now:
            # Previous lock expired, restart the count
            user.locked_until = None
            user.failed_login_attempts = 1
        else:
            user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

            if user.failed_login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
                user.locked_until = now + timedelta(hours=settings.ACCOUNT_LOCK_HOURS)
                logger.warning(
                    f"User {user.id} locked until {user.locked_until.isoformat()} "
                    f"after {user.failed_login_attempts} failed login attempts"
                )

        self.db.commit()
