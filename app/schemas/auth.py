from pydantic import EmailStr, field_validator, model_validator
from datetime import datetime
from typing import Optional, List
import re

from .common import CamelModel
from ..core.security import UserRole

NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
PASSWORD_MIN_LENGTH = 6


def validate_name(value: str) -> str:
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError("Name must be between 2 and 50 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError("Name can only contain letters and spaces")
    return value


def validate_password_strength(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    if not (
        re.search(r"[a-z]", value)
        and re.search(r"[A-Z]", value)
        and re.search(r"\d", value)
    ):
        raise ValueError(
            "Password must contain at least one lowercase letter, "
            "one uppercase letter, and one number"
        )
    return value


class UserRegister(CamelModel):
    name: str
    email: EmailStr
    password: str
    user_type: UserRole
    confirm_password: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return validate_name(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password_strength(value)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Password confirmation does not match password")
        return self


class UserLogin(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def password_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class UpdateProfile(CamelModel):
    name: Optional[str] = None
    user_type: Optional[UserRole] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_name(value)


class ChangePassword(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value: str) -> str:
        return validate_password_strength(value)


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    user_type: UserRole
    is_active: bool
    is_email_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AuthData(CamelModel):
    user: UserResponse
    token: str


class HealthProfessionalProfile(CamelModel):
    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None


class HealthProfessionalList(CamelModel):
    health_professionals: List[HealthProfessionalProfile]
