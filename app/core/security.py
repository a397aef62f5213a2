from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel
from enum import Enum
import calendar

from .config import settings

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# JWT Security. Missing headers fall through to the session cookie.
security = HTTPBearer(auto_error=False)

class UserRole(str, Enum):
    ADULT = "adult"
    ADOLESCENT = "adolescent"
    HEALTH_PROFESSIONAL = "health_professional"

    @property
    def is_patient(self) -> bool:
        return self in PATIENT_ROLES

    @property
    def is_health_professional(self) -> bool:
        return self in PROFESSIONAL_ROLES

PATIENT_ROLES = (UserRole.ADULT, UserRole.ADOLESCENT)
PROFESSIONAL_ROLES = (UserRole.HEALTH_PROFESSIONAL,)

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    iat: Optional[int] = None
    exp: Optional[int] = None

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

# JWT utilities
def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed session token for a user."""
    issued_at = datetime.utcnow()

    if expires_delta:
        expire = issued_at + expires_delta
    else:
        expire = issued_at + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

    to_encode = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expire,
    }

    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt

def verify_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )

        return TokenPayload(**payload)

    except JWTError:
        return None

def token_issued_before(issued_at: Optional[int], changed_at: Optional[datetime]) -> bool:
    """True when a token predates the user's last password change."""
    if changed_at is None:
        return False
    if issued_at is None:
        return True
    return issued_at < calendar.timegm(changed_at.utctimetuple())

# Security exceptions
class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
