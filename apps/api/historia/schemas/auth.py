"""Authentication schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


class Role(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    CURATOR = "curator"
    RESEARCHER = "researcher"


class Principal(BaseModel):
    """Verified identity derived from a request's bearer token; lives for one request."""

    user_id: str = Field(min_length=1)
    role: Role = Role.USER
    email: str | None = None
    expires_at: datetime | None = None


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=100)
    password: str = Field(min_length=8, max_length=255)


class LoginRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)


class UserProfile(BaseModel):
    id: int
    username: str
    email: str
    role: Role


class TokenResponse(BaseModel):
    message: str
    token: str
    user: UserProfile


class TokenCheckResponse(BaseModel):
    valid: bool
    user: Principal
