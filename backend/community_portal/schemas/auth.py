"""Authentication schemas."""
from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    """Account registration request."""

    name: str = Field(..., min_length=2, max_length=120)
    email: EmailStr
    phone: str = Field(..., min_length=10, max_length=20)
    password: str = Field(..., min_length=8)


class LoginRequest(BaseModel):
    """Password login request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Refresh token supplied in the body by non-browser clients."""

    refresh_token: str | None = Field(default=None, alias="refreshToken")

    class Config:
        populate_by_name = True


class CompleteProfileRequest(BaseModel):
    phone: str = Field(..., min_length=10, max_length=20)


class UserSummary(BaseModel):
    """User info response."""

    id: str
    name: str
    email: str
    role: str
    status: str
    phone: str | None = None
    image: str | None = None

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    user: UserSummary


class UserUpdateResponse(BaseModel):
    message: str
    user: UserSummary


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
