"""Pydantic schemas for authentication endpoints"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    """First login step: e-mail and password."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyOtpRequest(BaseModel):
    """Second login step: the 6-digit code issued by /auth/login."""
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$")


class OtpChallengeResponse(BaseModel):
    """Login challenge.

    Attributes:
        message: Human-readable status
        otp_code: The code itself, only when delivery is "response" (dev/test)
        expires_at: When the code stops being accepted
    """
    message: str
    otp_code: Optional[str] = None
    expires_at: datetime


class UserSummary(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str


class TokenResponse(BaseModel):
    """Session token issued after OTP verification."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary


class MeResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
