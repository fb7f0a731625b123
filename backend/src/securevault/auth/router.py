"""Authentication endpoints: password + one-time code login, current user."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..api.responses import Envelope, envelope
from ..audit.service import RequestOrigin
from ..database import get_db
from ..dependencies import get_otp_service
from ..errors import UnauthorizedError
from ..models.user import User
from .dependencies import CurrentPrincipal
from .otp import OtpService
from .schemas import (
    LoginRequest,
    MeResponse,
    OtpChallengeResponse,
    TokenResponse,
    VerifyOtpRequest,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Envelope[OtpChallengeResponse])
def login(
    credentials: LoginRequest,
    request: Request,
    otp_service: OtpService = Depends(get_otp_service),
):
    """Verify e-mail and password, then issue a one-time code.

    Raises:
        UnauthorizedError: Invalid credentials or inactive account
    """
    challenge = otp_service.login(
        credentials.email,
        credentials.password,
        origin=RequestOrigin.from_request(request),
    )
    return envelope(OtpChallengeResponse(
        message=challenge.message,
        otp_code=challenge.otp_code,
        expires_at=challenge.expires_at,
    ))


@router.post("/verify-otp", response_model=Envelope[TokenResponse])
def verify_otp(
    body: VerifyOtpRequest,
    request: Request,
    otp_service: OtpService = Depends(get_otp_service),
):
    """Trade a valid one-time code for a bearer token."""
    result = otp_service.verify_otp(body.email, body.code, origin=RequestOrigin.from_request(request))
    return envelope(TokenResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        expires_in=result.expires_in,
        user=result.user,
    ))


@router.get("/me", response_model=Envelope[MeResponse])
def get_me(principal: CurrentPrincipal, db: Session = Depends(get_db)):
    user = db.get(User, principal.id)
    if user is None:
        raise UnauthorizedError("User not found")
    return envelope(MeResponse.model_validate(user))
