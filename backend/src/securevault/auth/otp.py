"""One-time code engine: issues codes after a password check and trades a
valid code for a session token.

Consumption is a single conditional UPDATE (``used`` false -> true), so when
several requests race on the same code exactly one of them wins.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import desc, update
from sqlalchemy.orm import Session

from ..audit.service import AuditService, RequestOrigin
from ..clock import Clock, utc_now
from ..errors import BadRequestError, ServiceUnavailableError, UnauthorizedError
from ..models.otp_code import OtpCode
from ..models.user import User
from ..observability.metrics import auth_events_total
from .jwt import create_access_token, get_jwt_expiry_minutes
from .otp_delivery import OtpDeliveryError, OtpSender
from .password import hash_password, password_needs_rehash, verify_password

logger = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Uniformly random 6-digit code in [100000, 999999] from a CSPRNG."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


@dataclass
class OtpChallenge:
    message: str
    expires_at: datetime
    otp_code: Optional[str] = None


@dataclass
class AuthResult:
    access_token: str
    expires_in: int
    user: Dict[str, Any]
    token_type: str = "bearer"


class OtpService:
    """Two-step login: password -> one-time code -> session token.

    Args:
        db: Session used for user lookups and code persistence
        audit: Audit writer
        expiry_minutes: Validity window of an issued code
        sender: Out-of-band channel; when None the code is returned to the
            caller in the challenge (development and test profile only)
        clock: Source of "now"
    """

    def __init__(
        self,
        db: Session,
        audit: AuditService,
        expiry_minutes: int = 2,
        sender: Optional[OtpSender] = None,
        clock: Clock = utc_now,
    ):
        self.db = db
        self.audit = audit
        self.expiry_minutes = expiry_minutes
        self.sender = sender
        self._clock = clock

    def _find_user(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def login(self, email: str, password: str, origin: Optional[RequestOrigin] = None) -> OtpChallenge:
        """Check the password and issue a fresh code.

        Any earlier code of this user (expired, used or still pending) is
        removed first, so exactly one live code exists afterwards.

        Raises:
            UnauthorizedError: Unknown e-mail, wrong password or inactive account
            ServiceUnavailableError: The out-of-band channel rejected the code
        """
        user = self._find_user(email)

        if not user or not verify_password(password, user.password_hash):
            auth_events_total.labels(event="login", outcome="failure").inc()
            self.audit.record(
                "LOGIN_FAILED",
                user_id=user.id if user else None,
                entity_type="User",
                entity_id=user.id if user else None,
                details={"reason": "invalid_credentials"},
                origin=origin,
            )
            raise UnauthorizedError("Invalid credentials")

        if not user.is_active:
            auth_events_total.labels(event="login", outcome="failure").inc()
            self.audit.record(
                "LOGIN_FAILED",
                user_id=user.id,
                entity_type="User",
                entity_id=user.id,
                details={"reason": "account_inactive"},
                origin=origin,
            )
            raise UnauthorizedError("Account is inactive")

        now = self._clock()
        purged = self.db.query(OtpCode).filter(OtpCode.user_id == user.id).delete(
            synchronize_session=False
        )

        if password_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)

        code = generate_otp_code()
        expires_at = now + timedelta(minutes=self.expiry_minutes)
        otp = OtpCode(user_id=user.id, code=code, expires_at=expires_at, used=False, created_at=now)
        self.db.add(otp)
        self.db.commit()

        logger.info(
            f"Issued one-time code for user {user.id} (purged {purged} earlier codes)",
            extra={"user_id": user.id},
        )

        if self.sender is not None:
            try:
                self.sender.send(user.email, code, expires_at)
            except OtpDeliveryError as e:
                # An undeliverable code must not stay live
                self.db.delete(otp)
                self.db.commit()
                logger.error(f"One-time code delivery failed for user {user.id}: {e}", extra={"user_id": user.id})
                auth_events_total.labels(event="login", outcome="failure").inc()
                self.audit.record(
                    "OTP_DELIVERY_FAILED",
                    user_id=user.id,
                    entity_type="User",
                    entity_id=user.id,
                    origin=origin,
                )
                raise ServiceUnavailableError("Verification code could not be delivered") from e

        auth_events_total.labels(event="login", outcome="success").inc()
        self.audit.record(
            "OTP_ISSUED",
            user_id=user.id,
            entity_type="User",
            entity_id=user.id,
            details={"expires_at": expires_at.isoformat()},
            origin=origin,
        )

        if self.sender is not None:
            return OtpChallenge(
                message="A verification code has been sent to your e-mail address",
                expires_at=expires_at,
            )
        return OtpChallenge(
            message="Verification code generated",
            expires_at=expires_at,
            otp_code=code,
        )

    def verify_otp(self, email: str, code: str, origin: Optional[RequestOrigin] = None) -> AuthResult:
        """Consume a code and mint a session token.

        The newest matching unused, unexpired code is consumed. Replaying a
        consumed code fails.

        Raises:
            UnauthorizedError: Unknown e-mail or inactive account
            BadRequestError: No matching unused, unexpired code
        """
        user = self._find_user(email)
        if not user or not user.is_active:
            auth_events_total.labels(event="verify_otp", outcome="failure").inc()
            raise UnauthorizedError("Invalid credentials")

        now = self._clock()
        otp = (
            self.db.query(OtpCode)
            .filter(
                OtpCode.user_id == user.id,
                OtpCode.code == code,
                OtpCode.used.is_(False),
                OtpCode.expires_at >= now,
            )
            .order_by(desc(OtpCode.created_at))
            .first()
        )

        consumed = False
        if otp is not None:
            result = self.db.execute(
                update(OtpCode)
                .where(OtpCode.id == otp.id, OtpCode.used.is_(False))
                .values(used=True)
            )
            consumed = result.rowcount == 1
            if consumed:
                self.db.commit()
            else:
                self.db.rollback()

        if not consumed:
            auth_events_total.labels(event="verify_otp", outcome="failure").inc()
            self.audit.record(
                "OTP_VERIFICATION_FAILED",
                user_id=user.id,
                entity_type="User",
                entity_id=user.id,
                origin=origin,
            )
            raise BadRequestError("Invalid or expired OTP code")

        token = create_access_token(user_id=user.id, role=user.role, email=user.email)

        auth_events_total.labels(event="verify_otp", outcome="success").inc()
        self.audit.record(
            "OTP_VERIFIED",
            user_id=user.id,
            entity_type="User",
            entity_id=user.id,
            origin=origin,
        )
        logger.info(f"User {user.id} authenticated", extra={"user_id": user.id})

        return AuthResult(
            access_token=token,
            expires_in=get_jwt_expiry_minutes() * 60,
            user={
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role,
            },
        )
