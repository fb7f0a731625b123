"""OtpCode SQLAlchemy model"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String

from ..clock import utc_now
from .base import Base, UTCDateTime, new_id


class OtpCode(Base):
    """Six-digit one-time code issued after a successful password check.

    ``used`` only ever moves from False to True, through a conditional
    UPDATE in OtpService.verify_otp.
    """
    __tablename__ = "otp_codes"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(6), nullable=False)
    expires_at = Column(UTCDateTime(), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)

    __table_args__ = (
        Index("ix_otp_codes_user_code", "user_id", "code"),
    )
