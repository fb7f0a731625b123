"""Consent SQLAlchemy model"""

from enum import Enum

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint

from ..clock import utc_now
from .base import Base, UTCDateTime, new_id


class ConsentType(str, Enum):
    DATA_PROCESSING = "DATA_PROCESSING"
    DOCUMENT_SHARING = "DOCUMENT_SHARING"
    MARKETING = "MARKETING"
    ANALYTICS = "ANALYTICS"


class Consent(Base):
    """Data-processing consent, one row per (user, consent type)."""
    __tablename__ = "consents"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    consent_type = Column(String(32), nullable=False)
    granted = Column(Boolean, nullable=False, default=False)
    granted_at = Column(UTCDateTime(), nullable=True)
    revoked_at = Column(UTCDateTime(), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime(), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("user_id", "consent_type", name="uq_consents_user_type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "consent_type": self.consent_type,
            "granted": self.granted,
            "granted_at": self.granted_at.isoformat() if self.granted_at else None,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
