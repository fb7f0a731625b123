"""DocumentShare SQLAlchemy model"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, ForeignKey, String, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from ..clock import utc_now
from .base import Base, UTCDateTime, new_id


class SharePermission(str, Enum):
    READ = "READ"
    READ_WRITE = "READ_WRITE"


class DocumentShare(Base):
    """Grant of access to one document for one non-owner user.

    Unique per (document_id, shared_with_id); granting again updates the row.
    A share with ``expires_at`` in the past stays in the table until it is
    revoked or its document is deleted.
    """
    __tablename__ = "document_shares"

    id = Column(String(36), primary_key=True, default=new_id)
    document_id = Column(String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    shared_with_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    permission = Column(String(20), nullable=False, default="READ")
    expires_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime(), nullable=False, default=utc_now, onupdate=utc_now)

    # Relationships
    document = relationship("Document", back_populates="shares")
    shared_with = relationship("User")

    __table_args__ = (
        UniqueConstraint("document_id", "shared_with_id", name="uq_document_shares_document_grantee"),
        CheckConstraint("permission IN ('READ', 'READ_WRITE')", name="ck_document_shares_permission"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now
