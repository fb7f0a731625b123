"""AuditLog SQLAlchemy model"""

from sqlalchemy import Column, String, Text, ForeignKey, Index

from ..clock import utc_now
from .base import Base, PortableJSONB, UTCDateTime, new_id


class AuditLog(Base):
    """AuditLog model for append-only security event logging.

    Records all security-relevant events for compliance and forensics.
    Rows are never deleted. The only update ever applied is erasure-driven
    anonymization, which nulls ``user_id`` and replaces ``details``.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_user_id_created_at", "user_id", "created_at"),
        Index("ix_audit_logs_action_created_at", "action", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=True)
    entity_id = Column(String(64), nullable=True)
    details = Column(PortableJSONB, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)

    def to_dict(self):
        """Convert audit log entry to dictionary representation"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat()
        }
