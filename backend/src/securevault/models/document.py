"""Document SQLAlchemy model"""

from enum import Enum

from sqlalchemy import BigInteger, Column, ForeignKey, Index, String, Text, CheckConstraint
from sqlalchemy.orm import relationship

from ..clock import utc_now
from .base import Base, PortableJSONB, UTCDateTime, new_id


class DocumentType(str, Enum):
    """Document category; each category has its own MIME whitelist."""

    KYC_IDENTITY = "KYC_IDENTITY"
    KYC_PROOF_OF_ADDRESS = "KYC_PROOF_OF_ADDRESS"
    KYC_BANK_STATEMENT = "KYC_BANK_STATEMENT"
    CONTRACT = "CONTRACT"
    OTHER = "OTHER"


class Document(Base):
    """Uploaded document metadata. The bytes live in blob storage under ``file_path``.

    Ownership never transfers. ``metadata`` is a reserved attribute name on
    declarative classes, so the JSON column is mapped as ``doc_metadata``.
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)
    file_path = Column(String(512), nullable=False, unique=True)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    doc_metadata = Column("metadata", PortableJSONB, nullable=False, default=dict)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime(), nullable=False, default=utc_now, onupdate=utc_now)

    # Relationships
    owner = relationship("User", back_populates="documents")
    shares = relationship("DocumentShare", back_populates="document", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("file_size > 0", name="ck_documents_file_size_positive"),
        CheckConstraint(
            "type IN ('KYC_IDENTITY', 'KYC_PROOF_OF_ADDRESS', 'KYC_BANK_STATEMENT', 'CONTRACT', 'OTHER')",
            name="ck_documents_type",
        ),
        Index("ix_documents_owner_created", "owner_id", "created_at"),
    )
