"""SQLAlchemy models for the vault"""

from .base import Base
from .user import User
from .otp_code import OtpCode
from .document import Document, DocumentType
from .document_share import DocumentShare, SharePermission
from .consent import Consent, ConsentType
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "OtpCode",
    "Document",
    "DocumentType",
    "DocumentShare",
    "SharePermission",
    "Consent",
    "ConsentType",
    "AuditLog",
]
