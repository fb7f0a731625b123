"""FastAPI dependency providers for services and collaborators.

Each service is constructed per request with its collaborators passed in
explicitly. Tests replace collaborators through ``app.dependency_overrides``
(get_db, get_session_factory, get_storage, get_clock, get_settings).
"""

from functools import lru_cache
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from .audit.service import AuditService
from .auth.otp import OtpService
from .auth.otp_delivery import OtpSender, SmtpOtpSender
from .clock import Clock, utc_now
from .config import Settings, get_settings
from .database import SessionLocal, get_db
from .documents.service import DocumentStore
from .documents.sharing import ShareEngine
from .domain.documents.content_verifier import ContentVerifier
from .domain.documents.ports.blob_storage_port import BlobStoragePort
from .gdpr.service import GdprService
from .infrastructure.storage.storage_config import build_blob_storage, load_storage_config


@lru_cache()
def _blob_storage() -> BlobStoragePort:
    return build_blob_storage(load_storage_config(get_settings()))


def get_storage() -> BlobStoragePort:
    return _blob_storage()


def get_clock() -> Clock:
    return utc_now


def get_session_factory() -> Callable[[], Session]:
    """Session factory for the audit writer (separate from the request session)."""
    return SessionLocal


def get_audit_service(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
) -> AuditService:
    return AuditService(session_factory, clock=clock)


def build_otp_sender(settings: Settings) -> OtpSender:
    return SmtpOtpSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        sender=settings.OTP_EMAIL_FROM,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
    )


def get_otp_service(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> OtpService:
    sender = build_otp_sender(settings) if settings.OTP_DELIVERY.lower() == "smtp" else None
    return OtpService(
        db,
        audit,
        expiry_minutes=settings.OTP_EXPIRY_MINUTES,
        sender=sender,
        clock=clock,
    )


def get_document_store(
    db: Session = Depends(get_db),
    storage: BlobStoragePort = Depends(get_storage),
    audit: AuditService = Depends(get_audit_service),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> DocumentStore:
    verifier = ContentVerifier(max_file_size=settings.MAX_UPLOAD_SIZE_BYTES)
    return DocumentStore(db, storage, audit, verifier=verifier, clock=clock)


def get_share_engine(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
    clock: Clock = Depends(get_clock),
) -> ShareEngine:
    return ShareEngine(db, audit, clock=clock)


def get_gdpr_service(
    db: Session = Depends(get_db),
    storage: BlobStoragePort = Depends(get_storage),
    audit: AuditService = Depends(get_audit_service),
    clock: Clock = Depends(get_clock),
) -> GdprService:
    return GdprService(db, storage, audit, clock=clock)


def audit_service_for_app(app) -> AuditService:
    """Audit writer for code that runs outside dependency injection (exception handlers).

    Honours ``app.dependency_overrides`` so tests see the same database.
    """
    session_factory = app.dependency_overrides.get(get_session_factory, get_session_factory)()
    clock = app.dependency_overrides.get(get_clock, get_clock)()
    return AuditService(session_factory, clock=clock)


def storage_for_app(app) -> BlobStoragePort:
    return app.dependency_overrides.get(get_storage, get_storage)()
