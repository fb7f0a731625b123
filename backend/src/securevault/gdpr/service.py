"""GDPR coordinator.

Fans a single data-subject request out over documents, shares, consents
and the audit trail. Erasure runs in one database transaction; blob
removal before it is best-effort.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, or_, update
from sqlalchemy.orm import Session

from ..audit.service import AuditService, RequestOrigin
from ..clock import Clock, utc_now
from ..database import upsert
from ..domain.documents.ports.blob_storage_port import BlobStoragePort, StorageError
from ..errors import BadRequestError, NotFoundError
from ..models.audit_log import AuditLog
from ..models.base import new_id
from ..models.consent import Consent, ConsentType
from ..models.document import Document
from ..models.document_share import DocumentShare
from ..models.otp_code import OtpCode
from ..models.user import User

logger = logging.getLogger(__name__)

EXPORT_AUDIT_LIMIT = 1000


def parse_consent_type(value: str) -> ConsentType:
    try:
        return ConsentType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in ConsentType)
        raise BadRequestError(f"Invalid consent type {value!r}. Allowed: {allowed}")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class GdprService:
    """Export, erase and rectify a user's data; record consents."""

    def __init__(
        self,
        db: Session,
        storage: BlobStoragePort,
        audit: AuditService,
        clock: Clock = utc_now,
    ):
        self.db = db
        self.storage = storage
        self.audit = audit
        self._clock = clock

    def _user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def export(self, user_id: str, origin: Optional[RequestOrigin] = None) -> Dict[str, Any]:
        """Assemble everything held about the user (document metadata only, no bytes)."""
        user = self._user(user_id)

        documents = (
            self.db.query(Document)
            .filter(Document.owner_id == user_id)
            .order_by(desc(Document.created_at))
            .all()
        )

        received = (
            self.db.query(DocumentShare, Document, User)
            .join(Document, Document.id == DocumentShare.document_id)
            .join(User, User.id == Document.owner_id)
            .filter(DocumentShare.shared_with_id == user_id)
            .all()
        )

        granted = (
            self.db.query(DocumentShare, Document, User)
            .join(Document, Document.id == DocumentShare.document_id)
            .join(User, User.id == DocumentShare.shared_with_id)
            .filter(Document.owner_id == user_id)
            .all()
        )

        consents = self.db.query(Consent).filter(Consent.user_id == user_id).all()
        audit_logs = self.audit.query(user_id=user_id, limit=EXPORT_AUDIT_LIMIT)

        bundle = {
            "user": {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role,
                "created_at": _iso(user.created_at),
                "updated_at": _iso(user.updated_at),
            },
            "documents": [
                {
                    "id": doc.id,
                    "name": doc.name,
                    "type": doc.type,
                    "file_size": doc.file_size,
                    "mime_type": doc.mime_type,
                    "description": doc.description,
                    "created_at": _iso(doc.created_at),
                    "updated_at": _iso(doc.updated_at),
                }
                for doc in documents
            ],
            "shared_documents": [
                {
                    "document": {
                        "id": doc.id,
                        "name": doc.name,
                        "type": doc.type,
                        "owner": {"id": owner.id, "email": owner.email},
                    },
                    "permission": share.permission,
                    "shared_at": _iso(share.created_at),
                    "expires_at": _iso(share.expires_at),
                }
                for share, doc, owner in received
            ],
            "shares_created": [
                {
                    "document": {"id": doc.id, "name": doc.name},
                    "shared_with": grantee.public_profile(),
                    "permission": share.permission,
                    "shared_at": _iso(share.created_at),
                    "expires_at": _iso(share.expires_at),
                }
                for share, doc, grantee in granted
            ],
            "consents": [consent.to_dict() for consent in consents],
            "audit_logs": audit_logs,
            "exported_at": self._clock().isoformat(),
        }

        self.audit.record(
            "DATA_EXPORT",
            user_id=user_id,
            entity_type="User",
            entity_id=user_id,
            origin=origin,
        )
        return bundle

    async def erase(self, user_id: str, origin: Optional[RequestOrigin] = None) -> Dict[str, int]:
        """Delete the user and everything they own; anonymize their audit rows.

        Audit rows are kept with ``user_id`` nulled and ``details`` replaced by
        an anonymization marker. A DATA_DELETION event attributed to no user
        is recorded afterwards.

        Returns:
            dict: Counts of removed documents, shares and consents
        """
        self._user(user_id)
        now = self._clock()

        documents = self.db.query(Document).filter(Document.owner_id == user_id).all()
        document_ids = [doc.id for doc in documents]

        for doc in documents:
            try:
                await self.storage.delete(doc.file_path)
            except (StorageError, OSError):
                logger.warning(
                    f"Failed to remove blob {doc.file_path} during erasure of user {user_id}",
                    exc_info=True,
                )

        share_filter = DocumentShare.shared_with_id == user_id
        if document_ids:
            share_filter = or_(share_filter, DocumentShare.document_id.in_(document_ids))
        shares_deleted = self.db.query(DocumentShare).filter(share_filter).delete(synchronize_session=False)

        documents_deleted = self.db.query(Document).filter(Document.owner_id == user_id).delete(
            synchronize_session=False
        )
        consents_deleted = self.db.query(Consent).filter(Consent.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.query(OtpCode).filter(OtpCode.user_id == user_id).delete(synchronize_session=False)

        self.db.execute(
            update(AuditLog)
            .where(AuditLog.user_id == user_id)
            .values(
                user_id=None,
                details={
                    "anonymized": True,
                    "original_user_id": user_id,
                    "anonymized_at": now.isoformat(),
                },
            )
        )

        self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        self.db.commit()
        self.db.expunge_all()

        counts = {
            "documents_deleted": documents_deleted,
            "shares_deleted": shares_deleted,
            "consents_deleted": consents_deleted,
        }
        logger.info(f"Erased user {user_id}: {counts}")

        self.audit.record(
            "DATA_DELETION",
            user_id=None,
            entity_type="User",
            entity_id=user_id,
            details={"deleted_at": now.isoformat(), **counts},
            origin=origin,
        )
        return counts

    def rectify(
        self,
        user_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> User:
        """Update profile fields. Only the names of changed fields are audited."""
        changes = {
            field: value
            for field, value in (("first_name", first_name), ("last_name", last_name))
            if value is not None
        }
        if not changes:
            raise BadRequestError("At least one of first_name, last_name is required")

        user = self._user(user_id)
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = self._clock()
        self.db.commit()
        self.db.refresh(user)

        self.audit.record(
            "DATA_RECTIFICATION",
            user_id=user_id,
            entity_type="User",
            entity_id=user_id,
            details={"updated_fields": sorted(changes)},
            origin=origin,
        )
        return user

    def grant_consent(
        self,
        user_id: str,
        consent_type: str,
        origin: Optional[RequestOrigin] = None,
    ) -> Consent:
        consent_type = parse_consent_type(consent_type)
        self._user(user_id)
        origin = origin or RequestOrigin()
        now = self._clock()

        upsert(
            self.db,
            Consent,
            values={
                "id": new_id(),
                "user_id": user_id,
                "consent_type": consent_type.value,
                "granted": True,
                "granted_at": now,
                "revoked_at": None,
                "ip_address": origin.ip_address,
                "user_agent": origin.user_agent,
                "created_at": now,
                "updated_at": now,
            },
            conflict_columns=["user_id", "consent_type"],
            update_columns=["granted", "granted_at", "revoked_at", "ip_address", "user_agent", "updated_at"],
        )
        self.db.commit()
        consent = self._consent(user_id, consent_type)

        self.audit.record(
            "CONSENT_GRANTED",
            user_id=user_id,
            entity_type="Consent",
            entity_id=consent.id,
            details={"consent_type": consent_type.value},
            origin=origin,
        )
        return consent

    def revoke_consent(
        self,
        user_id: str,
        consent_type: str,
        origin: Optional[RequestOrigin] = None,
    ) -> Consent:
        """Flip a recorded consent to not-granted.

        Raises:
            BadRequestError: Unknown consent type
            NotFoundError: The consent was never recorded
        """
        consent_type = parse_consent_type(consent_type)
        origin = origin or RequestOrigin()
        consent = self._consent(user_id, consent_type)
        if consent is None:
            raise NotFoundError(f"No {consent_type.value} consent recorded")

        now = self._clock()
        consent.granted = False
        consent.revoked_at = now
        consent.ip_address = origin.ip_address
        consent.user_agent = origin.user_agent
        consent.updated_at = now
        self.db.commit()
        self.db.refresh(consent)

        self.audit.record(
            "CONSENT_REVOKED",
            user_id=user_id,
            entity_type="Consent",
            entity_id=consent.id,
            details={"consent_type": consent_type.value},
            origin=origin,
        )
        return consent

    def list_consents(self, user_id: str) -> List[Consent]:
        return (
            self.db.query(Consent)
            .filter(Consent.user_id == user_id)
            .order_by(Consent.consent_type)
            .all()
        )

    def _consent(self, user_id: str, consent_type: ConsentType) -> Optional[Consent]:
        return (
            self.db.query(Consent)
            .filter(Consent.user_id == user_id, Consent.consent_type == consent_type.value)
            .populate_existing()
            .first()
        )
