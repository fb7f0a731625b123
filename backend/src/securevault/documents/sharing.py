"""Share Engine: per-user, per-document grants with optional expiry.

A share is active while it has no expiry or its expiry lies in the future.
Expired shares are kept until revoked or until the document goes away;
they are hidden from ``shared_with_me`` and flagged in ``list_shares``.

Granting is an upsert keyed on (document, grantee), executed as a single
INSERT ... ON CONFLICT statement so concurrent grants cannot duplicate rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from ..audit.service import AuditService, RequestOrigin
from ..clock import Clock, utc_now
from ..database import upsert
from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..models.base import new_id
from ..models.document import Document
from ..models.document_share import DocumentShare, SharePermission
from ..models.user import User
from ..observability.metrics import share_operations_total

logger = logging.getLogger(__name__)


@dataclass
class ShareStatus:
    """A share as seen by the document owner."""

    share: DocumentShare
    shared_with: Dict[str, Any]
    is_expired: bool


@dataclass
class SharedDocumentView:
    """A document shared with the caller, folded with its grant and owner."""

    document: Document
    shared_by: Dict[str, Any]
    permission: str
    shared_at: datetime
    expires_at: Optional[datetime]


def parse_permission(value: str) -> SharePermission:
    try:
        return SharePermission(value)
    except ValueError:
        raise BadRequestError(f"Invalid permission {value!r}. Allowed: READ, READ_WRITE")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ShareEngine:
    """Grants, revokes, updates and lists document shares."""

    def __init__(self, db: Session, audit: AuditService, clock: Clock = utc_now):
        self.db = db
        self.audit = audit
        self._clock = clock

    def _owned_document(self, document_id: str, owner_id: str, action: str) -> Document:
        document = self.db.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document not found")
        if document.owner_id != owner_id:
            raise ForbiddenError(f"Only the owner can {action} this document")
        return document

    def _share_of(self, document_id: str, share_id: str) -> DocumentShare:
        share = self.db.get(DocumentShare, share_id)
        if share is None:
            raise NotFoundError("Share not found")
        if share.document_id != document_id:
            raise BadRequestError("Share does not belong to this document")
        return share

    def share(
        self,
        document_id: str,
        owner_id: str,
        grantee_id: str,
        permission: SharePermission = SharePermission.READ,
        expires_at: Optional[datetime] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> DocumentShare:
        """Grant (or re-grant) access to one user.

        Granting again to the same grantee updates permission and expiry of
        the existing row.

        Raises:
            NotFoundError: Document or grantee missing
            ForbiddenError: Requester is not the owner
            BadRequestError: Self-share, or expiry not in the future
        """
        permission = parse_permission(permission)
        self._owned_document(document_id, owner_id, "share")

        if grantee_id == owner_id:
            raise BadRequestError("You cannot share a document with yourself")

        if self.db.get(User, grantee_id) is None:
            raise NotFoundError("Recipient user not found")

        now = self._clock()
        if expires_at is not None:
            expires_at = _as_utc(expires_at)
            if expires_at <= now:
                raise BadRequestError("Expiry date must be in the future")

        upsert(
            self.db,
            DocumentShare,
            values={
                "id": new_id(),
                "document_id": document_id,
                "shared_with_id": grantee_id,
                "permission": permission.value,
                "expires_at": expires_at,
                "created_at": now,
                "updated_at": now,
            },
            conflict_columns=["document_id", "shared_with_id"],
            update_columns=["permission", "expires_at", "updated_at"],
        )
        self.db.commit()

        share = (
            self.db.query(DocumentShare)
            .filter(
                DocumentShare.document_id == document_id,
                DocumentShare.shared_with_id == grantee_id,
            )
            .populate_existing()
            .one()
        )

        share_operations_total.labels(operation="grant").inc()
        logger.info(
            f"Document {document_id} shared with {grantee_id} ({permission.value})",
            extra={"user_id": owner_id, "document_id": document_id},
        )
        self.audit.record(
            "DOCUMENT_SHARED",
            user_id=owner_id,
            entity_type="Document",
            entity_id=document_id,
            details={
                "share_id": share.id,
                "shared_with_id": grantee_id,
                "permission": permission.value,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
            origin=origin,
        )
        return share

    def revoke(
        self,
        document_id: str,
        share_id: str,
        owner_id: str,
        origin: Optional[RequestOrigin] = None,
    ) -> None:
        """Delete a share.

        Raises:
            NotFoundError: Document or share missing
            ForbiddenError: Requester is not the owner
            BadRequestError: Share belongs to another document
        """
        self._owned_document(document_id, owner_id, "revoke shares of")
        share = self._share_of(document_id, share_id)
        grantee_id = share.shared_with_id

        self.db.delete(share)
        self.db.commit()

        share_operations_total.labels(operation="revoke").inc()
        self.audit.record(
            "SHARE_REVOKED",
            user_id=owner_id,
            entity_type="Document",
            entity_id=document_id,
            details={"share_id": share_id, "shared_with_id": grantee_id},
            origin=origin,
        )

    def update_permission(
        self,
        document_id: str,
        share_id: str,
        owner_id: str,
        permission: SharePermission,
        origin: Optional[RequestOrigin] = None,
    ) -> DocumentShare:
        """Change the permission of an existing share. Same guards as revoke."""
        permission = parse_permission(permission)
        self._owned_document(document_id, owner_id, "modify shares of")
        share = self._share_of(document_id, share_id)

        previous = share.permission
        share.permission = permission.value
        share.updated_at = self._clock()
        self.db.commit()
        self.db.refresh(share)

        share_operations_total.labels(operation="update_permission").inc()
        self.audit.record(
            "SHARE_PERMISSION_UPDATED",
            user_id=owner_id,
            entity_type="Document",
            entity_id=document_id,
            details={
                "share_id": share_id,
                "old_permission": previous,
                "new_permission": permission.value,
            },
            origin=origin,
        )
        return share

    def list_shares(self, document_id: str, owner_id: str) -> List[ShareStatus]:
        """All shares of a document, active and expired, newest first. Owner only."""
        self._owned_document(document_id, owner_id, "list shares of")
        now = self._clock()

        rows = (
            self.db.query(DocumentShare, User)
            .join(User, User.id == DocumentShare.shared_with_id)
            .filter(DocumentShare.document_id == document_id)
            .order_by(desc(DocumentShare.created_at))
            .all()
        )
        return [
            ShareStatus(share=share, shared_with=grantee.public_profile(), is_expired=share.is_expired(now))
            for share, grantee in rows
        ]

    def shared_with_me(self, grantee_id: str) -> List[SharedDocumentView]:
        """Documents currently shared with the caller; expired shares are left out."""
        now = self._clock()

        rows = (
            self.db.query(DocumentShare, Document, User)
            .join(Document, Document.id == DocumentShare.document_id)
            .join(User, User.id == Document.owner_id)
            .filter(
                DocumentShare.shared_with_id == grantee_id,
                or_(DocumentShare.expires_at.is_(None), DocumentShare.expires_at > now),
            )
            .order_by(desc(DocumentShare.created_at))
            .all()
        )
        return [
            SharedDocumentView(
                document=document,
                shared_by=owner.public_profile(),
                permission=share.permission,
                shared_at=share.created_at,
                expires_at=share.expires_at,
            )
            for share, document, owner in rows
        ]
