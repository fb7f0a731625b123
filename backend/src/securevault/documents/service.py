"""Document Store: ingestion, authorized retrieval and deletion of documents.

Upload order is verify -> write blob -> persist metadata. The metadata row
only exists after a successful blob write. If persisting the row fails the
error is surfaced and the blob is left behind; no transaction spans the
blob store and the database.
"""

import logging
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..audit.service import AuditService, RequestOrigin
from ..clock import Clock, utc_now
from ..domain.documents.content_verifier import ContentVerificationError, ContentVerifier
from ..domain.documents.ports.blob_storage_port import BlobStoragePort, StorageError
from ..domain.documents.validation import safe_extension, sanitize_filename
from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..models.document import Document, DocumentType
from ..models.document_share import DocumentShare
from ..observability.metrics import documents_uploaded_total

logger = logging.getLogger(__name__)


def parse_document_type(value: str) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise BadRequestError(f"Invalid document type {value!r}. Allowed: {allowed}")


class DocumentStore:
    """Owns document metadata and the blob lifecycle."""

    def __init__(
        self,
        db: Session,
        storage: BlobStoragePort,
        audit: AuditService,
        verifier: Optional[ContentVerifier] = None,
        clock: Clock = utc_now,
    ):
        self.db = db
        self.storage = storage
        self.audit = audit
        self.verifier = verifier or ContentVerifier()
        self._clock = clock

    async def upload(
        self,
        owner_id: str,
        data: bytes,
        original_filename: str,
        name: str,
        category: DocumentType,
        declared_mime_type: str,
        description: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> Document:
        """Verify, store and register an uploaded document.

        Raises:
            BadRequestError: Content verification failed (nothing is written)
            StorageError: The blob write failed (no metadata is created)
            SQLAlchemyError: Metadata could not be persisted after the blob write
        """
        category = parse_document_type(category)

        try:
            mime_type = self.verifier.verify(data, declared_mime_type, category)
        except ContentVerificationError as e:
            documents_uploaded_total.labels(category=category.value, outcome="rejected").inc()
            self.audit.record(
                "DOCUMENT_UPLOAD_REJECTED",
                user_id=owner_id,
                entity_type="Document",
                details={
                    "reason": e.reason,
                    "message": e.message,
                    "category": category.value,
                    "declared_mime_type": declared_mime_type,
                    "file_size": len(data),
                },
                origin=origin,
            )
            raise

        original_name = sanitize_filename(original_filename or "")
        try:
            locator = await self.storage.write_new(data, extension=safe_extension(original_name))
        except StorageError:
            documents_uploaded_total.labels(category=category.value, outcome="error").inc()
            raise

        now = self._clock()
        document = Document(
            owner_id=owner_id,
            name=name,
            type=category.value,
            file_path=locator,
            file_size=len(data),
            mime_type=mime_type,
            description=description,
            doc_metadata={
                "original_name": original_name,
                "uploaded_at": now.isoformat(),
            },
            created_at=now,
            updated_at=now,
        )

        try:
            self.db.add(document)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            documents_uploaded_total.labels(category=category.value, outcome="error").inc()
            logger.error(
                f"Failed to persist metadata for blob {locator}; blob left orphaned",
                exc_info=True,
            )
            raise

        self.db.refresh(document)
        documents_uploaded_total.labels(category=category.value, outcome="success").inc()
        logger.info(
            f"Document uploaded: id={document.id}, type={document.type}, size={document.file_size}",
            extra={"user_id": owner_id, "document_id": document.id},
        )
        self.audit.record(
            "DOCUMENT_UPLOADED",
            user_id=owner_id,
            entity_type="Document",
            entity_id=document.id,
            details={
                "name": document.name,
                "type": document.type,
                "mime_type": document.mime_type,
                "file_size": document.file_size,
            },
            origin=origin,
        )
        return document

    def list_owned(self, owner_id: str) -> List[Document]:
        """Caller's own documents, newest first."""
        return (
            self.db.query(Document)
            .filter(Document.owner_id == owner_id)
            .order_by(desc(Document.created_at))
            .all()
        )

    def get(self, document_id: str, requester_id: str, origin: Optional[RequestOrigin] = None) -> Document:
        """Fetch a document the requester owns or has a share row for.

        Share expiry is not consulted here: an expired share that has not
        been revoked still grants access. Expired shares are hidden only
        from ShareEngine.shared_with_me.

        Raises:
            NotFoundError: No such document
            ForbiddenError: Requester is neither owner nor grantee
        """
        document = self.db.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document not found")

        if document.owner_id != requester_id:
            share = (
                self.db.query(DocumentShare)
                .filter(
                    DocumentShare.document_id == document_id,
                    DocumentShare.shared_with_id == requester_id,
                )
                .first()
            )
            if share is None:
                self.audit.record(
                    "DOCUMENT_ACCESS_DENIED",
                    user_id=requester_id,
                    entity_type="Document",
                    entity_id=document_id,
                    origin=origin,
                )
                raise ForbiddenError("Access to this document is denied")

        self.audit.record(
            "DOCUMENT_ACCESSED",
            user_id=requester_id,
            entity_type="Document",
            entity_id=document_id,
            details={"as_owner": document.owner_id == requester_id},
            origin=origin,
        )
        return document

    async def delete(self, document_id: str, requester_id: str, origin: Optional[RequestOrigin] = None) -> None:
        """Remove blob, shares and metadata. Owner only.

        Blob removal is best-effort: a failure is logged and the metadata
        is deleted anyway.

        Raises:
            NotFoundError: No such document
            ForbiddenError: Requester is not the owner
        """
        document = self.db.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document not found")
        if document.owner_id != requester_id:
            raise ForbiddenError("Only the owner can delete this document")

        locator = document.file_path
        name = document.name
        try:
            await self.storage.delete(locator)
        except (StorageError, OSError):
            logger.warning(
                f"Failed to remove blob {locator} for document {document_id}",
                exc_info=True,
                extra={"document_id": document_id},
            )

        self.db.query(DocumentShare).filter(DocumentShare.document_id == document_id).delete(
            synchronize_session=False
        )
        self.db.delete(document)
        self.db.commit()

        logger.info(f"Document deleted: id={document_id}", extra={"user_id": requester_id})
        self.audit.record(
            "DOCUMENT_DELETED",
            user_id=requester_id,
            entity_type="Document",
            entity_id=document_id,
            details={"name": name},
            origin=origin,
        )
