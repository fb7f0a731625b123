"""Pydantic schemas for document and sharing endpoints"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..domain.documents.validation import MAX_DESCRIPTION_LENGTH, MAX_NAME_LENGTH
from ..models.document import Document, DocumentType
from ..models.document_share import DocumentShare, SharePermission
from .sharing import SharedDocumentView, ShareStatus


class UploadDocumentForm(BaseModel):
    """Form fields sent alongside the uploaded file.

    Constructed explicitly by the upload handler; a failure surfaces as a
    400 with field-level details.
    """
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    type: DocumentType
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class ShareDocumentRequest(BaseModel):
    shared_with_id: str = Field(..., min_length=1, max_length=36)
    permission: SharePermission = SharePermission.READ
    expires_at: Optional[datetime] = Field(
        None,
        description="ISO 8601 instant; must be in the future. Omit for a share without expiry.",
    )


class UpdatePermissionRequest(BaseModel):
    permission: SharePermission


class UserPublic(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str


class DocumentResponse(BaseModel):
    """Document metadata (never the bytes or the blob locator)."""
    id: str
    owner_id: str
    name: str
    type: str
    file_size: int
    mime_type: str
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    owner: Optional[UserPublic] = None

    @classmethod
    def from_document(cls, document: Document, include_owner: bool = False) -> "DocumentResponse":
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            name=document.name,
            type=document.type,
            file_size=document.file_size,
            mime_type=document.mime_type,
            description=document.description,
            metadata=document.doc_metadata or {},
            created_at=document.created_at,
            updated_at=document.updated_at,
            owner=UserPublic(**document.owner.public_profile()) if include_owner else None,
        )


class ShareResponse(BaseModel):
    id: str
    document_id: str
    shared_with_id: str
    permission: str
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_share(cls, share: DocumentShare) -> "ShareResponse":
        return cls(
            id=share.id,
            document_id=share.document_id,
            shared_with_id=share.shared_with_id,
            permission=share.permission,
            expires_at=share.expires_at,
            created_at=share.created_at,
            updated_at=share.updated_at,
        )


class ShareStatusResponse(ShareResponse):
    """Share as listed to the owner, flagged when expired."""
    shared_with: UserPublic
    is_expired: bool

    @classmethod
    def from_status(cls, status: ShareStatus) -> "ShareStatusResponse":
        base = ShareResponse.from_share(status.share).model_dump()
        return cls(**base, shared_with=UserPublic(**status.shared_with), is_expired=status.is_expired)


class SharedDocumentResponse(BaseModel):
    """Document shared with the caller, folded with the grant and its owner."""
    id: str
    name: str
    type: str
    file_size: int
    mime_type: str
    description: Optional[str] = None
    created_at: datetime
    shared_by: UserPublic
    permission: str
    shared_at: datetime
    expires_at: Optional[datetime] = None

    @classmethod
    def from_view(cls, view: SharedDocumentView) -> "SharedDocumentResponse":
        document = view.document
        return cls(
            id=document.id,
            name=document.name,
            type=document.type,
            file_size=document.file_size,
            mime_type=document.mime_type,
            description=document.description,
            created_at=document.created_at,
            shared_by=UserPublic(**view.shared_by),
            permission=view.permission,
            shared_at=view.shared_at,
            expires_at=view.expires_at,
        )
