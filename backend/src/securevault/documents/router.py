"""Document endpoints: upload, list, fetch, delete, and share management.

Every handler resolves the caller through the bearer token and hands the
Principal to the Document Store or Share Engine; authorization decisions
live in those services.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from ..api.responses import Envelope, envelope
from ..audit.service import RequestOrigin
from ..auth.dependencies import CurrentPrincipal
from ..config import Settings, get_settings
from ..dependencies import get_document_store, get_share_engine
from .schemas import (
    DocumentResponse,
    ShareDocumentRequest,
    SharedDocumentResponse,
    ShareResponse,
    ShareStatusResponse,
    UpdatePermissionRequest,
    UploadDocumentForm,
)
from .service import DocumentStore
from .sharing import ShareEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.post(
    "/upload",
    response_model=Envelope[DocumentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    principal: CurrentPrincipal,
    request: Request,
    file: UploadFile = File(...),
    name: str = Form(...),
    type: str = Form(...),
    description: Optional[str] = Form(None),
    store: DocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_settings),
):
    """Upload a document.

    The declared type is the multipart part's Content-Type. The bytes must
    really be of that type and the type must be allowed for the category.
    """
    form = UploadDocumentForm(name=name, type=type, description=description)

    # One byte past the limit is enough for the size check to reject
    data = await file.read(settings.MAX_UPLOAD_SIZE_BYTES + 1)

    document = await store.upload(
        owner_id=principal.id,
        data=data,
        original_filename=file.filename or "",
        name=form.name,
        category=form.type,
        declared_mime_type=file.content_type or "application/octet-stream",
        description=form.description,
        origin=RequestOrigin.from_request(request),
    )
    return envelope(DocumentResponse.from_document(document), status_code=status.HTTP_201_CREATED)


@router.get("", response_model=Envelope[List[DocumentResponse]])
def list_my_documents(principal: CurrentPrincipal, store: DocumentStore = Depends(get_document_store)):
    documents = store.list_owned(principal.id)
    return envelope([DocumentResponse.from_document(doc) for doc in documents])


@router.get("/shared/with-me", response_model=Envelope[List[SharedDocumentResponse]])
def list_shared_with_me(principal: CurrentPrincipal, engine: ShareEngine = Depends(get_share_engine)):
    """Documents other users currently share with the caller (expired shares excluded)."""
    views = engine.shared_with_me(principal.id)
    return envelope([SharedDocumentResponse.from_view(view) for view in views])


@router.get("/{document_id}", response_model=Envelope[DocumentResponse])
def get_document(
    document_id: str,
    principal: CurrentPrincipal,
    request: Request,
    store: DocumentStore = Depends(get_document_store),
):
    document = store.get(document_id, principal.id, origin=RequestOrigin.from_request(request))
    return envelope(DocumentResponse.from_document(document, include_owner=True))


@router.delete("/{document_id}", response_model=Envelope[dict])
async def delete_document(
    document_id: str,
    principal: CurrentPrincipal,
    request: Request,
    store: DocumentStore = Depends(get_document_store),
):
    await store.delete(document_id, principal.id, origin=RequestOrigin.from_request(request))
    return envelope({"message": "Document deleted"})


@router.post(
    "/{document_id}/share",
    response_model=Envelope[ShareResponse],
    status_code=status.HTTP_201_CREATED,
)
def share_document(
    document_id: str,
    body: ShareDocumentRequest,
    principal: CurrentPrincipal,
    request: Request,
    engine: ShareEngine = Depends(get_share_engine),
):
    share = engine.share(
        document_id,
        principal.id,
        body.shared_with_id,
        permission=body.permission,
        expires_at=body.expires_at,
        origin=RequestOrigin.from_request(request),
    )
    return envelope(ShareResponse.from_share(share), status_code=status.HTTP_201_CREATED)


@router.get("/{document_id}/shares", response_model=Envelope[List[ShareStatusResponse]])
def list_document_shares(
    document_id: str,
    principal: CurrentPrincipal,
    engine: ShareEngine = Depends(get_share_engine),
):
    statuses = engine.list_shares(document_id, principal.id)
    return envelope([ShareStatusResponse.from_status(s) for s in statuses])


@router.delete("/{document_id}/shares/{share_id}", response_model=Envelope[dict])
def revoke_share(
    document_id: str,
    share_id: str,
    principal: CurrentPrincipal,
    request: Request,
    engine: ShareEngine = Depends(get_share_engine),
):
    engine.revoke(document_id, share_id, principal.id, origin=RequestOrigin.from_request(request))
    return envelope({"message": "Share revoked"})


@router.patch("/{document_id}/shares/{share_id}/permission", response_model=Envelope[ShareResponse])
def update_share_permission(
    document_id: str,
    share_id: str,
    body: UpdatePermissionRequest,
    principal: CurrentPrincipal,
    request: Request,
    engine: ShareEngine = Depends(get_share_engine),
):
    share = engine.update_permission(
        document_id,
        share_id,
        principal.id,
        body.permission,
        origin=RequestOrigin.from_request(request),
    )
    return envelope(ShareResponse.from_share(share))
