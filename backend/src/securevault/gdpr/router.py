"""GDPR endpoints: the caller exercises rights over their own data."""

from typing import List

from fastapi import APIRouter, Depends, Request

from ..api.responses import Envelope, envelope
from ..audit.service import RequestOrigin
from ..auth.dependencies import CurrentPrincipal
from ..dependencies import get_gdpr_service
from .schemas import (
    ConsentResponse,
    ErasureResponse,
    ExportBundle,
    RectifyRequest,
    UserProfileResponse,
)
from .service import GdprService

router = APIRouter(prefix="/gdpr", tags=["GDPR"])


@router.get("/export", response_model=Envelope[ExportBundle])
def export_my_data(
    principal: CurrentPrincipal,
    request: Request,
    gdpr: GdprService = Depends(get_gdpr_service),
):
    """Right of access: profile, document metadata, shares, consents and audit trail."""
    return envelope(gdpr.export(principal.id, origin=RequestOrigin.from_request(request)))


@router.delete("/data", response_model=Envelope[ErasureResponse])
async def erase_my_data(
    principal: CurrentPrincipal,
    request: Request,
    gdpr: GdprService = Depends(get_gdpr_service),
):
    """Right to erasure. The account is gone afterwards; the token stops working."""
    counts = await gdpr.erase(principal.id, origin=RequestOrigin.from_request(request))
    return envelope(ErasureResponse(message="User data deleted", **counts))


@router.patch("/data", response_model=Envelope[UserProfileResponse])
def rectify_my_data(
    body: RectifyRequest,
    principal: CurrentPrincipal,
    request: Request,
    gdpr: GdprService = Depends(get_gdpr_service),
):
    user = gdpr.rectify(
        principal.id,
        first_name=body.first_name,
        last_name=body.last_name,
        origin=RequestOrigin.from_request(request),
    )
    return envelope(UserProfileResponse.model_validate(user))


@router.post("/consent/{consent_type}", response_model=Envelope[ConsentResponse])
def grant_consent(
    consent_type: str,
    principal: CurrentPrincipal,
    request: Request,
    gdpr: GdprService = Depends(get_gdpr_service),
):
    consent = gdpr.grant_consent(principal.id, consent_type, origin=RequestOrigin.from_request(request))
    return envelope(ConsentResponse.model_validate(consent))


@router.delete("/consent/{consent_type}", response_model=Envelope[ConsentResponse])
def revoke_consent(
    consent_type: str,
    principal: CurrentPrincipal,
    request: Request,
    gdpr: GdprService = Depends(get_gdpr_service),
):
    consent = gdpr.revoke_consent(principal.id, consent_type, origin=RequestOrigin.from_request(request))
    return envelope(ConsentResponse.model_validate(consent))


@router.get("/consents", response_model=Envelope[List[ConsentResponse]])
def list_my_consents(principal: CurrentPrincipal, gdpr: GdprService = Depends(get_gdpr_service)):
    consents = gdpr.list_consents(principal.id)
    return envelope([ConsentResponse.model_validate(c) for c in consents])
