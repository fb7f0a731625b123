"""Audit log query endpoints.

Read-only. Audit entries are written by the services, never through the API.
Bank officers and admins can query everything; any user can read their own trail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..api.responses import Envelope, envelope
from ..auth.dependencies import CurrentPrincipal, require_role
from ..auth.principal import Principal
from ..auth.roles import UserRole
from ..dependencies import get_audit_service
from .schemas import AuditLogResponse
from .service import AuditService, DEFAULT_QUERY_LIMIT

router = APIRouter(prefix="/audit", tags=["Audit Logs"])

MAX_QUERY_LIMIT = 1000


@router.get(
    "/logs",
    response_model=Envelope[List[AuditLogResponse]],
    summary="Query audit logs (BANK_OFFICER or ADMIN)",
)
def query_audit_logs(
    principal: Principal = Depends(require_role(UserRole.BANK_OFFICER)),
    audit: AuditService = Depends(get_audit_service),
    user_id: Optional[str] = Query(None, description="Only entries of this user"),
    action: Optional[str] = Query(None, description="Only entries with this action; takes precedence over user_id"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
):
    """Entries newest first, filtered by action when given, otherwise by user (or none)."""
    if action:
        rows = audit.query_by_action(action, limit=limit)
    else:
        rows = audit.query(user_id=user_id, limit=limit)
    return envelope(rows)


@router.get("/logs/my", response_model=Envelope[List[AuditLogResponse]])
def my_audit_logs(
    principal: CurrentPrincipal,
    audit: AuditService = Depends(get_audit_service),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
):
    return envelope(audit.query(user_id=principal.id, limit=limit))


@router.get(
    "/logs/entity/{entity_type}/{entity_id}",
    response_model=Envelope[List[AuditLogResponse]],
    summary="Audit trail of one entity (BANK_OFFICER or ADMIN)",
)
def entity_audit_logs(
    entity_type: str,
    entity_id: str,
    principal: Principal = Depends(require_role(UserRole.BANK_OFFICER)),
    audit: AuditService = Depends(get_audit_service),
):
    return envelope(audit.query_by_entity(entity_type, entity_id))
