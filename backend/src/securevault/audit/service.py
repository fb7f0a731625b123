"""Audit logging service for security events.

All security-relevant events are written through AuditService.record.
Recording is best-effort: a persistence failure is logged and counted but
never propagated, so an audit outage cannot abort or roll back the
operation being audited.

The writer opens its own session from a session factory. It never joins
the caller's transaction, and callers commit their primary work before
recording.

Audit Events:
- LOGIN_FAILED, OTP_ISSUED, OTP_VERIFIED, OTP_VERIFICATION_FAILED
- DOCUMENT_UPLOADED, DOCUMENT_UPLOAD_REJECTED, DOCUMENT_ACCESSED,
  DOCUMENT_ACCESS_DENIED, DOCUMENT_DELETED
- DOCUMENT_SHARED, SHARE_REVOKED, SHARE_PERMISSION_UPDATED
- DATA_EXPORT, DATA_DELETION, DATA_RECTIFICATION, CONSENT_GRANTED,
  CONSENT_REVOKED
- INTERNAL_SERVER_ERROR
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from fastapi import Request
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..clock import Clock, utc_now
from ..models.audit_log import AuditLog
from ..observability.metrics import audit_write_failures_total

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 100


@dataclass(frozen=True)
class RequestOrigin:
    """Where a request came from, as recorded on audit rows and consents."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestOrigin":
        """Extract client IP (first X-Forwarded-For hop when proxied) and User-Agent."""
        ip_address = request.client.host if request.client else None
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # Use first IP in chain (original client)
            ip_address = forwarded_for.split(",")[0].strip()

        return cls(ip_address=ip_address, user_agent=request.headers.get("User-Agent"))


def _discard(session: Session, rollback: bool = False) -> None:
    """Roll back and close an audit session; errors here are logged, not raised."""
    try:
        if rollback:
            session.rollback()
    except Exception:
        logger.warning("Audit session rollback failed", exc_info=True)
    finally:
        try:
            session.close()
        except Exception:
            logger.warning("Audit session close failed", exc_info=True)


class AuditService:
    """Writes and reads audit log entries."""

    def __init__(self, session_factory: Callable[[], Session], clock: Clock = utc_now):
        self._session_factory = session_factory
        self._clock = clock

    def record(
        self,
        action: str,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> None:
        """Append one audit entry. Never raises.

        Args:
            action: Event tag, e.g. "DOCUMENT_SHARED"
            user_id: Acting user (None for anonymous or system events)
            entity_type: Type of entity affected, e.g. "Document"
            entity_id: ID of affected entity
            details: Structured context; must not carry secrets or file bytes
            origin: Client IP and User-Agent
        """
        origin = origin or RequestOrigin()
        session = None
        try:
            session = self._session_factory()
            session.add(AuditLog(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
                ip_address=origin.ip_address,
                user_agent=origin.user_agent,
                created_at=self._clock(),
            ))
            session.commit()
        except Exception:
            # Audit failures must never reach the caller
            audit_write_failures_total.inc()
            logger.error(f"Failed to write audit event {action}", exc_info=True)
            if session is not None:
                _discard(session, rollback=True)
        else:
            _discard(session)

    def query(self, user_id: Optional[str] = None, limit: int = DEFAULT_QUERY_LIMIT) -> List[Dict[str, Any]]:
        """Entries for one user, or all entries when user_id is None, newest first."""
        with self._session_factory() as session:
            stmt = session.query(AuditLog)
            if user_id is not None:
                stmt = stmt.filter(AuditLog.user_id == user_id)
            rows = stmt.order_by(desc(AuditLog.created_at)).limit(limit).all()
            return [row.to_dict() for row in rows]

    def query_by_action(self, action: str, limit: int = DEFAULT_QUERY_LIMIT) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = (
                session.query(AuditLog)
                .filter(AuditLog.action == action)
                .order_by(desc(AuditLog.created_at))
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    def query_by_entity(self, entity_type: str, entity_id: str) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = (
                session.query(AuditLog)
                .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
                .order_by(desc(AuditLog.created_at))
                .all()
            )
            return [row.to_dict() for row in rows]
