"""Pydantic schemas for audit log endpoints"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    """Single audit log entry.

    Attributes:
        user_id: Acting user; None for anonymous, system or anonymized entries
        action: Event tag (e.g. DOCUMENT_SHARED)
        details: Structured context
    """
    id: str
    user_id: Optional[str] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
