"""Pydantic schemas for GDPR endpoints"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RectifyRequest(BaseModel):
    """Profile fields a user may correct. At least one is required."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)

    @model_validator(mode="after")
    def check_any_field(self):
        if self.first_name is None and self.last_name is None:
            raise ValueError("At least one of first_name, last_name is required")
        return self


class UserProfileResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConsentResponse(BaseModel):
    id: str
    consent_type: str
    granted: bool
    granted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExportBundle(BaseModel):
    """Everything held about the user at export time."""
    user: Dict[str, Any]
    documents: List[Dict[str, Any]]
    shared_documents: List[Dict[str, Any]]
    shares_created: List[Dict[str, Any]]
    consents: List[Dict[str, Any]]
    audit_logs: List[Dict[str, Any]]
    exported_at: datetime


class ErasureResponse(BaseModel):
    message: str
    documents_deleted: int
    shares_deleted: int
    consents_deleted: int
