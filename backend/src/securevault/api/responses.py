"""Uniform response shapes for the HTTP boundary.

Success: ``{data, status_code, timestamp}``
Failure: ``{status_code, error, message, path, method, timestamp, details?}``
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    data: T
    status_code: int = 200
    timestamp: datetime


class ErrorResponse(BaseModel):
    status_code: int
    error: str
    message: str
    path: str
    method: str
    timestamp: datetime
    details: Optional[List[Dict[str, Any]]] = None


def envelope(data: Any, status_code: int = 200) -> Dict[str, Any]:
    """Wrap a successful result."""
    return {
        "data": data,
        "status_code": status_code,
        "timestamp": datetime.now(timezone.utc),
    }


def error_body(
    status_code: int,
    error: str,
    message: str,
    path: str,
    method: str,
    details: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    body = ErrorResponse(
        status_code=status_code,
        error=error,
        message=message,
        path=path,
        method=method,
        timestamp=datetime.now(timezone.utc),
        details=details or None,
    )
    return body.model_dump(mode="json", exclude_none=True)
