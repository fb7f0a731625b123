"""Error taxonomy for the vault core.

Services raise these exceptions; the application boundary maps each kind to
an HTTP status and a structured error body (see main.py). Nothing in the
core raises framework exceptions.
"""

from typing import Any, Dict, List, Optional


class VaultError(Exception):
    """Base class for all expected failures of a vault operation."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UnauthorizedError(VaultError):
    """Bad credentials, inactive account, or missing/invalid session."""

    status_code = 401
    error = "Unauthorized"


class ForbiddenError(VaultError):
    """Authenticated but not entitled (wrong owner, no matching share)."""

    status_code = 403
    error = "Forbidden"


class NotFoundError(VaultError):
    """Referenced entity is absent."""

    status_code = 404
    error = "Not Found"


class BadRequestError(VaultError):
    """Malformed input, failed content verification, or invalid state transition."""

    status_code = 400
    error = "Bad Request"


class ServiceUnavailableError(VaultError):
    """A collaborator the operation depends on (e.g. the OTP mail channel) is down."""

    status_code = 503
    error = "Service Unavailable"
