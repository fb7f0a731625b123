"""FastAPI dependencies for authentication and authorization.

- get_current_principal: verifies the bearer token and loads the caller
- require_role: enforces a minimum role on top of that

Usage:
    @router.get("/documents")
    def list_documents(principal: CurrentPrincipal):
        ...

    @router.get("/audit/logs")
    def list_logs(principal: Principal = Depends(require_role(UserRole.BANK_OFFICER))):
        ...
"""

from typing import Annotated, Callable, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import ForbiddenError, UnauthorizedError
from ..models.user import User
from .jwt import decode_token
from .principal import Principal
from .roles import UserRole, has_permission

# auto_error=False so a missing header goes through our own 401 body
security = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    """Validate the bearer token and return the caller's identity.

    Raises:
        UnauthorizedError: Missing, invalid or expired token; user deleted or inactive
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token: missing user ID claim")

    # The user row is authoritative for role and status; claims may be stale
    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise UnauthorizedError("Account is inactive")

    try:
        role = UserRole(user.role)
    except ValueError:
        raise UnauthorizedError("Invalid role")

    return Principal(id=user.id, email=user.email, role=role)


def require_role(required_role: UserRole) -> Callable:
    """Create a dependency that enforces a minimum role (ADMIN > BANK_OFFICER > USER).

    Raises:
        ForbiddenError: If the caller's role is insufficient
    """
    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, required_role):
            raise ForbiddenError(
                f"Insufficient permissions. Required role: {required_role.value} or higher"
            )
        return principal

    return role_checker


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
