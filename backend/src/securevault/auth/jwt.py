"""Session token issuing and verification (HS256 JWT).

Claims:
- sub: user id (opaque string)
- email: user's e-mail address
- role: "ADMIN" | "BANK_OFFICER" | "USER"
- iat / exp: issue and expiry instants (Unix seconds)

Secret comes from JWT_SECRET, lifetime from JWT_EXPIRY_MINUTES (default 60).
No refresh tokens; the client re-authenticates after expiry.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

REQUIRED_CLAIMS = ("sub", "email", "role", "iat", "exp")


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from environment.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = os.getenv('JWT_SECRET')
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def get_jwt_expiry_minutes() -> int:
    expiry = os.getenv('JWT_EXPIRY_MINUTES', '60')
    try:
        return int(expiry)
    except ValueError:
        return 60


def create_access_token(
    user_id: str,
    role: str,
    email: str,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed access token for an authenticated user.

    Args:
        user_id: User id
        role: User's role (ADMIN, BANK_OFFICER, USER)
        email: User's email address
        now: Issue instant; defaults to the current UTC time

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()
    issued_at = now or datetime.now(timezone.utc)
    expiration = issued_at + timedelta(minutes=get_jwt_expiry_minutes())

    payload = {
        'sub': str(user_id),
        'email': email,
        'role': role,
        'iat': int(issued_at.timestamp()),
        'exp': int(expiration.timestamp())
    }

    return jwt.encode(payload, secret, algorithm='HS256')


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=['HS256'],
            options={"require": list(REQUIRED_CLAIMS)},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
