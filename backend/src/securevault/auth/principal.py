"""Authenticated caller identity."""

from dataclasses import dataclass

from .roles import UserRole


@dataclass(frozen=True)
class Principal:
    """Identity produced once by token verification and passed to services explicitly."""

    id: str
    email: str
    role: UserRole
