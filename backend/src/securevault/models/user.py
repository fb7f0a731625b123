"""User SQLAlchemy model"""

import re

from sqlalchemy import Boolean, Column, String, Text, CheckConstraint
from sqlalchemy.orm import relationship, validates

from ..clock import utc_now
from .base import Base, UTCDateTime, new_id


class User(Base):
    """Account that can authenticate, own documents, and receive shares.

    Passwords are hashed using Argon2id. The role is one of ADMIN,
    BANK_OFFICER, USER (see auth.roles).
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(320), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="USER")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime(), nullable=False, default=utc_now, onupdate=utc_now)

    # Relationships
    documents = relationship("Document", back_populates="owner", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('ADMIN', 'BANK_OFFICER', 'USER')",
            name='ck_users_role'
        ),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    def public_profile(self):
        """Fields safe to show to other users (share recipients)."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
