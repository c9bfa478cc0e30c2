"""User SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, CheckConstraint, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import validates

from .base import Base, utcnow


class User(Base):
    """Marketplace user mirrored from Clerk.

    The seller verification flow is the only writer of the
    customer / seller_pending / seller role transitions.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    clerk_id = Column(Text, nullable=False, unique=True)
    email = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default="customer")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('customer', 'seller_pending', 'seller', 'admin')",
            name='ck_users_role'
        ),
    )

    @validates('email')
    def validate_email(self, key, value):
        return value.strip().lower()

    def to_dict(self):
        return {
            "id": str(self.id),
            "clerk_id": self.clerk_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
