"""Seller SQLAlchemy model

One row per business applicant. Uploaded documents are embedded as a JSON
array on the row (not a separate table), so a document can only be found by
scanning its owning seller's array.
"""

import uuid

from sqlalchemy import Column, Text, Integer, CheckConstraint, Index, Uuid
from sqlalchemy.dialects.postgresql import TIMESTAMP

from .base import Base, PortableJSONB, utcnow


class Seller(Base):
    """Seller application and profile.

    `categories` and `product_categories` hold the same value while the
    schema migration between the two column names is in progress; use
    SellerRepository.get_categories / set_categories instead of touching them
    directly.

    `version` is the optimistic concurrency counter. SQLAlchemy bumps it on
    every UPDATE and raises StaleDataError when the row changed underneath.
    """
    __tablename__ = "sellers"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name='ck_sellers_status'
        ),
        Index("ix_sellers_email", "email", unique=True),
        Index("ix_sellers_status_created_at", "status", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    clerk_id = Column(Text, nullable=True)
    email = Column(Text, nullable=False)

    business_name = Column(Text, nullable=False)
    business_type = Column(Text, nullable=True)
    contact_name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    location = Column(PortableJSONB, nullable=True)
    categories = Column(PortableJSONB, nullable=True)
    product_categories = Column(PortableJSONB, nullable=True)
    registration_number = Column(Text, nullable=True)
    tax_id = Column(Text, nullable=True)
    bank_info = Column(PortableJSONB, nullable=True)

    documents = Column(PortableJSONB, nullable=False, default=list)

    status = Column(Text, nullable=False, default="pending")
    rejection_reason = Column(Text, nullable=True)
    verification_date = Column(TIMESTAMP(timezone=True), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dict(self):
        """Convert seller to dictionary representation"""
        return {
            "id": str(self.id),
            "clerk_id": self.clerk_id,
            "email": self.email,
            "business_name": self.business_name,
            "business_type": self.business_type,
            "contact_name": self.contact_name,
            "phone": self.phone,
            "location": self.location,
            "categories": self.categories if self.categories is not None else (self.product_categories or []),
            "registration_number": self.registration_number,
            "tax_id": self.tax_id,
            "bank_info": self.bank_info,
            "documents": list(self.documents or []),
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "verification_date": self.verification_date.isoformat() if self.verification_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }
