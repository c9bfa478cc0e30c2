"""Seller API request/response schemas"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApplicationForm(BaseModel):
    """Seller application fields as submitted by the apply form.

    Multipart field names are camelCase; every field is optional here so
    missing required fields are reported by the service as a 400 with a
    readable message instead of a 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    business_name: Optional[str] = Field(None, alias="businessName")
    business_type: Optional[str] = Field(None, alias="businessType")
    contact_name: Optional[str] = Field(None, alias="contactName")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    registration_number: Optional[str] = Field(None, alias="registrationNumber")
    tax_id: Optional[str] = Field(None, alias="taxId")
    bank_name: Optional[str] = Field(None, alias="bankName")
    account_number: Optional[str] = Field(None, alias="accountNumber")
    routing_number: Optional[str] = Field(None, alias="routingNumber")
    account_holder: Optional[str] = Field(None, alias="accountHolder")
    categories: List[str] = Field(default_factory=list)

    @field_validator("categories", mode="before")
    @classmethod
    def parse_categories(cls, value: Any) -> List[str]:
        """The form sends categories as a JSON string; anything unparsable is empty."""
        if value is None or value == "":
            return []
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return []
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]

    def missing_required_fields(self) -> List[str]:
        missing = []
        for name, label in (("business_name", "businessName"), ("email", "email"), ("contact_name", "contactName")):
            value = getattr(self, name)
            if not value or not value.strip():
                missing.append(label)
        return missing

    def location(self) -> Dict[str, Optional[str]]:
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
        }

    def bank_info(self) -> Dict[str, Optional[str]]:
        return {
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "routing_number": self.routing_number,
            "account_holder": self.account_holder,
        }


class VerificationUpdate(BaseModel):
    """Admin decision on a seller application"""
    status: str = Field(..., description="pending, approved or rejected")
    notes: Optional[str] = Field(None, description="Rejection reason (used when status is rejected)")
    expected_version: Optional[int] = Field(
        None,
        description="Seller version the admin was looking at; a mismatch is a 409",
    )


class DocumentInfoResponse(BaseModel):
    """Display projection of a document descriptor"""
    filename: str
    type: str
    size: str
    storage: str
    is_supabase: bool
    downloadable: bool


class SellerResponse(BaseModel):
    """Seller row as returned by the API"""
    id: str
    clerk_id: Optional[str] = None
    email: str
    business_name: str
    business_type: Optional[str] = None
    contact_name: str
    phone: Optional[str] = None
    location: Optional[Any] = None
    categories: List[str] = Field(default_factory=list)
    registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    bank_info: Optional[Any] = None
    documents: List[Dict[str, Any]] = Field(default_factory=list)
    documents_info: List[DocumentInfoResponse] = Field(default_factory=list)
    status: str
    rejection_reason: Optional[str] = None
    verification_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: Optional[int] = None


class FailedUploadResponse(BaseModel):
    """A document that could not be stored during application"""
    file_name: str = Field(..., description="Original filename")
    error: str = Field(..., description="Error message")


class SellerEnvelope(BaseModel):
    """Single-seller response"""
    success: bool = True
    message: Optional[str] = None
    status: Optional[str] = None
    data: SellerResponse
    failed_uploads: List[FailedUploadResponse] = Field(default_factory=list)


class SellerListResponse(BaseModel):
    success: bool = True
    data: List[SellerResponse]


class ApplicationStatusResponse(BaseModel):
    """Applicant's view of their own application"""
    success: bool = True
    has_applied: bool
    status: str
    application_date: Optional[datetime] = None
    update_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
