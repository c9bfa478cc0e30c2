"""Seller onboarding API endpoints

Applicant endpoints:
- POST /sellers/apply                       Submit or re-submit an application
- GET  /sellers/application/status          Caller's application status
- GET  /sellers/profile                     Caller's seller profile

Admin endpoints:
- GET   /sellers                            List/search applications
- GET   /sellers/verification/pending       Pending applications
- PATCH /sellers/{seller_id}/verification   Approve / reject / reset
- GET   /sellers/{seller_id}/documents/{filename}   Download a document
"""

import logging
from functools import lru_cache
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.responses import FileResponse, RedirectResponse
from sqlalchemy.orm import Session

from auth.dependencies import CurrentAdmin, CurrentCaller
from config import get_settings
from database import get_db
from domain.documents import DocumentHelper, UploadedFile
from domain.documents.ports.object_storage_port import ObjectStoragePort
from infrastructure.cache import TTLCache
from infrastructure.storage.legacy_filesystem import LegacyFileLocator
from infrastructure.storage.storage_config import StorageConfig, validate_storage_config
from infrastructure.storage.supabase_storage_adapter import SupabaseStorageAdapter
from models.seller import Seller
from .schemas import (
    ApplicationForm,
    ApplicationStatusResponse,
    FailedUploadResponse,
    SellerEnvelope,
    SellerListResponse,
    SellerResponse,
    VerificationUpdate,
)
from .service import SellerApplicationService, VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sellers", tags=["Sellers"])


@lru_cache()
def get_storage() -> ObjectStoragePort:
    """Dependency for the document store.

    Cached so the adapter (and its signed URL cache) lives for the whole
    process instead of one request.
    """
    settings = get_settings()
    config = StorageConfig(
        supabase_url=settings.SUPABASE_URL,
        endpoint_url=settings.SUPABASE_S3_ENDPOINT or f"{settings.SUPABASE_URL.rstrip('/')}/storage/v1/s3",
        access_key=settings.SUPABASE_S3_ACCESS_KEY_ID,
        secret_key=settings.SUPABASE_S3_SECRET_ACCESS_KEY,
        bucket_name=settings.SELLER_DOCUMENTS_BUCKET,
        region=settings.SUPABASE_S3_REGION,
        max_file_size=settings.MAX_UPLOAD_SIZE_BYTES,
        service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
    )
    validate_storage_config(config)
    return SupabaseStorageAdapter.from_config(
        config,
        signed_url_cache=TTLCache(ttl_seconds=settings.SIGNED_URL_TTL_SECONDS),
    )


def get_legacy_locator() -> LegacyFileLocator:
    return LegacyFileLocator(get_settings().LEGACY_UPLOADS_ROOT)


def get_application_service(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
) -> SellerApplicationService:
    return SellerApplicationService(db, storage)


def get_verification_service(
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[ObjectStoragePort, Depends(get_storage)],
    locator: Annotated[LegacyFileLocator, Depends(get_legacy_locator)],
) -> VerificationService:
    return VerificationService(
        db,
        storage=storage,
        locator=locator,
        signed_url_ttl=get_settings().SIGNED_URL_TTL_SECONDS,
    )


def serialize_seller(seller: Seller, storage: Optional[ObjectStoragePort] = None) -> SellerResponse:
    """Seller row plus the display projection of each document."""
    helper = DocumentHelper(storage.get_public_url if storage else None)
    data = seller.to_dict()
    data["documents_info"] = [helper.get_document_info(doc) for doc in data["documents"]]
    return SellerResponse(**data)


@router.post("/apply", response_model=SellerEnvelope, status_code=status.HTTP_201_CREATED)
async def apply(
    caller: CurrentCaller,
    response: Response,
    service: Annotated[SellerApplicationService, Depends(get_application_service)],
    business_name: Annotated[Optional[str], Form(alias="businessName")] = None,
    business_type: Annotated[Optional[str], Form(alias="businessType")] = None,
    contact_name: Annotated[Optional[str], Form(alias="contactName")] = None,
    email: Annotated[Optional[str], Form()] = None,
    phone: Annotated[Optional[str], Form()] = None,
    address: Annotated[Optional[str], Form()] = None,
    city: Annotated[Optional[str], Form()] = None,
    state: Annotated[Optional[str], Form()] = None,
    zip_code: Annotated[Optional[str], Form(alias="zip")] = None,
    country: Annotated[Optional[str], Form()] = None,
    registration_number: Annotated[Optional[str], Form(alias="registrationNumber")] = None,
    tax_id: Annotated[Optional[str], Form(alias="taxId")] = None,
    bank_name: Annotated[Optional[str], Form(alias="bankName")] = None,
    account_number: Annotated[Optional[str], Form(alias="accountNumber")] = None,
    routing_number: Annotated[Optional[str], Form(alias="routingNumber")] = None,
    account_holder: Annotated[Optional[str], Form(alias="accountHolder")] = None,
    categories: Annotated[Optional[str], Form()] = None,
    documents: Annotated[Optional[List[UploadFile]], File()] = None,
):
    """Submit a seller application (multipart/form-data).

    Required fields: businessName, email, contactName. Up to 5 documents
    (PDF, JPEG, PNG, DOC, DOCX; max 10MB each) under the `documents` field.
    `categories` is a JSON array string.

    A rejected applicant may re-apply: the same row is re-opened as pending
    (200). A pending or approved application returns 409 with its status.

    Example:
        curl -X POST https://api.example.com/api/v1/sellers/apply \\
             -H "Authorization: Bearer $TOKEN" \\
             -F businessName="Acme Supplies" -F contactName="Sam Lee" \\
             -F email=sam@acme.com -F categories='["electronics"]' \\
             -F "documents=@business-permit.pdf"
    """
    form = ApplicationForm(
        business_name=business_name,
        business_type=business_type,
        contact_name=contact_name,
        email=email,
        phone=phone,
        address=address,
        city=city,
        state=state,
        zip=zip_code,
        country=country,
        registration_number=registration_number,
        tax_id=tax_id,
        bank_name=bank_name,
        account_number=account_number,
        routing_number=routing_number,
        account_holder=account_holder,
        categories=categories,
    )

    files = []
    for upload in documents or []:
        content = await upload.read()
        files.append(UploadedFile(
            original_name=upload.filename or "",
            mimetype=upload.content_type or "",
            content=content,
        ))

    result = await service.submit(caller, form, files)

    body = SellerEnvelope(
        message=(
            "Seller application submitted successfully"
            if result.created else "Seller application updated successfully"
        ),
        status=result.seller.status,
        data=serialize_seller(result.seller, service.storage),
        failed_uploads=[
            FailedUploadResponse(file_name=f.file_name, error=f.error) for f in result.failed_uploads
        ],
    )
    if not result.created:
        # Re-application updates the existing row
        response.status_code = status.HTTP_200_OK
    return body


@router.get("/application/status", response_model=ApplicationStatusResponse)
def application_status(
    caller: CurrentCaller,
    service: Annotated[SellerApplicationService, Depends(get_application_service)],
):
    """Status of the caller's own application (404 with has_applied=false if none)."""
    seller = service.get_application_status(caller)
    return ApplicationStatusResponse(
        has_applied=True,
        status=seller.status,
        application_date=seller.created_at,
        update_date=seller.updated_at,
        rejection_reason=seller.rejection_reason,
    )


@router.get("/profile", response_model=SellerEnvelope)
def profile(
    caller: CurrentCaller,
    service: Annotated[SellerApplicationService, Depends(get_application_service)],
):
    """Seller profile for users with role seller or seller_pending."""
    seller = service.get_profile(caller)
    return SellerEnvelope(status=seller.status, data=serialize_seller(seller, service.storage))


@router.get("", response_model=SellerListResponse)
def list_sellers(
    admin: CurrentAdmin,
    service: Annotated[VerificationService, Depends(get_verification_service)],
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    search: Annotated[Optional[str], Query()] = None,
):
    """All seller applications, newest first (admin only).

    Query params:
        status: pending | approved | rejected | all
        search: substring of business name, contact name or email
    """
    sellers = service.list_sellers(admin, status=status_filter, search=search)
    return SellerListResponse(data=[serialize_seller(s, service.storage) for s in sellers])


@router.get("/verification/pending", response_model=SellerListResponse)
def pending_verifications(
    admin: CurrentAdmin,
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    """Pending applications, newest first (admin only)."""
    sellers = service.list_pending(admin)
    return SellerListResponse(data=[serialize_seller(s, service.storage) for s in sellers])


@router.patch("/{seller_id}/verification", response_model=SellerEnvelope)
def update_verification(
    seller_id: str,
    update: VerificationUpdate,
    caller: CurrentCaller,
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    """Approve, reject or reset a seller application (admin only).

    The admin check happens inside the service, before the seller is read.
    Approval sets the linked user's role to seller, rejection to customer.
    """
    seller = service.update_status(
        caller,
        seller_id,
        update.status,
        notes=update.notes,
        expected_version=update.expected_version,
    )
    return SellerEnvelope(
        message=f"Seller application {seller.status} successfully",
        status=seller.status,
        data=serialize_seller(seller, service.storage),
    )


@router.get("/{seller_id}/documents/{filename}")
async def download_document(
    seller_id: str,
    filename: str,
    admin: CurrentAdmin,
    service: Annotated[VerificationService, Depends(get_verification_service)],
):
    """Download a seller document (admin only).

    Cloud documents redirect (307) to a time-limited URL; legacy documents
    are streamed from the legacy upload directory as an attachment.
    """
    download = await service.resolve_document_download(admin, seller_id, filename)
    if download.redirect_url:
        return RedirectResponse(download.redirect_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    return FileResponse(
        download.file_path,
        media_type=download.mimetype or "application/octet-stream",
        filename=download.filename,
        content_disposition_type="attachment",
    )

