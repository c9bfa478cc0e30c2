"""Seller onboarding services

SellerApplicationService handles the applicant side (apply, status, profile);
VerificationService handles the admin side (review, decide, download
documents). Both own the transaction of the session they are given.

Write order for every status change: seller row first, linked user role
second. The seller row is what the rest of the system reads, so a crash
between the two writes leaves a stale role rather than a stale application,
and the role write is retried until it commits.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from auth.roles import CallerIdentity, require_admin, require_seller_role
from config import get_settings
from domain.documents import (
    DocumentHelper,
    MAX_DOCUMENTS_PER_APPLICATION,
    UploadedFile,
    as_document,
    validate_upload,
)
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.sellers import (
    ROLE_FOR_STATUS,
    SellerStatus,
    StateTransitionError,
    VerificationActor,
    VerificationFields,
    apply_transition,
    parse_status,
    validate_transition,
)
from domain.sellers.errors import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from infrastructure.repositories.seller_repository import SellerRepository, UserRepository
from infrastructure.storage.legacy_filesystem import LegacyFileLocator
from models.base import utcnow
from models.seller import Seller
from observability.metrics import (
    documents_uploaded_total,
    seller_applications_total,
    seller_verifications_total,
)
from .schemas import ApplicationForm

logger = logging.getLogger(__name__)

# Role write retry policy (attempts, linear backoff in seconds)
ROLE_WRITE_ATTEMPTS = 3
ROLE_WRITE_BACKOFF_SECONDS = 0.2


@dataclass
class FailedUpload:
    file_name: str
    error: str


@dataclass
class ApplicationResult:
    """Outcome of a seller application submission.

    Attributes:
        seller: The created or re-opened seller row
        created: True for a new row, False for a re-application
        failed_uploads: Documents that could not be stored (best-effort)
    """
    seller: Seller
    created: bool
    failed_uploads: List[FailedUpload] = field(default_factory=list)


@dataclass
class DocumentDownload:
    """Where an admin can fetch a document from.

    Exactly one of redirect_url / file_path is set.
    """
    filename: str
    mimetype: Optional[str] = None
    redirect_url: Optional[str] = None
    file_path: Optional[Path] = None


class RoleSynchronizer:
    """Writes the linked user role after a seller status change.

    Each attempt runs in its own transaction; failures are rolled back and
    retried with linear backoff.
    """

    def __init__(
        self,
        db: Session,
        attempts: int = ROLE_WRITE_ATTEMPTS,
        backoff_seconds: float = ROLE_WRITE_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.users = UserRepository(db)
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def set_role(
        self,
        role: str,
        email: Optional[str] = None,
        clerk_id: Optional[str] = None,
        seller_id: Any = None,
    ) -> int:
        """Set the role of the user matched by clerk_id (preferred) or email.

        Returns:
            Number of user rows updated

        Raises:
            DatabaseError: If every attempt failed
        """
        log_extra = {"seller_id": str(seller_id) if seller_id else None}
        last_error: Optional[Exception] = None

        for attempt in range(1, self.attempts + 1):
            try:
                if clerk_id:
                    updated = self.users.set_role_by_clerk_id(clerk_id, role)
                else:
                    updated = self.users.set_role_by_email(email, role)
                self.db.commit()
            except (DatabaseError, SQLAlchemyError) as e:
                self.db.rollback()
                last_error = e
                logger.warning(
                    f"User role write failed (attempt {attempt}/{self.attempts}): role={role}, error={e}",
                    extra=log_extra,
                )
                if attempt < self.attempts:
                    self._sleep(self.backoff_seconds * attempt)
                continue

            if updated == 0:
                logger.info(f"No user row to update: role={role}", extra=log_extra)
            else:
                logger.info(f"User role set: role={role}, rows={updated}", extra=log_extra)
            return updated

        logger.error(f"User role write gave up: role={role}, error={last_error}", extra=log_extra)
        raise DatabaseError(
            "Seller status was saved but the user role could not be updated",
            {"role": role},
        )


def _parse_seller_id(seller_id: Any) -> UUID:
    if isinstance(seller_id, UUID):
        return seller_id
    try:
        return UUID(str(seller_id))
    except ValueError:
        raise NotFoundError("Seller not found")


def current_fields(seller: Seller) -> VerificationFields:
    return VerificationFields(
        status=SellerStatus(seller.status),
        rejection_reason=seller.rejection_reason,
        verification_date=seller.verification_date,
    )


class SellerApplicationService:
    """Applicant-facing operations.

    Args:
        db: Database session (committed by this service)
        storage: Document store for uploaded files
        role_sync: Override the role writer (tests inject a no-sleep one)
        max_file_size: Per-document size limit (default: MAX_UPLOAD_SIZE_BYTES)
    """

    def __init__(
        self,
        db: Session,
        storage: ObjectStoragePort,
        role_sync: Optional[RoleSynchronizer] = None,
        max_file_size: Optional[int] = None,
    ):
        self.db = db
        self.storage = storage
        self.sellers = SellerRepository(db)
        self.users = UserRepository(db)
        self.role_sync = role_sync or RoleSynchronizer(db)
        self.max_file_size = max_file_size if max_file_size is not None else get_settings().MAX_UPLOAD_SIZE_BYTES

    async def submit(
        self,
        caller: CallerIdentity,
        form: ApplicationForm,
        files: List[UploadedFile],
    ) -> ApplicationResult:
        """Submit (or re-submit after rejection) a seller application.

        Steps:
        1. Validate required fields and every file (nothing stored on failure)
        2. Apply the re-application policy for an existing row with this email
        3. Upload documents best-effort; a failed upload is reported, not fatal
        4. Insert or re-open the seller row as pending and commit
        5. Set the applicant's user role to seller_pending

        Raises:
            ValidationError: Missing required fields or an invalid file
            ConflictError: An application with this email is pending/approved
            DatabaseError: Seller row could not be written
        """
        missing = form.missing_required_fields()
        if missing:
            raise ValidationError("Missing required fields", errors=[f"{name} is required" for name in missing])

        if len(files) > MAX_DOCUMENTS_PER_APPLICATION:
            raise ValidationError(
                f"Too many files. Maximum {MAX_DOCUMENTS_PER_APPLICATION} documents per application."
            )

        file_errors = []
        for file in files:
            result = validate_upload(file, max_size=self.max_file_size)
            file_errors.extend(f"{file.original_name or 'unknown'}: {e}" for e in result.errors)
        if file_errors:
            raise ValidationError("One or more documents are invalid", errors=file_errors)

        email = form.email.strip().lower()
        existing = self.sellers.get_by_email(email)
        if existing is not None:
            try:
                validate_transition(SellerStatus(existing.status), SellerStatus.PENDING, VerificationActor.SELLER)
            except StateTransitionError:
                logger.info(
                    f"Application rejected, existing status={existing.status}",
                    extra={"seller_id": str(existing.id)},
                )
                raise ConflictError(
                    f"You already have a seller application with status: {existing.status}",
                    current_status=existing.status,
                )

        seller_id = existing.id if existing is not None else uuid.uuid4()
        documents, failed = await self._upload_documents(seller_id, files)

        fields = dict(
            business_name=form.business_name.strip(),
            business_type=form.business_type,
            contact_name=form.contact_name.strip(),
            phone=form.phone,
            location=form.location(),
            registration_number=form.registration_number or None,
            tax_id=form.tax_id or None,
            bank_info=form.bank_info(),
            status=SellerStatus.PENDING.value,
            rejection_reason=None,
            verification_date=None,
        )

        try:
            if existing is None:
                seller = self.sellers.create(
                    categories=form.categories,
                    seller_id=seller_id,
                    clerk_id=caller.external_id,
                    email=email,
                    documents=documents,
                    **fields,
                )
            else:
                # Keep the earlier documents when nothing new was uploaded
                if documents:
                    fields["documents"] = documents
                seller = self.sellers.update(existing, categories=form.categories, **fields)
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            await self._discard_uploads(seller_id, documents)
            current = self.sellers.get_by_email(email)
            raise ConflictError(
                "Seller application changed during submission, please retry",
                current_status=current.status if current is not None else None,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            await self._discard_uploads(seller_id, documents)
            logger.error(f"Seller application commit failed: {e}", extra={"seller_id": str(seller_id)})
            raise DatabaseError("Failed to submit seller application")
        except ConflictError as e:
            self.db.rollback()
            await self._discard_uploads(seller_id, documents)
            if e.current_status is not None:
                raise
            current = self.sellers.get_by_email(email)
            raise ConflictError(e.message, current_status=current.status if current is not None else None)
        except DatabaseError:
            self.db.rollback()
            await self._discard_uploads(seller_id, documents)
            raise

        created = existing is None
        seller_applications_total.labels(outcome="created" if created else "resubmitted").inc()
        logger.info(
            f"Seller application {'submitted' if created else 'resubmitted'}: "
            f"documents={len(documents)}, failed_uploads={len(failed)}",
            extra={"seller_id": str(seller.id)},
        )

        self.role_sync.set_role(
            ROLE_FOR_STATUS[SellerStatus.PENDING],
            clerk_id=caller.external_id,
            seller_id=seller.id,
        )

        return ApplicationResult(seller=seller, created=created, failed_uploads=failed)

    def get_application_status(self, caller: CallerIdentity) -> Seller:
        """Seller row of the caller, looked up by the caller's email.

        Raises:
            NotFoundError: Unknown user or no application (details has_applied=False)
        """
        email = caller.email
        if not email:
            user = self.users.get_by_clerk_id(caller.external_id)
            email = user.email if user else None
        if not email:
            raise NotFoundError("User not found")

        seller = self.sellers.get_by_email(email)
        if seller is None:
            raise NotFoundError("No seller application found", {"has_applied": False})
        return seller

    def get_profile(self, caller: CallerIdentity) -> Seller:
        """Seller profile, only for users whose role is seller or seller_pending.

        Raises:
            AuthorizationError: Caller is not a seller
            NotFoundError: No seller row for the caller's email
        """
        require_seller_role(caller)
        if not caller.email:
            raise NotFoundError("User not found")

        seller = self.sellers.get_by_email(caller.email)
        if seller is None:
            raise NotFoundError("Seller profile not found")
        return seller

    async def _upload_documents(self, seller_id: UUID, files: List[UploadedFile]):
        documents: List[Dict[str, Any]] = []
        failed: List[FailedUpload] = []
        for file in files:
            result = await self.storage.upload_file(seller_id, file)
            if result.success:
                documents.append(result.document.to_json())
                documents_uploaded_total.labels(result="success").inc()
            else:
                logger.warning(
                    f"Document upload failed, continuing: file={file.original_name}, error={result.error}",
                    extra={"seller_id": str(seller_id)},
                )
                failed.append(FailedUpload(file_name=file.original_name, error=result.error))
                documents_uploaded_total.labels(result="error").inc()
        return documents, failed

    async def _discard_uploads(self, seller_id: UUID, documents: List[Dict[str, Any]]) -> None:
        """Best-effort removal of objects uploaded for a row that was never written."""
        for doc in documents:
            path = doc.get("path")
            if not path:
                continue
            result = await self.storage.delete_file(path)
            if not result.success:
                logger.warning(
                    f"Orphaned upload left in storage: path={path}, error={result.error}",
                    extra={"seller_id": str(seller_id)},
                )


class VerificationService:
    """Admin review of seller applications.

    Every public method runs the admin gate before touching the database.

    Args:
        db: Database session (committed by this service)
        storage: Document store, used for download URLs
        locator: Legacy file access for documents not yet migrated
        clock: Source of verification timestamps
        signed_url_ttl: Lifetime of admin download URLs (seconds)
    """

    def __init__(
        self,
        db: Session,
        storage: Optional[ObjectStoragePort] = None,
        locator: Optional[LegacyFileLocator] = None,
        clock: Callable[[], datetime] = utcnow,
        role_sync: Optional[RoleSynchronizer] = None,
        signed_url_ttl: int = 3600,
    ):
        self.db = db
        self.storage = storage
        self.locator = locator
        self.sellers = SellerRepository(db)
        self.role_sync = role_sync or RoleSynchronizer(db)
        self._clock = clock
        self.signed_url_ttl = signed_url_ttl

    def update_status(
        self,
        caller: CallerIdentity,
        seller_id: Any,
        status: str,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Seller:
        """Move a seller to a new verification status.

        Args:
            caller: Must be an admin
            seller_id: Seller UUID
            status: Target status string
            notes: Rejection reason (ignored for other statuses)
            expected_version: Optional optimistic concurrency precondition

        Returns:
            Updated Seller

        Raises:
            AuthorizationError: Caller is not an admin (nothing read or written)
            ValidationError: Unknown status
            NotFoundError: Seller does not exist
            ConflictError: expected_version mismatch or concurrent update
            DatabaseError: Seller row or user role could not be written
        """
        require_admin(caller)

        try:
            to_status = parse_status(status)
        except ValueError as e:
            raise ValidationError(str(e))

        seller = self.sellers.get_by_id(_parse_seller_id(seller_id))
        if seller is None:
            raise NotFoundError("Seller not found")

        if expected_version is not None and seller.version != expected_version:
            raise ConflictError(
                "Seller was modified by another request",
                current_status=seller.status,
            )

        try:
            validate_transition(SellerStatus(seller.status), to_status, VerificationActor.ADMIN)
        except StateTransitionError as e:
            raise ConflictError(str(e), current_status=seller.status)

        previous = seller.status
        fields = apply_transition(current_fields(seller), to_status, notes=notes, now=self._clock())

        try:
            self.sellers.update(
                seller,
                status=fields.status.value,
                rejection_reason=fields.rejection_reason,
                verification_date=fields.verification_date,
            )
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning("Concurrent seller update detected", extra={"seller_id": str(seller_id)})
            current = self.sellers.get_by_id(_parse_seller_id(seller_id))
            raise ConflictError(
                "Seller was modified by another request",
                current_status=current.status if current is not None else None,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Seller verification commit failed: {e}", extra={"seller_id": str(seller_id)})
            raise DatabaseError("Failed to update seller verification status")
        except DatabaseError:
            self.db.rollback()
            raise

        seller_verifications_total.labels(status=fields.status.value).inc()
        logger.info(
            f"Seller verification updated: {previous} -> {fields.status.value} by {caller.external_id}",
            extra={"seller_id": str(seller.id)},
        )

        self.role_sync.set_role(ROLE_FOR_STATUS[to_status], email=seller.email, seller_id=seller.id)
        return seller

    def list_sellers(
        self,
        caller: CallerIdentity,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Seller]:
        """Admin listing with optional status filter ('all' = none) and search."""
        require_admin(caller)
        if status and status != "all":
            try:
                parse_status(status)
            except ValueError as e:
                raise ValidationError(str(e))
        return self.sellers.list_sellers(status=status, search=search.strip() if search else None)

    def list_pending(self, caller: CallerIdentity) -> List[Seller]:
        require_admin(caller)
        return self.sellers.list_pending()

    async def resolve_document_download(
        self,
        caller: CallerIdentity,
        seller_id: Any,
        filename: str,
    ) -> DocumentDownload:
        """Find where an admin can download one of a seller's documents.

        Stored documents resolve to a signed URL (falling back to the public
        URL); legacy documents resolve to a file on the legacy filesystem.

        Raises:
            AuthorizationError: Caller is not an admin
            NotFoundError: Unknown seller, document or missing legacy file
        """
        require_admin(caller)

        seller = self.sellers.get_by_id(_parse_seller_id(seller_id))
        if seller is None:
            raise NotFoundError("Seller not found")

        document = None
        for raw in seller.documents or []:
            candidate = as_document(raw)
            if filename in (candidate.filename, candidate.original_name):
                document = candidate
                break
        if document is None:
            raise NotFoundError(f"Document not found: {filename}")

        display_name = document.original_name or document.filename

        if document.is_supabase:
            url = None
            if self.storage is not None and document.path:
                signed = await self.storage.create_signed_url(document.path, self.signed_url_ttl)
                if signed.success:
                    url = signed.signed_url
            if url is None:
                helper = DocumentHelper(self.storage.get_public_url if self.storage else None)
                url = helper.get_download_url(document)
            if not url:
                raise NotFoundError(f"Document has no download location: {filename}")
            return DocumentDownload(filename=display_name, mimetype=document.mimetype, redirect_url=url)

        if self.locator is None:
            raise NotFoundError(f"Legacy document not available: {filename}")
        found = self.locator.locate(seller.id, document)
        if found is None:
            logger.warning(f"Legacy document missing on disk: {filename}", extra={"seller_id": str(seller.id)})
            raise NotFoundError(f"Document file not found: {filename}")
        return DocumentDownload(filename=display_name, mimetype=document.mimetype, file_path=found)

