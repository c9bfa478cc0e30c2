"""Legacy document migration to Supabase Storage

Walks every seller with documents, re-uploads each legacy file to the
documents bucket at `seller-documents/{seller_id}/{filename}` and rewrites the
seller's documents array once per seller. Safe to re-run: documents that
already resolve to cloud storage are skipped.

Failure isolation:
- A document that cannot be located, read or uploaded stays in the array
  untouched and is recorded in stats.errors
- A seller row that cannot be written is recorded (without filename) and the
  run moves on to the next seller
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.documents import LegacyDocument, StoredDocument, document_from_json, sanitize_filename
from domain.documents.ports.object_storage_port import BucketResult, ObjectStoragePort
from domain.sellers.errors import DatabaseError, StorageError
from infrastructure.repositories.seller_repository import SellerRepository
from infrastructure.storage.legacy_filesystem import LegacyFileLocator
from infrastructure.storage.storage_config import seller_document_path
from observability.metrics import documents_migrated_total

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class MigrationError:
    seller_id: str
    error: str
    filename: Optional[str] = None


@dataclass
class MigrationStats:
    total_sellers: int = 0
    sellers_processed: int = 0
    documents_processed: int = 0
    documents_migrated: int = 0
    documents_skipped: int = 0
    errors: List[MigrationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VerificationStats:
    total_documents: int = 0
    supabase_documents: int = 0
    legacy_documents: int = 0
    accessible_documents: int = 0
    inaccessible_documents: int = 0
    errors: List[MigrationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MigrationRunner:
    """Moves legacy filesystem documents into the object store.

    Args:
        db: Database session (committed once per seller)
        storage: Target document store
        locator: Read-only access to the legacy upload directory

    Example:
        runner = MigrationRunner(db, storage, LegacyFileLocator("uploads"))
        await runner.setup()
        stats = await runner.migrate()
        report = await runner.verify()
    """

    def __init__(self, db: Session, storage: ObjectStoragePort, locator: LegacyFileLocator):
        self.db = db
        self.storage = storage
        self.locator = locator
        self.sellers = SellerRepository(db)

    async def setup(self) -> BucketResult:
        """Ensure the documents bucket exists."""
        return await self.storage.ensure_bucket_exists()

    async def migrate(self) -> MigrationStats:
        """Migrate every legacy document that is not yet in cloud storage."""
        stats = MigrationStats()
        sellers = self.sellers.list_with_documents()
        stats.total_sellers = len(sellers)
        logger.info(f"Found {len(sellers)} sellers with documents to potentially migrate")

        for seller in sellers:
            seller_id = seller.id
            raw_documents = list(seller.documents or [])
            updated: List[Dict[str, Any]] = []
            changed = False

            for raw in raw_documents:
                stats.documents_processed += 1
                document = document_from_json(raw)

                if document.is_supabase:
                    # Written back verbatim so the row stays byte-for-byte identical
                    updated.append(raw)
                    stats.documents_skipped += 1
                    documents_migrated_total.labels(result="skipped").inc()
                    continue

                migrated, error = await self._migrate_document(seller_id, document)
                if migrated is None:
                    updated.append(raw)
                    documents_migrated_total.labels(result="error").inc()
                    stats.errors.append(MigrationError(
                        seller_id=str(seller_id), filename=document.filename, error=error,
                    ))
                    logger.warning(
                        f"Failed to migrate document: {document.filename} - {error}",
                        extra={"seller_id": str(seller_id)},
                    )
                    continue

                updated.append(migrated.to_json())
                changed = True
                stats.documents_migrated += 1
                documents_migrated_total.labels(result="migrated").inc()
                logger.info(f"Migrated document: {document.filename}", extra={"seller_id": str(seller_id)})

            if changed:
                try:
                    self.sellers.replace_documents(seller, updated)
                    self.db.commit()
                except (DatabaseError, SQLAlchemyError) as e:
                    self.db.rollback()
                    stats.errors.append(MigrationError(
                        seller_id=str(seller_id),
                        error=f"Failed to update seller record: {e}",
                    ))
                    logger.error(f"Failed to update seller record: {e}", extra={"seller_id": str(seller_id)})
                else:
                    logger.info("Updated seller record with migrated documents", extra={"seller_id": str(seller_id)})

            stats.sellers_processed += 1

        logger.info(
            f"Migration finished: sellers={stats.sellers_processed}/{stats.total_sellers}, "
            f"processed={stats.documents_processed}, migrated={stats.documents_migrated}, "
            f"skipped={stats.documents_skipped}, errors={len(stats.errors)}"
        )
        return stats

    async def verify(self) -> VerificationStats:
        """Download every cloud document to prove it is actually there."""
        stats = VerificationStats()

        for seller in self.sellers.list_with_documents():
            for raw in seller.documents or []:
                stats.total_documents += 1
                document = document_from_json(raw)

                if not document.is_supabase:
                    stats.legacy_documents += 1
                    continue

                stats.supabase_documents += 1
                error = await self._check_accessible(document)
                if error is None:
                    stats.accessible_documents += 1
                else:
                    stats.inaccessible_documents += 1
                    stats.errors.append(MigrationError(
                        seller_id=str(seller.id), filename=document.filename, error=error,
                    ))

        logger.info(
            f"Verification finished: total={stats.total_documents}, "
            f"supabase={stats.supabase_documents}, legacy={stats.legacy_documents}, "
            f"accessible={stats.accessible_documents}, inaccessible={stats.inaccessible_documents}"
        )
        return stats

    async def _migrate_document(self, seller_id: Any, document: LegacyDocument):
        """Returns (StoredDocument, None) on success, (None, error) otherwise."""
        if not document.filename:
            return None, "Document has no filename"

        try:
            content = self.locator.read(seller_id, document)
        except FileNotFoundError:
            return None, "Local file not found"
        except StorageError as e:
            return None, e.message

        path = seller_document_path(seller_id, sanitize_filename(document.filename))
        result = await self.storage.upload_bytes(
            path,
            content,
            document.mimetype or DEFAULT_CONTENT_TYPE,
            upsert=False,
        )
        if not result.success:
            return None, f"Supabase upload error: {result.error}"

        migrated = document.migrated(
            path=path,
            url=self.storage.get_public_url(path),
            size=len(content),
            migrated_at=datetime.now(timezone.utc).isoformat(),
        )
        return migrated, None

    async def _check_accessible(self, document: StoredDocument) -> Optional[str]:
        if not document.path:
            return "Document has no storage path"
        result = await self.storage.get_file(document.path)
        if not result.success:
            return f"Cannot download from Supabase: {result.error}"
        return None
