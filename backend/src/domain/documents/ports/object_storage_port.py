"""Object Storage Port - Domain interface for seller document storage.

This port defines the contract for storing and retrieving seller documents in
object storage. Adapters implement it for Supabase Storage (S3 protocol) or
any other S3-compatible backend.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..descriptors import StoredDocument
from ..validation import UploadedFile


@dataclass
class StorageResult:
    """Outcome of a storage operation.

    Storage operations report failures through this object instead of
    raising, so batch callers (the migration runner) can continue past a
    failed item.

    Attributes:
        success: Whether the operation succeeded
        error: Human-readable error when success is False
        document: Descriptor produced by an upload
        content: Bytes returned by get_file
        signed_url: URL returned by create_signed_url
        files: Object listing returned by list_files
    """
    success: bool
    error: Optional[str] = None
    document: Optional[StoredDocument] = None
    content: Optional[bytes] = None
    signed_url: Optional[str] = None
    files: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def failed(cls, error: str) -> "StorageResult":
        return cls(success=False, error=error)


@dataclass
class BucketResult:
    """Result of ensure_bucket_exists.

    `created` is False when the bucket was already there. On failure
    `success` is False and `error` says why; nothing is raised.
    """
    created: bool
    bucket: str
    success: bool = True
    error: Optional[str] = None

    @classmethod
    def failed(cls, bucket: str, error: str) -> "BucketResult":
        return cls(created=False, bucket=bucket, success=False, error=error)


class ObjectStoragePort(ABC):
    """Port interface for seller document storage.

    Key Design Principles:
    - Keys are namespaced by seller id and a millisecond timestamp, so uploads
      from different sellers never collide
    - Network/store failures come back as StorageResult(success=False) or
      BucketResult(success=False); adapter methods never raise them
    - get_public_url is pure string derivation, no network call

    Example Usage:
        storage = SupabaseStorageAdapter(...)
        await storage.ensure_bucket_exists()

        result = await storage.upload_file(seller_id, uploaded_file)
        if result.success:
            descriptor = result.document.to_json()
    """

    @abstractmethod
    async def ensure_bucket_exists(self) -> BucketResult:
        """Create the documents bucket if it is missing.

        Safe to call repeatedly and concurrently: an "already exists" race
        on creation counts as already present. The bucket is created public,
        restricted to the upload MIME allow-list and size limit.

        Returns:
            BucketResult, with success=False if the store cannot be reached
        """
        pass

    @abstractmethod
    async def upload_file(self, seller_id: Any, file: UploadedFile) -> StorageResult:
        """Upload a new seller document.

        Path: seller-documents/{seller_id}/{timestamp}-{original filename}

        Returns:
            StorageResult with a StoredDocument (including url) on success
        """
        pass

    @abstractmethod
    async def upload_bytes(
        self,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StorageResult:
        """Upload raw bytes at an exact path.

        With upsert=False an existing object is left in place and reported as
        success (the object at `path` is what the caller wanted).
        """
        pass

    @abstractmethod
    async def get_file(self, path: str) -> StorageResult:
        """Download an object. StorageResult.content holds the bytes."""
        pass

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        """Public URL of an object in the (public) documents bucket."""
        pass

    @abstractmethod
    async def create_signed_url(self, path: str, expires_in_seconds: int = 3600) -> StorageResult:
        """Time-limited download URL, valid for expires_in_seconds."""
        pass

    @abstractmethod
    async def delete_file(self, path: str) -> StorageResult:
        pass

    @abstractmethod
    async def list_files(self, prefix: str) -> StorageResult:
        """List objects under prefix. StorageResult.files holds
        dicts with name, size and last_modified."""
        pass

    async def health_check(self) -> StorageResult:
        """Cheap reachability check. Adapters override with something lighter."""
        return await self.list_files("")
