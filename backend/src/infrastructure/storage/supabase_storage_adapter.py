"""Supabase Storage Adapter - Implementation of ObjectStoragePort using boto3.

Talks to Supabase Storage through its S3-compatible endpoint
(`{SUPABASE_URL}/storage/v1/s3`). Public URLs use the Storage REST layout
(`/storage/v1/object/public/{bucket}/{path}`), which needs no network call.
Bucket lookup and creation go through the Storage REST API
(see supabase_bucket_api).

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple
from urllib.parse import quote

import boto3
import httpx
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from domain.documents.descriptors import StoredDocument
from domain.documents.ports.object_storage_port import (
    BucketResult,
    ObjectStoragePort,
    StorageResult,
)
from domain.documents.validation import UploadedFile, sanitize_filename
from domain.sellers.errors import StorageError
from infrastructure.cache import TTLCache
from .supabase_bucket_api import BucketApiError, SupabaseBucketApi
from .storage_config import DOCUMENTS_NAMESPACE, StorageConfig, seller_document_path

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class SupabaseStorageAdapter(ObjectStoragePort):
    """Seller document storage on Supabase Storage.

    Features:
    - Bucket bootstrap through the Storage REST API (public, MIME allow-list
      and size limit; check-then-create, race tolerant)
    - Upload policy (allowed MIME types, size limit) enforced before any
      bytes are sent, mirroring the bucket's own restrictions
    - Storage key format: seller-documents/{seller_id}/{timestamp_ms}-{filename}
    - Signed URLs memoised for at most half their lifetime

    Example:
        config = load_storage_config_from_env()
        storage = SupabaseStorageAdapter.from_config(config)
        await storage.ensure_bucket_exists()
    """

    def __init__(
        self,
        supabase_url: str,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        max_file_size: Optional[int] = None,
        allowed_mime_types: Optional[tuple] = None,
        clock: Callable[[], float] = time.time,
        signed_url_cache: Optional[TTLCache] = None,
        service_key: Optional[str] = None,
        bucket_api: Optional[SupabaseBucketApi] = None,
    ):
        """Initialize Supabase storage adapter.

        Args:
            supabase_url: Project URL, used for public URLs
            endpoint_url: S3 endpoint URL (None for AWS defaults, e.g. under moto)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            bucket_name: Documents bucket
            region: S3 region
            max_file_size: Upload size limit (bytes); None disables the check
            allowed_mime_types: Accepted content types; None disables the check
            clock: Wall clock in seconds, used for key timestamps
            signed_url_cache: Cache for signed URLs (a private one is created
                when omitted)
            service_key: Service role key for bucket management
            bucket_api: Bucket management client (built from supabase_url and
                service_key when omitted)

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                # Supabase only supports path-style addressing
                config=BotoConfig(s3={"addressing_style": "path"}),
            )
        except BotoCoreError as e:
            raise StorageError(f"Failed to initialize storage client: {e}")

        self.supabase_url = supabase_url.rstrip("/")
        self.bucket_name = bucket_name
        self.region = region
        self.max_file_size = max_file_size
        self.allowed_mime_types = allowed_mime_types
        self._clock = clock
        self.bucket_api = bucket_api or SupabaseBucketApi(self.supabase_url, service_key)
        self._signed_urls = (
            signed_url_cache if signed_url_cache is not None
            else TTLCache(ttl_seconds=3600, clock=time.monotonic)
        )

        logger.info(
            f"Initialized Supabase storage adapter: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @classmethod
    def from_config(cls, config: StorageConfig, **kwargs: Any) -> "SupabaseStorageAdapter":
        return cls(
            supabase_url=config.supabase_url,
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
            max_file_size=config.max_file_size,
            allowed_mime_types=config.allowed_mime_types,
            service_key=config.service_key,
            **kwargs,
        )

    async def ensure_bucket_exists(self) -> BucketResult:
        """Create the documents bucket if it does not exist.

        The bucket is created public (stored descriptors carry public URLs)
        and restricted to the allowed MIME types and size limit.

        Returns:
            BucketResult: created=True if this call created it; success=False
            with an error message if the bucket could not be checked or created
        """
        try:
            existing = await self.bucket_api.get_bucket(self.bucket_name)
        except BucketApiError as e:
            logger.error(f"Bucket check failed: bucket={self.bucket_name}, error={e}")
            return BucketResult.failed(self.bucket_name, f"Failed to check bucket: {e}")
        except httpx.HTTPError as e:
            logger.error(f"Bucket check failed: bucket={self.bucket_name}, error={e}")
            return BucketResult.failed(self.bucket_name, f"Failed to check bucket: {e}")

        if existing is not None:
            if not existing.get("public", False):
                logger.warning(f"Bucket {self.bucket_name} is not public; public document URLs will not resolve")
            logger.info(f"Bucket already exists: {self.bucket_name}")
            return BucketResult(created=False, bucket=self.bucket_name)

        logger.info(f"Creating storage bucket: {self.bucket_name}")
        try:
            await self.bucket_api.create_bucket(
                self.bucket_name,
                public=True,
                allowed_mime_types=self.allowed_mime_types,
                file_size_limit=self.max_file_size,
            )
        except BucketApiError as e:
            if e.already_exists:
                # Someone else created it between our check and create
                logger.info(f"Bucket created concurrently: {self.bucket_name}")
                return BucketResult(created=False, bucket=self.bucket_name)
            logger.error(f"Bucket creation failed: bucket={self.bucket_name}, error={e}")
            return BucketResult.failed(self.bucket_name, f"Failed to create bucket: {e}")
        except httpx.HTTPError as e:
            logger.error(f"Bucket creation failed: bucket={self.bucket_name}, error={e}")
            return BucketResult.failed(self.bucket_name, f"Failed to create bucket: {e}")

        logger.info(f"Created bucket: {self.bucket_name}")
        return BucketResult(created=True, bucket=self.bucket_name)

    async def upload_file(self, seller_id: Any, file: UploadedFile) -> StorageResult:
        """Upload a new seller document under a timestamped key."""
        policy_error = self._check_policy(file.mimetype, file.size)
        if policy_error:
            return StorageResult.failed(policy_error)

        safe_name = sanitize_filename(file.original_name)
        unique_filename = f"{int(self._clock() * 1000)}-{safe_name}"
        path = seller_document_path(seller_id, unique_filename)

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=file.content,
                ContentType=file.mimetype,
                Metadata={
                    "seller-id": str(seller_id),
                    "original-name": quote(file.original_name),
                },
            )
        except ClientError as e:
            logger.error(
                f"Upload failed: path={path}, error={_error_code(e)}",
                extra={"seller_id": str(seller_id)},
            )
            return StorageResult.failed(f"Failed to upload file: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"Upload failed: path={path}, error={e}", extra={"seller_id": str(seller_id)})
            return StorageResult.failed(f"Failed to upload file: {e}")

        logger.info(
            f"Uploaded document: path={path}, size={file.size}, mime_type={file.mimetype}",
            extra={"seller_id": str(seller_id)},
        )
        document = StoredDocument(
            filename=unique_filename,
            original_name=file.original_name,
            path=path,
            url=self.get_public_url(path),
            mimetype=file.mimetype,
            size=file.size,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
        )
        return StorageResult(success=True, document=document)

    async def upload_bytes(
        self,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StorageResult:
        """Upload raw bytes at an exact key (used by migration)."""
        policy_error = self._check_policy(content_type, len(content))
        if policy_error:
            return StorageResult.failed(policy_error)

        filename = path.rsplit("/", 1)[-1]
        document = StoredDocument(
            filename=filename,
            path=path,
            url=self.get_public_url(path),
            mimetype=content_type,
            size=len(content),
        )

        try:
            if not upsert and self._object_exists(path):
                logger.info(f"Object already exists, keeping it: path={path}")
                return StorageResult(success=True, document=document)

            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=content,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.error(f"Upload failed: path={path}, error={_error_code(e)}")
            return StorageResult.failed(f"Storage upload error: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"Upload failed: path={path}, error={e}")
            return StorageResult.failed(f"Storage upload error: {e}")

        self._signed_urls.invalidate(path)
        logger.info(f"Uploaded object: path={path}, size={len(content)}")
        return StorageResult(success=True, document=document)

    async def get_file(self, path: str) -> StorageResult:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=path)
            content = response["Body"].read()
        except ClientError as e:
            code = _error_code(e)
            if code in _MISSING_KEY_CODES:
                logger.warning(f"File not found: path={path}")
                return StorageResult.failed(f"File not found: {path}")
            logger.error(f"Download failed: path={path}, error={code}")
            return StorageResult.failed(f"Failed to download file: {code}")
        except BotoCoreError as e:
            logger.error(f"Download failed: path={path}, error={e}")
            return StorageResult.failed(f"Failed to download file: {e}")

        return StorageResult(success=True, content=content)

    def get_public_url(self, path: str) -> str:
        return (
            f"{self.supabase_url}/storage/v1/object/public/"
            f"{self.bucket_name}/{quote(path, safe='/')}"
        )

    async def create_signed_url(self, path: str, expires_in_seconds: int = 3600) -> StorageResult:
        """Presigned GET URL valid for expires_in_seconds.

        A cached URL is reused only while at least half of its lifetime
        remains, so callers never receive an expired URL.
        """
        if expires_in_seconds <= 0:
            return StorageResult.failed("expires_in_seconds must be positive")

        cached: Optional[Tuple[int, str]] = self._signed_urls.get(path)
        if cached and cached[0] == expires_in_seconds:
            return StorageResult(success=True, signed_url=cached[1])

        try:
            if not self._object_exists(path):
                return StorageResult.failed(f"File not found: {path}")

            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": path},
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            logger.error(f"Signed URL generation failed: path={path}, error={_error_code(e)}")
            return StorageResult.failed(f"Failed to create signed URL: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"Signed URL generation failed: path={path}, error={e}")
            return StorageResult.failed(f"Failed to create signed URL: {e}")

        self._signed_urls.set(path, (expires_in_seconds, url), ttl_seconds=expires_in_seconds / 2)
        logger.info(f"Created signed URL: path={path}, expires_in={expires_in_seconds}s")
        return StorageResult(success=True, signed_url=url)

    async def delete_file(self, path: str) -> StorageResult:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=path)
        except ClientError as e:
            logger.error(f"Deletion failed: path={path}, error={_error_code(e)}")
            return StorageResult.failed(f"Failed to delete file: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"Deletion failed: path={path}, error={e}")
            return StorageResult.failed(f"Failed to delete file: {e}")

        self._signed_urls.invalidate(path)
        logger.info(f"Deleted file: path={path}")
        return StorageResult(success=True)

    async def list_files(self, prefix: str) -> StorageResult:
        prefix = prefix.rstrip("/") + "/" if prefix else ""
        files = []
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    files.append({
                        "name": obj["Key"][len(prefix):],
                        "path": obj["Key"],
                        "size": obj["Size"],
                        "last_modified": obj["LastModified"].isoformat(),
                    })
        except ClientError as e:
            logger.error(f"Listing failed: prefix={prefix}, error={_error_code(e)}")
            return StorageResult.failed(f"Failed to list files: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"Listing failed: prefix={prefix}, error={e}")
            return StorageResult.failed(f"Failed to list files: {e}")

        return StorageResult(success=True, files=files)

    async def health_check(self) -> StorageResult:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            return StorageResult.failed(f"Bucket check failed: {_error_code(e)}")
        except BotoCoreError as e:
            return StorageResult.failed(f"Bucket check failed: {e}")
        return StorageResult(success=True)

    async def list_seller_files(self, seller_id: Any) -> StorageResult:
        return await self.list_files(f"{DOCUMENTS_NAMESPACE}/{seller_id}")

    def _check_policy(self, content_type: Optional[str], size: int) -> Optional[str]:
        if self.allowed_mime_types is not None and content_type not in self.allowed_mime_types:
            return f"mime type {content_type} is not supported"
        if self.max_file_size is not None and size > self.max_file_size:
            return f"The object exceeded the maximum allowed size ({self.max_file_size} bytes)"
        return None

    def _object_exists(self, path: str) -> bool:
        """HEAD the object. Errors other than 404 propagate to the caller."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=path)
            return True
        except ClientError as e:
            if _error_code(e) in _MISSING_KEY_CODES:
                return False
            raise
