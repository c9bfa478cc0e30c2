"""Storage configuration for Supabase Storage (S3-compatible protocol).

Loads configuration from environment variables. The same settings work for a
local Supabase stack (`supabase start`) and a hosted project.
"""

import os
from dataclasses import dataclass
from typing import Optional

from config import get_settings
from domain.documents.validation import MAX_FILE_SIZE, SUPPORTED_MIME_TYPES

DEFAULT_BUCKET = "seller-documents"

# Prefix inside the bucket under which every seller folder lives
DOCUMENTS_NAMESPACE = "seller-documents"


@dataclass
class StorageConfig:
    """Configuration for Supabase Storage.

    Attributes:
        supabase_url: Project URL, e.g. 'https://abcd.supabase.co'. Public
                      object URLs are derived from it.
        endpoint_url: S3 endpoint, e.g. 'https://abcd.supabase.co/storage/v1/s3'
                      (None lets boto3 use AWS defaults, which is what tests do)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: Bucket for seller documents
        region: Region reported by the project settings page
        max_file_size: Per-object size limit enforced on upload
        allowed_mime_types: Content types accepted on upload
        service_key: Service role key for the bucket management API
    """
    supabase_url: str
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str = DEFAULT_BUCKET
    region: str = "us-east-1"
    max_file_size: int = MAX_FILE_SIZE
    allowed_mime_types: tuple = SUPPORTED_MIME_TYPES
    service_key: Optional[str] = None


def load_storage_config_from_env() -> StorageConfig:
    """Load storage configuration from environment variables.

    Environment Variables:
        SUPABASE_URL: Project URL (required)
        SUPABASE_S3_ENDPOINT: S3 endpoint (default: {SUPABASE_URL}/storage/v1/s3)
        SUPABASE_S3_ACCESS_KEY_ID: Access key (required)
        SUPABASE_S3_SECRET_ACCESS_KEY: Secret key (required)
        SUPABASE_S3_REGION: Region (default: 'us-east-1')
        SELLER_DOCUMENTS_BUCKET: Bucket name (default: 'seller-documents')
        SUPABASE_SERVICE_ROLE_KEY: Service role key (bucket creation)

    The upload size limit comes from settings (MAX_UPLOAD_SIZE_BYTES).

    Raises:
        ValueError: If required environment variables are missing
    """
    supabase_url = os.getenv("SUPABASE_URL")
    if not supabase_url:
        raise ValueError(
            "Missing SUPABASE_URL. Set it to the project URL, "
            "e.g. https://<project-ref>.supabase.co"
        )
    supabase_url = supabase_url.rstrip("/")

    endpoint_url = os.getenv("SUPABASE_S3_ENDPOINT") or f"{supabase_url}/storage/v1/s3"

    access_key = os.getenv("SUPABASE_S3_ACCESS_KEY_ID")
    secret_key = os.getenv("SUPABASE_S3_SECRET_ACCESS_KEY")
    if not access_key or not secret_key:
        raise ValueError(
            "Missing required storage credentials. "
            "Set SUPABASE_S3_ACCESS_KEY_ID and SUPABASE_S3_SECRET_ACCESS_KEY "
            "(Project Settings > Storage > S3 Access Keys)."
        )

    return StorageConfig(
        supabase_url=supabase_url,
        endpoint_url=endpoint_url,
        access_key=access_key,
        secret_key=secret_key,
        bucket_name=os.getenv("SELLER_DOCUMENTS_BUCKET", DEFAULT_BUCKET),
        region=os.getenv("SUPABASE_S3_REGION", "us-east-1"),
        max_file_size=get_settings().MAX_UPLOAD_SIZE_BYTES,
        service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if not config.supabase_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid supabase_url: {config.supabase_url}. "
            "Must start with http:// or https://"
        )

    if config.endpoint_url and not config.endpoint_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid endpoint_url: {config.endpoint_url}. "
            "Must start with http:// or https://"
        )

    if config.max_file_size <= 0:
        raise ValueError("max_file_size must be positive")


def seller_document_path(seller_id, filename: str) -> str:
    """Storage key for a seller document."""
    return f"{DOCUMENTS_NAMESPACE}/{seller_id}/{filename}"
