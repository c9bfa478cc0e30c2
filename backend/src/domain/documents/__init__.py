"""Documents domain module - upload policy, descriptors, hybrid resolution"""

from .descriptors import (
    Document,
    LegacyDocument,
    StoredDocument,
    STORAGE_SUPABASE,
    document_from_json,
    as_document,
)
from .resolver import DocumentHelper
from .validation import (
    UploadedFile,
    UploadValidationResult,
    validate_upload,
    is_supported_mime_type,
    validate_file_size,
    validate_filename,
    sanitize_filename,
    SUPPORTED_MIME_TYPES,
    SUPPORTED_EXTENSIONS,
    MAX_FILE_SIZE,
    MAX_DOCUMENTS_PER_APPLICATION,
)

__all__ = [
    "Document",
    "LegacyDocument",
    "StoredDocument",
    "STORAGE_SUPABASE",
    "document_from_json",
    "as_document",
    "DocumentHelper",
    "UploadedFile",
    "UploadValidationResult",
    "validate_upload",
    "is_supported_mime_type",
    "validate_file_size",
    "validate_filename",
    "sanitize_filename",
    "SUPPORTED_MIME_TYPES",
    "SUPPORTED_EXTENSIONS",
    "MAX_FILE_SIZE",
    "MAX_DOCUMENTS_PER_APPLICATION",
]
