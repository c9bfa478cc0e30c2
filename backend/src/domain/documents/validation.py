"""File validation for seller document uploads

Pure functions, no I/O. All violations are collected so the caller can report
every problem with a file at once.
"""

import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


# Allowed MIME types for seller verification documents
SUPPORTED_MIME_TYPES = (
    'image/jpeg',
    'image/jpg',
    'image/png',
    'application/pdf',
    'application/msword',  # .doc
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',  # .docx
)

SUPPORTED_EXTENSIONS = ('.jpeg', '.jpg', '.png', '.pdf', '.doc', '.docx')

# Default file size limit (10MB)
MAX_FILE_SIZE = 10 * 1024 * 1024

MAX_DOCUMENTS_PER_APPLICATION = 5


@dataclass
class UploadedFile:
    """A file received from a client, before it is persisted anywhere."""
    original_name: str
    mimetype: str
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class UploadValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Check if MIME type is on the allow-list

    Example:
        >>> is_supported_mime_type('application/pdf')
        True
        >>> is_supported_mime_type('text/csv')
        False
    """
    return mime_type in SUPPORTED_MIME_TYPES


def validate_file_size(size_bytes: int, max_size: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(1024)
        (True, None)
        >>> validate_file_size(0)
        (False, 'File is empty (0 bytes)')
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE

    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File size exceeds {max_size / (1024 * 1024):g}MB limit (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate the client-supplied filename

    Validation rules:
    - Not empty, max 255 characters
    - No path separators, traversal or null/control characters
    - Extension on the allow-list

    Example:
        >>> validate_filename('business-permit.pdf')
        (True, None)
        >>> validate_filename('../../etc/passwd')
        (False, 'Filename contains path traversal or directory separators')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '..' in filename or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if '\x00' in filename:
        return False, "Filename contains null bytes"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    ext = os.path.splitext(filename)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        return False, "Only .jpeg, .jpg, .png, .pdf, .doc and .docx files are allowed"

    return True, None


def validate_upload(file: UploadedFile, max_size: Optional[int] = None) -> UploadValidationResult:
    """Validate a file against the upload policy.

    Checks size, MIME type and filename; every failed check adds one entry to
    `errors`.

    Example:
        >>> validate_upload(UploadedFile('permit.pdf', 'application/pdf', b'%PDF')).is_valid
        True
    """
    errors: List[str] = []

    size_ok, size_error = validate_file_size(file.size, max_size)
    if not size_ok:
        errors.append(size_error)

    if not is_supported_mime_type(file.mimetype):
        errors.append(f"File type not allowed: {file.mimetype or 'unknown'}")

    name_ok, name_error = validate_filename(file.original_name)
    if not name_ok:
        errors.append(name_error)

    return UploadValidationResult(is_valid=not errors, errors=errors)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for use inside a storage key

    Example:
        >>> sanitize_filename('../../permit.pdf')
        'permit.pdf'
        >>> sanitize_filename('tax cert (copy).pdf')
        'tax_cert_copy_.pdf'
    """
    filename = os.path.basename(filename.replace('\\', '/'))

    # Replace problematic characters with underscore
    filename = re.sub(r'[^\w\s.-]', '_', filename)

    # Collapse multiple spaces/underscores
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext

    return filename or "document"
