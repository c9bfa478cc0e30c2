"""Read-only access to the legacy filesystem upload directory.

Before Supabase Storage, uploads were written by the web server into
`uploads/seller_documents/` (sometimes per-seller sub-folders) and the stored
`path` was whatever the server saw at the time. Those paths are often stale,
so lookup walks a fixed list of conventional locations.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional

from domain.documents.descriptors import LegacyDocument
from domain.sellers.errors import StorageError

logger = logging.getLogger(__name__)

LEGACY_DOCUMENTS_DIR = "seller_documents"


class LegacyFileLocator:
    """Locate and read legacy documents. Never writes or deletes.

    Args:
        uploads_root: Root of the legacy upload tree (default: ./uploads)
    """

    def __init__(self, uploads_root: str = "uploads"):
        self.uploads_root = Path(uploads_root)

    def candidate_paths(self, seller_id: Any, document: LegacyDocument) -> List[Path]:
        """Locations to try, in order: stored path, legacy dir, per-seller
        legacy dir, uploads root."""
        candidates = []
        if document.path:
            candidates.append(Path(document.path))
        if document.filename:
            legacy_dir = self.uploads_root / LEGACY_DOCUMENTS_DIR
            candidates.extend([
                legacy_dir / document.filename,
                legacy_dir / str(seller_id) / document.filename,
                self.uploads_root / document.filename,
            ])
        return candidates

    def locate(self, seller_id: Any, document: LegacyDocument) -> Optional[Path]:
        """First existing candidate, or None."""
        for candidate in self.candidate_paths(seller_id, document):
            if candidate.is_file():
                return candidate
        return None

    def read(self, seller_id: Any, document: LegacyDocument) -> bytes:
        """Read a legacy document's bytes.

        Raises:
            FileNotFoundError: No candidate location exists
            StorageError: The file exists but cannot be read
        """
        found = self.locate(seller_id, document)
        if found is None:
            raise FileNotFoundError(f"Legacy file not found: {document.filename}")

        try:
            return found.read_bytes()
        except OSError as e:
            logger.error(
                f"Failed to read legacy file: path={found}, error={e}",
                extra={"seller_id": str(seller_id)},
            )
            raise StorageError(f"Failed to read legacy file {document.filename}: {e.strerror or e}")
