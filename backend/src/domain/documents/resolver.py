"""Hybrid document resolver.

Lets callers treat a document uniformly while Supabase Storage and the legacy
filesystem coexist: a resolvable document yields a URL, a legacy one yields
None and must be streamed from disk by the caller.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Union

from .descriptors import Document, as_document

DocumentLike = Union[Document, Mapping[str, Any]]


class DocumentHelper:
    """Resolve document descriptors regardless of which store produced them.

    Args:
        public_url_for: Derives a public URL from a storage path, normally
            ObjectStoragePort.get_public_url. Only needed for stored
            documents that lost their `url`.
    """

    def __init__(self, public_url_for: Optional[Callable[[str], str]] = None):
        self._public_url_for = public_url_for

    @staticmethod
    def is_supabase_document(doc: DocumentLike) -> bool:
        """True iff the descriptor has storage == "supabase" or a truthy url."""
        return as_document(doc).is_supabase

    def get_download_url(self, doc: DocumentLike) -> Optional[str]:
        """Return a directly usable URL, or None for legacy documents."""
        document = as_document(doc)
        if not document.is_supabase:
            return None
        if document.url:
            return document.url
        if document.path and self._public_url_for is not None:
            return self._public_url_for(document.path)
        return None

    @staticmethod
    def get_document_info(doc: DocumentLike) -> Dict[str, Any]:
        """Display-only projection. Never mutates the descriptor."""
        document = as_document(doc)
        is_supabase = document.is_supabase
        return {
            "filename": document.original_name or document.filename,
            "type": document.mimetype or "Unknown",
            "size": _human_size(document.size),
            "storage": "Cloud Storage" if is_supabase else "Legacy Storage",
            "is_supabase": is_supabase,
            "downloadable": is_supabase or bool(document.path),
        }


def _human_size(size: Optional[int]) -> str:
    if not size:
        return "Unknown"
    # Round half up, KB granularity
    return f"{int(size / 1024 + 0.5)}KB"
