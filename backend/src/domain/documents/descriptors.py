"""Document descriptors embedded in a seller's `documents` array.

The persisted JSON is duck-typed: a descriptor lives in Supabase Storage when
it carries `storage == "supabase"` or a non-empty `url`, and on the legacy
filesystem otherwise. `document_from_json` is the only place that inference
happens; the rest of the code works with the two tagged types below.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

STORAGE_SUPABASE = "supabase"

# JSON key -> attribute name
_KNOWN_KEYS = {
    "filename": "filename",
    "originalName": "original_name",
    "mimetype": "mimetype",
    "size": "size",
    "path": "path",
    "url": "url",
    "storage": "storage",
    "uploadedAt": "uploaded_at",
    "migratedAt": "migrated_at",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class LegacyDocument:
    """Document whose bytes live on the legacy upload filesystem.

    `path` is whatever the original uploader stored (usually an absolute or
    cwd-relative filesystem path); it may no longer exist.
    """
    filename: str
    original_name: Optional[str] = None
    mimetype: Optional[str] = None
    size: Optional[int] = None
    path: Optional[str] = None
    uploaded_at: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    is_supabase = False

    def to_json(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(_compact({
            "filename": self.filename,
            "originalName": self.original_name,
            "mimetype": self.mimetype,
            "size": self.size,
            "path": self.path,
            "uploadedAt": self.uploaded_at,
        }))
        return data

    def migrated(
        self,
        path: str,
        url: str,
        size: Optional[int] = None,
        migrated_at: Optional[str] = None,
    ) -> "StoredDocument":
        """Return the StoredDocument replacing this descriptor after migration.

        filename, originalName and mimetype are preserved; storage, url, path
        and migratedAt are added.
        """
        return StoredDocument(
            filename=self.filename,
            original_name=self.original_name,
            mimetype=self.mimetype,
            size=self.size if self.size is not None else size,
            path=path,
            url=url,
            uploaded_at=self.uploaded_at,
            migrated_at=migrated_at or _now_iso(),
            extra=self.extra,
        )


@dataclass(frozen=True)
class StoredDocument:
    """Document stored in Supabase Storage, resolvable by URL."""
    filename: str
    path: Optional[str] = None
    url: Optional[str] = None
    original_name: Optional[str] = None
    mimetype: Optional[str] = None
    size: Optional[int] = None
    uploaded_at: Optional[str] = None
    migrated_at: Optional[str] = None
    storage: Optional[str] = STORAGE_SUPABASE
    extra: Mapping[str, Any] = field(default_factory=dict)

    is_supabase = True

    def to_json(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(_compact({
            "filename": self.filename,
            "originalName": self.original_name,
            "path": self.path,
            "url": self.url,
            "mimetype": self.mimetype,
            "size": self.size,
            "storage": self.storage,
            "uploadedAt": self.uploaded_at,
            "migratedAt": self.migrated_at,
        }))
        return data


Document = Union[LegacyDocument, StoredDocument]


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def is_supabase_json(data: Mapping[str, Any]) -> bool:
    """Tag inference on the raw persisted JSON."""
    return data.get("storage") == STORAGE_SUPABASE or bool(data.get("url"))


def document_from_json(data: Mapping[str, Any]) -> Document:
    """Build the tagged descriptor from a persisted JSON object."""
    known = {attr: data.get(key) for key, attr in _KNOWN_KEYS.items() if key in data}
    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
    filename = known.get("filename") or known.get("original_name") or ""

    if is_supabase_json(data):
        return StoredDocument(
            filename=filename,
            path=known.get("path"),
            url=known.get("url") or None,
            original_name=known.get("original_name"),
            mimetype=known.get("mimetype"),
            size=known.get("size"),
            uploaded_at=known.get("uploaded_at"),
            migrated_at=known.get("migrated_at"),
            storage=known.get("storage"),
            extra=extra,
        )

    # Legacy rows may carry an empty url or a non-supabase storage tag;
    # keep them verbatim so a rewrite does not change the row.
    for key in ("url", "storage", "migratedAt"):
        if key in data:
            extra[key] = data[key]

    return LegacyDocument(
        filename=filename,
        original_name=known.get("original_name"),
        mimetype=known.get("mimetype"),
        size=known.get("size"),
        path=known.get("path"),
        uploaded_at=known.get("uploaded_at"),
        extra=extra,
    )


def as_document(doc: Union[Document, Mapping[str, Any]]) -> Document:
    """Accept either a tagged descriptor or its raw JSON."""
    if isinstance(doc, (LegacyDocument, StoredDocument)):
        return doc
    return document_from_json(doc)
