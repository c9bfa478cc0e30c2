"""Unit tests for the legacy upload directory locator"""

from pathlib import Path

import pytest

from domain.documents import LegacyDocument
from infrastructure.storage.legacy_filesystem import LegacyFileLocator

SELLER_ID = "6b1c9f1e-0d8a-4a47-9a4e-3f1f4f0c2b11"


class TestCandidatePaths:

    def test_order_of_candidates(self, uploads_root: Path, locator: LegacyFileLocator):
        document = LegacyDocument(filename="permit.pdf", path="/srv/old-host/uploads/permit.pdf")

        candidates = locator.candidate_paths(SELLER_ID, document)

        assert candidates == [
            Path("/srv/old-host/uploads/permit.pdf"),
            uploads_root / "seller_documents" / "permit.pdf",
            uploads_root / "seller_documents" / SELLER_ID / "permit.pdf",
            uploads_root / "permit.pdf",
        ]

    def test_without_stored_path(self, locator: LegacyFileLocator):
        candidates = locator.candidate_paths(SELLER_ID, LegacyDocument(filename="permit.pdf"))
        assert len(candidates) == 3


class TestLocateAndRead:

    def test_stored_path_wins(self, tmp_path: Path, uploads_root: Path, locator: LegacyFileLocator):
        stored = tmp_path / "elsewhere.pdf"
        stored.write_bytes(b"stored")
        (uploads_root / "seller_documents" / "permit.pdf").write_bytes(b"legacy dir")

        document = LegacyDocument(filename="permit.pdf", path=str(stored))
        assert locator.read(SELLER_ID, document) == b"stored"

    def test_stale_stored_path_falls_back_to_legacy_dir(self, uploads_root: Path, locator: LegacyFileLocator):
        (uploads_root / "seller_documents" / "permit.pdf").write_bytes(b"legacy dir")

        document = LegacyDocument(filename="permit.pdf", path="/no/longer/there/permit.pdf")
        assert locator.read(SELLER_ID, document) == b"legacy dir"

    def test_per_seller_folder(self, uploads_root: Path, locator: LegacyFileLocator):
        seller_dir = uploads_root / "seller_documents" / SELLER_ID
        seller_dir.mkdir()
        (seller_dir / "permit.pdf").write_bytes(b"per seller")

        assert locator.read(SELLER_ID, LegacyDocument(filename="permit.pdf")) == b"per seller"

    def test_uploads_root(self, uploads_root: Path, locator: LegacyFileLocator):
        (uploads_root / "permit.pdf").write_bytes(b"root")
        assert locator.locate(SELLER_ID, LegacyDocument(filename="permit.pdf")) == uploads_root / "permit.pdf"

    def test_missing_file(self, locator: LegacyFileLocator):
        document = LegacyDocument(filename="missing.pdf")

        assert locator.locate(SELLER_ID, document) is None
        with pytest.raises(FileNotFoundError):
            locator.read(SELLER_ID, document)

    def test_directory_is_not_a_file(self, uploads_root: Path, locator: LegacyFileLocator):
        (uploads_root / "seller_documents" / "permit.pdf").mkdir()
        assert locator.locate(SELLER_ID, LegacyDocument(filename="permit.pdf")) is None
