"""Command line entry point for the legacy document migration.

Usage:
    seller-docs-migrate setup     Create the documents bucket
    seller-docs-migrate migrate   Create bucket, then migrate legacy files
    seller-docs-migrate verify    Check every cloud document can be downloaded
    seller-docs-migrate full      setup + migrate + verify

Exit status is 0 when the command ran, even if individual documents
failed (they are listed in the summary), and 1 when the run itself failed.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from config import get_settings
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.sellers.errors import SellerOnboardingError, StorageError
from infrastructure.storage.legacy_filesystem import LegacyFileLocator
from observability.logging_config import configure_logging
from observability.request_id import generate_request_id, set_request_id
from .runner import MigrationRunner, MigrationStats, VerificationStats

logger = logging.getLogger(__name__)

COMMANDS = ("setup", "migrate", "verify", "full")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seller-docs-migrate",
        description="Migrate seller documents from the legacy upload directory to Supabase Storage",
    )
    parser.add_argument("command", choices=COMMANDS, help="What to run")
    parser.add_argument(
        "--uploads-root",
        default=None,
        help="Legacy uploads directory (default: LEGACY_UPLOADS_ROOT or ./uploads)",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    return parser


def print_migration_summary(stats: MigrationStats) -> None:
    print("\nMigration Summary:")
    print(f"  Sellers processed: {stats.sellers_processed}/{stats.total_sellers}")
    print(f"  Documents processed: {stats.documents_processed}")
    print(f"  Documents migrated: {stats.documents_migrated}")
    print(f"  Documents skipped (already migrated): {stats.documents_skipped}")
    print(f"  Errors: {len(stats.errors)}")
    for index, error in enumerate(stats.errors, start=1):
        print(f"  {index}. Seller ID: {error.seller_id}, File: {error.filename or 'N/A'}")
        print(f"     Error: {error.error}")


def print_verification_summary(stats: VerificationStats) -> None:
    print("\nVerification Results:")
    print(f"  Total documents: {stats.total_documents}")
    print(f"  Supabase Storage: {stats.supabase_documents}")
    print(f"  Legacy storage: {stats.legacy_documents}")
    print(f"  Accessible: {stats.accessible_documents}")
    print(f"  Inaccessible: {stats.inaccessible_documents}")
    for index, error in enumerate(stats.errors, start=1):
        print(f"  {index}. Seller ID: {error.seller_id}, File: {error.filename}")
        print(f"     Error: {error.error}")


async def run_command(command: str, runner: MigrationRunner, as_json: bool = False) -> dict:
    """Run one CLI command and return its machine-readable summary."""
    summary: dict = {"command": command}

    if command in ("setup", "migrate", "full"):
        bucket = await runner.setup()
        if not bucket.success:
            raise StorageError(bucket.error)
        summary["bucket"] = {"name": bucket.bucket, "created": bucket.created}
        if not as_json:
            state = "Created" if bucket.created else "Already exists"
            print(f"{state}: Supabase Storage bucket {bucket.bucket}")

    if command in ("migrate", "full"):
        stats = await runner.migrate()
        summary["migration"] = stats.to_dict()
        if not as_json:
            print_migration_summary(stats)

    if command in ("verify", "full"):
        report = await runner.verify()
        summary["verification"] = report.to_dict()
        if not as_json:
            print_verification_summary(report)

    return summary


def main(
    argv: Optional[List[str]] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    storage: Optional[ObjectStoragePort] = None,
) -> int:
    """CLI entry point.

    Args:
        argv: Arguments (default: sys.argv[1:])
        session_factory: Session constructor (default: database.SessionLocal)
        storage: Document store (default: adapter built from settings)
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON, stream=sys.stderr)
    set_request_id(f"cli-{generate_request_id()}")

    if session_factory is None:
        from database import SessionLocal
        session_factory = SessionLocal
    if storage is None:
        from sellers.router import get_storage
        storage = get_storage()

    locator = LegacyFileLocator(args.uploads_root or settings.LEGACY_UPLOADS_ROOT)

    db = session_factory()
    try:
        runner = MigrationRunner(db, storage, locator)
        summary = asyncio.run(run_command(args.command, runner, as_json=args.json))
    except (SellerOnboardingError, ValueError) as e:
        logger.error(f"Migration command failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    if args.json:
        print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
