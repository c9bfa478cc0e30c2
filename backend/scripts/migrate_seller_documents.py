#!/usr/bin/env python
"""Migrate legacy seller documents to Supabase Storage.

Usage:
    python backend/scripts/migrate_seller_documents.py setup
    python backend/scripts/migrate_seller_documents.py migrate
    python backend/scripts/migrate_seller_documents.py verify
    python backend/scripts/migrate_seller_documents.py full [--uploads-root server/uploads]

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
    SUPABASE_URL: Project URL
    SUPABASE_S3_ACCESS_KEY_ID / SUPABASE_S3_SECRET_ACCESS_KEY: Storage S3 keys
    LEGACY_UPLOADS_ROOT: Legacy uploads directory (default: uploads)
"""

import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from migration.cli import main


if __name__ == "__main__":
    sys.exit(main())
