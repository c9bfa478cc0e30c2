"""Legacy seller document migration (filesystem -> Supabase Storage)"""

from .runner import MigrationError, MigrationRunner, MigrationStats, VerificationStats

__all__ = [
    "MigrationError",
    "MigrationRunner",
    "MigrationStats",
    "VerificationStats",
]
