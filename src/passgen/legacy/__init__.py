# Passgen: Legacy Module - Flat-file store and migration
#
# Reads the deprecated one-file-per-value layout and moves it into the
# KV store on first use.

from .file_store import LegacyFileStore, legacy_environments, open_legacy_store
from .locking import exclusive_lock
from .migrator import LegacyMigrator

__all__ = [
    "LegacyFileStore",
    "LegacyMigrator",
    "exclusive_lock",
    "legacy_environments",
    "open_legacy_store",
]
