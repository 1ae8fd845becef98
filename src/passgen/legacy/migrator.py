# Passgen: Legacy Module - One-time migration into the KV store
#
# Triggered on every password request; a no-op unless the legacy
# directory holds a file starting with the identifier.
#
# Migration of every identifier sharing a legacy directory is serialized
# by one exclusive lock on <legacy_dir>/.migrate, bounded by the
# generation timeout. For each of the current and last pairs:
#   1. missing/empty password file -> delete the pair, store nothing
#   2. missing/empty salt file     -> generate a salt, write it back
#   3. store (password, salt) only if the backend differs
# Valid legacy files are left in place.

import logging
from pathlib import Path
from typing import Dict, Optional

from ..core.audit_log import EventSeverity, EventType
from ..core.exceptions import LockTimeout
from ..lifecycle import PasswordLifecycleManager
from ..options import PasswordOptions, validate_identifier
from .file_store import FILE_MODE, LegacyFileStore, read_first_line, write_value
from .locking import exclusive_lock

logger = logging.getLogger(__name__)

# Per-pair outcomes
MIGRATED = "migrated"
UNCHANGED = "unchanged"
REMOVED = "removed"
ABSENT = "absent"


class LegacyMigrator:
    """Imports legacy password files into the KV store exactly once.

    Args:
        legacy_store: Legacy directory adapter for the active environment.
        manager: Lifecycle manager owning the target store and generator.
    """

    def __init__(self, legacy_store: LegacyFileStore, manager: PasswordLifecycleManager):
        self.legacy_store = legacy_store
        self.manager = manager

    def migrate(self, identifier: str, options: PasswordOptions) -> Optional[Dict[str, str]]:
        """Migrate the current and last pairs for ``identifier``.

        Returns:
            ``{"current": outcome, "last": outcome}`` or None when there was
            nothing to migrate.

        Raises:
            LockTimeout: The directory lock was not acquired in time.
            GenerationTimeout: Salt repair timed out.
            BackendError: A backend call failed.
        """
        validate_identifier(identifier)
        if not self.legacy_store.has_files(identifier):
            return None

        lock_path = self.legacy_store.lock_file()
        try:
            with exclusive_lock(lock_path, options.gen_timeout_seconds, identifier=identifier):
                return {
                    "current": self._migrate_pair(
                        identifier,
                        self.legacy_store.password_file(identifier),
                        self.legacy_store.salt_file(identifier),
                        self.manager.current_key(identifier),
                        options,
                    ),
                    "last": self._migrate_pair(
                        identifier,
                        self.legacy_store.password_file(identifier, last=True),
                        self.legacy_store.salt_file(identifier, last=True),
                        self.manager.last_key(identifier),
                        options,
                    ),
                }
        except LockTimeout:
            self.manager.audit.log_password_event(
                EventType.MIGRATION_LOCK_TIMEOUT, str(lock_path),
                severity=EventSeverity.CRITICAL,
                details={"identifier": identifier},
            )
            raise

    def _migrate_pair(
        self,
        identifier: str,
        password_file: Path,
        salt_file: Path,
        key: str,
        options: PasswordOptions,
    ) -> str:
        password = read_first_line(password_file) if password_file.is_file() else ""
        if not password:
            removed = self.legacy_store.remove_pair(password_file)
            if not removed:
                return ABSENT
            logger.info(
                "Removed unusable legacy files for '%s': %s",
                identifier, ", ".join(p.name for p in removed),
            )
            self.manager.audit.log_password_event(
                EventType.LEGACY_PAIR_REMOVED, str(password_file),
                severity=EventSeverity.WARNING,
            )
            return REMOVED

        salt = self._legacy_salt(identifier, salt_file, options)
        if self.manager.store_password_changes(key, password, salt):
            logger.info("Migrated legacy password file %s to '%s'", password_file, key)
            self.manager.audit.log_password_event(
                EventType.LEGACY_MIGRATED, key, details={"file": str(password_file)}
            )
            return MIGRATED
        return UNCHANGED

    def _legacy_salt(self, identifier: str, salt_file: Path, options: PasswordOptions) -> str:
        salt = read_first_line(salt_file) if salt_file.is_file() else ""
        if salt:
            return salt

        salt = self.manager.generate_salt(options, identifier)
        write_value(salt_file, salt, FILE_MODE)
        logger.warning("Generated missing legacy salt file %s", salt_file)
        self.manager.audit.log_password_event(
            EventType.LEGACY_SALT_REPAIRED, str(salt_file),
            severity=EventSeverity.WARNING,
        )
        return salt
