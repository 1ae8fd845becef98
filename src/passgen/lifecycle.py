"""
Current/last password lifecycle.

For each identifier the backend holds at most two records:

    <root>/<identifier>        current
    <root>/<identifier>.last   the generation displaced by the last rotation

A current record is created on first access.  It is only rotated when the
caller explicitly asks for a length that differs from the stored one;
implicit defaults never trigger rotation.  Rotation copies current over
last and stores a freshly generated current.

Writes are check-then-act, not compare-and-swap: two first-time callers
can both see "absent" and both write, and the backend keeps whichever
write lands last.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from .core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from .core.config import SALT_LENGTH, PassgenSettings
from .generator import RandomPasswordGenerator, get_generator
from .kv.base import KVStore
from .options import PasswordOptions, validate_identifier

logger = logging.getLogger(__name__)

PasswordPair = Tuple[str, str]


class PasswordLifecycleManager:
    """Retrieves, generates and rotates passwords in a KV store.

    Args:
        store: Backend holding the records.
        generator: Random string generator (default: shared instance).
        settings: Key root and length defaults.
        audit: Audit logger (default: global instance).
    """

    def __init__(
        self,
        store: KVStore,
        generator: Optional[RandomPasswordGenerator] = None,
        settings: Optional[PassgenSettings] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.store = store
        self.generator = generator or get_generator()
        self.settings = settings or PassgenSettings()
        self._audit = audit

    @property
    def audit(self) -> AuditLogger:
        if self._audit is None:
            self._audit = get_audit_logger()
        return self._audit

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def current_key(self, identifier: str) -> str:
        return self.settings.current_key(identifier)

    def last_key(self, identifier: str) -> str:
        return self.settings.last_key(identifier)

    # ------------------------------------------------------------------
    # Record helpers
    # ------------------------------------------------------------------

    def retrieve(self, key: str) -> Optional[PasswordPair]:
        """Stored (password, salt) at ``key``; None when absent or empty."""
        return self._pair(self.store.get(key))

    @staticmethod
    def _pair(record) -> Optional[PasswordPair]:
        if not record or not record.value:
            return None
        password = record.value.get("password")
        if not password:
            return None
        return password, record.value.get("salt") or ""

    def store_password_info(
        self,
        key: str,
        password: str,
        salt: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Replace the record at ``key`` (value and metadata)."""
        self.store.put(key, {"password": password, "salt": salt}, metadata or {})

    def store_password_changes(
        self,
        key: str,
        password: str,
        salt: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Write only when the stored pair is absent or different.

        Leaves an unchanged record (and its metadata) untouched.

        Returns:
            True if a write happened.
        """
        if self.retrieve(key) == (password, salt):
            return False
        self.store_password_info(key, password, salt, metadata)
        return True

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_salt(self, options: PasswordOptions, identifier: Optional[str] = None) -> str:
        return self.generator.generate(
            SALT_LENGTH,
            complexity=0,
            complex_only=False,
            timeout_seconds=options.gen_timeout_seconds,
            identifier=identifier,
        )

    def generate_pair(self, identifier: str, options: PasswordOptions) -> PasswordPair:
        password = self.generator.generate(
            options.length,
            complexity=options.complexity,
            complex_only=options.complex_only,
            timeout_seconds=options.gen_timeout_seconds,
            identifier=identifier,
        )
        return password, self.generate_salt(options, identifier)

    def create_and_store(self, key: str, identifier: str, options: PasswordOptions) -> PasswordPair:
        """Generate a pair and store it at ``key``.

        Nothing is written if generation fails.
        """
        password, salt = self.generate_pair(identifier, options)
        self.store_password_info(key, password, salt, options.metadata)
        return password, salt

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get_current(self, identifier: str, options: PasswordOptions) -> PasswordPair:
        """Current password for ``identifier``, generating or rotating as needed."""
        validate_identifier(identifier)
        current_key = self.current_key(identifier)
        record = self.store.get(current_key)
        stored = self._pair(record)

        if stored is None:
            pair = self.create_and_store(current_key, identifier, options)
            self.audit.log_password_event(
                EventType.PASSWORD_GENERATED, current_key,
                details={"length": options.length, "complexity": options.complexity},
            )
            return pair

        if not options.length_configured or len(stored[0]) == options.length:
            return stored

        # Generate before touching the backend so a timeout leaves both
        # records as they were.
        password, salt = self.generate_pair(identifier, options)
        self.store_password_info(self.last_key(identifier), stored[0], stored[1], record.metadata)
        self.store_password_info(current_key, password, salt, options.metadata)
        logger.info(
            "Rotated password for '%s' (length %d -> %d)",
            identifier, len(stored[0]), options.length,
        )
        self.audit.log_password_event(
            EventType.PASSWORD_ROTATED, current_key,
            details={"old_length": len(stored[0]), "new_length": options.length},
        )
        return password, salt

    def get_last(self, identifier: str, options: PasswordOptions) -> PasswordPair:
        """Previous password, falling back to current, generating as a last resort."""
        validate_identifier(identifier)
        last_key = self.last_key(identifier)

        stored = self.retrieve(last_key)
        if stored is not None:
            return stored

        stored = self.retrieve(self.current_key(identifier))
        if stored is not None:
            return stored

        logger.warning(
            "Could not retrieve a last or current value for %s. Generating a "
            "new value for 'last'. Please ensure that passwords are requested "
            "in the proper order in your manifest!",
            identifier,
        )
        pair = self.create_and_store(last_key, identifier, options)
        self.audit.log_password_event(
            EventType.PASSWORD_LAST_GENERATED, last_key,
            severity=EventSeverity.WARNING,
            details={"length": options.length},
        )
        return pair

    def set(
        self,
        identifier: str,
        password: str,
        salt: str,
        options: Optional[PasswordOptions] = None,
        backup: bool = True,
    ) -> None:
        """Store an externally supplied pair as current.

        With ``backup`` the existing current record is copied to last
        first (unless it is identical to the new pair).
        """
        validate_identifier(identifier)
        current_key = self.current_key(identifier)
        metadata = options.metadata if options else {}
        if backup:
            stored = self.store.get(current_key)
            if stored and stored.value and stored.value != {"password": password, "salt": salt}:
                self.store.put(self.last_key(identifier), stored.value, stored.metadata)
        self.store_password_info(current_key, password, salt, metadata)
        self.audit.log_password_event(
            EventType.PASSWORD_SET, current_key, details={"backup": backup}
        )

    def remove(self, identifier: str) -> None:
        """Delete current and last records for ``identifier``."""
        validate_identifier(identifier)
        for key in (self.current_key(identifier), self.last_key(identifier)):
            self.store.delete(key)
        self.audit.log_password_event(
            EventType.PASSWORD_REMOVED, self.current_key(identifier)
        )
