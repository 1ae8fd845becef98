# Passgen: Core Module - Shared Utilities
#
# Core module provides shared functionality across all passgen modules:
# - Audit logging
# - Configuration
# - Exception taxonomy

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
)
from .config import (
    PassgenSettings,
    get_settings,
    set_settings,
)
from .exceptions import (
    BackendError,
    ConfigurationError,
    GenerationTimeout,
    LockTimeout,
    PassgenError,
    ValidationError,
)

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    # Configuration
    "PassgenSettings",
    "get_settings",
    "set_settings",
    # Exceptions
    "PassgenError",
    "ValidationError",
    "GenerationTimeout",
    "LockTimeout",
    "BackendError",
    "ConfigurationError",
]
