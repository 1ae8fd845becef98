# Passgen: Core Module - Audit Logging
#
# Append-only audit trail for password lifecycle events.
# Every generation, rotation, migration and removal is recorded with a
# timestamp, the affected identifier/key and the process context.
# Passwords and salts are never written to the audit trail.

import logging
import os
import socket
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of lifecycle events that can be logged."""
    # Password lifecycle
    PASSWORD_GENERATED = "password.generated"
    PASSWORD_ROTATED = "password.rotated"
    PASSWORD_LAST_GENERATED = "password.last_generated"
    PASSWORD_SET = "password.set"
    PASSWORD_REMOVED = "password.removed"

    # Legacy migration
    LEGACY_MIGRATED = "legacy.migrated"
    LEGACY_SALT_REPAIRED = "legacy.salt_repaired"
    LEGACY_PAIR_REMOVED = "legacy.pair_removed"
    MIGRATION_LOCK_TIMEOUT = "migration.lock_timeout"

    # Backend
    BACKEND_ERROR = "backend.error"

    # System Events
    SYSTEM_START = "system.start"


class EventSeverity(str, Enum):
    """
    Severity levels for lifecycle events.

    - INFO: Normal activity (generation, migration)
    - WARNING: Suspicious ordering or repaired state
    - CRITICAL: Operation aborted (timeouts, backend failures)
    """
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only audit logger for password lifecycle events.

    Features:
    - Structured JSON logging (structlog)
    - Automatic timestamp and event ID
    - Process context capture (OS user, hostname)
    - One log file per day
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
        """
        self.log_dir = Path(log_dir) if log_dir else Path("./audit_logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._setup_file_handler()

        self.logger = structlog.get_logger("passgen.audit")

    def _setup_file_handler(self):
        """Attach a daily file handler to the audit channel."""
        today = datetime.now().strftime("%Y-%m-%d")
        self.log_file = self.log_dir / f"audit_{today}.log"

        file_handler = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))

        audit_channel = logging.getLogger("passgen.audit")
        for handler in list(audit_channel.handlers):
            audit_channel.removeHandler(handler)
            handler.close()
        audit_channel.addHandler(file_handler)
        audit_channel.setLevel(logging.INFO)
        audit_channel.propagate = False

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Log a lifecycle event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never passwords or salts)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.utcnow().isoformat(),
            "details": details or {},
            "context": self._get_process_context(),
        }

        self.logger.info("passgen_event", **event_data)

        return event_id

    def log_password_event(
        self,
        event_type: EventType,
        key: str,
        severity: EventSeverity = EventSeverity.INFO,
        details: Optional[Dict[str, Any]] = None
    ) -> str:
        """Log an event about a single backend key or legacy file."""
        event_details = dict(details or {})
        event_details["key"] = key
        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Passgen: {event_type.value} - {key}",
            details=event_details
        )

    def _get_process_context(self) -> Dict[str, Any]:
        """Get process context (OS user, hostname, pid)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "pid": os.getpid(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger(log_dir=os.environ.get("PASSGEN_AUDIT_DIR"))
    return _audit_logger
