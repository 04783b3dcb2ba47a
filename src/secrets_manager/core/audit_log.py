# Core - Audit Logging
#
# Append-only audit trail of vault activity (project created, opened,
# exported, deleted...). Entries carry project names, key names and counts.
# Secret values and passwords are never passed to this module.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog

AUDIT_LOGGER_NAME = "secrets_manager.audit"

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of vault events that can be logged."""
    PROJECT_CREATED = "project.created"
    PROJECT_SAVED = "project.saved"
    PROJECT_LOADED = "project.loaded"
    PROJECT_AUTH_FAILED = "project.auth_failed"
    PROJECT_DELETED = "project.deleted"
    PROJECT_EXPORTED = "project.exported"
    PROJECT_IMPORTED = "project.imported"
    VAULT_ERROR = "vault.error"


class EventSeverity(str, Enum):
    """
    Severity levels for vault events.

    - INFO: Normal activity
    - ALERT: Something the owner may want to look at (failed unlock)
    - CRITICAL: Data could not be read or written
    """
    INFO = "info"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only JSON audit logger.

    Events are rendered by structlog and written to a daily
    ``audit_YYYY-MM-DD.log`` file under ``log_dir``. A disabled logger
    accepts every call and writes nothing.
    """

    def __init__(self, log_dir: Optional[Path] = None, enabled: bool = True):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
            enabled: Whether events are recorded
        """
        self.log_dir = Path(log_dir) if log_dir else Path("./audit_logs")
        self.enabled = enabled
        self._handler: Optional[logging.Handler] = None

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
            cache_logger_on_first_use=False,
        )

        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    def _setup_file_handler(self):
        """Attach a file handler for today's log to the audit logger only.

        Called on the first recorded event, so a logger that never records
        anything never creates its directory.
        """
        self.log_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = self.log_dir / f"audit_{today}.log"

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))  # structlog handles formatting

        std_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        std_logger.addHandler(file_handler)
        std_logger.setLevel(logging.INFO)
        std_logger.propagate = False
        self._handler = file_handler

    @property
    def log_file(self) -> Optional[Path]:
        if isinstance(self._handler, logging.FileHandler):
            return Path(self._handler.baseFilename)
        return None

    def close(self):
        """Detach and close the file handler."""
        if self._handler is not None:
            logging.getLogger(AUDIT_LOGGER_NAME).removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Log a vault event.

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional details (never secret values or passwords!)

        Returns:
            Event ID (UUID), or None when auditing is disabled
        """
        if not self.enabled:
            return None

        if self._handler is None:
            try:
                self._setup_file_handler()
            except OSError as e:
                # Auditing stops; the vault operation itself is unaffected
                logger.warning("Audit log disabled, cannot open %s: %s", self.log_dir, e)
                self.enabled = False
                return None

        event_id = str(uuid4())
        self.logger.info(
            "vault_event",
            event_id=event_id,
            event_type=event_type.value,
            severity=severity.value,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=details or {},
            user_context=self._get_default_user_context(),
        )
        return event_id

    def log_project_event(
        self,
        event_type: EventType,
        project_name: str,
        message: str,
        severity: EventSeverity = EventSeverity.INFO,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Log an event about a single project."""
        event_details = dict(details or {})
        event_details["project"] = project_name
        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Project '{project_name}': {message}",
            details=event_details,
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern).

    Until configure_audit_logger() is called this is a disabled logger, so
    library use of the vault writes no files on its own.
    """
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger(enabled=False)
    return _audit_logger


def configure_audit_logger(log_dir: Optional[Path], enabled: bool = True) -> AuditLogger:
    """Replace the global audit logger."""
    global _audit_logger
    if _audit_logger is not None:
        _audit_logger.close()
    _audit_logger = AuditLogger(log_dir=log_dir, enabled=enabled)
    return _audit_logger
