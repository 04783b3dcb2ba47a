# Core Module - Shared Utilities
#
# - Configuration (storage root, audit settings)
# - Audit logging

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    configure_audit_logger,
    get_audit_logger,
)
from .config import VaultConfig, load_config

__all__ = [
    # Configuration
    "VaultConfig",
    "load_config",
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "configure_audit_logger",
    "get_audit_logger",
]
