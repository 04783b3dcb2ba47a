# Vault Module - Encrypted Project Storage
#
# One AES-256-GCM envelope per project, keyed by a PBKDF2-derived
# master-password key, persisted with atomic write-then-rename.

from .encryption import EncryptedEnvelope, EncryptionService
from .errors import (
    AuthenticationFailed,
    CorruptData,
    ErrorKind,
    InvalidProjectName,
    MalformedEnvelope,
    ProjectAlreadyExists,
    ProjectNotFound,
    StorageError,
    VaultError,
)
from .models import Project
from .storage import ProjectStore, validate_project_name

__all__ = [
    # Envelope
    "EncryptedEnvelope",
    "EncryptionService",
    # Store
    "Project",
    "ProjectStore",
    "validate_project_name",
    # Errors
    "ErrorKind",
    "VaultError",
    "ProjectNotFound",
    "ProjectAlreadyExists",
    "AuthenticationFailed",
    "MalformedEnvelope",
    "CorruptData",
    "InvalidProjectName",
    "StorageError",
]
