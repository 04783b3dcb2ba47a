"""
Vault Exception Classes

Every failure raised by the vault core is a VaultError carrying an ErrorKind.
The optional ``cause`` holds the underlying library exception for diagnostics;
callers branch on the exception class (or ``kind``), never on ``cause``.
Messages never contain passwords or secret values.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of vault failure categories."""
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    AUTHENTICATION_FAILED = "authentication_failed"
    MALFORMED_ENVELOPE = "malformed_envelope"
    CORRUPT_DATA = "corrupt_data"
    INVALID_NAME = "invalid_name"
    IO = "io"


class VaultError(Exception):
    """Base exception for vault operations"""

    kind: ErrorKind = ErrorKind.IO

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ProjectNotFound(VaultError):
    """Raised when no envelope exists for a project name"""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, name: str, cause: Optional[BaseException] = None):
        super().__init__(f"Project '{name}' not found", cause)
        self.name = name


class ProjectAlreadyExists(VaultError):
    """Raised by creation flows when the project is already stored"""
    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, name: str, cause: Optional[BaseException] = None):
        super().__init__(f"Project '{name}' already exists", cause)
        self.name = name


class AuthenticationFailed(VaultError):
    """Raised when decryption fails: wrong password or tampered data"""
    kind = ErrorKind.AUTHENTICATION_FAILED

    MESSAGE = "Decryption failed - wrong password or corrupted data"

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__(self.MESSAGE, cause)


class MalformedEnvelope(VaultError):
    """Raised when a persisted envelope is structurally invalid"""
    kind = ErrorKind.MALFORMED_ENVELOPE


class CorruptData(VaultError):
    """Raised when decrypted bytes are not a valid project payload"""
    kind = ErrorKind.CORRUPT_DATA


class InvalidProjectName(VaultError):
    """Raised when a project name is not safe to use as a file name"""
    kind = ErrorKind.INVALID_NAME

    def __init__(self, name: str, reason: str):
        super().__init__(f"Invalid project name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class StorageError(VaultError):
    """Raised when the filesystem fails (permissions, disk full, no home)"""
    kind = ErrorKind.IO
