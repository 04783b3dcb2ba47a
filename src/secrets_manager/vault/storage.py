# Vault - Project Store
#
# One encrypted envelope file per project: <storage_dir>/<name>.encrypted
# Writes go to a temp file in the same directory and are renamed into place,
# so a crash never leaves a half-written envelope over a valid one.

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from .encryption import EncryptedEnvelope, EncryptionService
from .errors import (
    AuthenticationFailed,
    InvalidProjectName,
    ProjectNotFound,
    StorageError,
)
from .models import Project
from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger

logger = logging.getLogger(__name__)

ENVELOPE_SUFFIX = ".encrypted"
TEMP_SUFFIX = ".tmp"
# NAME_MAX on common filesystems, in bytes
MAX_FILENAME_BYTES = 255


def validate_project_name(name: str) -> None:
    """
    Reject names that cannot safely be used as a single file name.

    Raises:
        InvalidProjectName: For empty names, ``.``/``..``, path separators,
            NUL or other control characters, or names too long for a file name
    """
    if not isinstance(name, str) or not name:
        raise InvalidProjectName(str(name), "name must not be empty")
    if name in (".", ".."):
        raise InvalidProjectName(name, "name must not be a directory reference")

    separators = {"/", "\\", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    if any(sep in name for sep in separators):
        raise InvalidProjectName(name, "name must not contain path separators")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidProjectName(name, "name must not contain control characters")
    if len(f"{name}{ENVELOPE_SUFFIX}".encode("utf-8", "surrogatepass")) > MAX_FILENAME_BYTES:
        raise InvalidProjectName(name, "name is too long")


class ProjectStore:
    """
    Maps project names to encrypted envelope files.

    The storage directory is created on first save and never removed.
    Cryptography is delegated to EncryptionService, payload layout to Project.
    """

    def __init__(
        self,
        storage_dir: Union[str, Path],
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Initialize project store.

        Args:
            storage_dir: Directory holding the envelope files
            audit_logger: Audit sink (default: global audit logger)
        """
        self.storage_dir = Path(storage_dir)
        self.audit = audit_logger or get_audit_logger()

    def resolve_path(self, name: str) -> Path:
        """Path of the envelope file for a project name."""
        validate_project_name(name)
        return self.storage_dir / f"{name}{ENVELOPE_SUFFIX}"

    def exists(self, name: str) -> bool:
        """Whether an envelope is stored for name. No password needed."""
        path = self.resolve_path(name)
        try:
            return path.is_file()
        except OSError as e:
            raise StorageError(f"Failed to check project '{name}'", cause=e) from e

    def save(self, project: Project, password: str) -> Path:
        """
        Encrypt and persist a project, replacing any previous envelope.

        Returns:
            Path of the written envelope

        Raises:
            InvalidProjectName: If project.name is not a safe file name
            StorageError: If the directory or file cannot be written
        """
        path = self.resolve_path(project.name)
        envelope = EncryptionService.encrypt(project.to_bytes(), password)

        try:
            self._ensure_storage_dir()
            self._atomic_write(path, envelope.to_json())
        except OSError as e:
            self.audit.log_project_event(
                EventType.VAULT_ERROR,
                project.name,
                f"save failed: {e.strerror or type(e).__name__}",
                severity=EventSeverity.CRITICAL,
            )
            raise StorageError(f"Failed to save project '{project.name}'", cause=e) from e

        logger.debug("Saved project %s to %s", project.name, path)
        self.audit.log_project_event(
            EventType.PROJECT_SAVED,
            project.name,
            "saved",
            details={"secret_count": len(project.secrets)},
        )
        return path

    def load(self, name: str, password: str) -> Project:
        """
        Read and decrypt a project.

        Raises:
            ProjectNotFound: If no envelope exists for name
            MalformedEnvelope: If the file is not a valid envelope
            AuthenticationFailed: Wrong password or tampered file
            CorruptData: If the decrypted payload is not a valid project
            StorageError: If the file cannot be read
        """
        path = self.resolve_path(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as e:
            raise ProjectNotFound(name, cause=e) from e
        except OSError as e:
            raise StorageError(f"Failed to read project '{name}'", cause=e) from e

        envelope = EncryptedEnvelope.from_json(raw)
        try:
            payload = EncryptionService.decrypt(envelope, password)
        except AuthenticationFailed:
            self.audit.log_project_event(
                EventType.PROJECT_AUTH_FAILED,
                name,
                "decryption failed",
                severity=EventSeverity.ALERT,
            )
            raise

        project = Project.from_bytes(payload)
        if project.name != name:
            logger.warning(
                "Envelope %s holds project named %r; using the file name",
                path.name, project.name,
            )
            project.name = name

        self.audit.log_project_event(EventType.PROJECT_LOADED, name, "opened")
        return project

    def list(self) -> List[str]:
        """Sorted names of all stored projects. Empty if the directory is missing."""
        if not self.storage_dir.is_dir():
            return []

        try:
            entries = list(self.storage_dir.iterdir())
        except OSError as e:
            raise StorageError("Failed to list projects", cause=e) from e

        names = [
            entry.name[:-len(ENVELOPE_SUFFIX)]
            for entry in entries
            if entry.name.endswith(ENVELOPE_SUFFIX)
            and len(entry.name) > len(ENVELOPE_SUFFIX)
            and entry.is_file()
        ]
        return sorted(names)

    def delete(self, name: str) -> None:
        """
        Remove a project's envelope. Not reversible.

        Raises:
            ProjectNotFound: If no envelope exists for name
        """
        path = self.resolve_path(name)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise ProjectNotFound(name, cause=e) from e
        except OSError as e:
            raise StorageError(f"Failed to delete project '{name}'", cause=e) from e

        self.audit.log_project_event(EventType.PROJECT_DELETED, name, "deleted")

    # ── Private helpers ─────────────────────────────────────────────

    def _ensure_storage_dir(self):
        self.storage_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

    def _atomic_write(self, path: Path, content: str):
        """Write content to path via temp file + fsync + os.replace (mode 600)."""
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), prefix=".", suffix=TEMP_SUFFIX
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, path)
        except BaseException:
            # Clean up temp file on failure
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
