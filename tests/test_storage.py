# Tests for ProjectStore
# Coverage:
#   - save/load round trip and on-disk envelope format
#   - atomic write (no temp files left, previous envelope survives failures)
#   - list / exists / delete contract
#   - project name validation (path traversal, over-long names)
#   - error taxonomy on load (NotFound, AuthenticationFailed, Malformed, Corrupt)
#   - audit trail never contains secret values or passwords, and a broken
#     audit log never changes the result of an operation

import json
import os
import stat
import sys

import pytest

from secrets_manager.core.audit_log import AuditLogger
from secrets_manager.vault import storage as storage_mod
from secrets_manager.vault.encryption import EncryptionService
from secrets_manager.vault.errors import (
    AuthenticationFailed,
    CorruptData,
    InvalidProjectName,
    MalformedEnvelope,
    ProjectNotFound,
    StorageError,
)
from secrets_manager.vault.models import Project
from secrets_manager.vault.storage import ProjectStore

PASSWORD = "test_password"


@pytest.fixture
def store(storage_dir):
    return ProjectStore(storage_dir)


def _project(name="test_project", **secrets):
    project = Project.new(name)
    for key, value in secrets.items():
        project.add_secret(key, value)
    return project


# ── save / load ─────────────────────────────────────────────────────


class TestSaveLoad:
    def test_save_and_load_project(self, store):
        project = _project(API_KEY="secret123", DB_URL="postgres://localhost")
        store.save(project, PASSWORD)

        loaded = store.load("test_project", PASSWORD)
        assert loaded.name == project.name
        assert loaded.secrets == project.secrets
        assert loaded.created_at == project.created_at
        assert loaded.updated_at == project.updated_at

    def test_demo_scenario(self, store):
        project = Project.new("demo")
        store.save(project, "Tr0ub4dor&3")

        project = store.load("demo", "Tr0ub4dor&3")
        project.add_secret("API_KEY", "abc123")
        store.save(project, "Tr0ub4dor&3")

        assert store.load("demo", "Tr0ub4dor&3").get_secret("API_KEY") == "abc123"
        with pytest.raises(AuthenticationFailed):
            store.load("demo", "wrong")

    def test_storage_dir_created_on_first_save(self, store, storage_dir):
        assert not storage_dir.exists()
        store.save(_project(), PASSWORD)
        assert storage_dir.is_dir()

    def test_envelope_file_format(self, store, storage_dir):
        path = store.save(_project(API_KEY="secret123"), PASSWORD)
        assert path == storage_dir / "test_project.encrypted"

        text = path.read_text()
        data = json.loads(text)
        assert set(data) == {"encrypted_data", "salt", "nonce"}
        assert "secret123" not in text
        assert "API_KEY" not in text

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_envelope_is_owner_only(self, store):
        path = store.save(_project(), PASSWORD)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_resave_changes_every_field(self, store):
        project = _project(A="1")
        path = store.save(project, PASSWORD)
        first = json.loads(path.read_text())
        store.save(project, PASSWORD)
        second = json.loads(path.read_text())

        for field in ("encrypted_data", "salt", "nonce"):
            assert first[field] != second[field]

    def test_overwrite_replaces_contents(self, store):
        store.save(_project(A="1", B="2"), PASSWORD)
        store.save(_project(C="3"), "new_password")

        loaded = store.load("test_project", "new_password")
        assert loaded.secrets == {"C": "3"}
        with pytest.raises(AuthenticationFailed):
            store.load("test_project", PASSWORD)

    def test_storage_key_wins_over_embedded_name(self, store, storage_dir):
        path = store.save(_project("original", A="1"), PASSWORD)
        os.replace(path, storage_dir / "renamed.encrypted")

        loaded = store.load("renamed", PASSWORD)
        assert loaded.name == "renamed"
        assert loaded.secrets == {"A": "1"}


# ── Atomic writes ───────────────────────────────────────────────────


class TestAtomicWrite:
    def test_no_temp_files_left(self, store, storage_dir):
        store.save(_project(), PASSWORD)
        store.save(_project(), PASSWORD)
        assert [p.name for p in storage_dir.iterdir()] == ["test_project.encrypted"]

    def test_failed_replace_keeps_previous_envelope(self, store, storage_dir, monkeypatch):
        store.save(_project(A="original"), PASSWORD)

        def broken_replace(src, dst):
            raise OSError(28, "No space left on device")

        with monkeypatch.context() as m:
            m.setattr(storage_mod.os, "replace", broken_replace)
            with pytest.raises(StorageError) as exc_info:
                store.save(_project(A="updated"), PASSWORD)

        assert isinstance(exc_info.value.cause, OSError)
        assert [p.name for p in storage_dir.iterdir()] == ["test_project.encrypted"]
        assert store.load("test_project", PASSWORD).secrets == {"A": "original"}

    def test_failed_write_leaves_no_envelope(self, store, storage_dir, monkeypatch):
        def broken_fsync(fd):
            raise OSError(5, "Input/output error")

        with monkeypatch.context() as m:
            m.setattr(storage_mod.os, "fsync", broken_fsync)
            with pytest.raises(StorageError):
                store.save(_project(), PASSWORD)

        assert list(storage_dir.iterdir()) == []
        assert store.exists("test_project") is False


# ── list / exists / delete ──────────────────────────────────────────


class TestListExistsDelete:
    def test_list_sorted(self, store):
        store.save(_project("b"), PASSWORD)
        store.save(_project("a"), PASSWORD)
        assert store.list() == ["a", "b"]

    def test_list_missing_dir(self, store, storage_dir):
        assert not storage_dir.exists()
        assert store.list() == []

    def test_list_empty_dir(self, store, storage_dir):
        storage_dir.mkdir()
        assert store.list() == []

    def test_list_ignores_other_entries(self, store, storage_dir):
        store.save(_project("real"), PASSWORD)
        (storage_dir / "notes.txt").write_text("hello")
        (storage_dir / ".real.abc123.tmp").write_text("partial")
        (storage_dir / ".encrypted").write_text("{}")
        (storage_dir / "folder.encrypted").mkdir()
        assert store.list() == ["real"]

    def test_exists(self, store):
        assert store.exists("demo") is False
        store.save(_project("demo"), PASSWORD)
        assert store.exists("demo") is True

    def test_delete(self, store):
        store.save(_project("demo"), PASSWORD)
        store.delete("demo")

        assert store.exists("demo") is False
        assert store.list() == []
        with pytest.raises(ProjectNotFound):
            store.load("demo", PASSWORD)

    def test_delete_missing(self, store):
        with pytest.raises(ProjectNotFound, match="ghost"):
            store.delete("ghost")


# ── Project names ───────────────────────────────────────────────────


class TestProjectNames:
    @pytest.mark.parametrize("name", [
        "", ".", "..", "../evil", "a/b", "/etc/passwd", "a\\b", "..\\evil", "nul\x00byte", "tab\tname",
    ])
    def test_unsafe_names_rejected(self, store, storage_dir, name):
        with pytest.raises(InvalidProjectName):
            store.resolve_path(name)
        with pytest.raises(InvalidProjectName):
            store.save(_project(name), PASSWORD)
        assert not storage_dir.exists()

    @pytest.mark.parametrize("name", ["my-app", "app.v2", "My App", "...", "prod_2024"])
    def test_safe_names_accepted(self, store, storage_dir, name):
        assert store.resolve_path(name) == storage_dir / f"{name}.encrypted"

    def test_traversal_cannot_escape_root(self, store, tmp_path):
        with pytest.raises(InvalidProjectName):
            store.save(_project("../escaped"), PASSWORD)
        assert not (tmp_path / "escaped.encrypted").exists()

    def test_overlong_name_rejected(self, store, storage_dir):
        with pytest.raises(InvalidProjectName):
            store.exists("a" * 300)
        with pytest.raises(InvalidProjectName):
            store.save(_project("é" * 123), PASSWORD)
        assert not storage_dir.exists()

    def test_longest_name_round_trips(self, store):
        name = "a" * (255 - len(".encrypted"))
        store.save(_project(name, A="1"), PASSWORD)
        assert store.exists(name) is True
        assert store.load(name, PASSWORD).secrets == {"A": "1"}

    def test_exists_wraps_os_errors(self, store, monkeypatch):
        def denied(self):
            raise PermissionError(13, "Permission denied")

        with monkeypatch.context() as m:
            m.setattr(storage_mod.Path, "is_file", denied)
            with pytest.raises(StorageError) as exc_info:
                store.exists("demo")
        assert isinstance(exc_info.value.cause, PermissionError)


# ── load failures ───────────────────────────────────────────────────


class TestLoadErrors:
    def test_not_found(self, store):
        with pytest.raises(ProjectNotFound):
            store.load("missing", PASSWORD)

    def test_wrong_password(self, store):
        store.save(_project(), PASSWORD)
        with pytest.raises(AuthenticationFailed):
            store.load("test_project", "wrong_password")

    def test_tampered_file(self, store):
        path = store.save(_project(A="1"), PASSWORD)
        data = json.loads(path.read_text())
        raw = bytearray(EncryptionService.decode_from_storage(data["encrypted_data"]))
        raw[len(raw) // 2] ^= 0x04
        data["encrypted_data"] = EncryptionService.encode_for_storage(bytes(raw))
        path.write_text(json.dumps(data))

        with pytest.raises(AuthenticationFailed):
            store.load("test_project", PASSWORD)

    def test_file_not_json(self, store, storage_dir):
        storage_dir.mkdir()
        (storage_dir / "broken.encrypted").write_text("this is not json")
        with pytest.raises(MalformedEnvelope):
            store.load("broken", PASSWORD)

    def test_file_not_utf8(self, store, storage_dir):
        storage_dir.mkdir()
        (storage_dir / "bad.encrypted").write_bytes(b"\xff\xfe garbage")
        with pytest.raises(MalformedEnvelope):
            store.load("bad", PASSWORD)

    def test_envelope_missing_field(self, store, storage_dir):
        storage_dir.mkdir()
        (storage_dir / "broken.encrypted").write_text(json.dumps({"salt": "", "nonce": ""}))
        with pytest.raises(MalformedEnvelope):
            store.load("broken", PASSWORD)

    def test_decrypted_payload_not_a_project(self, store, storage_dir):
        storage_dir.mkdir()
        envelope = EncryptionService.encrypt(b'{"version": 2, "data": []}', PASSWORD)
        (storage_dir / "future.encrypted").write_text(envelope.to_json())

        with pytest.raises(CorruptData):
            store.load("future", PASSWORD)


# ── Audit trail ─────────────────────────────────────────────────────


class TestAuditTrail:
    @pytest.fixture
    def audit(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "logs")
        yield logger
        logger.close()

    def _events(self, audit):
        return [json.loads(line) for line in audit.log_file.read_text().splitlines()]

    def test_events_recorded_without_secrets(self, storage_dir, audit):
        store = ProjectStore(storage_dir, audit_logger=audit)
        store.save(_project("demo", API_KEY="abc123"), "Tr0ub4dor&3")
        store.load("demo", "Tr0ub4dor&3")
        with pytest.raises(AuthenticationFailed):
            store.load("demo", "wrong")
        store.delete("demo")

        events = self._events(audit)
        assert [e["event_type"] for e in events] == [
            "project.saved",
            "project.loaded",
            "project.auth_failed",
            "project.deleted",
        ]
        assert events[0]["details"] == {"secret_count": 1, "project": "demo"}

        text = audit.log_file.read_text()
        assert "abc123" not in text
        assert "Tr0ub4dor&3" not in text

    def test_unwritable_log_dir_does_not_fail_operations(self, storage_dir, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        audit = AuditLogger(log_dir=blocker / "logs")
        store = ProjectStore(storage_dir, audit_logger=audit)

        path = store.save(_project("demo", A="1"), PASSWORD)
        assert path.is_file()
        assert store.load("demo", PASSWORD).secrets == {"A": "1"}
        store.delete("demo")
        assert store.exists("demo") is False
        assert audit.enabled is False

    def test_unwritable_log_dir_keeps_save_error(self, storage_dir, tmp_path, monkeypatch):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = ProjectStore(storage_dir, audit_logger=AuditLogger(log_dir=blocker / "logs"))

        def broken_replace(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(storage_mod.os, "replace", broken_replace)
        with pytest.raises(StorageError):
            store.save(_project("demo"), PASSWORD)
