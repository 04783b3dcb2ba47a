"""
Shared pytest fixtures for the secrets-manager test suite.

Autouse fixtures below isolate tests from the user's real vault:
  - Audit logger -> reset to a fresh (disabled) singleton after every test
  - Environment  -> SECRETS_MANAGER_* variables removed
"""

import pytest


@pytest.fixture(autouse=True)
def _isolate_audit_logger():
    """Close and reset the global AuditLogger around every test.

    The CLI entry point installs a file-backed audit logger; without this,
    its handler would stay attached and later tests would append to a log
    file in an already-deleted temp directory.
    """
    import secrets_manager.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Strip configuration variables so tests never touch ~/.secrets_manager."""
    for name in ("SECRETS_MANAGER_HOME", "SECRETS_MANAGER_LOG_DIR", "SECRETS_MANAGER_AUDIT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def storage_dir(tmp_path):
    """Storage root that does not exist yet (created on first save)."""
    return tmp_path / "vault"
