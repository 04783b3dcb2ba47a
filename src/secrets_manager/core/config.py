# Core - Configuration
#
# Resolves where projects and audit logs live.
# Precedence: explicit argument > environment variable > default under $HOME.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..vault.errors import StorageError

ENV_HOME = "SECRETS_MANAGER_HOME"
ENV_LOG_DIR = "SECRETS_MANAGER_LOG_DIR"
ENV_AUDIT = "SECRETS_MANAGER_AUDIT"

DEFAULT_DIR_NAME = ".secrets_manager"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class VaultConfig:
    """Runtime configuration for the vault.

    Args:
        storage_dir: Directory holding one ``<name>.encrypted`` file per project
        log_dir: Directory for daily audit logs
        audit_enabled: Whether audit events are written at all
    """

    storage_dir: Path
    log_dir: Path
    audit_enabled: bool = True


def default_storage_dir() -> Path:
    """``~/.secrets_manager``; raises StorageError if $HOME cannot be resolved."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise StorageError("Could not find home directory", cause=e) from e
    return home / DEFAULT_DIR_NAME


def load_config(storage_dir: Optional[Union[str, Path]] = None) -> VaultConfig:
    """Build a VaultConfig from arguments and the environment."""
    if storage_dir is not None:
        root = Path(storage_dir).expanduser()
    elif os.environ.get(ENV_HOME):
        root = Path(os.environ[ENV_HOME]).expanduser()
    else:
        root = default_storage_dir()

    log_dir_env = os.environ.get(ENV_LOG_DIR)
    log_dir = Path(log_dir_env).expanduser() if log_dir_env else root / "logs"

    audit_enabled = os.environ.get(ENV_AUDIT, "1").strip().lower() not in _FALSE_VALUES

    return VaultConfig(storage_dir=root, log_dir=log_dir, audit_enabled=audit_enabled)
