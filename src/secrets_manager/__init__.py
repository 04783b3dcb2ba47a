# Secrets Manager - Main Package
#
# Local, password-protected secret vault for developers.
# Each project is a set of key/value secrets encrypted at rest
# under a master password.

__version__ = "0.1.0"
__author__ = "Secrets Manager Team"
__description__ = "A secure local secrets manager for development"

from .vault import (
    EncryptedEnvelope,
    EncryptionService,
    Project,
    ProjectStore,
    VaultError,
)
from .core import VaultConfig, load_config

__all__ = [
    "__version__",
    "EncryptedEnvelope",
    "EncryptionService",
    "Project",
    "ProjectStore",
    "VaultError",
    "VaultConfig",
    "load_config",
]
