"""
Export and import of project secrets as text.

Formats:
- shell: ``export KEY='value'`` lines, ready for ``eval``/``source``
- env:   ``KEY=value`` lines (dotenv style)
- json:  pretty-printed object of the secrets

Imports read dotenv files through python-dotenv.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Union

from dotenv import dotenv_values

from .vault.models import Project

logger = logging.getLogger(__name__)

# Characters that force a dotenv value into double quotes
_ENV_QUOTE_CHARS = set(" \t\r\n#'\"\\")


class ExportFormat(str, Enum):
    """Supported export formats."""
    SHELL = "shell"
    ENV = "env"
    JSON = "json"

    @classmethod
    def parse(cls, text: str) -> "ExportFormat":
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ValueError(f"Invalid format '{text}'. Use: {choices}") from None


def _shell_quote(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def _env_quote(value: str) -> str:
    if not value or not any(ch in _ENV_QUOTE_CHARS for ch in value):
        return value
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def format_export(project: Project, fmt: ExportFormat) -> str:
    """Render a project's secrets in the given format, keys sorted."""
    keys = project.list_secrets()

    if fmt is ExportFormat.SHELL:
        return "".join(f"export {key}={_shell_quote(project.secrets[key])}\n" for key in keys)

    if fmt is ExportFormat.ENV:
        return "".join(f"{key}={_env_quote(project.secrets[key])}\n" for key in keys)

    if fmt is ExportFormat.JSON:
        ordered = {key: project.secrets[key] for key in keys}
        return json.dumps(ordered, indent=2, ensure_ascii=False) + "\n"

    raise ValueError(f"Unsupported export format: {fmt!r}")


def parse_env_file(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read KEY=value pairs from a dotenv file.

    Variable interpolation is disabled so ``$OTHER`` stays literal.
    Bare keys without ``=`` are skipped.

    Raises:
        FileNotFoundError: If path does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"No such file: {path}")

    values = dotenv_values(path, interpolate=False, encoding="utf-8")
    pairs = {}
    for key, value in values.items():
        if value is None:
            logger.debug("Skipping key without value in %s", path.name)
            continue
        pairs[key] = value
    return pairs
