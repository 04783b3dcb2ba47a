# Vault - Project Model
#
# Plaintext project entity: a named set of key/value secrets.
# Only ever serialized to be encrypted; never written to disk as-is.

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import CorruptData

# Fractional seconds beyond microseconds (e.g. nanosecond timestamps) are cut
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as RFC 3339 UTC (``...Z``)."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class Project:
    """A project and its secrets.

    Every mutation of ``secrets`` through the methods below bumps
    ``updated_at``; ``updated_at`` never falls behind ``created_at``.
    """

    name: str
    secrets: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.updated_at is None or self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @classmethod
    def new(cls, name: str) -> "Project":
        now = utc_now()
        return cls(name=name, created_at=now, updated_at=now)

    def _touch(self):
        now = utc_now()
        self.updated_at = now if now >= self.created_at else self.created_at

    def add_secret(self, key: str, value: str) -> None:
        """Insert or overwrite a secret."""
        self.secrets[key] = value
        self._touch()

    def remove_secret(self, key: str) -> Optional[str]:
        """Remove a secret. Returns the removed value, or None if absent."""
        value = self.secrets.pop(key, None)
        if value is not None:
            self._touch()
        return value

    def get_secret(self, key: str) -> Optional[str]:
        return self.secrets.get(key)

    def list_secrets(self) -> List[str]:
        """Secret keys in lexicographic order."""
        return sorted(self.secrets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "secrets": dict(self.secrets),
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Project":
        """
        Rebuild a project from its payload dictionary.

        Raises:
            CorruptData: If any field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise CorruptData("Project payload must be a JSON object")

        name = data.get("name")
        secrets = data.get("secrets")
        if not isinstance(name, str):
            raise CorruptData("Project payload has no valid 'name'")
        if not isinstance(secrets, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in secrets.items()
        ):
            raise CorruptData("Project payload 'secrets' must map strings to strings")

        timestamps = {}
        for key in ("created_at", "updated_at"):
            raw = data.get(key)
            if not isinstance(raw, str):
                raise CorruptData(f"Project payload has no valid '{key}'")
            try:
                timestamps[key] = parse_timestamp(raw)
            except (ValueError, OverflowError) as e:
                raise CorruptData(f"Project payload '{key}' is not a valid timestamp", cause=e) from e

        return cls(name=name, secrets=dict(secrets), **timestamps)

    def to_bytes(self) -> bytes:
        """Serialize to the UTF-8 JSON payload that gets encrypted."""
        return json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_bytes(cls, payload: bytes) -> "Project":
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptData("Decrypted payload is not valid JSON", cause=e) from e
        return cls.from_dict(data)
