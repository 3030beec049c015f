"""Base model and helpers shared by all persisted records."""

import re
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def safe_name(value: str) -> str:
    """Make an identifier usable as a single path component."""
    cleaned = _UNSAFE_CHARS.sub("_", value).strip(".")
    return cleaned or "_"


class RecordModel(BaseModel):
    """Base class for records persisted as JSON documents.

    Provides:
    - Whitespace stripping on strings
    - Population by field name or alias
    - JSON-mode dumping with camelCase aliases where declared
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        validate_default=True,
    )

    def document(self) -> dict:
        """Serialize the full record for a JSON document."""
        return self.model_dump(mode="json", by_alias=True)
