"""
Value types exchanged between backends, the lister and the engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class BackendKind(Enum):
    """Which side of the migration a backend sits on."""

    SELF_HOSTED = "self_hosted"
    """S3-compatible store, usually reached through a relay function"""

    MANAGED = "managed"
    """Managed storage service with bucket semantics"""


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp as sent by S3 or the storage REST API."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ObjectDescriptor:
    """
    One object as seen in a live listing.

    Descriptors are rebuilt on every listing and never persisted.

    Attributes:
        name: Object key, unique within its location
        size_bytes: Object size
        last_modified: Last modification (or creation) time, when known
        public_url: URL the object can be retrieved from
    """

    name: str
    size_bytes: int = 0
    last_modified: datetime | None = None
    public_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ObjectDescriptor":
        """Build from the relay wire shape ``{name, size, lastModified, url}``."""
        size = data.get("size") or 0
        try:
            size = int(size)
        except (TypeError, ValueError):
            size = 0
        return cls(
            name=data["name"],
            size_bytes=size,
            last_modified=parse_timestamp(data.get("lastModified")),
            public_url=data.get("url") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size_bytes,
            "lastModified": self.last_modified.isoformat() if self.last_modified else "",
            "url": self.public_url,
        }


@dataclass
class FetchedObject:
    """
    One object as returned by a source backend, before it is validated.

    Payloads that crossed a function boundary arrive text-safe encoded;
    ``encoding`` names that encoding ("base64") and is None for raw bytes.
    """

    name: str
    payload: bytes | str = field(repr=False)
    content_type: str = ""
    encoding: str | None = None
