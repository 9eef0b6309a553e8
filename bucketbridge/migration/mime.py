"""
Payload checks applied between fetch and upload.

- guard_integrity: refuse web pages served in place of object bytes
- infer_content_type: fill in a usable type when the source sent a generic one
- decode_payload: turn relay base64 text into raw bytes
"""

import base64
import binascii

from bucketbridge.storage.core import FetchError, IntegrityError
from bucketbridge.storage.types import FetchedObject

GENERIC_CONTENT_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream"})

PAGE_CONTENT_TYPES = frozenset({"text/html", "application/xhtml+xml"})

EXTENSION_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "svg": "image/svg+xml",
}


def _base_type(content_type: str | None) -> str:
    """Media type without parameters, lower-cased ("text/html; charset=utf-8" → "text/html")."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def is_page_content_type(content_type: str | None) -> bool:
    """True for HTML, XHTML and any other text/* answer."""
    base = _base_type(content_type)
    return base in PAGE_CONTENT_TYPES or base.startswith("text/")


def guard_integrity(fetched: FetchedObject, backend: str | None = None) -> None:
    """
    Raises:
        IntegrityError: The source answered with a page instead of the object
    """
    if is_page_content_type(fetched.content_type):
        raise IntegrityError(fetched.name, fetched.content_type, backend=backend)


def infer_content_type(name: str, declared: str | None) -> str:
    """
    Declared type, or one inferred from the file extension when the declared
    type is missing or generic. Unknown extensions keep the declared value.
    """
    declared = (declared or "").strip()
    if _base_type(declared) not in GENERIC_CONTENT_TYPES:
        return declared

    _, dot, extension = name.rpartition(".")
    if dot:
        inferred = EXTENSION_CONTENT_TYPES.get(extension.lower())
        if inferred:
            return inferred
    return declared or "application/octet-stream"


def decode_payload(fetched: FetchedObject) -> bytes:
    """
    Raw object bytes.

    Raises:
        FetchError: Malformed base64 or an unknown encoding
    """
    if fetched.encoding is None:
        if isinstance(fetched.payload, str):
            return fetched.payload.encode()
        return bytes(fetched.payload)

    if fetched.encoding != "base64":
        msg = f"Unsupported payload encoding {fetched.encoding!r}"
        raise FetchError(msg, name=fetched.name)

    data = fetched.payload
    if isinstance(data, str):
        data = data.encode("ascii", errors="strict") if data.isascii() else None
    if data is None:
        msg = f"Payload for {fetched.name!r} is not valid base64"
        raise FetchError(msg, name=fetched.name)

    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as e:
        msg = f"Payload for {fetched.name!r} is not valid base64: {e}"
        raise FetchError(msg, name=fetched.name) from e
