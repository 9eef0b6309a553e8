"""
Storage backend implementations.

- RelayBackend: self-hosted store through the relay function (httpx)
- S3Backend: self-hosted store over S3 directly (aioboto3, optional)
- SupabaseBackend: managed store (httpx)
- InMemoryBackend: tests and trial runs
"""

from .memory import InMemoryBackend
from .relay import RelayBackend, RelayError
from .supabase import SupabaseBackend


def __getattr__(name: str):
    # S3Backend pulls in aioboto3 lazily
    if name == "S3Backend":
        from .s3 import S3Backend

        return S3Backend
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "InMemoryBackend",
    "RelayBackend",
    "RelayError",
    "S3Backend",
    "SupabaseBackend",
]
