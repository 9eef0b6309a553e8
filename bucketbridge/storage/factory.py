"""
Storage Factory - build backends from a MigrationConfig.

Callers name the backend they want ("relay", "s3", "supabase", "memory" or
one of the aliases "self-hosted", "managed") and get a ready backend value
to hand to the lister and the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketbridge.core.config import MigrationConfig, canonical_backend_name
from bucketbridge.core.exceptions import ConfigurationError
from bucketbridge.storage.backends.memory import InMemoryBackend
from bucketbridge.storage.types import BackendKind

if TYPE_CHECKING:
    from bucketbridge.storage.base import StorageBackend


def _create_relay_backend(config: MigrationConfig) -> StorageBackend:
    from bucketbridge.storage.backends.relay import RelayBackend

    return RelayBackend(
        function_url=config.relay_url,
        api_key=config.relay_key,
        public_base_url=config.self_hosted_public_url,
        default_limit=config.list_limit,
        timeout=config.request_timeout_seconds,
    )


def _create_s3_backend(config: MigrationConfig) -> StorageBackend:
    from bucketbridge.storage.backends.s3 import S3Backend

    return S3Backend(
        bucket_name=config.s3_bucket,
        endpoint_url=config.s3_endpoint_url,
        region_name=config.s3_region,
        public_base_url=config.self_hosted_public_url,
        default_limit=config.list_limit,
        aws_access_key_id=config.s3_access_key,
        aws_secret_access_key=config.s3_secret_key,
    )


def _create_supabase_backend(config: MigrationConfig) -> StorageBackend:
    from bucketbridge.storage.backends.supabase import SupabaseBackend

    return SupabaseBackend(
        url=config.supabase_url,
        service_role_key=config.supabase_key,
        default_limit=config.managed_list_limit,
        timeout=config.request_timeout_seconds,
    )


# Backend registry mapping backend names to factory functions
_BACKEND_REGISTRY = {
    "relay": _create_relay_backend,
    "s3": _create_s3_backend,
    "supabase": _create_supabase_backend,
    "memory": lambda config: InMemoryBackend(),
}


def create_backend(backend: str, config: MigrationConfig | None = None) -> StorageBackend:
    """
    Create a storage backend by name.

    "self-hosted" resolves to ``config.self_hosted_backend`` ("relay" unless
    configured otherwise).

    Raises:
        ConfigurationError: Unknown backend or missing settings
    """
    config = config or MigrationConfig.from_env()
    name = canonical_backend_name(backend)
    if name == "relay" and backend.strip().lower() in ("self-hosted", "selfhosted"):
        name = config.self_hosted_backend

    factory = _BACKEND_REGISTRY.get(name)
    if factory is None:
        available = ", ".join(sorted(_BACKEND_REGISTRY))
        msg = f"Unknown storage backend: {backend!r}. Available: {available}"
        raise ConfigurationError(msg)

    config.validate([name])
    return factory(config)


def create_backend_pair(config: MigrationConfig) -> dict[BackendKind, StorageBackend]:
    """Both sides of a migration, keyed by kind."""
    return {
        BackendKind.SELF_HOSTED: create_backend("self-hosted", config),
        BackendKind.MANAGED: create_backend("managed", config),
    }


def available_backends() -> list[str]:
    return sorted(_BACKEND_REGISTRY)
