"""
Storage URL helpers.

Content records keep absolute image URLs. After a migration, URLs that
still point at the self-hosted store are rewritten to the managed store's
public URL for the bucket the object now lives in.

    https://minio.example.com/site/products/a.jpg
        → https://abc.supabase.co/storage/v1/object/public/product-images/products/a.jpg
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bucketbridge.core.exceptions import ConfigurationError
from bucketbridge.migration.locations import LocationMap

if TYPE_CHECKING:
    from bucketbridge.core.config import MigrationConfig

_MANAGED_PUBLIC_URL = re.compile(r"/storage/v1/object/public/([^/]+)/(.+)$")


def _self_hosted_path(url: str, config: MigrationConfig | None) -> str | None:
    """Object key when the URL points at the self-hosted public base, else None."""
    if config is None or not config.self_hosted_public_url:
        return None
    base = re.sub(r"^https?://", "", config.self_hosted_public_url)
    match = re.match(rf"^https?://{re.escape(base)}/(.+)$", url)
    return match.group(1) if match else None


def normalize_storage_url(
    url: str | None,
    config: MigrationConfig,
    locations: LocationMap | None = None,
) -> str:
    """
    Rewrite a self-hosted public URL into the managed public URL.

    Managed URLs and foreign URLs (CDNs, placeholders) are returned unchanged;
    an empty URL gives "".
    """
    if not url:
        return ""

    if _MANAGED_PUBLIC_URL.search(url):
        return url

    path = _self_hosted_path(url, config)
    if path is None or not config.managed_public_base:
        return url

    bucket = (locations or LocationMap.default()).bucket_for_key(path)
    return get_storage_url(bucket, path, config)


def get_storage_url(bucket: str, path: str, config: MigrationConfig) -> str:
    """Managed public URL of an object."""
    if not config.managed_public_base:
        msg = "Managed storage URL is not configured"
        raise ConfigurationError(msg)
    return f"{config.managed_public_base}/{bucket}/{path.lstrip('/')}"


def parse_storage_url(
    url: str | None,
    config: MigrationConfig | None = None,
    locations: LocationMap | None = None,
) -> tuple[str, str] | None:
    """
    (bucket, path) of a storage URL, or None for anything else.

    Self-hosted URLs are only recognised when ``config`` names the
    self-hosted public base; their bucket is the one the key maps to.
    """
    if not url:
        return None

    match = _MANAGED_PUBLIC_URL.search(url)
    if match:
        return match.group(1), match.group(2)

    path = _self_hosted_path(url, config)
    if path is not None:
        return (locations or LocationMap.default()).bucket_for_key(path), path

    return None
