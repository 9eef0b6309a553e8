"""
Location mapping table.

The self-hosted store keeps every image in one bucket under folder
prefixes; the managed store uses one bucket per content area. The table
routes a copy to the right destination container:

- self-hosted → managed: the folder the operator picked selects the bucket
- managed → self-hosted: the bucket the operator picked selects the folder

The table is static for the life of the process. It is either the built-in
default or loaded once from YAML::

    folders:
      products: product-images
      posts: blog-images
    buckets:
      product-images: products
      blog-images: posts
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType

import yaml

from bucketbridge.core.exceptions import ConfigurationError
from bucketbridge.storage.types import BackendKind

DEFAULT_FOLDER_TO_BUCKET = {
    "hero": "hero-section",
    "hero-desktop": "hero-section",
    "hero-mobile": "hero-section",
    "products": "product-images",
    "categories": "product-images",
    "brands": "product-images",
    "projects": "project-images",
    "posts": "blog-images",
}

DEFAULT_BUCKET_TO_FOLDER = {
    "hero-section": "hero",
    "product-images": "products",
    "blog-images": "posts",
    "project-images": "projects",
}

# Folder names that only appear in stored URLs, never in the operator's list
DEFAULT_URL_ALIASES = {"blog": "blog-images"}

DEFAULT_BUCKET = "hero-section"


class Direction(Enum):
    """Which way a run copies."""

    SELF_HOSTED_TO_MANAGED = "self-hosted-to-managed"
    MANAGED_TO_SELF_HOSTED = "managed-to-self-hosted"

    @property
    def source_kind(self) -> BackendKind:
        if self is Direction.SELF_HOSTED_TO_MANAGED:
            return BackendKind.SELF_HOSTED
        return BackendKind.MANAGED

    @property
    def destination_kind(self) -> BackendKind:
        if self is Direction.SELF_HOSTED_TO_MANAGED:
            return BackendKind.MANAGED
        return BackendKind.SELF_HOSTED

    @classmethod
    def parse(cls, value: str | Direction) -> Direction:
        """Accept the enum, its value, or the short forms "to-managed"/"to-self-hosted"."""
        if isinstance(value, Direction):
            return value
        key = value.strip().lower().replace("_", "-")
        aliases = {
            "to-managed": cls.SELF_HOSTED_TO_MANAGED,
            "s3-to-supabase": cls.SELF_HOSTED_TO_MANAGED,
            "to-self-hosted": cls.MANAGED_TO_SELF_HOSTED,
            "supabase-to-s3": cls.MANAGED_TO_SELF_HOSTED,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join([d.value for d in cls] + list(aliases))
            msg = f"Unknown direction {value!r}. Valid: {valid}"
            raise ConfigurationError(msg) from None


@dataclass(frozen=True)
class LocationMap:
    """
    Immutable folder ↔ bucket table.

    Every folder resolves to exactly one bucket and every bucket to exactly
    one folder; several folders may share a bucket.
    """

    folder_to_bucket: Mapping[str, str]
    bucket_to_folder: Mapping[str, str]
    url_aliases: Mapping[str, str] = field(default_factory=dict)
    default_bucket: str = DEFAULT_BUCKET

    def __post_init__(self):
        # Freeze the mappings so the table cannot drift after startup
        object.__setattr__(self, "folder_to_bucket", MappingProxyType(dict(self.folder_to_bucket)))
        object.__setattr__(self, "bucket_to_folder", MappingProxyType(dict(self.bucket_to_folder)))
        object.__setattr__(self, "url_aliases", MappingProxyType(dict(self.url_aliases)))
        self._validate()

    def _validate(self) -> None:
        if not self.folder_to_bucket or not self.bucket_to_folder:
            msg = "Location map needs at least one folder and one bucket"
            raise ConfigurationError(msg)

        unknown_buckets = sorted(set(self.folder_to_bucket.values()) - set(self.bucket_to_folder))
        if unknown_buckets:
            msg = f"Folders map to buckets with no folder of their own: {', '.join(unknown_buckets)}"
            raise ConfigurationError(msg)

        unknown_folders = sorted(set(self.bucket_to_folder.values()) - set(self.folder_to_bucket))
        if unknown_folders:
            msg = f"Buckets map to unknown folders: {', '.join(unknown_folders)}"
            raise ConfigurationError(msg)

    @classmethod
    def default(cls) -> LocationMap:
        return cls(
            folder_to_bucket=DEFAULT_FOLDER_TO_BUCKET,
            bucket_to_folder=DEFAULT_BUCKET_TO_FOLDER,
            url_aliases=DEFAULT_URL_ALIASES,
        )

    @classmethod
    def from_yaml(cls, file_path: str | Path) -> LocationMap:
        path = Path(file_path)
        if not path.exists():
            msg = f"Location map not found: {file_path}"
            raise ConfigurationError(msg)

        with path.open() as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            msg = f"Location map {file_path} must be a mapping"
            raise ConfigurationError(msg)

        return cls(
            folder_to_bucket=data.get("folders") or {},
            bucket_to_folder=data.get("buckets") or {},
            url_aliases=data.get("url_aliases") or {},
            default_bucket=data.get("default_bucket", DEFAULT_BUCKET),
        )

    @classmethod
    def load(cls, file_path: str | Path | None = None) -> LocationMap:
        """The YAML table when a path is given, the built-in one otherwise."""
        if file_path:
            return cls.from_yaml(file_path)
        return cls.default()

    def locations_for(self, kind: BackendKind) -> list[str]:
        """Locations an operator can pick on a given backend."""
        if kind is BackendKind.SELF_HOSTED:
            return list(self.folder_to_bucket)
        return list(self.bucket_to_folder)

    def resolve(self, location: str | None, direction: Direction) -> str:
        """
        Destination location for a run started from ``location``.

        Raises:
            ConfigurationError: No location chosen, or not in the table
        """
        if not location:
            msg = "No location selected: pick a folder or bucket before starting a transfer"
            raise ConfigurationError(msg)

        if direction is Direction.SELF_HOSTED_TO_MANAGED:
            table, what = self.folder_to_bucket, "folder"
        else:
            table, what = self.bucket_to_folder, "bucket"

        try:
            return table[location]
        except KeyError:
            valid = ", ".join(table)
            msg = f"Unknown {what} {location!r}. Valid: {valid}"
            raise ConfigurationError(msg) from None

    def bucket_for_key(self, key: str) -> str:
        """Managed bucket an existing self-hosted key belongs to (by first path segment)."""
        folder = key.lstrip("/").split("/", 1)[0]
        return (
            self.folder_to_bucket.get(folder)
            or self.url_aliases.get(folder)
            or self.default_bucket
        )
