"""
MigrationConfig - configuration for the storage migration engine.

Wires together everything the engine needs from the environment:
- Self-hosted backend access (relay function, or a direct S3 endpoint)
- Managed backend access (Supabase Storage)
- Listing, probing and HTTP timeouts
- Transfer behaviour (concurrency, retries)
- Location map override

Backends are *built* from this configuration by
``bucketbridge.storage.factory.create_backend`` and passed explicitly to the
lister and the engine; nothing here holds a live client.

Example:
    >>> from bucketbridge.core.config import MigrationConfig
    >>>
    >>> config = MigrationConfig.from_env()
    >>> config.validate(["relay", "supabase"])
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bucketbridge.core.env import ENV_PREFIX, EnvManager, get_env
from bucketbridge.core.exceptions import ConfigurationError
from bucketbridge.core.logger import get_logger
from bucketbridge.migration.types import TransferConfig

logger = get_logger(__name__)


# Settings each backend cannot run without
_REQUIRED_BY_BACKEND = {
    "relay": ("relay_url", "relay_key"),
    "s3": ("s3_endpoint_url", "s3_bucket", "s3_access_key", "s3_secret_key"),
    "supabase": ("supabase_url", "supabase_key"),
    "memory": (),
}

_BACKEND_ALIASES = {
    "self-hosted": "relay",
    "selfhosted": "relay",
    "minio": "relay",
    "managed": "supabase",
}


def canonical_backend_name(name: str) -> str:
    """Map user-facing backend aliases onto the factory names."""
    key = name.strip().lower()
    return _BACKEND_ALIASES.get(key, key)


@dataclass
class MigrationConfig:
    """
    Unified configuration for a migration session.

    Attributes:
        relay_url: URL of the server-side function fronting the self-hosted store
        relay_key: Service key sent to the relay function
        supabase_url: Managed project URL (https://<ref>.supabase.co)
        supabase_key: Managed service-role key
        s3_endpoint_url: Direct S3-compatible endpoint (only for the "s3" backend)
        s3_bucket: Bucket on the self-hosted store that holds every folder
        s3_access_key: S3 access key
        s3_secret_key: S3 secret key
        s3_region: Signing region
        self_hosted_public_url: Public base URL of the self-hosted bucket,
            used to build object URLs and to normalize stored links
        self_hosted_backend: "relay" (default) or "s3"
        list_limit: Max objects per self-hosted listing
        managed_list_limit: Max objects per managed listing
        probe_timeout_seconds: Connectivity probe timeout
        request_timeout_seconds: Per-request HTTP timeout
        locations_file: Optional YAML file overriding the location map
        metrics_enabled: Record Prometheus metrics during runs
        transfer: Engine behaviour
    """

    relay_url: str | None = None
    relay_key: str | None = None

    supabase_url: str | None = None
    supabase_key: str | None = None

    s3_endpoint_url: str | None = None
    s3_bucket: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_region: str = "us-east-1"

    self_hosted_public_url: str | None = None
    self_hosted_backend: str = "relay"

    list_limit: int = 200
    managed_list_limit: int = 500
    probe_timeout_seconds: float = 5.0
    request_timeout_seconds: float = 60.0

    locations_file: Path | None = None
    metrics_enabled: bool = False

    transfer: TransferConfig = field(default_factory=TransferConfig)

    def __post_init__(self) -> None:
        self.self_hosted_backend = canonical_backend_name(self.self_hosted_backend)
        if self.self_hosted_backend not in ("relay", "s3", "memory"):
            msg = f"Unknown self-hosted backend: {self.self_hosted_backend!r}"
            raise ConfigurationError(msg)
        if isinstance(self.locations_file, str):
            self.locations_file = Path(self.locations_file)
        if self.supabase_url:
            self.supabase_url = self.supabase_url.rstrip("/")
        if self.self_hosted_public_url:
            self.self_hosted_public_url = self.self_hosted_public_url.rstrip("/")

    @classmethod
    def from_env(cls, env: EnvManager | None = None) -> MigrationConfig:
        """
        Build configuration from BUCKETBRIDGE_* environment variables.

        A .env file in the working directory is loaded first when present.
        """
        env = env or get_env()

        transfer = TransferConfig(
            max_concurrency=env.get_int("MAX_CONCURRENCY", 1),
            max_retries=env.get_int("MAX_RETRIES", 0),
            retry_delay_seconds=env.get_float("RETRY_DELAY", 1.0),
        )

        return cls(
            relay_url=env.get("RELAY_URL"),
            relay_key=env.get("RELAY_KEY") or env.get("SUPABASE_KEY"),
            supabase_url=env.get("SUPABASE_URL"),
            supabase_key=env.get("SUPABASE_KEY"),
            s3_endpoint_url=env.get("S3_ENDPOINT_URL"),
            s3_bucket=env.get("S3_BUCKET"),
            s3_access_key=env.get("S3_ACCESS_KEY"),
            s3_secret_key=env.get("S3_SECRET_KEY"),
            s3_region=env.get("S3_REGION", "us-east-1"),
            self_hosted_public_url=env.get("SELF_HOSTED_PUBLIC_URL"),
            self_hosted_backend=env.get("SELF_HOSTED_BACKEND", "relay"),
            list_limit=env.get_int("LIST_LIMIT", 200),
            managed_list_limit=env.get_int("MANAGED_LIST_LIMIT", 500),
            probe_timeout_seconds=env.get_float("PROBE_TIMEOUT", 5.0),
            request_timeout_seconds=env.get_float("REQUEST_TIMEOUT", 60.0),
            locations_file=env.get("LOCATIONS_FILE"),
            metrics_enabled=env.get_bool("METRICS_ENABLED", False),
            transfer=transfer,
        )

    @classmethod
    def from_file(cls, file_path: str | Path, substitute_env: bool = True) -> MigrationConfig:
        """
        Load configuration from a YAML file.

        Values may reference the environment with ${VAR}, ${VAR:-default}
        and ${VAR:?message}; secrets are expected to stay in the environment.

        Example:
            # bucketbridge.yaml
            # relay:
            #   url: ${BUCKETBRIDGE_RELAY_URL}
            #   key: ${BUCKETBRIDGE_RELAY_KEY:?relay key required}
            # supabase:
            #   url: https://abc.supabase.co
            #   key: ${BUCKETBRIDGE_SUPABASE_KEY}
            # transfer:
            #   max_concurrency: 1
        """
        import yaml

        path = Path(file_path)
        if not path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        with path.open() as f:
            data = yaml.safe_load(f)

        if not data:
            return cls()

        if substitute_env:
            env = get_env()
            env.load()
            data = env.expand(data)

        return cls._from_mapping(data)

    @classmethod
    def _from_mapping(cls, data: dict[str, Any]) -> MigrationConfig:
        relay = data.get("relay", {})
        supabase = data.get("supabase", {})
        s3 = data.get("s3", {})
        transfer = data.get("transfer", {})
        listing = data.get("listing", {})

        return cls(
            relay_url=relay.get("url"),
            relay_key=relay.get("key"),
            supabase_url=supabase.get("url"),
            supabase_key=supabase.get("key"),
            s3_endpoint_url=s3.get("endpoint_url"),
            s3_bucket=s3.get("bucket"),
            s3_access_key=s3.get("access_key"),
            s3_secret_key=s3.get("secret_key"),
            s3_region=s3.get("region", "us-east-1"),
            self_hosted_public_url=data.get("self_hosted_public_url") or s3.get("public_url"),
            self_hosted_backend=data.get("self_hosted_backend", "relay"),
            list_limit=int(listing.get("limit", 200)),
            managed_list_limit=int(listing.get("managed_limit", 500)),
            probe_timeout_seconds=float(data.get("probe_timeout_seconds", 5.0)),
            request_timeout_seconds=float(data.get("request_timeout_seconds", 60.0)),
            locations_file=data.get("locations_file"),
            metrics_enabled=bool(data.get("metrics_enabled", False)),
            transfer=TransferConfig(**transfer),
        )

    def validate(self, backends: Iterable[str]) -> None:
        """
        Check that every setting the given backends need is present.

        Raises:
            ConfigurationError: Listing every missing setting at once
        """
        backends = list(backends)
        missing: list[str] = []
        for backend in backends:
            name = canonical_backend_name(backend)
            if name not in _REQUIRED_BY_BACKEND:
                msg = f"Unknown backend: {backend!r}"
                raise ConfigurationError(msg)
            for attr in _REQUIRED_BY_BACKEND[name]:
                if not getattr(self, attr) and f"{ENV_PREFIX}{attr.upper()}" not in missing:
                    missing.append(f"{ENV_PREFIX}{attr.upper()}")

        if missing:
            msg = f"Missing configuration: {', '.join(missing)}"
            raise ConfigurationError(msg)

        logger.debug(f"Configuration valid for backends: {', '.join(backends)}")

    @property
    def managed_public_base(self) -> str | None:
        """Public object URL root of the managed store."""
        if not self.supabase_url:
            return None
        return f"{self.supabase_url}/storage/v1/object/public"


# Global configuration singleton
_global_config: MigrationConfig | None = None


def get_config() -> MigrationConfig:
    """Get the global configuration, reading the environment on first use."""
    global _global_config
    if _global_config is None:
        _global_config = MigrationConfig.from_env()
    return _global_config


def configure(config: MigrationConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config
    logger.info(f"bucketbridge configured: self-hosted backend={config.self_hosted_backend}")
