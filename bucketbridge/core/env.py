"""
Environment access for bucketbridge settings.

Backend credentials (service keys, S3 secrets) live in the environment or a
local .env file and never in the location map or on the command line. Every
setting is read under the ``BUCKETBRIDGE_`` prefix:

    >>> env = EnvManager()
    >>> env.get("RELAY_URL")            # reads BUCKETBRIDGE_RELAY_URL
    >>> env.get_int("MAX_CONCURRENCY", 1)

YAML configuration files may point at the environment instead of holding
secrets, see ``EnvManager.expand``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from bucketbridge.core.exceptions import ConfigurationError

ENV_PREFIX = "BUCKETBRIDGE_"

# ${NAME}, ${NAME:-fallback}, ${NAME:?message}
_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<op>[-?])(?P<arg>[^}]*))?\}")

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


class EnvManager:
    """
    Reads BUCKETBRIDGE_* settings, loading a .env file first.

    Malformed numbers and flags raise ConfigurationError naming the
    variable instead of quietly falling back to the default.
    """

    def __init__(
        self,
        project_root: Path | str | None = None,
        auto_load: bool = True,
        prefix: str = ENV_PREFIX,
    ):
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.prefix = prefix
        self.loaded_file: Path | None = None

        if auto_load:
            self.load()

    def variable(self, name: str) -> str:
        """Full variable name for a setting (``RELAY_URL`` -> ``BUCKETBRIDGE_RELAY_URL``)."""
        return name if name.startswith(self.prefix) else f"{self.prefix}{name}"

    def load(self, env_file: str | Path | None = None, override: bool = False) -> bool:
        """
        Load a .env file; the project root's .env when none is given.

        Returns:
            True if a file was found and loaded
        """
        path = Path(env_file) if env_file else self.project_root / ".env"
        if not path.is_file():
            return False

        load_dotenv(path, override=override)
        self.loaded_file = path
        return True

    def get(self, name: str, default: str | None = None, required: bool = False) -> str | None:
        """
        Value of a setting; empty strings count as unset.

        Raises:
            ConfigurationError: required=True and the variable is not set
        """
        variable = self.variable(name)
        value = os.environ.get(variable) or default

        if required and value is None:
            msg = f"Required environment variable not set: {variable}"
            raise ConfigurationError(msg)

        return value

    def get_bool(self, name: str, default: bool = False) -> bool:
        raw = self.get(name)
        if raw is None:
            return default
        if raw.lower() in _TRUE:
            return True
        if raw.lower() in _FALSE:
            return False
        msg = f"{self.variable(name)} must be a boolean, got {raw!r}"
        raise ConfigurationError(msg)

    def get_int(self, name: str, default: int = 0) -> int:
        return self._number(name, default, int)

    def get_float(self, name: str, default: float = 0.0) -> float:
        return self._number(name, default, float)

    def _number(self, name, default, kind):
        raw = self.get(name)
        if raw is None:
            return default
        try:
            return kind(raw)
        except ValueError:
            msg = f"{self.variable(name)} must be {'an integer' if kind is int else 'a number'}, got {raw!r}"
            raise ConfigurationError(msg) from None

    def substitute(self, text: str) -> str:
        """
        Replace ${NAME} references in a string.

        ``${NAME:-fallback}`` uses the fallback when NAME is unset and
        ``${NAME:?message}`` raises ConfigurationError with the message.
        Unresolved plain references are left in place.

        Example:
            >>> os.environ["MINIO_HOST"] = "s3.example.com"
            >>> env.substitute("https://${MINIO_HOST}/media")
            'https://s3.example.com/media'
        """

        def resolve(match: re.Match) -> str:
            name, op, arg = match.group("name", "op", "arg")
            value = os.environ.get(name)
            if value is not None:
                return value
            if op == "-":
                return arg
            if op == "?":
                raise ConfigurationError(arg or f"Required variable not set: {name}")
            return match.group(0)

        return _REFERENCE.sub(resolve, text)

    def expand(self, data: Any) -> Any:
        """Substitute references in every string of a parsed YAML document."""
        if isinstance(data, str):
            return self.substitute(data)
        if isinstance(data, dict):
            return {key: self.expand(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self.expand(item) for item in data]
        return data


_global_env: EnvManager | None = None


def get_env() -> EnvManager:
    """Process-wide EnvManager, created (and .env loaded) on first use."""
    global _global_env
    if _global_env is None:
        _global_env = EnvManager()
    return _global_env
