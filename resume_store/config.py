# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Storage configuration (credential context).

Credentials are loaded once at process start, either from the environment
or from a YAML file, and passed explicitly to ``ObjectStoreClient``.  The
default YAML location follows the XDG Base Directory Specification:

    ``$XDG_CONFIG_HOME/resume-store/resume-store.yaml``
    (typically ``~/.config/resume-store/resume-store.yaml``)

``!env`` tags resolve values from environment variables::

    storage:
      bucket: resumes-prod
      region: us-east-1
      access_key_id: !env AWS_ACCESS_KEY_ID
      secret_access_key: !env AWS_SECRET_ACCESS_KEY
      timeout: 30
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from resume_store.dotenv_loader import load_dotenv_once
from resume_store.logging import SecretFilter


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "resume-store"

#: Environment variable names read by ``StorageConfig.from_env``.
ENV_BUCKET = "AWS_S3_BUCKET_NAME"
ENV_REGION = "AWS_REGION"
ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_TIMEOUT = "RESUME_STORE_TIMEOUT"
ENV_ENDPOINT = "RESUME_STORE_ENDPOINT"

DEFAULT_TIMEOUT_SECONDS = 30.0


def get_config_path() -> Path:
    """Return the default config file path.

    Returns:
        ``$XDG_CONFIG_HOME/resume-store/resume-store.yaml``.
    """
    return user_config_path(_APP_NAME) / "resume-store.yaml"


def get_dotenv_path() -> Path:
    """Return the ``.env`` file path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


class ResumeStoreError(Exception):
    """Base exception for all resume storage failures."""


class ConfigurationError(ResumeStoreError):
    """Storage configuration is missing or invalid.

    Raised before any network I/O. Not retryable.
    """


# ---------------------------------------------------------------------------
# YAML tag placeholders
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)  # type: ignore[arg-type]
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` to its string value, or stringify literals.

    Returns None if the value is None, or the env var is unset or empty.
    """
    if isinstance(value, _EnvVar):
        return os.environ.get(value.var_name) or None
    if value is None:
        return None
    return str(value)


def _resolve_float(value: object, *, default: float, name: str) -> float:
    resolved = _raw_resolve(value)
    if not resolved:
        return default
    try:
        return float(resolved)
    except ValueError:
        raise ConfigurationError(
            f"Config '{name}' must be a number, got {resolved!r}"
        ) from None


# ---------------------------------------------------------------------------
# Storage configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageConfig:
    """Credentials and location of the resume bucket.

    Immutable once constructed.  The secret access key is kept out of
    ``repr()`` and registered with ``SecretFilter`` so it never appears in
    log output.

    Attributes:
        bucket: Bucket name.
        region: AWS region (e.g. ``us-east-1``).
        access_key_id: AWS access key ID.
        secret_access_key: AWS secret access key.
        timeout_seconds: Timeout applied to each storage HTTP call.
        endpoint_host: Host override for S3-compatible services.  When
            None, the virtual-hosted AWS endpoint is used.
    """

    bucket: str
    region: str
    access_key_id: str
    secret_access_key: str = field(repr=False)
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    endpoint_host: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration.

        Raises:
            ConfigurationError: If any credential field is empty or the
                timeout is not positive.
        """
        missing = [
            name
            for name in (
                "bucket",
                "region",
                "access_key_id",
                "secret_access_key",
            )
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing storage credentials: {', '.join(missing)}"
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"Storage timeout must be > 0s: {self.timeout_seconds}"
            )
        SecretFilter.register_secret(self.secret_access_key)

    @property
    def host(self) -> str:
        """Host name requests are sent to (and signed for)."""
        if self.endpoint_host:
            return self.endpoint_host
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> "StorageConfig":
        """Build configuration from environment variables.

        ``.env`` files are loaded first when reading the process
        environment.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            StorageConfig instance.

        Raises:
            ConfigurationError: If a required variable is unset or empty.
        """
        if environ is None:
            load_dotenv_once()
            environ = os.environ

        config = cls(
            bucket=environ.get(ENV_BUCKET, ""),
            region=environ.get(ENV_REGION, ""),
            access_key_id=environ.get(ENV_ACCESS_KEY_ID, ""),
            secret_access_key=environ.get(ENV_SECRET_ACCESS_KEY, ""),
            timeout_seconds=_resolve_float(
                environ.get(ENV_TIMEOUT),
                default=DEFAULT_TIMEOUT_SECONDS,
                name=ENV_TIMEOUT,
            ),
            endpoint_host=environ.get(ENV_ENDPOINT) or None,
        )
        logger.debug(
            "Storage config loaded from environment: bucket=%s region=%s",
            config.bucket,
            config.region,
        )
        return config

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> "StorageConfig":
        """Load configuration from a YAML file.

        Values tagged with ``!env VAR_NAME`` are resolved from the
        environment at load time.  A ``.env`` file is loaded first if
        present.

        Args:
            config_path: Path to YAML config file.  Defaults to
                ``~/.config/resume-store/resume-store.yaml`` (XDG).

        Returns:
            StorageConfig instance.

        Raises:
            ConfigurationError: If the file is missing, malformed, or
                required values are absent.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            try:
                raw = yaml.load(f, Loader=_make_loader())
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in {config_path}: {e}"
                ) from e

        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        config = cls._from_raw(raw)
        logger.info(
            "Storage config loaded from %s: bucket=%s region=%s",
            config_path,
            config.bucket,
            config.region,
        )
        return config

    @classmethod
    def _from_raw(cls, raw: dict[str, Any]) -> "StorageConfig":
        """Build config from parsed (but unresolved) YAML dict."""
        storage = raw.get("storage")
        if not isinstance(storage, dict):
            raise ConfigurationError("'storage' must be a YAML mapping")

        return cls(
            bucket=_raw_resolve(storage.get("bucket")) or "",
            region=_raw_resolve(storage.get("region")) or "",
            access_key_id=_raw_resolve(storage.get("access_key_id")) or "",
            secret_access_key=(
                _raw_resolve(storage.get("secret_access_key")) or ""
            ),
            timeout_seconds=_resolve_float(
                storage.get("timeout"),
                default=DEFAULT_TIMEOUT_SECONDS,
                name="storage.timeout",
            ),
            endpoint_host=_raw_resolve(storage.get("endpoint")),
        )
