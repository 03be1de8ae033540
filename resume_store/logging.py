# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging configuration with credential redaction.

Two kinds of values are scrubbed from every record passing through the
root handler:

* secrets registered at runtime (``StorageConfig`` registers its secret
  access key on construction);
* request signatures (``Signature=<64 hex>``), which appear whenever an
  ``Authorization`` header is logged at debug level.

Usage:
    # In entry points (CLI)
    from resume_store.logging import configure_logging
    configure_logging(level=logging.INFO)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Uploaded object: %s", key)
"""

import logging
import re
from typing import ClassVar


REDACTED = "[REDACTED]"

_SIGNATURE_RE = re.compile(r"(Signature=)[0-9a-f]{64}")

# HTTP client libraries that log every request at INFO
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


class SecretFilter(logging.Filter):
    """Redacts registered secrets and request signatures from log records.

    Example:
        SecretFilter.register_secret("wJalrXUtnFEMI/K7MDENG")
        handler.addFilter(SecretFilter())
        logger.info("Using key: %s", "wJalrXUtnFEMI/K7MDENG")
        # Output: "Using key: [REDACTED]"
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact in place; records are never suppressed."""
        record.msg = self.redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        """Return ``text`` with secrets and signatures replaced."""
        if cls._pattern is not None:
            text = cls._pattern.sub(REDACTED, text)
        return _SIGNATURE_RE.sub(rf"\g<1>{REDACTED}", text)

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Register a secret to be redacted from all log output.

        Args:
            secret: The secret string to redact. Empty strings are ignored.
        """
        if secret and secret not in cls._secrets:
            cls._secrets.add(secret)
            # Longest first so a secret containing another redacts fully
            ordered = sorted(cls._secrets, key=len, reverse=True)
            cls._pattern = re.compile("|".join(re.escape(s) for s in ordered))

    @classmethod
    def clear_secrets(cls) -> None:
        """Clear all registered secrets. Primarily for testing."""
        cls._secrets.clear()
        cls._pattern = None


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_secret_filter: bool = True,
) -> None:
    """Configure the root logger.

    Per-request logs from the HTTP client are kept at WARNING unless
    ``level`` is DEBUG.

    Args:
        level: The logging level (e.g., logging.INFO, logging.DEBUG).
        format_string: Custom format string. If None, uses default format.
        add_secret_filter: Whether to add the SecretFilter to redact secrets.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string))

    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)

    if level <= logging.DEBUG:
        transport_level = level
    else:
        transport_level = max(level, logging.WARNING)
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
