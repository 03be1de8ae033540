# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""S3 object store client.

Issues SigV4-signed PUT requests over HTTPS.  Two operations are exposed:

* ``create_folder``: zero-byte marker object whose key ends in ``/``,
  so the prefix shows up as a folder in storage browsers.
* ``put_object``: stores (or replaces) an object's bytes.

Both are idempotent and never retried here; callers wrap them if they
need resilience.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from types import TracebackType

import httpx

from resume_store.config import ResumeStoreError, StorageConfig
from resume_store.sigv4 import (
    SignedRequest,
    canonical_uri,
    check_clock_skew,
    sign_request,
)


logger = logging.getLogger(__name__)


class StorageRequestError(ResumeStoreError):
    """The storage backend answered with a non-2xx status.

    Attributes:
        status_code: HTTP status code.
        body: Raw response body text.
        key: Object key the request targeted.
    """

    def __init__(self, status_code: int, body: str, key: str) -> None:
        super().__init__(
            f"S3 request for {key!r} failed: {status_code} - {body}"
        )
        self.status_code = status_code
        self.body = body
        self.key = key


class TransportError(ResumeStoreError):
    """The request never got an HTTP response (DNS, connect, timeout)."""


class ObjectStoreClient:
    """Signed PUT client for a single bucket.

    The client holds no per-request state: every call signs a fresh
    request with the current clock, so one instance can be shared across
    threads.

    Args:
        config: Storage credentials and location.
        http_client: Optional ``httpx.Client`` to send requests with.  When
            omitted, one is created with ``config.timeout_seconds`` and
            closed by ``close()``.
        clock: Returns the signing time.  Defaults to the current UTC time.
    """

    def __init__(
        self,
        config: StorageConfig,
        *,
        http_client: httpx.Client | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            timeout=config.timeout_seconds
        )
        self._clock = clock

    @property
    def config(self) -> StorageConfig:
        return self._config

    def __enter__(self) -> ObjectStoreClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    def object_url(self, key: str) -> str:
        """Return the canonical HTTPS URL of an object key."""
        return f"https://{self._config.host}{canonical_uri(key)}"

    def create_folder(self, prefix: str) -> str:
        """Create a zero-byte folder marker.

        Args:
            prefix: Folder prefix; a trailing ``/`` is added if missing.

        Returns:
            The normalized folder key (always ends with ``/``).

        Raises:
            ValueError: If ``prefix`` is empty or only slashes.
            StorageRequestError: On a non-2xx response.
            TransportError: On network failure.
        """
        if not prefix.strip("/"):
            raise ValueError(f"Invalid folder prefix: {prefix!r}")
        key = prefix if prefix.endswith("/") else f"{prefix}/"
        self._send(key, b"", content_type=None)
        logger.info("Created folder marker: %s", key)
        return key

    def put_object(self, key: str, data: bytes, content_type: str) -> str:
        """Upload an object, replacing any existing object at ``key``.

        Args:
            key: Object key (must not end with ``/``).
            data: Raw object bytes.
            content_type: MIME type, signed and sent as ``Content-Type``.

        Returns:
            The object URL.

        Raises:
            ValueError: If ``key`` is empty or looks like a folder marker.
            StorageRequestError: On a non-2xx response.
            TransportError: On network failure.
        """
        if not key or key.endswith("/"):
            raise ValueError(f"Invalid object key: {key!r}")
        signed = self._send(key, data, content_type=content_type)
        logger.info("Uploaded object: %s (%d bytes)", key, len(data))
        return signed.url

    def _send(
        self, key: str, body: bytes, *, content_type: str | None
    ) -> SignedRequest:
        """Sign and send a PUT; raise on any failure."""
        now = self._clock() if self._clock is not None else None
        signed = sign_request(
            self._config,
            "PUT",
            key,
            body,
            content_type=content_type,
            now=now,
        )

        try:
            response = self._http.request(
                signed.method,
                signed.url,
                headers=signed.headers,
                content=signed.body,
            )
        except httpx.TransportError as e:
            logger.warning("S3 transport failure for %s: %s", key, e)
            raise TransportError(f"S3 request for {key!r} failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "S3 rejected PUT %s: %d", key, response.status_code
            )
            if response.status_code == 403:
                is_skewed, drift = check_clock_skew(
                    signed.headers["x-amz-date"]
                )
                if is_skewed:
                    logger.warning(
                        "Request timestamp is %d minutes off the local clock",
                        drift,
                    )
            raise StorageRequestError(response.status_code, response.text, key)

        return signed
