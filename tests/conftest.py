# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures: storage config and an in-memory S3 double."""

import hashlib
import re
import urllib.parse
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from resume_store.config import StorageConfig
from resume_store.logging import SecretFilter
from resume_store.object_store import ObjectStoreClient
from resume_store.sigv4 import (
    build_canonical_request,
    build_string_to_sign,
    compute_signature,
    derive_signing_key,
)
from tests.vectors import ACCESS_KEY_ID, SECRET_ACCESS_KEY


#: Signing time used by tests unless they inject their own clock.
FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC)

_AUTH_RE = re.compile(
    r"AWS4-HMAC-SHA256 "
    r"Credential=(?P<key_id>[^/]+)/(?P<scope>[^,]+), "
    r"SignedHeaders=(?P<signed_headers>[^,]+), "
    r"Signature=(?P<signature>[0-9a-f]{64})$"
)


class FakeS3:
    """In-memory S3 endpoint for ``httpx.MockTransport``.

    Verifies each request's SigV4 signature against the configured
    secret, enforces a clock-skew window around ``now``, and stores PUT
    bodies by decoded key.

    Attributes:
        requests: Every request received, in order.
        objects: Stored bodies keyed by object key.
        fail_with: When set, ``(status, body)`` returned for every request.
    """

    def __init__(
        self,
        secret_access_key: str = SECRET_ACCESS_KEY,
        *,
        now: datetime = FIXED_NOW,
        max_skew: timedelta = timedelta(minutes=15),
    ) -> None:
        self.secret_access_key = secret_access_key
        self.now = now
        self.max_skew = max_skew
        self.requests: list[httpx.Request] = []
        self.objects: dict[str, bytes] = {}
        self.fail_with: tuple[int, str] | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            status, body = self.fail_with
            return httpx.Response(status, text=body)

        request_time = datetime.strptime(
            request.headers["x-amz-date"], "%Y%m%dT%H%M%SZ"
        ).replace(tzinfo=UTC)
        if abs(self.now - request_time) > self.max_skew:
            return httpx.Response(403, text=_error("RequestTimeTooSkewed"))

        if not self.signature_valid(request):
            return httpx.Response(403, text=_error("SignatureDoesNotMatch"))

        path = request.url.raw_path.decode("ascii")
        key = urllib.parse.unquote(path[1:])
        self.objects[key] = request.content
        return httpx.Response(200)

    def signature_valid(self, request: httpx.Request) -> bool:
        """Recompute the request signature from what arrived on the wire."""
        match = _AUTH_RE.match(request.headers.get("authorization", ""))
        if match is None:
            return False

        content_hash = request.headers["x-amz-content-sha256"]
        if hashlib.sha256(request.content).hexdigest() != content_hash:
            return False

        signed_headers = match.group("signed_headers")
        creq = build_canonical_request(
            request.method,
            request.url.raw_path.decode("ascii"),
            dict(request.headers),
            signed_headers,
            content_hash,
        )
        scope = match.group("scope")
        date_stamp, region, service, _ = scope.split("/")
        signing_key = derive_signing_key(
            self.secret_access_key, date_stamp, region, service
        )
        expected = compute_signature(
            signing_key,
            build_string_to_sign(
                request.headers["x-amz-date"], scope, creq
            ),
        )
        return expected == match.group("signature")


def _error(code: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Error><Code>{code}</Code></Error>"
    )


@pytest.fixture(autouse=True)
def _clear_secrets() -> Iterator[None]:
    """Keep registered log secrets from leaking between tests."""
    yield
    SecretFilter.clear_secrets()


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(
        bucket="resumes-test",
        region="us-east-1",
        access_key_id=ACCESS_KEY_ID,
        secret_access_key=SECRET_ACCESS_KEY,
    )


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def store(
    storage_config: StorageConfig, fake_s3: FakeS3
) -> Iterator[ObjectStoreClient]:
    """ObjectStoreClient wired to ``fake_s3`` and signing at FIXED_NOW."""
    http_client = httpx.Client(transport=httpx.MockTransport(fake_s3.handler))
    with http_client:
        yield ObjectStoreClient(
            storage_config, http_client=http_client, clock=lambda: FIXED_NOW
        )
