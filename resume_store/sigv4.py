# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS SigV4 request signing for S3 object PUTs.

Builds the canonical request, derives the day-scoped signing key, and
assembles the ``Authorization`` header for a single request.  Folder
markers (empty body) and object uploads share one code path; they differ
only in payload hash and whether ``content-type`` is signed.

No boto3/botocore dependency; uses only stdlib hashing.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from resume_store.config import StorageConfig


ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"

#: SHA-256 of the empty string.  Every empty payload is hashed to this
#: constant rather than digesting a zero-length buffer.
EMPTY_PAYLOAD_SHA256 = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)

_AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

# Drift tolerated before a timestamp is reported as skewed
_MAX_SKEW_MINUTES = 5

_AWS_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


# ---------------------------------------------------------------------------
# URI encoding (AWS-specific RFC 3986 subset)
# ---------------------------------------------------------------------------


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """URI-encode a value using AWS's rules.

    - Unreserved characters are not encoded: A-Z, a-z, 0-9, -, _, ., ~
    - Every other byte of the UTF-8 encoding becomes %XX (uppercase hex)
    - Forward slashes (/) are optionally preserved

    Args:
        value: String to encode.
        encode_slash: If True, encode '/'; if False, preserve '/'.

    Returns:
        URI-encoded string.
    """
    result: list[str] = []
    for byte in value.encode("utf-8"):
        if byte in _AWS_UNRESERVED:
            result.append(chr(byte))
        elif byte == 0x2F and not encode_slash:
            result.append("/")
        else:
            result.append(f"%{byte:02X}")
    return "".join(result)


def canonical_uri(key: str) -> str:
    """Build the canonical (and wire) path for an object key.

    S3 keys are encoded exactly once, slashes preserved.  The result is
    used both in the request URL and in the canonical request, so the two
    can never disagree.

    Args:
        key: Raw (unencoded) object key, without leading slash.

    Returns:
        Encoded absolute path, e.g. ``/users/U%201/resume.pdf``.
    """
    return "/" + uri_encode(key.lstrip("/"), encode_slash=False)


# ---------------------------------------------------------------------------
# Canonical request construction
# ---------------------------------------------------------------------------


def canonical_headers_string(
    headers: Mapping[str, str], signed_headers_list: list[str]
) -> str:
    """Build canonical headers string.

    Args:
        headers: Request headers (name -> value).
        signed_headers_list: List of signed header names (lowercase).

    Returns:
        Canonical headers string (each line: "name:value" + newline).
    """
    lower_headers = {name.lower(): value for name, value in headers.items()}

    lines: list[str] = []
    for name in sorted(signed_headers_list):
        value = lower_headers.get(name, "")
        # Trim leading/trailing whitespace, collapse sequential spaces
        trimmed = " ".join(value.split())
        lines.append(f"{name}:{trimmed}\n")

    return "".join(lines)


def build_canonical_request(
    method: str,
    path: str,
    headers: Mapping[str, str],
    signed_headers: str,
    payload_hash: str,
) -> str:
    """Build the canonical request string.

    The canonical query string is always empty: only object PUTs without
    query parameters are signed.

    Args:
        method: HTTP method.
        path: Encoded absolute path (see ``canonical_uri``).
        headers: Request headers.
        signed_headers: Semicolon-separated, sorted signed header names.
        payload_hash: Hex SHA-256 of the payload.

    Returns:
        Canonical request string.
    """
    return "\n".join(
        [
            method,
            path,
            "",
            canonical_headers_string(headers, signed_headers.split(";")),
            signed_headers,
            payload_hash,
        ]
    )


# ---------------------------------------------------------------------------
# SigV4 signing
# ---------------------------------------------------------------------------


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(
    secret_key: str, date_stamp: str, region: str, service: str = SERVICE
) -> bytes:
    """Derive the SigV4 signing key.

    Each step keys the next HMAC with the raw digest of the previous one.

    Args:
        secret_key: AWS secret access key.
        date_stamp: Date string (YYYYMMDD).
        region: AWS region.
        service: AWS service name.

    Returns:
        32-byte signing key.
    """
    k_date = _hmac_sha256(("AWS4" + secret_key).encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, "aws4_request")


def credential_scope(date_stamp: str, region: str) -> str:
    """Return ``date/region/s3/aws4_request``."""
    return f"{date_stamp}/{region}/{SERVICE}/aws4_request"


def build_string_to_sign(
    timestamp: str, scope: str, canonical_request: str
) -> str:
    """Build the SigV4 string to sign.

    Args:
        timestamp: ISO8601 basic timestamp (the x-amz-date value).
        scope: Credential scope (date/region/service/aws4_request).
        canonical_request: The canonical request string.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            timestamp,
            scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Return the hex HMAC-SHA256 of the string to sign."""
    return hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def payload_sha256(body: bytes) -> str:
    """Hex SHA-256 of a request body.

    Empty bodies always map to ``EMPTY_PAYLOAD_SHA256``.
    """
    if not body:
        return EMPTY_PAYLOAD_SHA256
    return hashlib.sha256(body).hexdigest()


def amz_timestamp(now: datetime) -> str:
    """Format a datetime as ``YYYYMMDDTHHMMSSZ`` in UTC."""
    if now.tzinfo is not None:
        now = now.astimezone(UTC)
    return now.strftime(_AMZ_DATE_FORMAT)


# ---------------------------------------------------------------------------
# Request signing orchestration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignedRequest:
    """A request ready to send.  Built fresh per call, never reused.

    Attributes:
        method: HTTP method.
        url: Full request URL (encoded path).
        path: Encoded absolute path, as signed.
        headers: Host, x-amz-date, x-amz-content-sha256, Content-Type
            (uploads only) and Authorization.
        body: Request body.
        canonical_request: The canonical request that was signed.
    """

    method: str
    url: str
    path: str
    headers: dict[str, str]
    body: bytes
    canonical_request: str


def sign_request(
    config: StorageConfig,
    method: str,
    key: str,
    body: bytes = b"",
    *,
    content_type: str | None = None,
    now: datetime | None = None,
) -> SignedRequest:
    """Sign a single request against the configured bucket.

    Must be called immediately before sending: the signature embeds the
    timestamp and the backend rejects requests outside its skew window.

    Args:
        config: Storage credentials.
        method: HTTP method.
        key: Raw object key (folder markers end with ``/``).
        body: Request body; empty for folder markers.
        content_type: Signed and sent as ``Content-Type`` when given.
        now: Signing time.  Defaults to the current UTC time.

    Returns:
        SignedRequest with all headers populated.
    """
    timestamp = amz_timestamp(now if now is not None else datetime.now(UTC))
    date_stamp = timestamp[:8]
    content_hash = payload_sha256(body)
    path = canonical_uri(key)
    host = config.host

    headers: dict[str, str] = {
        "Host": host,
        "x-amz-date": timestamp,
        "x-amz-content-sha256": content_hash,
    }
    if content_type is not None:
        headers["Content-Type"] = content_type

    signed_headers = ";".join(sorted(name.lower() for name in headers))
    creq = build_canonical_request(
        method, path, headers, signed_headers, content_hash
    )

    scope = credential_scope(date_stamp, config.region)
    string_to_sign = build_string_to_sign(timestamp, scope, creq)
    signing_key = derive_signing_key(
        config.secret_access_key, date_stamp, config.region
    )
    signature = compute_signature(signing_key, string_to_sign)

    headers["Authorization"] = (
        f"{ALGORITHM} "
        f"Credential={config.access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, "
        f"Signature={signature}"
    )

    return SignedRequest(
        method=method,
        url=f"https://{host}{path}",
        path=path,
        headers=headers,
        body=body,
        canonical_request=creq,
    )


# ---------------------------------------------------------------------------
# Clock skew detection
# ---------------------------------------------------------------------------


def check_clock_skew(
    amz_date: str, now: datetime | None = None
) -> tuple[bool, int]:
    """Check if x-amz-date differs significantly from the local clock.

    Args:
        amz_date: ISO8601 timestamp from x-amz-date header.
        now: Reference time.  Defaults to the current UTC time.

    Returns:
        Tuple of (is_skewed, drift_minutes). is_skewed is True if
        drift exceeds 5 minutes.
    """
    try:
        request_time = datetime.strptime(amz_date, _AMZ_DATE_FORMAT).replace(
            tzinfo=UTC
        )
    except (ValueError, TypeError):
        return False, 0
    reference = now if now is not None else datetime.now(UTC)
    drift = abs((reference - request_time).total_seconds())
    drift_minutes = int(drift / 60)
    return drift_minutes > _MAX_SKEW_MINUTES, drift_minutes
