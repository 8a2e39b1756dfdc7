"""Presigned URL generation (OSS4-HMAC-SHA256)."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from osspresign.common.logging import get_logger
from osspresign.signer.canonical import build_canonical_request, normalize_additional_headers
from osspresign.signer.crypto import HashProvider, get_hash_provider
from osspresign.signer.encoding import encode_path, encode_string
from osspresign.signer.errors import ConfigurationError
from osspresign.signer.keys import build_string_to_sign, compute_signature, derive_signing_key
from osspresign.signer.models import (
    SIGNATURE_VERSION,
    PresignedUrl,
    SigningRequest,
    SigningScope,
    format_timestamp,
)

logger = get_logger(__name__)

STORAGE_DOMAIN = "aliyuncs.com"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_endpoint(endpoint: str | None, bucket: str | None, region: str | None) -> str:
    """
    Base URL for the request.

    An explicit endpoint wins (one trailing slash removed); otherwise the
    virtual-hosted default ``https://{bucket}.{region}.aliyuncs.com``.
    """
    if endpoint:
        return endpoint[:-1] if endpoint.endswith("/") else endpoint
    if not bucket or not region:
        raise ConfigurationError("bucket and region or endpoint required")
    return f"https://{bucket}.{region}.{STORAGE_DOMAIN}"


def compose_url(base: str, object_name: str | None, queries: Mapping[str, Any]) -> str:
    """Join base, encoded object path and encoded query parameters."""
    path = "/" + encode_path(object_name, "object") if object_name else ""
    query = "&".join(
        f"{encode_string(key, f'query {key!r}')}={encode_string(value, f'query {key!r}')}"
        for key, value in queries.items()
    )
    return f"{base}{path}{'?' + query if query else ''}"


def redact_canonical_request(canonical_request: str, security_token: str | None) -> str:
    """Canonical request with the encoded security token masked, for logging."""
    if not security_token:
        return canonical_request
    encoded = encode_string(security_token, "security_token")
    return canonical_request.replace(f"x-oss-security-token={encoded}", "x-oss-security-token=***")


class Presigner:
    """
    Produces presigned URLs.

    The hash provider and the clock are injected; the clock is read exactly
    once per call so the timestamp and the scope date always agree.
    """

    def __init__(
        self,
        hash_provider: HashProvider | None = None,
        clock: Clock | None = None,
    ):
        self._hash = hash_provider or get_hash_provider()
        self._clock = clock or utc_now

    @property
    def hash_provider(self) -> HashProvider:
        return self._hash

    def presign(self, request: SigningRequest) -> PresignedUrl:
        """
        Sign a request and return the URL with its intermediate values.

        Raises:
            ConfigurationError: Missing or invalid fields (before any hashing)
            EncodingError: A value cannot be UTF-8 encoded
            CryptoPrimitiveUnavailable: The hash provider failed to initialize
        """
        request.validate()

        now = self._clock()
        timestamp = format_timestamp(now)
        scope = SigningScope.for_request(request, now)
        additional_headers = normalize_additional_headers(request.additional_headers)
        base = build_endpoint(request.endpoint, request.bucket, request.signing_region)

        queries: dict[str, Any] = dict(request.queries)
        if additional_headers:
            queries["x-oss-additional-headers"] = ";".join(additional_headers)
        queries["x-oss-credential"] = scope.credential(request.access_key_id or "")
        queries["x-oss-date"] = timestamp
        queries["x-oss-expires"] = request.expires
        queries["x-oss-signature-version"] = SIGNATURE_VERSION
        if request.security_token:
            queries["x-oss-security-token"] = request.security_token

        canonical_request = build_canonical_request(
            request.signing_method,
            request.bucket,
            request.object,
            request.headers,
            queries,
            additional_headers,
        )
        string_to_sign = build_string_to_sign(self._hash, timestamp, scope, canonical_request)
        signing_key = derive_signing_key(self._hash, request.access_key_secret or "", scope)
        signature = compute_signature(self._hash, signing_key, string_to_sign)
        queries["x-oss-signature"] = signature

        logger.debug(
            "Presigned request",
            canonical_request=redact_canonical_request(canonical_request, request.security_token),
            string_to_sign=string_to_sign,
        )

        return PresignedUrl(
            url=compose_url(base, request.object, queries),
            canonical_request=canonical_request,
            string_to_sign=string_to_sign,
            signature=signature,
            scope=scope,
            timestamp=timestamp,
            expires=request.expires,
        )

    def sign_url(self, request: SigningRequest) -> str:
        """Presigned URL string for ``request``."""
        return self.presign(request).url


def signature_url_v4(
    options: Mapping[str, Any] | SigningRequest,
    *,
    hash_provider: HashProvider | None = None,
    clock: Clock | None = None,
) -> str:
    """
    Presign from an option mapping (``accessKeyId``, ``bucket``, ``object``...).

    Convenience wrapper around :class:`Presigner` for callers that hold a
    loose dict of options.
    """
    request = options if isinstance(options, SigningRequest) else SigningRequest.from_options(options)
    return Presigner(hash_provider=hash_provider, clock=clock).sign_url(request)
