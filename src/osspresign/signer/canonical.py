"""Canonical request construction for OSS V4 signing."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from osspresign.signer.encoding import encode_path, encode_string, to_text
from osspresign.signer.errors import ConfigurationError, EncodingError

OSS_HEADER_PREFIX = "x-oss-"
CONTENT_SHA256_HEADER = "x-oss-content-sha256"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

# Signed whenever present; never listed as additional headers.
DEFAULT_SIGNED_HEADERS = frozenset({"content-type", "content-md5"})


def normalize_additional_headers(additional_headers: Iterable[str] | None) -> list[str]:
    """
    Lowercase, de-duplicate and sort caller-supplied additional header names.

    Names that are signed anyway (``content-type``, ``content-md5`` and the
    ``x-oss-`` family) are dropped.
    """
    if not additional_headers:
        return []
    names = {str(name).lower() for name in additional_headers}
    return sorted(
        name
        for name in names
        if name not in DEFAULT_SIGNED_HEADERS and not name.startswith(OSS_HEADER_PREFIX)
    )


def lowercase_headers(headers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Lowercase header names; on collision the last one wins."""
    return {str(key).lower(): value for key, value in (headers or {}).items()}


def canonical_uri(bucket: str | None, object_name: str | None) -> str:
    """Encoded ``/bucket/object`` with interior slashes kept literal."""
    if object_name and not bucket:
        raise ConfigurationError("bucket is required when object is provided")
    path = "/" + (f"{bucket}/" if bucket else "") + (object_name or "")
    return encode_path(path, "object")


def canonical_query_string(queries: Mapping[str, Any] | None) -> str:
    """Parameters sorted by raw key; ``None`` values render as a bare key."""
    parts = []
    for key in sorted((queries or {}).keys()):
        value = queries[key]  # type: ignore[index]
        encoded_key = encode_string(key, f"query {key!r}")
        if value is None:
            parts.append(encoded_key)
        else:
            parts.append(f"{encoded_key}={encode_string(value, f'query {key!r}')}")
    return "&".join(parts)


def signed_header_names(headers: Mapping[str, Any], additional_headers: Iterable[str]) -> list[str]:
    """Sorted names of the headers that take part in signing."""
    names = set(additional_headers)
    for key in headers:
        if key in DEFAULT_SIGNED_HEADERS or key.startswith(OSS_HEADER_PREFIX):
            names.add(key)
    return sorted(names)


def canonical_headers(headers: Mapping[str, Any], additional_headers: Iterable[str]) -> str:
    """
    Render the canonical header block.

    ``headers`` must already be lowercased. Additional headers that are not
    present in ``headers`` contribute no line.
    """
    lines = []
    for name in signed_header_names(headers, additional_headers):
        if name not in headers:
            continue
        value = to_text(headers[name]).strip()
        try:
            name.encode("utf-8")
            value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncodingError(f"header {name!r}", str(e)) from e
        lines.append(f"{name}:{value}\n")
    return "".join(lines)


def payload_hash(headers: Mapping[str, Any]) -> str:
    """Caller-supplied content hash, or the unsigned-payload sentinel."""
    value = headers.get(CONTENT_SHA256_HEADER)
    if value:
        return to_text(value).strip()
    return UNSIGNED_PAYLOAD


def build_canonical_request(
    method: str,
    bucket: str | None,
    object_name: str | None,
    headers: Mapping[str, Any] | None,
    queries: Mapping[str, Any] | None,
    additional_headers: Iterable[str] = (),
) -> str:
    """
    Build the six-line canonical request.

    Args:
        method: HTTP method (uppercased here)
        bucket: Bucket name, or None for service-level requests
        object_name: Object key; slashes inside it are kept literal
        headers: Request headers in any case
        queries: Query parameters including the x-oss-* signing parameters
        additional_headers: Normalized additional header names

    Raises:
        ConfigurationError: object_name without bucket
        EncodingError: A value is not valid UTF-8
    """
    try:
        method.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError("method", str(e)) from e
    uri = canonical_uri(bucket, object_name)
    additional = list(additional_headers)
    lowered = lowercase_headers(headers)
    return "\n".join(
        [
            method.upper(),
            uri,
            canonical_query_string(queries),
            canonical_headers(lowered, additional),
            ";".join(additional),
            payload_hash(lowered),
        ]
    )
