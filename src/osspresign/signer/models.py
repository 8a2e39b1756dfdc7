"""Signer input and derived value types."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from osspresign.signer.errors import ConfigurationError

SIGNATURE_VERSION = "OSS4-HMAC-SHA256"
SIGNING_KEY_PREFIX = "aliyun_v4"
SCOPE_SUFFIX = "aliyun_v4_request"
PRODUCT = "oss"
CLOUD_BOX_PRODUCT = "oss-cloudbox"
REGION_PREFIX = "oss-"

DEFAULT_METHOD = "GET"
DEFAULT_EXPIRES = 60
MAX_EXPIRES = 604800  # seven days

# Option-bag keys accepted by SigningRequest.from_options, mapped to field names.
_OPTION_ALIASES: dict[str, str] = {
    "accessKeyId": "access_key_id",
    "accessKeySecret": "access_key_secret",
    "securityToken": "security_token",
    "stsToken": "security_token",
    "additionalHeaders": "additional_headers",
    "cloudBoxId": "cloud_box_id",
    "objectName": "object",
    "key": "object",
}


@dataclass(frozen=True)
class SigningRequest:
    """Everything needed to presign one request."""

    access_key_id: str | None = None
    access_key_secret: str | None = None
    bucket: str | None = None
    region: str | None = None
    object: str | None = None
    method: str = DEFAULT_METHOD
    expires: int = DEFAULT_EXPIRES
    headers: Mapping[str, Any] = field(default_factory=dict)
    queries: Mapping[str, Any] = field(default_factory=dict)
    endpoint: str | None = None
    additional_headers: Sequence[str] = field(default_factory=tuple)
    security_token: str | None = None
    cloud_box_id: str | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> SigningRequest:
        """
        Build a request from a loose option mapping.

        Accepts the camelCase names used by HTTP callers (``accessKeyId``,
        ``additionalHeaders``, ``stsToken``...) as well as field names.
        ``None`` values fall back to the field default; unknown keys are ignored.
        """
        field_names = set(cls.__dataclass_fields__)
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in field_names or value is None:
                continue
            # An explicit field name wins over its alias.
            if name in kwargs and key != name:
                continue
            kwargs[name] = value
        if "expires" in kwargs:
            kwargs["expires"] = _coerce_expires(kwargs["expires"])
        if "headers" in kwargs:
            kwargs["headers"] = dict(kwargs["headers"])
        if "queries" in kwargs:
            kwargs["queries"] = dict(kwargs["queries"])
        if "additional_headers" in kwargs:
            additional = kwargs["additional_headers"]
            # A single name, not a sequence of characters.
            if isinstance(additional, str):
                additional = (additional,)
            kwargs["additional_headers"] = tuple(additional)
        return cls(**kwargs)

    def validate(self) -> None:
        """
        Check mandatory fields before any cryptographic work.

        Raises:
            ConfigurationError: On the first missing or invalid field
        """
        missing = [
            name
            for name in ("access_key_id", "access_key_secret", "bucket")
            if not getattr(self, name)
        ]
        if self.object and not self.bucket:
            raise ConfigurationError("bucket is required when object is provided")
        if missing:
            raise ConfigurationError(f"Missing required option(s): {', '.join(missing)}")
        if not self.method or not self.method.strip():
            raise ConfigurationError("method must not be empty")
        if isinstance(self.expires, bool) or not isinstance(self.expires, int):
            raise ConfigurationError(f"expires must be an integer, got {self.expires!r}")
        if self.expires <= 0:
            raise ConfigurationError("expires must be greater than 0")
        if self.expires > MAX_EXPIRES:
            raise ConfigurationError(
                f"expires must not be greater than {MAX_EXPIRES} (seven days)"
            )
        if not self.endpoint and not (self.bucket and self.region):
            raise ConfigurationError("bucket and region or endpoint required")
        if self.cloud_box_id and not self.endpoint:
            raise ConfigurationError("endpoint is required when cloud_box_id is set")
        if not self.region and not self.cloud_box_id:
            raise ConfigurationError("region is required to build the credential scope")

    @property
    def signing_method(self) -> str:
        return self.method.strip().upper()

    @property
    def product(self) -> str:
        return CLOUD_BOX_PRODUCT if self.cloud_box_id else PRODUCT

    @property
    def signing_region(self) -> str:
        """Region as it appears in the credential scope."""
        if self.cloud_box_id:
            return self.cloud_box_id
        return strip_region_prefix(self.region or "")


def _coerce_expires(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            raise ConfigurationError(f"expires must be an integer, got {value!r}") from None
    return value


def strip_region_prefix(region: str) -> str:
    """Remove a single leading ``oss-`` from a region code."""
    if region.startswith(REGION_PREFIX):
        return region[len(REGION_PREFIX):]
    return region


@dataclass(frozen=True)
class SigningScope:
    """Credential scope shared by the query parameters and the key derivation."""

    date: str
    region: str
    product: str = PRODUCT
    suffix: str = SCOPE_SUFFIX

    @classmethod
    def for_request(cls, request: SigningRequest, now: datetime) -> SigningScope:
        return cls(
            date=format_date(now),
            region=request.signing_region,
            product=request.product,
        )

    @property
    def scope(self) -> str:
        return f"{self.date}/{self.region}/{self.product}/{self.suffix}"

    def credential(self, access_key_id: str) -> str:
        return f"{access_key_id}/{self.scope}"


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def format_date(now: datetime) -> str:
    """``YYYYMMDD`` in UTC."""
    return _as_utc(now).strftime("%Y%m%d")


def format_timestamp(now: datetime) -> str:
    """``YYYYMMDDTHHMMSSZ`` in UTC."""
    return _as_utc(now).strftime("%Y%m%dT%H%M%SZ")


@dataclass(frozen=True)
class PresignedUrl:
    """A signed URL together with the values that produced it."""

    url: str
    canonical_request: str
    string_to_sign: str
    signature: str
    scope: SigningScope
    timestamp: str
    expires: int
