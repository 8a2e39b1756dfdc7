"""Signing-key derivation and signature computation."""

from __future__ import annotations

from osspresign.signer.crypto import HashProvider, hmac_sha256_hex, sha256_hex
from osspresign.signer.errors import EncodingError
from osspresign.signer.models import SIGNATURE_VERSION, SIGNING_KEY_PREFIX, SigningScope


def derive_signing_key(provider: HashProvider, access_key_secret: str, scope: SigningScope) -> bytes:
    """
    Narrow the secret to a per-day, per-region, per-product key.

    K0 = "aliyun_v4" + secret, then HMAC over date, region, product and the
    scope suffix in turn. Every step is keyed by the previous raw digest.
    """
    try:
        key = f"{SIGNING_KEY_PREFIX}{access_key_secret}".encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError("access_key_secret", "not valid UTF-8") from e
    for part in (scope.date, scope.region, scope.product, scope.suffix):
        key = provider.hmac_sha256(key, part.encode("utf-8"))
    return key


def build_string_to_sign(
    provider: HashProvider,
    timestamp: str,
    scope: SigningScope,
    canonical_request: str,
) -> str:
    """Algorithm, timestamp, scope and the canonical request digest."""
    try:
        digest = sha256_hex(provider, canonical_request)
    except UnicodeEncodeError as e:
        raise EncodingError("canonical_request", str(e)) from e
    return "\n".join([SIGNATURE_VERSION, timestamp, scope.scope, digest])


def compute_signature(provider: HashProvider, signing_key: bytes, string_to_sign: str) -> str:
    """64-character lowercase hex signature."""
    return hmac_sha256_hex(provider, signing_key, string_to_sign)
