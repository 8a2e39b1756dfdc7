"""Hash primitives used by the signer.

The signer never looks up a hashing engine on its own: a ``HashProvider`` is
handed to it at construction time. Two providers ship with the package, one
on top of :mod:`hashlib`/:mod:`hmac` and one on top of ``cryptography``.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol, runtime_checkable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

from osspresign.signer.errors import CryptoPrimitiveUnavailable


@runtime_checkable
class HashProvider(Protocol):
    """SHA-256 and HMAC-SHA256 over raw bytes."""

    name: str

    def sha256(self, data: bytes) -> bytes: ...

    def hmac_sha256(self, key: bytes, data: bytes) -> bytes: ...


class HashlibProvider:
    """Standard library implementation."""

    name = "hashlib"

    def __init__(self) -> None:
        try:
            hashlib.new("sha256")
        except ValueError as e:
            raise CryptoPrimitiveUnavailable(f"hashlib has no sha256: {e}") from e

    def sha256(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()

    def hmac_sha256(self, key: bytes, data: bytes) -> bytes:
        return hmac.new(key, data, hashlib.sha256).digest()


class CryptographyProvider:
    """Implementation backed by the ``cryptography`` package (OpenSSL)."""

    name = "cryptography"

    def __init__(self) -> None:
        try:
            hashes.Hash(hashes.SHA256())
        except UnsupportedAlgorithm as e:
            raise CryptoPrimitiveUnavailable(f"OpenSSL backend has no SHA-256: {e}") from e

    def sha256(self, data: bytes) -> bytes:
        digest = hashes.Hash(hashes.SHA256())
        digest.update(data)
        return digest.finalize()

    def hmac_sha256(self, key: bytes, data: bytes) -> bytes:
        mac = crypto_hmac.HMAC(key, hashes.SHA256())
        mac.update(data)
        return mac.finalize()


_PROVIDERS: dict[str, type[HashlibProvider] | type[CryptographyProvider]] = {
    HashlibProvider.name: HashlibProvider,
    CryptographyProvider.name: CryptographyProvider,
}


def get_hash_provider(name: str = "hashlib") -> HashProvider:
    """
    Instantiate a hash provider by name.

    Raises:
        CryptoPrimitiveUnavailable: Unknown provider, or its primitive is missing
    """
    try:
        provider_cls = _PROVIDERS[name]
    except KeyError:
        raise CryptoPrimitiveUnavailable(
            f"Unknown hash provider {name!r} (expected one of: {', '.join(sorted(_PROVIDERS))})"
        ) from None
    return provider_cls()


def sha256_hex(provider: HashProvider, data: str) -> str:
    """Lowercase hex SHA-256 of a UTF-8 string."""
    return provider.sha256(data.encode("utf-8")).hex()


def hmac_sha256_hex(provider: HashProvider, key: bytes, data: str) -> str:
    """Lowercase hex HMAC-SHA256 of a UTF-8 string."""
    return provider.hmac_sha256(key, data.encode("utf-8")).hex()
