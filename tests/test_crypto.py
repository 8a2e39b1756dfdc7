"""Tests for hash providers."""

import hashlib
import hmac

import pytest

from osspresign.signer.crypto import (
    CryptographyProvider,
    HashlibProvider,
    HashProvider,
    get_hash_provider,
    hmac_sha256_hex,
    sha256_hex,
)
from osspresign.signer.errors import CryptoPrimitiveUnavailable


class TestProviders:
    """Both backends agree with the standard library."""

    @pytest.mark.parametrize("name", ["hashlib", "cryptography"])
    def test_get_by_name(self, name):
        provider = get_hash_provider(name)
        assert provider.name == name
        assert isinstance(provider, HashProvider)

    def test_unknown_provider(self):
        with pytest.raises(CryptoPrimitiveUnavailable, match="Unknown hash provider"):
            get_hash_provider("md5-please")

    @pytest.mark.parametrize("provider_cls", [HashlibProvider, CryptographyProvider])
    def test_sha256(self, provider_cls):
        provider = provider_cls()
        assert provider.sha256(b"abc") == hashlib.sha256(b"abc").digest()
        assert sha256_hex(provider, "") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    @pytest.mark.parametrize("provider_cls", [HashlibProvider, CryptographyProvider])
    def test_hmac_sha256(self, provider_cls):
        provider = provider_cls()
        expected = hmac.new(b"key", b"data", hashlib.sha256).digest()
        assert provider.hmac_sha256(b"key", b"data") == expected
        assert hmac_sha256_hex(provider, b"key", "data") == expected.hex()

    def test_hashlib_without_sha256(self, monkeypatch):
        def fake_new(name, *args, **kwargs):
            raise ValueError("unsupported hash type")

        monkeypatch.setattr(hashlib, "new", fake_new)
        with pytest.raises(CryptoPrimitiveUnavailable):
            HashlibProvider()
