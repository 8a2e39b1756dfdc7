"""OSS4-HMAC-SHA256 presigned URL signer."""

from osspresign.signer.crypto import (
    CryptographyProvider,
    HashlibProvider,
    HashProvider,
    get_hash_provider,
)
from osspresign.signer.errors import (
    ConfigurationError,
    CryptoPrimitiveUnavailable,
    EncodingError,
    SignerError,
)
from osspresign.signer.models import PresignedUrl, SigningRequest, SigningScope
from osspresign.signer.presign import Presigner, signature_url_v4

__all__ = [
    "ConfigurationError",
    "CryptoPrimitiveUnavailable",
    "CryptographyProvider",
    "EncodingError",
    "HashProvider",
    "HashlibProvider",
    "PresignedUrl",
    "Presigner",
    "SignerError",
    "SigningRequest",
    "SigningScope",
    "get_hash_provider",
    "signature_url_v4",
]
