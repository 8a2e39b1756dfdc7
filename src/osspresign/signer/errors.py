"""Signer error taxonomy."""


class SignerError(Exception):
    """Base class for every error raised while producing a presigned URL."""

    pass


class ConfigurationError(SignerError):
    """A mandatory field is missing or the request cannot be addressed."""

    pass


class CryptoPrimitiveUnavailable(SignerError):
    """The SHA-256 / HMAC-SHA256 primitive could not be obtained."""

    pass


class EncodingError(SignerError):
    """A value could not be encoded for signing."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Cannot encode {field}: {message}")
        self.field = field
