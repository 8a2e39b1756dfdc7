"""Percent-encoding rules for OSS V4 signing.

Only the RFC 3986 unreserved set (``A-Z a-z 0-9 - _ . ~``) stays literal.
Everything else, including ``! ' ( ) *`` and space, becomes ``%XX`` with
uppercase hex over the UTF-8 bytes.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from osspresign.signer.errors import EncodingError


def to_text(value: Any) -> str:
    """Render a scalar the way it appears in a URL (``None`` -> ``""``)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_string(value: Any, field: str = "value") -> str:
    """Strictly percent-encode a scalar, slashes included."""
    text = to_text(value)
    try:
        return quote(text.encode("utf-8"), safe="")
    except UnicodeEncodeError as e:
        raise EncodingError(field, str(e)) from e


def encode_path(path: str, field: str = "path") -> str:
    """Strictly encode a path, then restore literal ``/`` separators."""
    return encode_string(path, field).replace("%2F", "/")
