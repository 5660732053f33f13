"""
Text encodings for ciphertext bytes

Ciphertext never crosses the public boundary as raw bytes. These helpers
render bytes as printable text and parse it back strictly: anything outside
the alphabet of the chosen encoding is rejected with DecodingError rather
than silently skipped.
"""

import base64
import binascii
import re
import textwrap
from typing import Callable, Dict

from ..core.errors import DecodingError
from ..models.parameters import TextEncoding

MIME_LINE_LENGTH = 76

_WHITESPACE = re.compile(r"\s+")
_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]*={0,2}")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")


def _encode_mime(data: bytes) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    if not encoded:
        return ""
    return "\n".join(textwrap.wrap(encoded, MIME_LINE_LENGTH)) + "\n"


def _decode_mime(text: str) -> bytes:
    return base64.b64decode(_WHITESPACE.sub("", text), validate=True)


def _decode_urlsafe(text: str) -> bytes:
    if not _URLSAFE_ALPHABET.fullmatch(text):
        raise ValueError("characters outside the URL-safe base64 alphabet")
    return base64.urlsafe_b64decode(text)


def _decode_hex(text: str) -> bytes:
    if not _HEX_DIGITS.fullmatch(text):
        raise ValueError("characters outside the hex alphabet")
    return bytes.fromhex(text)


def _encode_urlsafe_no_padding(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _decode_urlsafe_no_padding(text: str) -> bytes:
    if "=" in text:
        raise ValueError("unexpected padding")
    if len(text) % 4 == 1:
        raise ValueError("invalid base64 length")
    return _decode_urlsafe(text + "=" * (-len(text) % 4))


_ENCODERS: Dict[TextEncoding, Callable[[bytes], str]] = {
    TextEncoding.BASE64: lambda data: base64.b64encode(data).decode("ascii"),
    TextEncoding.BASE64_MIME: _encode_mime,
    TextEncoding.BASE64_URLSAFE: lambda data: base64.urlsafe_b64encode(data).decode("ascii"),
    TextEncoding.BASE64_URLSAFE_NO_PADDING: _encode_urlsafe_no_padding,
    TextEncoding.BASE32: lambda data: base64.b32encode(data).decode("ascii"),
    TextEncoding.HEX: lambda data: data.hex(),
}

_DECODERS: Dict[TextEncoding, Callable[[str], bytes]] = {
    TextEncoding.BASE64: lambda text: base64.b64decode(text, validate=True),
    TextEncoding.BASE64_MIME: _decode_mime,
    TextEncoding.BASE64_URLSAFE: _decode_urlsafe,
    TextEncoding.BASE64_URLSAFE_NO_PADDING: _decode_urlsafe_no_padding,
    TextEncoding.BASE32: lambda text: base64.b32decode(text),
    TextEncoding.HEX: _decode_hex,
}


def encode_bytes(data: bytes, encoding: TextEncoding) -> str:
    """Render bytes as printable text"""
    return _ENCODERS[TextEncoding(encoding)](data)


def decode_text(text: str, encoding: TextEncoding) -> bytes:
    """Parse printable text back into bytes, raising DecodingError on bad input"""
    encoding = TextEncoding(encoding)

    if not isinstance(text, str):
        raise DecodingError(
            "Ciphertext must be text",
            details={"type": type(text).__name__}
        )

    try:
        text.encode("ascii")
        return _DECODERS[encoding](text)
    except (binascii.Error, ValueError) as e:
        # UnicodeEncodeError is a ValueError
        raise DecodingError(
            f"Ciphertext is not valid {encoding.value}",
            details={"encoding": encoding.value, "error": str(e)}
        ) from e
