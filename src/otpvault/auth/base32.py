"""Base32 (RFC 4648) codec for shared secrets.

Secrets are shown to users and stored as unpadded upper-case Base32; HMAC
needs the raw bytes. Only canonical text is accepted: unused bits in the
last character must be zero, so encode(decode(t)) == normalize(t).
"""

from __future__ import annotations

import base64
import binascii
import re

from otpvault.exceptions import InvalidEncoding

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

_BASE32_RE = re.compile(r"\A[A-Z2-7]*\Z")
# Unpadded lengths (mod 8) whose spare bits do not add up to a whole byte
_VALID_REMAINDERS = frozenset({0, 2, 4, 5, 7})


def is_valid_length(length: int) -> bool:
    """True if `length` unpadded characters can form canonical Base32."""
    return length >= 0 and length % 8 in _VALID_REMAINDERS


def spare_bits(length: int) -> int:
    """Number of unused low bits in the last character of `length` characters."""
    return (5 * length) % 8


def normalize(text: str) -> str:
    """Strip trailing '=' padding."""
    return text.rstrip("=")


def decode(text: str) -> bytes:
    """Decode Base32 text to bytes, raising InvalidEncoding on bad input."""
    stripped = normalize(text)
    if not _BASE32_RE.match(stripped):
        raise InvalidEncoding("Base32 text contains characters outside A-Z2-7")
    if not is_valid_length(len(stripped)):
        raise InvalidEncoding(f"Invalid Base32 length: {len(stripped)} characters")
    padded = stripped + "=" * (-len(stripped) % 8)
    try:
        data = base64.b32decode(padded)
    except binascii.Error as e:
        raise InvalidEncoding(f"Invalid Base32 text: {e}") from e
    if encode(data) != stripped:
        raise InvalidEncoding("Base32 text has non-zero trailing bits")
    return data


def encode(data: bytes) -> str:
    """Encode bytes as unpadded Base32."""
    return base64.b32encode(data).decode("ascii").rstrip("=")
