"""Exceptions raised by otpvault.

Expected verification failures (bad format, no match, replay) are returned as
outcomes, not raised. These cover the cases a caller has to handle explicitly.
"""

from __future__ import annotations


class OtpVaultError(Exception):
    """Base class for otpvault errors."""


class InvalidEncoding(OtpVaultError, ValueError):
    """Text is not valid Base32."""


class CipherUnavailable(OtpVaultError, RuntimeError):
    """Neither key material nor an encryption provider is configured."""


class SecretDecryptionError(OtpVaultError, ValueError):
    """A stored value could not be decrypted (tampered, wrong key, or disallowed format)."""
