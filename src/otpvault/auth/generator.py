"""Random Base32 secrets for TOTP enrollment and single-use backup codes."""

from __future__ import annotations

import secrets
from collections.abc import Callable, Sequence

from otpvault.auth import base32
from otpvault.auth.base32 import ALPHABET
from otpvault.config import Settings, settings as default_settings

DEFAULT_SECRET_LENGTH = 16
BACKUP_SECRET_COUNT = 5
BACKUP_SECRET_LENGTH = 32

Chooser = Callable[[Sequence[str]], str]


def generate_secret(length: int = DEFAULT_SECRET_LENGTH, *, chooser: Chooser = secrets.choice) -> str:
    """Draw `length` Base32 characters uniformly, with replacement, from a CSPRNG.

    When the length does not end on a byte boundary, the last character is
    drawn from the symbols whose unused low bits are zero so the secret
    always decodes.
    """
    if length <= 0 or not base32.is_valid_length(length):
        raise ValueError(f"Secret length must be positive and not 1, 3 or 6 mod 8, got {length}")
    chars = [chooser(ALPHABET) for _ in range(length - 1)]
    chars.append(chooser(ALPHABET[:: 1 << base32.spare_bits(length)]))
    return "".join(chars)


def generate_backup_secrets(
    count: int = BACKUP_SECRET_COUNT,
    length: int = BACKUP_SECRET_LENGTH,
    *,
    chooser: Chooser = secrets.choice,
) -> list[str]:
    """Generate independent single-use secrets (5 x 32 chars by default)."""
    return [generate_secret(length, chooser=chooser) for _ in range(count)]


class SecretGenerator:
    """Secret generation bound to configured lengths and a random source."""

    def __init__(
        self,
        secret_length: int = DEFAULT_SECRET_LENGTH,
        backup_count: int = BACKUP_SECRET_COUNT,
        backup_length: int = BACKUP_SECRET_LENGTH,
        chooser: Chooser = secrets.choice,
    ) -> None:
        self.secret_length = secret_length
        self.backup_count = backup_count
        self.backup_length = backup_length
        self.chooser = chooser

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> SecretGenerator:
        s = settings or default_settings
        return cls(
            secret_length=s.twofa_secret_length,
            backup_count=s.twofa_backup_count,
            backup_length=s.twofa_backup_length,
        )

    def generate_secret(self) -> str:
        return generate_secret(self.secret_length, chooser=self.chooser)

    def generate_backup_secrets(self) -> list[str]:
        return generate_backup_secrets(self.backup_count, self.backup_length, chooser=self.chooser)
