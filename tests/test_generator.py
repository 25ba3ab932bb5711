"""Tests for secret generation."""

from __future__ import annotations

import pytest

from otpvault.auth import base32, totp
from otpvault.auth.generator import SecretGenerator, generate_backup_secrets, generate_secret
from otpvault.config import Settings


def test_default_secret_shape():
    secret = generate_secret()
    assert len(secret) == 16
    assert set(secret) <= set(base32.ALPHABET)


def test_secret_length():
    assert len(generate_secret(32)) == 32
    assert len(generate_secret(5)) == 5


def test_secret_decodes_to_ten_bytes():
    assert len(base32.decode(generate_secret(16))) == 10


def test_secrets_are_not_repeated():
    assert len({generate_secret() for _ in range(50)}) == 50


def test_non_positive_length_raises():
    with pytest.raises(ValueError):
        generate_secret(0)


@pytest.mark.parametrize("length", [1, 3, 6, 9, 11, 14])
def test_length_that_cannot_decode_raises(length):
    with pytest.raises(ValueError, match="mod 8"):
        generate_secret(length)


@pytest.mark.parametrize("length", [2, 4, 5, 7, 10, 16, 20, 26, 32, 40])
def test_every_allowed_length_decodes_and_verifies(length):
    for _ in range(25):
        secret = generate_secret(length)
        assert len(secret) == length
        assert base32.encode(base32.decode(secret)) == secret
        # must not raise on a freshly generated secret
        totp.verify_code("000000", secret, 0, at=1_700_000_015.0)


def test_last_character_clears_unused_bits():
    # 5 chars carry 25 bits: one spare bit, so only even symbols may end the secret
    assert generate_secret(5, chooser=lambda chars: chars[-1]) == "77776"


def test_backup_secrets_shape():
    backups = generate_backup_secrets()
    assert len(backups) == 5
    assert all(len(b) == 32 for b in backups)
    assert all(set(b) <= set(base32.ALPHABET) for b in backups)
    assert len(set(backups)) == 5


def test_chooser_is_injectable():
    assert generate_secret(4, chooser=lambda chars: chars[0]) == "AAAA"


def test_generator_from_settings():
    s = Settings(_env_file=None, twofa_secret_length=24, twofa_backup_count=3, twofa_backup_length=20)
    gen = SecretGenerator.from_settings(s)
    assert len(gen.generate_secret()) == 24
    backups = gen.generate_backup_secrets()
    assert len(backups) == 3
    assert all(len(b) == 20 for b in backups)
