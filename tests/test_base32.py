"""Tests for the Base32 codec."""

from __future__ import annotations

import os
import secrets

import pytest

from otpvault.auth import base32
from otpvault.exceptions import InvalidEncoding


def test_decode_known_secret():
    assert base32.decode("JBSWY3DPEHPK3PXP") == b"Hello!\xde\xad\xbe\xef"


def test_encode_is_unpadded():
    assert base32.encode(b"Hello!\xde\xad\xbe\xef") == "JBSWY3DPEHPK3PXP"
    assert base32.encode(b"a") == "ME"


def test_padding_accepted_and_stripped():
    assert base32.decode("ME======") == b"a"
    assert base32.decode("ME") == b"a"


def test_empty():
    assert base32.decode("") == b""
    assert base32.encode(b"") == ""


@pytest.mark.parametrize("text", ["jbswy3dpehpk3pxp", "JBSWY3DPEHPK3PX1", "JBSW Y3DP", "ME==ME", "JBSWY3DP!"])
def test_characters_outside_alphabet_rejected(text):
    with pytest.raises(InvalidEncoding):
        base32.decode(text)


def test_invalid_length_rejected():
    with pytest.raises(InvalidEncoding, match="length"):
        base32.decode("ABC")


def test_invalid_encoding_is_value_error():
    with pytest.raises(ValueError):
        base32.decode("0000")


def test_random_bytes_survive_encode_decode():
    for size in (1, 5, 10, 20, 33):
        data = os.urandom(size)
        assert base32.decode(base32.encode(data)) == data


def test_encode_decode_reproduces_text_up_to_padding():
    assert base32.encode(base32.decode("MFRGG===")) == base32.normalize("MFRGG===")
    assert base32.encode(base32.decode("GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ")) == "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_nonzero_trailing_bits_rejected():
    with pytest.raises(InvalidEncoding, match="trailing bits"):
        base32.decode("AB")
    assert base32.decode("AA") == b"\x00"


@pytest.mark.parametrize("length", [1, 3, 6, 9, 11, 14])
def test_lengths_that_cannot_end_on_a_byte_rejected(length):
    assert not base32.is_valid_length(length)
    with pytest.raises(InvalidEncoding, match="length"):
        base32.decode("A" * length)


def test_random_text_of_every_length_round_trips_or_is_rejected():
    for length in range(0, 41):
        for _ in range(20):
            text = "".join(secrets.choice(base32.ALPHABET) for _ in range(length))
            try:
                data = base32.decode(text)
            except InvalidEncoding:
                assert not base32.is_valid_length(length) or base32.spare_bits(length)
                continue
            assert base32.encode(data) == base32.normalize(text)


def test_canonical_text_of_every_valid_length_round_trips():
    for length in range(0, 41):
        if not base32.is_valid_length(length):
            continue
        text = base32.encode(os.urandom(length * 5 // 8))
        assert len(text) == length
        assert base32.encode(base32.decode(text + "=" * (-length % 8))) == text
