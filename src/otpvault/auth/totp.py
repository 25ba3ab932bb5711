"""TOTP (RFC 6238) code generation and verification with replay protection.

A code is the HOTP value (RFC 4226, HMAC-SHA1, 6 digits) of the 30-second
time step. Verification scans a window of steps around "now" to tolerate
clock skew and rejects any step not newer than the caller's last successful
login.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import math
import re
import struct
import time
from collections.abc import Callable

import pyotp

from otpvault import events
from otpvault.auth import base32
from otpvault.config import Settings, settings as default_settings
from otpvault.exceptions import InvalidEncoding
from otpvault.models import RejectReason, Severity, VerificationOutcome

logger = logging.getLogger(__name__)

TIME_STEP_SECONDS = 30
CODE_DIGITS = 6
DEFAULT_GRACE_MINUTES = 0.5

_CODE_RE = re.compile(r"\A[0-9]{6}\Z")


def time_step(at: float | None = None) -> int:
    """Return floor(unix_time / 30) for `at` (defaults to now)."""
    if at is None:
        at = time.time()
    return math.floor(at / TIME_STEP_SECONDS)


def window_offsets(grace_minutes: float) -> range:
    """Integer step offsets covered by a grace period, most negative first.

    Each minute is two 30s steps, so 0.5 minutes gives -1..+1.
    """
    if grace_minutes < 0:
        raise ValueError(f"Grace period must not be negative, got {grace_minutes}")
    span = grace_minutes * 2
    return range(math.ceil(-span), math.floor(span) + 1)


def hotp_value(key: bytes, counter: int) -> int:
    """HOTP integer for a raw key and counter (RFC 4226 dynamic truncation)."""
    # 32-bit counter in a 64-bit big-endian field
    msg = struct.pack(">Q", counter & 0xFFFFFFFF)
    digest = hmac.new(key, msg, hashlib.sha1).digest()
    offset = digest[19] & 0x0F
    value = struct.unpack(">I", digest[offset:offset + 4])[0]
    return (value & 0x7FFFFFFF) % 10**CODE_DIGITS


def generate_code(secret: str, step: int) -> str:
    """Zero-padded 6-digit code for a Base32 secret at a given time step."""
    return str(hotp_value(base32.decode(secret), step)).zfill(CODE_DIGITS)


def current_code(secret: str, at: float | None = None) -> str:
    """Code for the time step containing `at` (defaults to now)."""
    return generate_code(secret, time_step(at))


def verify_code(
    code: str,
    secret: str,
    last_login: int,
    grace_minutes: float = DEFAULT_GRACE_MINUTES,
    *,
    at: float | None = None,
) -> VerificationOutcome:
    """Check a user-supplied code against a Base32 secret.

    Args:
        code: What the user typed. Must be exactly 6 ASCII digits.
        secret: Decrypted Base32 secret.
        last_login: Time step of the last successful verification.
        grace_minutes: Clock-skew tolerance, expanded to +-2*grace steps.
        at: Unix time to verify against (defaults to now).

    Returns:
        Accepted(step) when the code matches a step newer than last_login;
        the caller persists that step as the new last_login. Otherwise
        Rejected with INVALID_FORMAT, REPLAY_DETECTED or NO_MATCH.

    Raises:
        InvalidEncoding: if the secret is empty or not valid Base32.
    """
    if not isinstance(code, str) or not _CODE_RE.match(code):
        return VerificationOutcome.rejected(RejectReason.INVALID_FORMAT)

    expected = int(code)
    key = base32.decode(secret)
    if not key:
        # HMAC under an empty key is computable by anyone
        raise InvalidEncoding("Secret is empty")
    now_step = time_step(at)

    for offset in window_offsets(grace_minutes):
        step = now_step + offset
        if hotp_value(key, step) != expected:
            continue

        # Time only moves forward: a step at or before the last login is a replay
        if last_login >= step:
            events.emit(
                "auth",
                Severity.WARNING,
                "otp_replay_detected",
                "Possible man-in-the-middle attack or duplicate submission within one time step",
                context={"time_step": step, "last_login": last_login},
            )
            return VerificationOutcome.rejected(RejectReason.REPLAY_DETECTED)

        logger.debug("TOTP accepted at step %d (offset %+d)", step, offset)
        return VerificationOutcome.accepted_at(step)

    return VerificationOutcome.rejected(RejectReason.NO_MATCH)


def provisioning_uri(secret: str, account: str, issuer: str = "otpvault") -> str:
    """Get the otpauth:// URI for QR code enrollment."""
    return pyotp.TOTP(secret).provisioning_uri(name=account, issuer_name=issuer)


class OtpVerifier:
    """verify_code() bound to a grace period and a clock."""

    def __init__(
        self,
        grace_minutes: float = DEFAULT_GRACE_MINUTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        window_offsets(grace_minutes)  # validates
        self.grace_minutes = grace_minutes
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> OtpVerifier:
        s = settings or default_settings
        return cls(grace_minutes=s.twofa_grace_minutes)

    def verify(self, code: str, secret: str, last_login: int, *, at: float | None = None) -> VerificationOutcome:
        return verify_code(
            code,
            secret,
            last_login,
            self.grace_minutes,
            at=self.clock() if at is None else at,
        )
