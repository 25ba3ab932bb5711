"""otpvault — TOTP second-factor verification, secret provisioning and at-rest encryption."""

from otpvault.exceptions import CipherUnavailable, InvalidEncoding, OtpVaultError, SecretDecryptionError
from otpvault.models import (
    CipherMode,
    Enrollment,
    OutcomeStatus,
    RejectReason,
    VerificationOutcome,
    VerificationResult,
)
from otpvault.auth.generator import SecretGenerator, generate_backup_secrets, generate_secret
from otpvault.auth.totp import OtpVerifier, verify_code
from otpvault.crypto import EncryptionProvider, SecretCipher
from otpvault.service import OutcomeObserver, TwoFactorService

__version__ = "0.1.0"

__all__ = [
    "CipherMode",
    "CipherUnavailable",
    "EncryptionProvider",
    "Enrollment",
    "InvalidEncoding",
    "OtpVaultError",
    "OtpVerifier",
    "OutcomeObserver",
    "OutcomeStatus",
    "RejectReason",
    "SecretCipher",
    "SecretDecryptionError",
    "SecretGenerator",
    "TwoFactorService",
    "VerificationOutcome",
    "VerificationResult",
    "generate_backup_secrets",
    "generate_secret",
    "verify_code",
]
