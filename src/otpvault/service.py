"""Two-factor authentication service.

Composes secret generation, at-rest encryption and TOTP verification into the
calls a host application makes on enrollment, login and profile update. The
host owns persistence: it stores Enrollment.encrypted_secret and the
last-login time step, and makes the read-check-write of last_login atomic per
principal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from otpvault.auth import totp
from otpvault.auth.generator import SecretGenerator
from otpvault.config import Settings, settings as default_settings
from otpvault.crypto import EncryptionProvider, SecretCipher
from otpvault.models import Enrollment, VerificationOutcome, VerificationResult

logger = logging.getLogger(__name__)


class OutcomeObserver(Protocol):
    """Inspects a verification outcome and may replace the caller's decision.

    Return None to keep the current decision.
    """

    def __call__(
        self,
        outcome: VerificationOutcome,
        *,
        code: str,
        last_login: int,
    ) -> VerificationOutcome | None: ...


class TwoFactorService:
    """Enrollment, login verification and secret storage for one host application.

    Secrets go through the cipher on the way to and from storage. When no
    cipher is available they are stored in plaintext and Enrollment flags it;
    an empty stored value is never treated as a secret.
    """

    def __init__(
        self,
        *,
        generator: SecretGenerator,
        cipher: SecretCipher,
        verifier: totp.OtpVerifier,
        issuer: str = "otpvault",
        observers: Iterable[OutcomeObserver] = (),
    ) -> None:
        self.generator = generator
        self.cipher = cipher
        self.verifier = verifier
        self.issuer = issuer
        self._observers: list[OutcomeObserver] = list(observers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        provider: EncryptionProvider | None = None,
        observers: Iterable[OutcomeObserver] = (),
    ) -> TwoFactorService:
        s = settings or default_settings
        return cls(
            generator=SecretGenerator.from_settings(s),
            cipher=SecretCipher.from_settings(s, provider=provider),
            verifier=totp.OtpVerifier.from_settings(s),
            issuer=s.twofa_issuer,
            observers=observers,
        )

    def add_observer(self, observer: OutcomeObserver) -> None:
        self._observers.append(observer)

    # --- Provisioning ---

    def enroll(self, account: str) -> Enrollment:
        """Generate and encrypt a fresh secret plus backup secrets for an account.

        The plaintext values are for one-time display; store only the
        encrypted ones.
        """
        plaintext = not self.cipher.is_available()
        if plaintext:
            logger.warning("Enrolling %s without encryption: secrets will be stored in plaintext", account)

        secret = self.generator.generate_secret()
        backups = self.generator.generate_backup_secrets()
        return Enrollment(
            account=account,
            secret=secret,
            encrypted_secret=self.encrypt_secret(secret),
            backup_secrets=backups,
            encrypted_backup_secrets=[self.encrypt_secret(b) for b in backups],
            provisioning_uri=totp.provisioning_uri(secret, account, self.issuer),
            stored_in_plaintext=plaintext,
        )

    # --- Verification ---

    def verify(
        self,
        code: str,
        encrypted_secret: str,
        last_login: int,
        *,
        at: float | None = None,
    ) -> VerificationResult:
        """Decrypt the stored secret, verify the code, then run observers."""
        secret = self.decrypt_secret(encrypted_secret)
        outcome = self.verifier.verify(code, secret, last_login, at=at)

        decision = outcome
        for observer in self._observers:
            override = observer(decision, code=code, last_login=last_login)
            if override is not None:
                decision = override

        if decision != outcome:
            logger.info("Verification decision overridden: %s -> %s", outcome.status, decision.status)
        return VerificationResult(outcome=outcome, decision=decision)

    # --- Storage helpers ---

    def encrypt_secret(self, secret: str) -> str:
        """Value to store for a secret (the secret itself when no cipher is available)."""
        if not self.cipher.is_available():
            return secret
        return self.cipher.encrypt(secret)

    def decrypt_secret(self, encrypted: str) -> str:
        if not self.cipher.is_available():
            return encrypted
        return self.cipher.decrypt(encrypted)

    def is_encryption_available(self) -> bool:
        return self.cipher.is_available()

    def migrate_secret(self, encrypted: str) -> str:
        """Re-encrypt a stored value in the current format (no-op if already current)."""
        if not self.cipher.needs_migration(encrypted):
            return encrypted
        return self.encrypt_secret(self.decrypt_secret(encrypted))
