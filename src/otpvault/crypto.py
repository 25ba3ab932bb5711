"""At-rest encryption for TOTP secrets.

New values use AES-256-GCM in a versioned envelope: "v1:" + base64(nonce + ciphertext).
Unprefixed values are the legacy format written by the previous system:
base64 of Rijndael with a 256-bit block in ECB mode, no IV, zero padded. The
legacy format leaks equal-plaintext patterns and is unauthenticated; it is
read for migration and only written when explicitly configured.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from py3rijndael import Rijndael, ZeroPadding

from otpvault.config import Settings, settings as default_settings
from otpvault.exceptions import CipherUnavailable, SecretDecryptionError
from otpvault.models import CipherMode

logger = logging.getLogger(__name__)

ENVELOPE_PREFIX = "v1:"
SALT_KEY_LENGTH = 31
_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_TAG_SIZE = 16
_HKDF_INFO = b"otpvault.secret-cipher.v1"
_LEGACY_BLOCK_SIZE = 32
_LEGACY_KEY_SIZE = 32


class EncryptionProvider(Protocol):
    """Host-supplied replacement for the native cipher.

    Must be symmetric (decrypt(encrypt(x)) == x) and map "" to "".
    """

    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, token: str) -> str: ...


def derive_key_material(encryption_secret: str = "", auth_salt: str = "") -> str:
    """Override secret verbatim if set, else the first 31 chars of the auth salt."""
    if encryption_secret:
        return encryption_secret
    return auth_salt[:SALT_KEY_LENGTH]


class LegacyEcbCipher:
    """Rijndael-256 (256-bit block) in ECB mode, compatible with stored legacy values."""

    def __init__(self, key_material: str | bytes) -> None:
        if isinstance(key_material, str):
            key_material = key_material.encode()
        # mcrypt zero-pads short keys (31-byte salt key) up to the key size
        key = key_material[:_LEGACY_KEY_SIZE]
        self._rijndael = Rijndael(key.ljust(_LEGACY_KEY_SIZE, b"\0"), block_size=_LEGACY_BLOCK_SIZE)
        self._padding = ZeroPadding(_LEGACY_BLOCK_SIZE)

    def encrypt_blocks(self, data: bytes) -> bytes:
        """ECB-encrypt bytes, zero-padding the last block."""
        data = self._padding.encode(data)
        blocks = (data[i:i + _LEGACY_BLOCK_SIZE] for i in range(0, len(data), _LEGACY_BLOCK_SIZE))
        return b"".join(self._rijndael.encrypt(block) for block in blocks)

    def decrypt_blocks(self, raw: bytes) -> bytes:
        if not raw or len(raw) % _LEGACY_BLOCK_SIZE:
            raise SecretDecryptionError(f"Legacy ciphertext length {len(raw)} is not a multiple of the block size")
        blocks = (raw[i:i + _LEGACY_BLOCK_SIZE] for i in range(0, len(raw), _LEGACY_BLOCK_SIZE))
        return b"".join(self._rijndael.decrypt(block) for block in blocks)

    def encrypt(self, plaintext: str) -> str:
        return base64.b64encode(self.encrypt_blocks(plaintext.encode())).decode().strip()

    def decrypt(self, token: str) -> str:
        try:
            raw = base64.b64decode(token.strip(), validate=True)
        except binascii.Error as e:
            raise SecretDecryptionError("Legacy value is not valid base64") from e
        pt = self.decrypt_blocks(raw)
        try:
            return pt.rstrip(b"\0").decode().strip()
        except UnicodeDecodeError as e:
            raise SecretDecryptionError("Legacy value decrypted to invalid UTF-8 (wrong key?)") from e


class AeadCipher:
    """AES-256-GCM with an HKDF-SHA256 key derived from the key material."""

    def __init__(self, key_material: str) -> None:
        key = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=_HKDF_INFO,
        ).derive(key_material.encode())
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string. Returns "v1:" + base64(nonce + ciphertext)."""
        nonce = os.urandom(_NONCE_SIZE)
        ct = self._aesgcm.encrypt(nonce, plaintext.encode(), None)
        return ENVELOPE_PREFIX + base64.b64encode(nonce + ct).decode()

    def decrypt(self, token: str) -> str:
        try:
            raw = base64.b64decode(token.removeprefix(ENVELOPE_PREFIX), validate=True)
        except binascii.Error as e:
            raise SecretDecryptionError("Encrypted value is not valid base64") from e
        if len(raw) < _NONCE_SIZE + _TAG_SIZE:
            raise SecretDecryptionError(f"Encrypted value too short: {len(raw)} bytes")
        nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
        try:
            return self._aesgcm.decrypt(nonce, ct, None).decode()
        except InvalidTag as e:
            raise SecretDecryptionError("Encrypted value failed authentication (tampered or wrong key)") from e


class SecretCipher:
    """Encrypts secrets for storage and decrypts them for verification.

    Empty strings pass through unchanged. An injected provider replaces the
    native cipher in both directions. With neither key material nor a
    provider the cipher is unavailable: encrypt/decrypt return "" and the
    caller has to decide whether storing the secret in plaintext is acceptable.
    """

    def __init__(
        self,
        key_material: str = "",
        *,
        provider: EncryptionProvider | None = None,
        mode: CipherMode = CipherMode.AEAD,
        allow_legacy: bool = True,
    ) -> None:
        self.provider = provider
        self.mode = CipherMode(mode)
        self.allow_legacy = allow_legacy
        self._aead = AeadCipher(key_material) if key_material else None
        self._legacy = LegacyEcbCipher(key_material) if key_material else None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        provider: EncryptionProvider | None = None,
    ) -> SecretCipher:
        s = settings or default_settings
        return cls(
            derive_key_material(s.twofa_encryption_secret, s.auth_salt),
            provider=provider,
            mode=s.twofa_cipher_mode,
            allow_legacy=s.twofa_allow_legacy_decrypt,
        )

    def is_available(self) -> bool:
        return self._aead is not None or self.provider is not None

    def ensure_available(self) -> None:
        if not self.is_available():
            raise CipherUnavailable(
                "No encryption key material or provider configured; set TWOFA_ENCRYPTION_SECRET or AUTH_SALT"
            )

    def encrypt(self, plaintext: str) -> str:
        if plaintext == "":
            return plaintext
        if self.provider is not None:
            return self.provider.encrypt(plaintext)
        if not self.is_available():
            logger.warning("Secret encryption unavailable, returning empty value")
            return ""
        if self.mode == CipherMode.LEGACY_ECB:
            return self._legacy.encrypt(plaintext)
        return self._aead.encrypt(plaintext)

    def decrypt(self, token: str) -> str:
        if token == "":
            return token
        if self.provider is not None:
            return self.provider.decrypt(token)
        if not self.is_available():
            logger.warning("Secret decryption unavailable, returning empty value")
            return ""
        if token.startswith(ENVELOPE_PREFIX):
            return self._aead.decrypt(token)
        if not self.allow_legacy:
            raise SecretDecryptionError("Legacy ECB values are not accepted by this cipher")
        logger.info("Decrypting legacy ECB value; re-encrypt to migrate")
        return self._legacy.decrypt(token)

    def needs_migration(self, token: str) -> bool:
        """True for a non-empty value that is not in the current envelope format."""
        return bool(token) and not token.startswith(ENVELOPE_PREFIX)
