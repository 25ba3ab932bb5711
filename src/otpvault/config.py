"""Central configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from otpvault.auth import base32
from otpvault.models import CipherMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Encryption key material
    twofa_encryption_secret: str = ""
    auth_salt: str = ""

    # Verification
    twofa_grace_minutes: float = Field(default=0.5, ge=0)

    # Provisioning
    twofa_secret_length: int = Field(default=16, gt=0)
    twofa_backup_count: int = Field(default=5, ge=0)
    twofa_backup_length: int = Field(default=32, gt=0)
    twofa_issuer: str = "otpvault"

    # Storage format
    twofa_cipher_mode: CipherMode = CipherMode.AEAD
    twofa_allow_legacy_decrypt: bool = True

    @field_validator("twofa_secret_length", "twofa_backup_length")
    @classmethod
    def _decodable_length(cls, v: int) -> int:
        if not base32.is_valid_length(v):
            raise ValueError(f"secret length {v} cannot form valid Base32 (1, 3 or 6 mod 8)")
        return v


settings = Settings()
