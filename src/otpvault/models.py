"""Pydantic models for values passed between otpvault and its caller."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# === Enums ===


class OutcomeStatus(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RejectReason(StrEnum):
    INVALID_FORMAT = "invalid_format"
    NO_MATCH = "no_match"
    REPLAY_DETECTED = "replay_detected"
    OVERRIDDEN = "overridden"


class CipherMode(StrEnum):
    AEAD = "aead"
    LEGACY_ECB = "legacy_ecb"


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# === Verification ===


class VerificationOutcome(BaseModel):
    """Result of checking one code: Accepted(time_step) or Rejected(reason)."""

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    time_step: int | None = None
    reason: RejectReason | None = None

    @classmethod
    def accepted_at(cls, time_step: int) -> VerificationOutcome:
        return cls(status=OutcomeStatus.ACCEPTED, time_step=time_step)

    @classmethod
    def rejected(cls, reason: RejectReason) -> VerificationOutcome:
        return cls(status=OutcomeStatus.REJECTED, reason=reason)

    @property
    def accepted(self) -> bool:
        return self.status == OutcomeStatus.ACCEPTED


class VerificationResult(BaseModel):
    """Core outcome plus the decision left after observers ran.

    ``outcome`` drives last-login bookkeeping; ``decision`` only changes how
    the caller reacts.
    """

    model_config = ConfigDict(frozen=True)

    outcome: VerificationOutcome
    decision: VerificationOutcome

    @property
    def new_last_login(self) -> int | None:
        """Time step the caller must persist, or None when nothing changes."""
        return self.outcome.time_step if self.outcome.accepted else None


# === Provisioning ===


class Enrollment(BaseModel):
    """Everything produced when a principal turns on two-factor auth."""

    account: str
    secret: str
    encrypted_secret: str
    backup_secrets: list[str] = Field(default_factory=list)
    encrypted_backup_secrets: list[str] = Field(default_factory=list)
    provisioning_uri: str
    stored_in_plaintext: bool = False


# === Events ===


class Event(BaseModel):
    """A structured audit event."""

    category: str
    severity: Severity
    event_type: str
    message: str
    account: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
