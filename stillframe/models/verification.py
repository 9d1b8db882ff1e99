"""Verification attempt and result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class AttemptOutcome(str, Enum):
    """What happened when one candidate was tried."""

    VERIFIED = "verified"
    DIGEST_MISMATCH = "digest_mismatch"
    FETCH_FAILED = "fetch_failed"


class FailureReason(str, Enum):
    """Why no candidate could be accepted."""

    NO_EXPECTED_DIGEST = "no_expected_digest"
    NO_CANDIDATES = "no_candidates"
    NONE_VERIFIED = "none_verified"


class FetchAttempt(BaseModel):
    """One row of the verification audit trail."""

    model_config = ConfigDict(frozen=True)

    index: int
    uri: str
    outcome: AttemptOutcome
    digest: str = ""
    error: str = ""


class VerificationResult(BaseModel):
    """The accepted candidate and the attempts that led to it."""

    model_config = ConfigDict(frozen=True)

    uri: str
    index: int
    content: bytes
    digest: str
    attempts: list[FetchAttempt] = []
