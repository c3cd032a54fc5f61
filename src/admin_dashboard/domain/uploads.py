"""Upload attempt bookkeeping models."""

from dataclasses import dataclass
from enum import StrEnum


class AttemptState(StrEnum):
    """Lifecycle of a single attempt."""

    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"


@dataclass
class Attempt:
    """One try of a retried operation."""

    number: int
    state: AttemptState = AttemptState.PENDING
    elapsed_seconds: float = 0.0
    error: Exception | None = None


@dataclass(frozen=True)
class UploadAttempt:
    """Diagnostic record of one transfer attempt. Never persisted."""

    number: int
    destination: str
    byte_length: int
    state: AttemptState
    elapsed_seconds: float
    error: Exception | None = None
