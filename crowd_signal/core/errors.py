"""Error taxonomy for the crowd-signal pipeline.

Callers map these onto transport responses:
    InvalidInputError       -> reject, caller must fix and resubmit
    RateLimitedError        -> expected rejection with a wait hint
    StorageUnavailableError -> collaborator failure, retryable
    NotifyFailure           -> delivery failed, stays pending for the next run
"""

from __future__ import annotations


class CrowdSignalError(Exception):
    """Base class for all crowd-signal errors."""


class InvalidInputError(CrowdSignalError):
    """Malformed status, threshold, device token, zone or unknown venue."""


class RateLimitedError(CrowdSignalError):
    """A submission was rejected by the guardrail."""

    def __init__(self, reason: str, message: str, wait_minutes: int | None = None) -> None:
        self.reason = reason
        self.wait_minutes = wait_minutes
        super().__init__(message)


class StorageUnavailableError(CrowdSignalError):
    """A store collaborator failed to read or write."""


class NotifyFailure(CrowdSignalError):
    """A notifier could not deliver an alert."""
