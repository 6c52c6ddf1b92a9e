"""
Domain exceptions - Semantic error types for the reward claim workflow.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every error carries an ErrorKind so adapters can map it to a
transport status without inspecting messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error taxonomy shared by every workflow operation."""

    VALIDATION = "validation"
    SESSION = "session"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORE_CONFLICT = "store_conflict"
    EXPIRED = "expired"
    DEPENDENCY = "dependency"


class RewardsError(Exception):
    """Base class for reward domain errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message: str = "Reward request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# Validation (client-fixable input)


class InvalidEmail(RewardsError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid email format"


class InvalidRewardData(RewardsError):
    """The encoded reward payload could not be decoded or validated."""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid data parameter"


class InvalidCode(RewardsError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid verification code"


# Session


class SessionRejected(RewardsError):
    kind = ErrorKind.SESSION
    default_message = "Invalid or expired session. Please try again."


class CaptchaRejected(RewardsError):
    kind = ErrorKind.SESSION
    default_message = "CAPTCHA validation failed"


# Not found


class CampaignNotFound(RewardsError):
    kind = ErrorKind.NOT_FOUND
    default_message = "No active campaign found for this currency"


class ClaimNotFound(RewardsError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Verification record not found"


# Conflict (duplicate identity or wrong workflow state)


class EmailAlreadyRewarded(RewardsError):
    kind = ErrorKind.CONFLICT
    default_message = "This email has already been used to claim a reward"


class AddressAlreadyRewarded(RewardsError):
    kind = ErrorKind.CONFLICT
    default_message = "This wallet address has already been used to claim a reward"


class ClaimAlreadyRegistered(RewardsError):
    kind = ErrorKind.CONFLICT
    default_message = "This email is already registered for this campaign"


class RewardAlreadySent(RewardsError):
    kind = ErrorKind.CONFLICT
    default_message = "Reward has already been sent"


class ClaimAlreadyVerified(RewardsError):
    kind = ErrorKind.CONFLICT
    default_message = "Already verified"


class ClaimNotRedrivable(RewardsError):
    kind = ErrorKind.CONFLICT
    default_message = "Claim is not waiting for a payout"


class StoreConflict(RewardsError):
    """A versioned write lost against a concurrent writer. Safe to retry."""

    kind = ErrorKind.STORE_CONFLICT
    default_message = "The request conflicted with a concurrent update. Please retry."


# Expired


class ClaimExpired(RewardsError):
    kind = ErrorKind.EXPIRED
    default_message = "Verification code has expired. Please register again."


# Dependency failures


class DependencyFailure(RewardsError):
    kind = ErrorKind.DEPENDENCY
    default_message = "A required service is unavailable"


class CaptchaUnavailable(DependencyFailure):
    default_message = "CAPTCHA service unavailable"


class NotificationFailed(DependencyFailure):
    default_message = "Failed to send verification email"


class PayoutFailed(DependencyFailure):
    default_message = "Payout request failed"


class RateLookupFailed(DependencyFailure):
    """Every rate source failed; ``errors`` holds one entry per attempt."""

    default_message = "Exchange rate lookup failed"

    def __init__(self, message: str | None = None, errors: list[BaseException] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(message)
