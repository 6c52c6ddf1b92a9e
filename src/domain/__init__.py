"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for the reward claim
workflow. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .captcha import CaptchaSessionBroker
from .exceptions import ErrorKind, RewardsError, StoreConflict
from .ports import (
    Campaign,
    CampaignRepository,
    CaptchaSessionStore,
    CaptchaVerifier,
    Claim,
    ClaimRepository,
    ClaimStatus,
    ConfirmOutcome,
    NotificationSender,
    PayoutProvider,
    PayoutReceipt,
    PayoutState,
    RateQuote,
    RateSource,
)
from .rates import RateResolver
from .rewards import RewardsService

__all__ = [
    "Campaign",
    "CampaignRepository",
    "CaptchaSessionBroker",
    "CaptchaSessionStore",
    "CaptchaVerifier",
    "Claim",
    "ClaimRepository",
    "ClaimStatus",
    "ConfirmOutcome",
    "ErrorKind",
    "NotificationSender",
    "PayoutProvider",
    "PayoutReceipt",
    "PayoutState",
    "RateQuote",
    "RateResolver",
    "RateSource",
    "RewardsError",
    "RewardsService",
    "StoreConflict",
]
