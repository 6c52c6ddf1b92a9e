"""
Identity rules - email canonicalization and reward payload decoding.

The normalized email is the deduplication key for claims: lowercase,
address tag ("+anything") dropped and dots removed from the local part,
so that ``a.b+x@gmail.com`` and ``ab@gmail.com`` collide.
"""

import base64
import binascii
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from .exceptions import InvalidEmail, InvalidRewardData

REWARD_DATA_PREFIX = "edgerewards"


@dataclass(frozen=True)
class RewardData:
    wallet_address: str
    ticker: str


def is_valid_email(email: str) -> bool:
    """Syntax-only check; deliverability is proven by the confirmation code."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def require_valid_email(email: str) -> None:
    if not is_valid_email(email):
        raise InvalidEmail()


def normalize_email(email: str) -> str:
    lowered = email.strip().lower()
    local_part, _, domain = lowered.rpartition("@")
    if not local_part:
        # No "@": nothing to canonicalize beyond case
        return lowered
    local_part = local_part.split("+", 1)[0].replace(".", "")
    return f"{local_part}@{domain}"


def encode_reward_data(wallet_address: str, ticker: str) -> str:
    """Build the ``data`` parameter a wallet embeds in its claim link."""
    raw = f"{REWARD_DATA_PREFIX}|{wallet_address}|{ticker}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_reward_data(data: str) -> RewardData:
    """
    Decode base64(``edgerewards|<walletAddress>|<ticker>``).

    Raises:
        InvalidRewardData: With the specific reason the payload was rejected
    """
    try:
        decoded = base64.b64decode(data.strip(), validate=True).decode("utf-8").strip()
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise InvalidRewardData("Invalid data parameter: failed to decode base64") from None

    parts = decoded.split("|")
    if len(parts) != 3:
        raise InvalidRewardData("Invalid data parameter: expected 3 pipe-delimited fields")

    prefix, wallet_address, ticker = parts
    if prefix != REWARD_DATA_PREFIX:
        raise InvalidRewardData("Invalid data parameter: missing edgerewards prefix")
    if wallet_address == "":
        raise InvalidRewardData("Invalid data parameter: wallet address is empty")
    if ticker == "":
        raise InvalidRewardData("Invalid data parameter: ticker is empty")

    return RewardData(wallet_address=wallet_address, ticker=ticker.lower())
