"""Payout adapters - Crypto withdrawal providers."""

from .nowpayments import NowPaymentsClient

__all__ = ["NowPaymentsClient"]
