"""Rate source adapters - Exchange rate endpoints."""

from .rates_server import RatesServerClient, RateSourceError

__all__ = ["RateSourceError", "RatesServerClient"]
