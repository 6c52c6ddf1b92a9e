"""
Rate resolver - USD to crypto conversion with a staggered failover race.

Rate sources are shuffled to spread load, then launched one at a time.
If the newest attempt has not finished within the stagger timeout the
next source is started alongside it; a failed attempt starts the next
source immediately. The first success wins and the rest are abandoned.
Worst-case latency is ``stagger * (N - 1)`` plus one call, and up to
N - 1 sources may be down at once.
"""

import logging
import random
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import TypeVar

from .exceptions import RateLookupFailed
from .ports import RateQuote, RateSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

CRYPTO_QUANTUM = Decimal("0.00000001")  # 8 fractional digits
DEFAULT_STAGGER_SECONDS = 5.0


def staggered_race(attempts: Sequence[Callable[[], T]], stagger_seconds: float) -> T:
    """
    Run ``attempts`` on a delay ladder and return the first successful result.

    Raises:
        RateLookupFailed: If every attempt raised; ``errors`` lists them in
            completion order
    """
    if not attempts:
        raise RateLookupFailed("No rate sources configured")

    executor = ThreadPoolExecutor(max_workers=len(attempts), thread_name_prefix="rate-race")
    remaining = list(attempts)
    pending: set[Future] = set()
    errors: list[BaseException] = []

    try:
        while remaining or pending:
            if remaining:
                pending.add(executor.submit(remaining.pop(0)))

            # The last launched attempt gets no stagger: wait for the outcome
            timeout = stagger_seconds if remaining else None
            done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)

            for future in done:
                error = future.exception()
                if error is None:
                    return future.result()
                errors.append(error)
    finally:
        for future in pending:
            future.cancel()
        # Abandon losers: in-flight calls finish on their own timeouts
        executor.shutdown(wait=False, cancel_futures=True)

    raise RateLookupFailed(
        f"All {len(attempts)} rate source(s) failed: " + "; ".join(str(e) for e in errors),
        errors=errors,
    )


def convert_usd(usd_amount: Decimal, exchange_rate: Decimal) -> Decimal:
    """USD amount divided by the USD price, truncated to 8 fractional digits."""
    with localcontext() as ctx:
        ctx.prec = 50
        return (usd_amount / exchange_rate).quantize(CRYPTO_QUANTUM, rounding=ROUND_DOWN)


@dataclass
class RateResolver:
    sources: Sequence[RateSource]
    stagger_seconds: float = DEFAULT_STAGGER_SECONDS
    shuffle: Callable[[list], None] = field(default=random.shuffle)

    def resolve_rate(self, currency_plugin_id: str, usd_amount: Decimal) -> RateQuote:
        """
        Fetch the current USD rate for a currency and convert ``usd_amount``.

        Raises:
            RateLookupFailed: If no source produced a usable rate
        """
        order = list(self.sources)
        self.shuffle(order)

        attempts = [self._attempt(source, currency_plugin_id) for source in order]
        exchange_rate = staggered_race(attempts, self.stagger_seconds)

        crypto_amount = convert_usd(usd_amount, exchange_rate)
        if crypto_amount <= 0:
            raise RateLookupFailed(
                f"{usd_amount} USD at rate {exchange_rate} is below the smallest payable amount"
            )
        logger.info(
            "Rate lookup: %s USD / %s = %s %s",
            usd_amount,
            exchange_rate,
            crypto_amount,
            currency_plugin_id,
        )
        return RateQuote(crypto_amount=crypto_amount, exchange_rate=exchange_rate)

    @staticmethod
    def _attempt(source: RateSource, currency_plugin_id: str) -> Callable[[], Decimal]:
        def run() -> Decimal:
            try:
                rate = source.fetch_usd_rate(currency_plugin_id)
                if not rate.is_finite() or rate <= 0:
                    raise ValueError(f"Rate source {source.name} returned an unusable rate: {rate}")
            except Exception:
                logger.warning("Rate source %s failed", source.name, exc_info=True)
                raise
            return rate

        return run
