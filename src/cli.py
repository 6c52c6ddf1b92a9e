"""
Operator CLI for claims parked at verified without a payout.

    edgerewards-admin list-stalled
    edgerewards-admin redrive <claim-id> [<claim-id> ...]
    edgerewards-admin redrive --all

Uses the same settings (environment / .env) as the API.
"""

import argparse
import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from src.api.dependencies import build_captcha_broker, build_rewards_service, get_notification_sender, open_pool
from src.config.settings import Settings, get_settings
from src.domain.exceptions import RewardsError
from src.domain.ports import PayoutState
from src.domain.rewards import RewardsService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@contextmanager
def open_service(settings: Settings) -> Iterator[RewardsService]:
    """Rewards service over a short-lived pool and HTTP client."""
    pool = open_pool(settings)
    client = httpx.Client(timeout=settings.http_timeout_seconds)
    try:
        broker = build_captcha_broker(pool, client, settings)
        yield build_rewards_service(pool, client, settings, broker, get_notification_sender(settings))
    finally:
        client.close()
        pool.close()


def cmd_list_stalled(args: argparse.Namespace) -> int:
    with open_service(get_settings()) as service:
        stalled = service.claims.list_stalled()

    for claim in stalled:
        print(
            f"{claim.id}\t{claim.payout_status or '-'}\t{claim.wallet_address}\t"
            f"{claim.ticker}\t{claim.created_at.isoformat()}"
        )
    print(f"{len(stalled)} stalled claim(s)")
    return 0


def cmd_redrive(args: argparse.Namespace) -> int:
    failures = 0
    with open_service(get_settings()) as service:
        claim_ids = [c.id for c in service.claims.list_stalled()] if args.all else args.claim_ids
        for claim_id in claim_ids:
            try:
                outcome = service.redrive_payout(claim_id)
            except RewardsError as e:
                logger.error("Re-drive of %s refused: %s", claim_id, e.message)
                failures += 1
                continue
            print(f"{claim_id}\t{outcome.payout_state.value}\t{outcome.claim.payout_status or '-'}")
            if outcome.payout_state != PayoutState.SENT:
                failures += 1
    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="edgerewards-admin",
        description="Inspect and settle reward claims whose payout did not go through.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    sub = p.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list-stalled", help="List verified claims without a payout.")
    ls.set_defaults(func=cmd_list_stalled)

    r = sub.add_parser("redrive", help="Retry the payout of parked claims.")
    r.add_argument("claim_ids", nargs="*", metavar="CLAIM_ID", help="Claim ids to settle.")
    r.add_argument("--all", action="store_true", help="Settle every stalled claim.")
    r.set_defaults(func=cmd_redrive)

    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd == "redrive" and bool(args.claim_ids) == args.all:
        parser.error("redrive takes either claim ids or --all")
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
