"""CLI entry point for refreshing exchange rates.

Usage:
    python -m scripts.fetch_rates [--db-url sqlite:///meridian.db] [--base USD]
        [--targets EUR GBP JPY] [--date 2024-01-01 | --days [N]] [--mock] [--retries 3]

Exits 0 when at least one rate was stored, 1 otherwise.
"""

import argparse
import logging
import sys

from meridian import build_exchange_rate_service, create_service, get_settings
from meridian.currencies import DatabaseCurrencyDirectory
from meridian.errors import ConfigurationError, MeridianError
from meridian.fx.client import FrankfurterClient, MockRateProvider
from meridian.fx.store import RateStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch and store exchange rates")
    parser.add_argument("--db-url", help="Database URL (defaults to MERIDIAN_DATABASE_URL)")
    parser.add_argument("--base", help="Base currency code (defaults to the system base)")
    parser.add_argument("--targets", nargs="+", help="Target currency codes")
    when = parser.add_mutually_exclusive_group()
    when.add_argument("--date", help="Date in YYYY-MM-DD format, or 'latest'")
    when.add_argument(
        "--days",
        type=int,
        nargs="?",
        const=0,
        help="Backfill this many past days, ending today (no value: MERIDIAN_HISTORICAL_DAYS)",
    )
    parser.add_argument("--mock", action="store_true", help="Use the fixed-rate mock provider")
    parser.add_argument("--retries", type=int, help="Provider attempts per request")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    if args.mock:
        provider = MockRateProvider()
    else:
        provider = FrankfurterClient(
            base_url=settings.provider_base_url,
            timeout=settings.http_timeout_seconds,
            max_retries=args.retries or settings.http_max_retries,
            base_delay=settings.http_retry_base_delay,
        )

    try:
        service = create_service(args.db_url or settings.database_url)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1
    service.connect()
    try:
        RateStore(service).ensure_schema()
        DatabaseCurrencyDirectory(service).ensure_schema()
        rates_service = build_exchange_rate_service(service, settings, provider=provider)

        if args.days is not None:
            days = args.days or settings.historical_days
            stored_days = rates_service.backfill(days, args.base, args.targets)
            ok = stored_days > 0
        else:
            rates = rates_service.fetch_and_store_rates_from_provider(args.base, args.targets, args.date)
            if rates:
                logger.info("Fetched %d rates: %s", len(rates), rates)
            ok = bool(rates)
    except (MeridianError, ValueError) as e:
        logger.error("Refresh aborted: %s", e)
        return 1
    finally:
        service.close()

    if not ok:
        logger.error("Failed to update exchange rates or no rates needed updating.")
        return 1
    logger.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
