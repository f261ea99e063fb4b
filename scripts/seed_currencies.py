"""CLI entry point for seeding the currency directory.

Usage:
    python -m scripts.seed_currencies [--db-url sqlite:///meridian.db] [--disable CODE ...]
"""

import argparse
import logging
import sys

from meridian import create_service, get_settings
from meridian.currencies import DEFAULT_CURRENCIES, DatabaseCurrencyDirectory

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the currencies table")
    parser.add_argument("--db-url", help="Database URL (defaults to MERIDIAN_DATABASE_URL)")
    parser.add_argument("--disable", nargs="+", default=[], help="Codes to mark disabled")
    args = parser.parse_args(argv)

    service = create_service(args.db_url or get_settings().database_url)
    service.connect()
    try:
        directory = DatabaseCurrencyDirectory(service)
        directory.ensure_schema()
        total = directory.seed(DEFAULT_CURRENCIES)
        for code in args.disable:
            directory.set_enabled(code, False)
            logger.info("Disabled %s", code.upper())
        logger.info("Done. %d currencies seeded.", total)
    finally:
        service.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
