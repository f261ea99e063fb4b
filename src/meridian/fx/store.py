"""Exchange-rate persistence and schema."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from meridian.service import DatabaseService
from meridian.types import RateMap

logger = logging.getLogger(__name__)

RATE_QUANTUM = Decimal("0.000001")

EXCHANGE_RATES_DDL = """
CREATE TABLE IF NOT EXISTS exchange_rates (
    base_currency_code    CHAR(3)       NOT NULL,
    target_currency_code  CHAR(3)       NOT NULL,
    rate                  DECIMAL(15,6) NOT NULL CHECK (rate > 0),
    rate_date             DATE          NOT NULL,
    created_at            TIMESTAMP     DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (base_currency_code, target_currency_code, rate_date),
    CHECK (base_currency_code <> target_currency_code)
);
CREATE INDEX IF NOT EXISTS idx_exchange_rates_base ON exchange_rates(base_currency_code);
CREATE INDEX IF NOT EXISTS idx_exchange_rates_target ON exchange_rates(target_currency_code);
CREATE INDEX IF NOT EXISTS idx_exchange_rates_date ON exchange_rates(rate_date);
"""

RATES_TABLE = "exchange_rates"
RATES_COLUMNS = ["base_currency_code", "target_currency_code", "rate_date", "rate"]
RATES_CONFLICT_COLUMNS = ["base_currency_code", "target_currency_code", "rate_date"]


def to_rate(value) -> Decimal:
    """Coerce a numeric value to a DECIMAL(15,6) rate."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(RATE_QUANTUM)


def parse_rate(value) -> Decimal | None:
    """Like to_rate, but None for values that are not finite numbers."""
    try:
        rate = to_rate(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return rate if rate.is_finite() else None


class RateStore:
    """Point lookups and natural-key upserts on the exchange_rates table."""

    def __init__(self, service: DatabaseService):
        self._db = service

    def ensure_schema(self) -> None:
        """Create the exchange_rates table and its indexes if they don't exist."""
        self._db.execute_ddl(EXCHANGE_RATES_DDL)

    def get(self, base: str, target: str, on: date) -> Decimal | None:
        p = self._db.placeholder
        with self._db.transaction():
            rows = self._db.execute(
                f"SELECT rate FROM {RATES_TABLE} "
                f"WHERE base_currency_code = {p} AND target_currency_code = {p} AND rate_date = {p}",
                (base, target, on.isoformat()),
            )
        if not rows:
            return None
        return to_rate(rows[0]["rate"])

    def upsert(self, base: str, target: str, on: date, rate) -> None:
        self.upsert_many(base, on, {target: rate})

    def upsert_many(self, base: str, on: date, rates: RateMap) -> int:
        """Upsert rates for one base and day.

        Idempotent: ON CONFLICT (base, target, date) DO UPDATE, last write wins.
        Target codes are upper-cased. Same-currency rows and rates that are
        not positive numbers are skipped. Returns rows written.
        """
        rows = []
        for target, value in rates.items():
            target = str(target).strip().upper()
            if target == base:
                continue
            rate = parse_rate(value)
            if rate is None or rate <= 0:
                logger.warning("Skipping unusable rate %s->%s on %s: %r", base, target, on, value)
                continue
            rows.append((base, target, on.isoformat(), rate))

        with self._db.transaction():
            self._db.upsert(RATES_TABLE, RATES_COLUMNS, rows, RATES_CONFLICT_COLUMNS)
        logger.info("Stored %d %s rates for %s", len(rows), base, on)
        return len(rows)

    def available_targets(self, base: str, on: date) -> list[str]:
        p = self._db.placeholder
        with self._db.transaction():
            rows = self._db.execute(
                f"SELECT DISTINCT target_currency_code FROM {RATES_TABLE} "
                f"WHERE base_currency_code = {p} AND rate_date = {p} "
                "ORDER BY target_currency_code",
                (base, on.isoformat()),
            )
        return [row["target_currency_code"] for row in rows]
