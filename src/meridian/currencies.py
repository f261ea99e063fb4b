"""Currency directory: code -> enabled flag and decimal precision."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from meridian.service import DatabaseService

logger = logging.getLogger(__name__)

CURRENCIES_DDL = """
CREATE TABLE IF NOT EXISTS currencies (
    code            VARCHAR(3)   NOT NULL PRIMARY KEY,
    name            VARCHAR(100) NOT NULL,
    symbol          VARCHAR(10),
    decimal_places  INTEGER      NOT NULL DEFAULT 2,
    enabled         BOOLEAN      NOT NULL DEFAULT TRUE
);
"""

CURRENCIES_TABLE = "currencies"
CURRENCIES_COLUMNS = ["code", "name", "symbol", "decimal_places", "enabled"]
CURRENCIES_CONFLICT_COLUMNS = ["code"]


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    symbol: str | None = None
    decimal_places: int = 2
    enabled: bool = True

    def as_row(self) -> tuple:
        return (self.code, self.name, self.symbol, self.decimal_places, self.enabled)


DEFAULT_CURRENCIES: tuple[Currency, ...] = (
    Currency("AUD", "Australian Dollar", "$"),
    Currency("BGN", "Bulgarian Lev", "лв"),
    Currency("BRL", "Brazilian Real", "R$"),
    Currency("CAD", "Canadian Dollar", "$"),
    Currency("CHF", "Swiss Franc", "CHF"),
    Currency("CNY", "Chinese Yuan", "¥"),
    Currency("CZK", "Czech Koruna", "Kč"),
    Currency("DKK", "Danish Krone", "kr"),
    Currency("EUR", "Euro", "€"),
    Currency("GBP", "British Pound", "£"),
    Currency("HKD", "Hong Kong Dollar", "$"),
    Currency("HUF", "Hungarian Forint", "Ft"),
    Currency("IDR", "Indonesian Rupiah", "Rp"),
    Currency("ILS", "Israeli New Shekel", "₪"),
    Currency("INR", "Indian Rupee", "₹"),
    Currency("ISK", "Icelandic Krona", "kr", decimal_places=0),
    Currency("JPY", "Japanese Yen", "¥", decimal_places=0),
    Currency("KRW", "South Korean Won", "₩", decimal_places=0),
    Currency("MXN", "Mexican Peso", "$"),
    Currency("MYR", "Malaysian Ringgit", "RM"),
    Currency("NOK", "Norwegian Krone", "kr"),
    Currency("NZD", "New Zealand Dollar", "$"),
    Currency("PHP", "Philippine Peso", "₱"),
    Currency("PLN", "Polish Zloty", "zł"),
    Currency("RON", "Romanian Leu", "lei"),
    Currency("SEK", "Swedish Krona", "kr"),
    Currency("SGD", "Singapore Dollar", "$"),
    Currency("THB", "Thai Baht", "฿"),
    Currency("TRY", "Turkish Lira", "₺"),
    Currency("USD", "US Dollar", "$"),
    Currency("ZAR", "South African Rand", "R"),
)


class CurrencyDirectory(ABC):
    """Read-only lookup of currencies by ISO 4217 code."""

    @abstractmethod
    def find_by_code(self, code: str) -> Currency | None:
        """Return the currency for code (case-insensitive), or None."""

    @abstractmethod
    def enabled_codes(self) -> set[str]:
        """Return the codes of all enabled currencies."""


class DatabaseCurrencyDirectory(CurrencyDirectory):
    """Currency directory backed by the `currencies` table."""

    def __init__(self, service: DatabaseService):
        self._db = service

    def ensure_schema(self) -> None:
        self._db.execute_ddl(CURRENCIES_DDL)

    def seed(self, currencies=DEFAULT_CURRENCIES) -> int:
        """Upsert currencies by code. Returns the number of rows written."""
        rows = [currency.as_row() for currency in currencies]
        with self._db.transaction():
            self._db.upsert(
                CURRENCIES_TABLE, CURRENCIES_COLUMNS, rows, CURRENCIES_CONFLICT_COLUMNS
            )
        logger.info("Seeded %d currencies", len(rows))
        return len(rows)

    def set_enabled(self, code: str, enabled: bool) -> None:
        p = self._db.placeholder
        with self._db.transaction():
            self._db.execute(
                f"UPDATE {CURRENCIES_TABLE} SET enabled = {p} WHERE code = {p}",
                (enabled, code.upper()),
            )

    def find_by_code(self, code: str) -> Currency | None:
        p = self._db.placeholder
        with self._db.transaction():
            rows = self._db.execute(
                f"SELECT {', '.join(CURRENCIES_COLUMNS)} FROM {CURRENCIES_TABLE} WHERE code = {p}",
                (code.strip().upper(),),
            )
        if not rows:
            return None
        row = rows[0]
        return Currency(
            code=row["code"],
            name=row["name"],
            symbol=row["symbol"],
            decimal_places=int(row["decimal_places"]),
            enabled=bool(row["enabled"]),
        )

    def enabled_codes(self) -> set[str]:
        with self._db.transaction():
            rows = self._db.execute(f"SELECT code, enabled FROM {CURRENCIES_TABLE}")
        return {row["code"] for row in rows if row["enabled"]}
