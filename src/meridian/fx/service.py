"""Exchange-rate resolution: cache -> store -> provider -> cross rate via base.

Rates are quoted as "1 base = rate target". Only the system base currency is
fetched from the provider; every other pair is derived from stored base rates.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Iterable

from meridian.cache import RateCache, make_cache_key
from meridian.currencies import Currency, CurrencyDirectory
from meridian.errors import CacheUnavailable, CurrencyUnresolvable, ProviderUnavailable, RateNotFound
from meridian.fx.client import RateProvider
from meridian.fx.store import RateStore
from meridian.types import DateLike, RateMap

logger = logging.getLogger(__name__)

DEFAULT_DECIMAL_PLACES = 2


@dataclass(frozen=True)
class ResolutionContext:
    """Per-request currency context, passed explicitly instead of read from a session."""

    base_currency: str
    display_currency: str
    locale: str | None = None


def resolve_date(on: DateLike, today: Callable[[], date] = date.today) -> date:
    """None or "latest" -> today; ISO strings are parsed; datetimes are truncated."""
    if on is None:
        return today()
    if isinstance(on, datetime):
        return on.date()
    if isinstance(on, date):
        return on
    if on.strip().lower() == "latest":
        return today()
    return date.fromisoformat(on.strip())


def to_amount(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 10.004 keep their shortest repr
    return Decimal(str(value))


class ExchangeRateService:
    """Resolves, converts and refreshes exchange rates.

    Every collaborator is injected; nothing is looked up from globals. The
    cache is advisory: a CacheUnavailable from it is logged and treated as a
    miss, so the store stays the single source of truth.
    """

    def __init__(
        self,
        store: RateStore,
        provider: RateProvider,
        currencies: CurrencyDirectory,
        cache: RateCache,
        base_currency: str = "USD",
        cache_ttl: int = 1800,
        default_targets: Iterable[str] = (),
        cache_prefix: str = "meridian.exchange_rate",
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._provider = provider
        self._currencies = currencies
        self._cache = cache
        self._base = base_currency.upper()
        self._cache_ttl = cache_ttl
        self._default_targets = [code.upper() for code in default_targets]
        self._prefix = cache_prefix
        self._today = today

    @property
    def base_currency(self) -> str:
        return self._base

    # Cache helpers ---------------------------------------------------------

    def _cache_get(self, key: str) -> Any | None:
        try:
            return self._cache.get(key)
        except CacheUnavailable as e:
            logger.warning("Cache read for %s bypassed: %s", key, e)
            return None

    def _cache_put(self, key: str, value: Any) -> None:
        try:
            self._cache.put(key, value, self._cache_ttl)
        except CacheUnavailable as e:
            logger.warning("Cache write for %s bypassed: %s", key, e)

    def _cache_forget(self, key: str) -> None:
        try:
            self._cache.forget(key)
        except CacheUnavailable as e:
            logger.warning("Cache invalidation for %s bypassed: %s", key, e)

    def _targets_key(self, base: str, on: date) -> str:
        return f"{self._prefix}.available_targets.{base}.{on.isoformat()}"

    # Refresh ---------------------------------------------------------------

    def fetch_and_store_rates_from_provider(
        self,
        base: str | None = None,
        targets: Iterable[str] | None = None,
        on: DateLike = None,
    ) -> RateMap | None:
        """Fetch rates for `base` from the provider and upsert them.

        Returns the provider's map verbatim, or None when nothing could be
        fetched (provider failure, empty or unusable answer, no usable targets).

        Raises:
            CurrencyUnresolvable: `base` is not in the currency directory.
        """
        base = (base or self._base).upper()
        rate_date = resolve_date(on, self._today)

        if self._currencies.find_by_code(base) is None:
            raise CurrencyUnresolvable(base, "base currency not in directory")

        wanted = [code.upper() for code in targets] if targets is not None else self._default_targets
        wanted = [code for code in dict.fromkeys(wanted) if code != base]
        valid = []
        for code in wanted:
            if self._currencies.find_by_code(code) is None:
                logger.warning("Unknown target currency %s skipped", code)
            else:
                valid.append(code)
        if wanted and not valid:
            logger.info("No valid target currencies to fetch against %s", base)
            return None

        try:
            fetched = self._provider.get_rates(base, valid or None, rate_date)
        except ProviderUnavailable as e:
            logger.error("Provider failed for %s on %s: %s", base, rate_date, e)
            return None

        if not fetched:
            logger.info("Provider returned no rates for %s on %s", base, rate_date)
            return None

        if not self._store.upsert_many(base, rate_date, fetched):
            logger.info("Provider returned no usable rates for %s on %s", base, rate_date)
            return None
        for target in fetched:
            target = str(target).strip().upper()
            self._cache_forget(make_cache_key(self._prefix, base, target, rate_date))
        self._cache_forget(self._targets_key(base, rate_date))
        return fetched

    def backfill(
        self,
        days: int,
        base: str | None = None,
        targets: Iterable[str] | None = None,
    ) -> int:
        """Fetch and store the last `days` days, oldest first.

        Returns the number of days for which at least one rate was stored.
        """
        targets = list(targets) if targets is not None else None
        end = self._today()
        stored_days = 0
        for offset in range(days - 1, -1, -1):
            day = end - timedelta(days=offset)
            if self.fetch_and_store_rates_from_provider(base, targets, day):
                stored_days += 1
        logger.info("Backfilled %d/%d days", stored_days, days)
        return stored_days

    # Resolution ------------------------------------------------------------

    def get_rate(self, from_code: str, to_code: str, on: DateLike = None) -> Decimal | None:
        """Return how many `to_code` units one `from_code` buys, or None.

        Order: identity, cache, store, provider (base currency only, never
        for future dates), then a cross rate through the base currency.
        """
        from_code = from_code.upper()
        to_code = to_code.upper()
        if from_code == to_code:
            return Decimal(1)

        rate_date = resolve_date(on, self._today)
        key = make_cache_key(self._prefix, from_code, to_code, rate_date)

        cached = self._cache_get(key)
        if cached is not None:
            return cached

        stored = self._store.get(from_code, to_code, rate_date)
        if stored is not None:
            self._cache_put(key, stored)
            return stored

        if from_code == self._base and rate_date <= self._today():
            if self.fetch_and_store_rates_from_provider(from_code, [to_code], rate_date):
                stored = self._store.get(from_code, to_code, rate_date)
                if stored is not None:
                    self._cache_put(key, stored)
                    return stored

        if from_code != self._base:
            rate = self._cross_rate(from_code, to_code, rate_date)
            if rate is not None:
                self._cache_put(key, rate)
                return rate

        logger.info("No exchange rate %s->%s on %s", from_code, to_code, rate_date)
        return None

    def _cross_rate(self, from_code: str, to_code: str, rate_date: date) -> Decimal | None:
        # 1 base = r_from `from`, 1 base = r_to `to`  =>  1 `from` = r_to / r_from `to`
        r_from = self.get_rate(self._base, from_code, rate_date)
        if not r_from:
            return None
        r_to = Decimal(1) if to_code == self._base else self.get_rate(self._base, to_code, rate_date)
        if not r_to:
            return None
        # Derived rates are never stored, so they keep full Decimal precision
        rate = r_to / r_from
        return rate if rate > 0 else None

    def convert(self, amount, from_code: str, to_code: str, on: DateLike = None) -> Decimal:
        """Convert `amount` and round it to the target currency's precision.

        Raises:
            CurrencyUnresolvable: either currency is unknown or disabled.
            RateNotFound: no rate could be established.
        """
        amount = to_amount(amount)
        if amount == 0:
            return Decimal(0)

        self._require_currency(from_code)
        target = self._require_currency(to_code)

        rate = self.get_rate(from_code, to_code, on)
        if rate is None:
            raise RateNotFound(from_code.upper(), to_code.upper(), resolve_date(on, self._today))

        places = target.decimal_places if target.decimal_places is not None else DEFAULT_DECIMAL_PLACES
        return (amount * rate).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)

    def convert_for_display(self, amount, context: ResolutionContext, on: DateLike = None) -> Decimal:
        """Convert an amount held in the context's base currency to its display currency."""
        return self.convert(amount, context.base_currency, context.display_currency, on)

    def format_amount(self, amount, currency_code: str) -> str:
        """Render e.g. "1,234.50 EUR" using the currency's decimal places."""
        currency = self._currencies.find_by_code(currency_code)
        places = currency.decimal_places if currency is not None else DEFAULT_DECIMAL_PLACES
        return f"{to_amount(amount):,.{places}f} {currency_code.upper()}"

    def _require_currency(self, code: str) -> Currency:
        currency = self._currencies.find_by_code(code)
        if currency is None:
            raise CurrencyUnresolvable(code.upper(), "not in directory")
        if not currency.enabled:
            raise CurrencyUnresolvable(code.upper(), "disabled")
        return currency

    def get_available_target_currencies(self, base: str | None = None, on: DateLike = None) -> list[str]:
        """Enabled currencies with a stored rate against `base` for the day."""
        base = (base or self._base).upper()
        rate_date = resolve_date(on, self._today)
        key = self._targets_key(base, rate_date)

        cached = self._cache_get(key)
        if cached is not None:
            return list(cached)

        enabled = self._currencies.enabled_codes()
        codes = [code for code in self._store.available_targets(base, rate_date) if code in enabled]
        self._cache_put(key, tuple(codes))
        return codes
