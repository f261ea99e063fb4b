"""Exchange-rate providers: Frankfurter HTTP client and a fixed-table mock."""

import logging
import time
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable

import requests

from meridian.errors import ProviderUnavailable
from meridian.types import RateMap

logger = logging.getLogger(__name__)

FRANKFURTER_BASE_URL = "https://api.frankfurter.dev/v1"


class RateProvider(ABC):
    """Abstract interface for fetching FX rates."""

    @abstractmethod
    def get_rates(
        self,
        base: str,
        targets: Iterable[str] | None = None,
        on: date | None = None,
    ) -> RateMap:
        """Fetch rates for one base currency.

        Args:
            base: ISO code the rates are quoted against (1 base = rate target).
            targets: Codes to fetch. None or empty means everything available.
            on: Day the rates are valid for. None means the latest rates.

        Returns:
            Dict mapping target code to rate, e.g. {"EUR": Decimal("0.9")}.
            May be a subset of `targets`.

        Raises:
            ProviderUnavailable: the source could not be queried.
        """


class FrankfurterClient(RateProvider):
    """HTTP client for the Frankfurter API with optional exponential backoff."""

    def __init__(
        self,
        base_url: str = FRANKFURTER_BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 1,
        base_delay: float = 1.0,
        session: requests.Session | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._base_delay = base_delay
        self._http = session if session is not None else requests

    def get_rates(
        self,
        base: str,
        targets: Iterable[str] | None = None,
        on: date | None = None,
    ) -> RateMap:
        base = base.upper()
        wanted = [t.upper() for t in targets] if targets else []
        url = f"{self._base_url}/{on.isoformat() if on else 'latest'}"
        params = {"from": base}
        if wanted:
            params["to"] = ",".join(wanted)

        for attempt in range(self._max_retries):
            try:
                resp = self._http.get(url, params=params, timeout=self._timeout)
                resp.raise_for_status()
                return self._parse(resp.json(parse_float=Decimal), wanted)

            except (requests.RequestException, ValueError, KeyError, TypeError, InvalidOperation) as e:
                if attempt < self._max_retries - 1:
                    delay = self._base_delay * (2**attempt)
                    logger.warning(
                        "Frankfurter attempt %d failed: %s. Retrying in %.1fs...",
                        attempt + 1,
                        e,
                        delay,
                    )
                    time.sleep(delay)
                else:
                    logger.error("Frankfurter request %s %s failed: %s", url, params, e)
                    raise ProviderUnavailable(f"Frankfurter request failed: {e}") from e

    @staticmethod
    def _parse(payload, wanted: list[str]) -> RateMap:
        # {"base": "USD", "date": "2024-01-01", "rates": {"EUR": 0.9, ...}}
        rates = payload["rates"]
        if not isinstance(rates, dict):
            raise TypeError(f"'rates' is {type(rates).__name__}, expected an object")
        parsed = {code.upper(): Decimal(str(value)) for code, value in rates.items()}
        if wanted:
            parsed = {code: rate for code, rate in parsed.items() if code in wanted}
        return parsed


class MockRateProvider(RateProvider):
    """Fixed rates for testing and offline runs.

    Rates are quoted per USD; other bases are cross-computed from the table.
    Codes missing from the table are left out of the result.
    """

    MOCK_RATES: RateMap = {
        "USD": Decimal("1"),
        "EUR": Decimal("0.90"),
        "GBP": Decimal("0.79"),
        "JPY": Decimal("150.0"),
        "CHF": Decimal("0.88"),
        "CAD": Decimal("1.36"),
        "ILS": Decimal("3.21"),
    }

    def __init__(self, rates: RateMap | None = None):
        self._rates = dict(rates) if rates is not None else dict(self.MOCK_RATES)

    def get_rates(
        self,
        base: str,
        targets: Iterable[str] | None = None,
        on: date | None = None,
    ) -> RateMap:
        base = base.upper()
        base_rate = self._rates.get(base)
        if base_rate is None:
            return {}
        codes = [t.upper() for t in targets] if targets else list(self._rates)
        return {
            code: (self._rates[code] / base_rate).quantize(Decimal("0.000001"))
            for code in codes
            if code != base and code in self._rates
        }
