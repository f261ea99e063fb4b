"""Exception hierarchy for rate resolution and conversion."""

from datetime import date


class MeridianError(Exception):
    """Base class for all meridian errors."""


class ConfigurationError(MeridianError, ValueError):
    """Settings are missing or inconsistent (e.g. an unsupported database URL)."""


class CurrencyUnresolvable(MeridianError):
    """A currency code does not exist in the directory or is disabled."""

    def __init__(self, code: str, reason: str = "unknown"):
        self.code = code
        self.reason = reason
        super().__init__(f"Currency {code!r} cannot be used: {reason}")


class RateNotFound(MeridianError):
    """No rate could be established from cache, store, provider or cross rates."""

    def __init__(self, from_code: str, to_code: str, on: date):
        self.from_code = from_code
        self.to_code = to_code
        self.on = on
        super().__init__(f"No exchange rate {from_code}->{to_code} for {on}")


class ProviderUnavailable(MeridianError):
    """The remote rate provider failed (network, HTTP status or payload)."""


class CacheUnavailable(MeridianError):
    """The cache backend could not be reached."""
