"""FX rates: providers, persistence and the resolving service."""

from meridian.fx.client import FrankfurterClient, MockRateProvider, RateProvider
from meridian.fx.service import ExchangeRateService, ResolutionContext, resolve_date
from meridian.fx.store import RateStore

__all__ = [
    "ExchangeRateService",
    "FrankfurterClient",
    "MockRateProvider",
    "RateProvider",
    "RateStore",
    "ResolutionContext",
    "resolve_date",
]
