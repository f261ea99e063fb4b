"""Tests for the rate providers."""

import json
from datetime import date
from decimal import Decimal

import pytest
import requests

from meridian.errors import ProviderUnavailable
from meridian.fx.client import FrankfurterClient, MockRateProvider


def _response(status: int, body) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = "https://frankfurter.test"
    resp._content = body if isinstance(body, bytes) else json.dumps(body).encode()
    return resp


class FakeSession:
    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("meridian.fx.client.time.sleep", lambda _: None)


class TestMockProvider:
    def test_fetch_rates(self):
        provider = MockRateProvider()
        rates = provider.get_rates("USD", ["EUR", "GBP", "JPY"])
        assert rates == {"EUR": Decimal("0.9"), "GBP": Decimal("0.79"), "JPY": Decimal("150")}

    def test_unknown_currency_is_omitted(self):
        rates = MockRateProvider().get_rates("USD", ["XYZ", "EUR"])
        assert set(rates) == {"EUR"}

    def test_all_targets_exclude_base(self):
        rates = MockRateProvider().get_rates("USD")
        assert "USD" not in rates
        assert "ILS" in rates

    def test_cross_computed_for_other_base(self):
        rates = MockRateProvider().get_rates("EUR", ["USD"])
        assert rates["USD"] == Decimal("1.111111")

    def test_unknown_base_returns_nothing(self):
        assert MockRateProvider().get_rates("XYZ", ["EUR"]) == {}


class TestFrankfurterClient:
    def test_latest_request_shape(self):
        session = FakeSession(
            _response(200, {"base": "USD", "date": "2024-01-10", "rates": {"EUR": 0.9123, "GBP": 0.79}})
        )
        client = FrankfurterClient("https://frankfurter.test/v1/", timeout=3, session=session)

        rates = client.get_rates("usd", ["eur", "gbp"])

        assert rates == {"EUR": Decimal("0.9123"), "GBP": Decimal("0.79")}
        assert session.calls == [
            {
                "url": "https://frankfurter.test/v1/latest",
                "params": {"from": "USD", "to": "EUR,GBP"},
                "timeout": 3,
            }
        ]

    def test_historical_date_and_all_targets(self):
        session = FakeSession(_response(200, {"base": "USD", "date": "2024-01-01", "rates": {"JPY": 150}}))
        client = FrankfurterClient("https://frankfurter.test/v1", session=session)

        rates = client.get_rates("USD", None, date(2024, 1, 1))

        assert rates == {"JPY": Decimal("150")}
        assert session.calls[0]["url"].endswith("/2024-01-01")
        assert "to" not in session.calls[0]["params"]

    def test_result_restricted_to_requested_targets(self):
        session = FakeSession(_response(200, {"rates": {"EUR": 0.9, "CHF": 0.88}}))
        rates = FrankfurterClient(session=session).get_rates("USD", ["EUR"])
        assert rates == {"EUR": Decimal("0.9")}

    def test_decimal_precision_is_kept(self):
        session = FakeSession(_response(200, {"rates": {"EUR": 0.123456789}}))
        rates = FrankfurterClient(session=session).get_rates("USD", ["EUR"])
        assert rates["EUR"] == Decimal("0.123456789")

    @pytest.mark.parametrize(
        "outcome",
        [
            _response(500, {"message": "boom"}),
            _response(200, b"<html>not json</html>"),
            _response(200, {"base": "USD"}),
            _response(200, {"rates": ["EUR", 0.9]}),
            requests.Timeout("read timed out"),
            requests.ConnectionError("refused"),
        ],
    )
    def test_failures_raise_provider_unavailable(self, outcome):
        client = FrankfurterClient(session=FakeSession(outcome))
        with pytest.raises(ProviderUnavailable):
            client.get_rates("USD", ["EUR"])

    def test_retries_with_backoff_then_succeeds(self):
        session = FakeSession(
            requests.ConnectionError("refused"),
            _response(503, {}),
            _response(200, {"rates": {"EUR": 0.9}}),
        )
        client = FrankfurterClient(session=session, max_retries=3, base_delay=0.01)

        assert client.get_rates("USD", ["EUR"]) == {"EUR": Decimal("0.9")}
        assert len(session.calls) == 3

    def test_single_attempt_by_default(self):
        session = FakeSession(requests.ConnectionError("refused"), _response(200, {"rates": {}}))
        with pytest.raises(ProviderUnavailable):
            FrankfurterClient(session=session).get_rates("USD", ["EUR"])
        assert len(session.calls) == 1
