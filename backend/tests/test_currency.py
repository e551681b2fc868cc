# Overview: Pytest coverage for the BNR rate feed parser, rate refresh and frozen exchange rates.

from decimal import Decimal

import httpx
import pytest

from teomarket.models import Currency
from teomarket.services import currency_service
from teomarket.services.currency_service import RateFeedError
from teomarket.validation import ConfigurationError


BNR_XML = """<?xml version="1.0" encoding="utf-8"?>
<DataSet xmlns="http://www.bnr.ro/xsd">
  <Header><Publisher>National Bank of Romania</Publisher></Header>
  <Body>
    <Subject>Reference rates</Subject>
    <OrigCurrency>RON</OrigCurrency>
    <Cube date="2026-10-16">
      <Rate currency="EUR">4.9764</Rate>
      <Rate currency="USD">4.2811</Rate>
      <Rate currency="HUF" multiplier="100">1.3102</Rate>
      <Rate currency="XYZ">n/a</Rate>
    </Cube>
  </Body>
</DataSet>
"""


def _client(status=200, body=BNR_XML):
    def handler(request):
        return httpx.Response(status, text=body)
    return httpx.Client(transport=httpx.MockTransport(handler))


def _failing_client():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestParseRates:

    def test_rates_and_date(self):
        date, rates = currency_service.parse_bnr_rates(BNR_XML)
        assert date == "2026-10-16"
        assert rates["EUR"] == Decimal("4.9764")
        assert rates["USD"] == Decimal("4.2811")

    def test_multiplier_divides_the_rate(self):
        _, rates = currency_service.parse_bnr_rates(BNR_XML)
        assert rates["HUF"] == Decimal("0.0131")

    def test_unparseable_values_are_skipped(self):
        _, rates = currency_service.parse_bnr_rates(BNR_XML)
        assert "XYZ" not in rates

    def test_invalid_xml(self):
        with pytest.raises(RateFeedError):
            currency_service.parse_bnr_rates("<DataSet><Body>")

    def test_missing_cube(self):
        with pytest.raises(RateFeedError) as exc:
            currency_service.parse_bnr_rates('<DataSet xmlns="http://www.bnr.ro/xsd"><Body/></DataSet>')
        assert "No exchange rate data" in str(exc.value)


class TestUpdateRates:

    def test_updates_known_currencies_only(self, db_session, currencies):
        result = currency_service.update_exchange_rates(_client())

        assert result == {"date": "2026-10-16", "updated_count": 1, "updated": ["EUR"]}
        db_session.refresh(currencies["EUR"])
        assert currencies["EUR"].value == Decimal("4.9764")
        assert db_session.query(Currency).filter_by(code="USD").first() is None

    def test_creates_ron_when_missing(self, db_session):
        currency_service.update_exchange_rates(_client())
        ron = db_session.query(Currency).filter_by(code="RON").one()
        assert ron.value == Decimal("1.0000")

    def test_non_200_response(self, db_session, currencies):
        with pytest.raises(RateFeedError) as exc:
            currency_service.update_exchange_rates(_client(status=503))
        assert "Status: 503" in str(exc.value)

        db_session.refresh(currencies["EUR"])
        assert currencies["EUR"].value == Decimal("5.0000")

    def test_connection_error(self, db_session):
        with pytest.raises(RateFeedError):
            currency_service.update_exchange_rates(_failing_client())


class TestLatestRate:

    def test_from_feed(self, app):
        assert currency_service.get_latest_rate("EUR", _client()) == Decimal("4.9764")

    def test_ron_needs_no_feed(self, app):
        assert currency_service.get_latest_rate("RON", _failing_client()) == Decimal("1.0000")

    def test_unavailable_feed_gives_none(self, app):
        assert currency_service.get_latest_rate("EUR", _failing_client()) is None

    def test_unknown_code_gives_none(self, app):
        assert currency_service.get_latest_rate("JPY", _client()) is None


class TestFrozenRate:

    def test_ron_is_exactly_one(self, currencies):
        currencies["RON"].value = Decimal("1.2345")
        assert currency_service.frozen_exchange_rate(currencies["RON"]) == Decimal("1.0000")

    def test_foreign_rate(self, currencies):
        assert currency_service.frozen_exchange_rate(currencies["EUR"]) == Decimal("5.0000")

    @pytest.mark.parametrize("value", [Decimal("0"), Decimal("-1.5")])
    def test_non_positive_rate(self, db_session, currencies, value):
        currencies["EUR"].value = value
        with pytest.raises(ConfigurationError) as exc:
            currency_service.frozen_exchange_rate(currencies["EUR"])
        assert str(exc.value) == "Invalid exchange rate for currency: EUR. Currency value must be positive."

    def test_inactive_currency_is_not_configured(self, db_session, currencies):
        currencies["EUR"].is_active = False
        db_session.commit()
        with pytest.raises(ConfigurationError):
            currency_service.get_active_currency("EUR")
