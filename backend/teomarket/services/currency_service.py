# Overview: BNR exchange-rate feed client and currency table maintenance.

"""
Exchange Rates (BNR)

The National Bank of Romania publishes daily reference rates as XML:

    <DataSet xmlns="http://www.bnr.ro/xsd">
      <Body><Cube date="2026-10-16">
        <Rate currency="EUR">4.9764</Rate>
        <Rate currency="HUF" multiplier="100">1.3102</Rate>
      </Cube></Body>
    </DataSet>

A rate is RON per `multiplier` units, so it is divided by the multiplier.
RON is the base currency and is always stored with value 1.0000.

Rate lookups never fall back to a default: a missing rate is a
configuration problem for the caller to surface.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
import xml.etree.ElementTree as ET

import httpx
from flask import current_app

from ..extensions import db
from ..models import Currency
from ..validation import ConfigurationError
from .concurrency import lock_for_update


BASE_CURRENCY = "RON"
BNR_NAMESPACE = "{http://www.bnr.ro/xsd}"
RATE_PRECISION = Decimal("0.0001")


class RateFeedError(Exception):
    """Raised when the rate feed cannot be fetched or parsed."""
    pass


def _client() -> httpx.Client:
    return httpx.Client(timeout=current_app.config.get("EXTERNAL_HTTP_TIMEOUT", 10))


def parse_bnr_rates(body: str) -> tuple[str | None, dict[str, Decimal]]:
    """Return (publication_date, {code: RON per unit})."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise RateFeedError(f"Failed to parse XML response from BNR: {e}")

    cube = None
    for element in root.iter(f"{BNR_NAMESPACE}Cube"):
        if element.get("date"):
            cube = element
            break
    if cube is None:
        raise RateFeedError("No exchange rate data found in BNR response")

    rates: dict[str, Decimal] = {}
    for rate in cube.findall(f"{BNR_NAMESPACE}Rate"):
        code = rate.get("currency")
        try:
            value = Decimal((rate.text or "").strip())
            multiplier = int(rate.get("multiplier") or 1)
        except (InvalidOperation, ValueError):
            continue
        if code and multiplier > 0:
            rates[code] = (value / multiplier).quantize(RATE_PRECISION)
    return cube.get("date"), rates


def fetch_rates(client: httpx.Client | None = None) -> tuple[str | None, dict[str, Decimal]]:
    url = current_app.config["BNR_RATES_URL"]
    owns_client = client is None
    client = client or _client()
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        raise RateFeedError(f"Failed to fetch exchange rates from BNR: {e}")
    finally:
        if owns_client:
            client.close()

    if response.status_code != 200:
        raise RateFeedError(f"Failed to fetch exchange rates from BNR. Status: {response.status_code}")
    return parse_bnr_rates(response.text)


def get_latest_rate(currency_code: str, client: httpx.Client | None = None) -> Decimal | None:
    """RON per unit of currency_code from the live feed, or None if unavailable."""
    if currency_code == BASE_CURRENCY:
        return Decimal("1.0000")
    try:
        _, rates = fetch_rates(client)
    except RateFeedError as e:
        current_app.logger.warning("currency.rate.unavailable code=%s error=%s", currency_code, e)
        return None
    return rates.get(currency_code)


def update_exchange_rates(client: httpx.Client | None = None) -> dict:
    """
    Refresh Currency.value for every known currency present in the feed.

    Unknown feed currencies are skipped. RON is (re)created at 1.0000.
    """
    date, rates = fetch_rates(client)

    updated = []
    for code, value in sorted(rates.items()):
        if code == BASE_CURRENCY:
            continue
        currency = db.session.query(Currency).filter_by(code=code).first()
        if currency is None:
            current_app.logger.debug("currency.update.skipped code=%s", code)
            continue
        currency.value = value
        updated.append(code)

    ron = db.session.query(Currency).filter_by(code=BASE_CURRENCY).first()
    if ron is None:
        ron = Currency(code=BASE_CURRENCY, symbol_right=" lei", is_active=True)
        db.session.add(ron)
    ron.value = Decimal("1.0000")

    db.session.commit()
    current_app.logger.info("currency.rates.updated date=%s count=%s", date, len(updated))

    return {"date": date, "updated_count": len(updated), "updated": updated}


def get_active_currency(code: str) -> Currency:
    currency = db.session.query(Currency).filter_by(code=code, is_active=True).first()
    if currency is None:
        raise ConfigurationError(f"Currency {code} is not configured")
    return currency


def lock_currency(code: str) -> Currency:
    """Active currency row, locked for the current transaction."""
    currency = lock_for_update(
        db.session.query(Currency).filter_by(code=code, is_active=True)
    ).first()
    if currency is None:
        raise ConfigurationError(f"Currency {code} is not configured")
    return currency


def frozen_exchange_rate(currency: Currency) -> Decimal:
    """Rate to copy onto an order. RON is exactly 1; non-positive rates are fatal."""
    if currency.code == BASE_CURRENCY:
        return Decimal("1.0000")
    rate = Decimal(currency.value if currency.value is not None else 0)
    if rate <= 0:
        raise ConfigurationError(
            f"Invalid exchange rate for currency: {currency.code}. Currency value must be positive."
        )
    return rate.quantize(RATE_PRECISION)
