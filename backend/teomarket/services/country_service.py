# Overview: Country detection for VAT and the country/state/city lookups used by address forms.

"""
Country Detection

Priority:
1. preferred address of the customer
2. newest address of the customer
3. IP geolocation (skipped for private/loopback addresses)
4. DEFAULT_COUNTRY_ISO from config

The default country must exist; a database without it is a seeding error.
"""

from __future__ import annotations

import ipaddress

import httpx
from flask import current_app

from ..extensions import db
from ..models import Address, City, Country, State
from ..validation import ConfigurationError


def is_local_ip(ip: str | None) -> bool:
    if not ip:
        return True
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return address.is_private or address.is_loopback or address.is_link_local or address.is_reserved


def country_from_addresses(customer_id: int) -> int | None:
    preferred = db.session.query(Address).filter(
        Address.customer_id == customer_id,
        Address.is_preferred.is_(True),
    ).first()
    if preferred is not None and preferred.country_id:
        return preferred.country_id

    newest = db.session.query(Address).filter(
        Address.customer_id == customer_id,
    ).order_by(Address.created_at.desc(), Address.id.desc()).first()
    if newest is not None and newest.country_id:
        return newest.country_id
    return None


def country_from_ip(ip: str | None, client: httpx.Client | None = None) -> int | None:
    """Geolocate ip. Lookup failures return None; they never block pricing."""
    if is_local_ip(ip):
        return None

    url = current_app.config["GEOLOCATION_URL"].format(ip=ip)
    owns_client = client is None
    client = client or httpx.Client(timeout=current_app.config.get("EXTERNAL_HTTP_TIMEOUT", 10))
    try:
        response = client.get(url, params={"fields": "status,countryCode,message"})
        data = response.json() if response.status_code == 200 else {}
    except (httpx.HTTPError, ValueError) as e:
        current_app.logger.warning("geolocation.failed ip=%s error=%s", ip, e)
        return None
    finally:
        if owns_client:
            client.close()

    if data.get("status") != "success" or not data.get("countryCode"):
        return None

    country = db.session.query(Country).filter_by(
        iso_code_2=data["countryCode"], is_active=True
    ).first()
    return country.id if country else None


def default_country_id() -> int:
    iso = current_app.config.get("DEFAULT_COUNTRY_ISO", "RO")
    country_id = db.session.query(Country.id).filter_by(iso_code_2=iso).scalar()
    if country_id is None:
        raise ConfigurationError(f"Default country {iso} is not configured")
    return country_id


def get_country_id(customer=None, ip: str | None = None, client: httpx.Client | None = None) -> int:
    if customer is not None:
        country_id = country_from_addresses(customer.id)
        if country_id is not None:
            return country_id

    country_id = country_from_ip(ip, client=client)
    if country_id is not None:
        return country_id

    return default_country_id()


def detected_country(ip: str | None, client: httpx.Client | None = None) -> Country | None:
    """
    Suggestion for address forms: IP only, then the default country, then
    the first active country.
    """
    country_id = country_from_ip(ip, client=client)
    if country_id is not None:
        return db.session.get(Country, country_id)

    iso = current_app.config.get("DEFAULT_COUNTRY_ISO", "RO")
    country = db.session.query(Country).filter_by(iso_code_2=iso, is_active=True).first()
    if country is not None:
        return country
    return db.session.query(Country).filter_by(is_active=True).order_by(Country.name.asc()).first()


def list_countries() -> list[Country]:
    return db.session.query(Country).filter_by(is_active=True).order_by(Country.name.asc()).all()


def list_states(country_id: int) -> list[dict]:
    """States of a country; duplicate (name, code) rows collapse to the lowest id."""
    rows = db.session.query(
        db.func.min(State.id), State.name, State.code,
    ).filter(
        State.country_id == country_id,
    ).group_by(State.name, State.code).order_by(State.name.asc()).all()
    return [{"id": row[0], "name": row[1], "code": row[2]} for row in rows]


def list_cities(state_id: int) -> list[dict]:
    cities = db.session.query(City).filter(
        City.state_id == state_id,
    ).order_by(City.name.asc()).all()
    return [city.to_dict() for city in cities]
