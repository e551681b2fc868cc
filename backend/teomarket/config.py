# backend/teomarket/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/teomarket.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///teomarket.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Fallback country when geolocation and addresses give nothing
    DEFAULT_COUNTRY_ISO = os.environ.get("DEFAULT_COUNTRY_ISO", "RO")

    # External collaborators
    VIES_API_URL = os.environ.get(
        "VIES_API_URL",
        "https://ec.europa.eu/taxation_customs/vies/rest-api/check-vat-number",
    )
    BNR_RATES_URL = os.environ.get("BNR_RATES_URL", "https://www.bnr.ro/nbrfxrates.xml")
    GEOLOCATION_URL = os.environ.get("GEOLOCATION_URL", "http://ip-api.com/json/{ip}")
    EXTERNAL_HTTP_TIMEOUT = float(os.environ.get("EXTERNAL_HTTP_TIMEOUT", "10"))

    # Salt for order/return codes; changing it changes every future code
    CODE_SALT = os.environ.get("CODE_SALT", "default-salt-change-in-production")

    # Pagination defaults
    ORDERS_PER_PAGE = int(os.environ.get("ORDERS_PER_PAGE", "5"))
    RETURNS_PER_PAGE = int(os.environ.get("RETURNS_PER_PAGE", "10"))
    ADMIN_RETURNS_PER_PAGE = int(os.environ.get("ADMIN_RETURNS_PER_PAGE", "50"))
