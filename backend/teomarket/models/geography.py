from __future__ import annotations

from ..extensions import db
from ..money import bps_to_percent
from ..time_utils import utcnow, format_datetime


class Country(db.Model):
    __tablename__ = "countries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    iso_code_2 = db.Column(db.String(2), nullable=False, unique=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Country id={self.id} iso={self.iso_code_2!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "iso_code_2": self.iso_code_2,
        }


class State(db.Model):
    __tablename__ = "states"
    __table_args__ = (
        db.Index("ix_states_country_name", "country_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(8), nullable=True)

    country = db.relationship("Country", backref=db.backref("states", lazy=True))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "code": self.code}


class City(db.Model):
    __tablename__ = "cities"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    state_id = db.Column(db.Integer, db.ForeignKey("states.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    state = db.relationship("State", backref=db.backref("cities", lazy=True))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class VatRate(db.Model):
    """
    Per-country VAT rate. Copied into orders at checkout and never
    re-read for existing orders.
    """
    __tablename__ = "vat_rates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)
    rate_bps = db.Column(db.Integer, nullable=False)  # 1900 = 19.00%
    description = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    country = db.relationship("Country", backref=db.backref("vat_rates", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "country_id": self.country_id,
            "rate": bps_to_percent(self.rate_bps),
            "description": self.description,
        }


class Currency(db.Model):
    """
    Currency with its RON exchange value (1 unit = value RON).
    RON itself is always 1.0000.
    """
    __tablename__ = "currencies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(3), nullable=False, unique=True, index=True)
    symbol_left = db.Column(db.String(8), nullable=True)
    symbol_right = db.Column(db.String(8), nullable=True)
    value = db.Column(db.Numeric(15, 4), nullable=False, default=1)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Currency {self.code} value={self.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "symbol_left": self.symbol_left,
            "symbol_right": self.symbol_right,
            "value": float(self.value) if self.value is not None else None,
            "is_active": self.is_active,
            "updated_at": format_datetime(self.updated_at),
        }
