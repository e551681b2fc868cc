# Overview: Tiered RON pricing, VAT resolution and currency conversion for one product line.

"""
Pricing

Base prices (Product.price_ron_cents, ProductGroupPrice.price_ron_cents) are
RON excluding VAT. For a customer group:

- the unit price is the tier with the highest min_quantity <= quantity,
  falling back to the product's base price
- B2C (or no group) pays the country's VAT; every other group is B2B and
  pays 0% (reverse charge)
- the country's VAT rate is the highest rate configured for it; a country
  without one is a configuration error

Conversion to the display currency divides by the exchange rate
(1 unit of currency = rate RON). Unit prices are rounded before they are
multiplied by quantity, matching how lines are stored at checkout.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal

from ..extensions import db
from ..enums import B2C_GROUP_CODE
from ..models import Country, CustomerGroup, Product, ProductGroupPrice, VatRate
from ..money import add_vat, ron_to_currency, cents_to_float, bps_to_percent
from ..validation import ConfigurationError


@dataclass(frozen=True)
class PriceInfo:
    """Point-in-time price of one product line. All amounts in minor units."""
    quantity: int
    customer_group_id: int | None
    currency_code: str
    exchange_rate: Decimal
    vat_rate_bps: int
    is_b2b: bool
    unit_price_ron_excl_vat: int
    unit_price_ron_incl_vat: int
    unit_price_excl_vat: int
    unit_price_incl_vat: int
    total_ron_excl_vat: int
    total_ron_incl_vat: int
    total_excl_vat: int
    total_incl_vat: int

    @property
    def show_vat(self) -> bool:
        return not self.is_b2b

    def to_dict(self) -> dict:
        data = {
            key: cents_to_float(value) if key.startswith(("unit_", "total_")) else value
            for key, value in asdict(self).items()
        }
        data["exchange_rate"] = float(self.exchange_rate)
        data["vat_rate"] = bps_to_percent(self.vat_rate_bps)
        data["show_vat"] = self.show_vat
        data["unit_price_display"] = cents_to_float(
            self.unit_price_incl_vat if self.show_vat else self.unit_price_excl_vat
        )
        data["total_price_display"] = cents_to_float(
            self.total_incl_vat if self.show_vat else self.total_excl_vat
        )
        return data


def b2c_group_id() -> int | None:
    return db.session.query(CustomerGroup.id).filter(
        CustomerGroup.code == B2C_GROUP_CODE
    ).scalar()


def effective_group_id(customer_group_id: int | None) -> int | None:
    """Anonymous visitors price as B2C."""
    if customer_group_id is not None:
        return customer_group_id
    return b2c_group_id()


def is_b2b(customer_group_id: int | None) -> bool:
    if customer_group_id is None:
        return False
    group = db.session.get(CustomerGroup, customer_group_id)
    if group is None:
        return False
    return group.code != B2C_GROUP_CODE


def resolve_unit_price_ron(product: Product, quantity: int = 1, customer_group_id: int | None = None) -> int:
    """RON price excl. VAT for quantity units, honoring group quantity tiers."""
    if customer_group_id is not None:
        tier = db.session.query(ProductGroupPrice).filter(
            ProductGroupPrice.product_id == product.id,
            ProductGroupPrice.customer_group_id == customer_group_id,
            ProductGroupPrice.min_quantity <= quantity,
        ).order_by(ProductGroupPrice.min_quantity.desc()).first()
        if tier is not None:
            return tier.price_ron_cents
    return product.price_ron_cents


def get_vat_rate_bps(country_id: int) -> int:
    rate = db.session.query(db.func.max(VatRate.rate_bps)).filter(
        VatRate.country_id == country_id
    ).scalar()
    if rate is None:
        country = db.session.get(Country, country_id)
        name = country.name if country else f"ID: {country_id}"
        raise ConfigurationError(f"VAT rate not found for country: {name}")
    return int(rate)


def price_info(
    product: Product,
    currency_code: str,
    exchange_rate: Decimal,
    quantity: int = 1,
    customer_group_id: int | None = None,
    country_id: int | None = None,
) -> PriceInfo:
    """
    Full price breakdown for a line.

    country_id is required for B2C pricing (it selects the VAT rate) and
    ignored for B2B.
    """
    group_id = effective_group_id(customer_group_id)
    b2b = is_b2b(group_id)

    unit_ron_excl = resolve_unit_price_ron(product, quantity, group_id)
    if b2b:
        vat_bps = 0
    else:
        if country_id is None:
            raise ConfigurationError("Country is required for VAT calculation")
        vat_bps = get_vat_rate_bps(country_id)
    unit_ron_incl = add_vat(unit_ron_excl, vat_bps)

    rate = Decimal(exchange_rate)
    unit_excl = ron_to_currency(unit_ron_excl, rate)
    unit_incl = ron_to_currency(unit_ron_incl, rate)

    return PriceInfo(
        quantity=quantity,
        customer_group_id=group_id,
        currency_code=currency_code,
        exchange_rate=rate,
        vat_rate_bps=vat_bps,
        is_b2b=b2b,
        unit_price_ron_excl_vat=unit_ron_excl,
        unit_price_ron_incl_vat=unit_ron_incl,
        unit_price_excl_vat=unit_excl,
        unit_price_incl_vat=unit_incl,
        total_ron_excl_vat=unit_ron_excl * quantity,
        total_ron_incl_vat=unit_ron_incl * quantity,
        total_excl_vat=unit_excl * quantity,
        total_incl_vat=unit_incl * quantity,
    )


def price_tiers(
    product: Product,
    currency_code: str,
    exchange_rate: Decimal,
    customer_group_id: int | None = None,
    country_id: int | None = None,
) -> list[dict]:
    """Quantity tiers of the group, converted like price_info does."""
    group_id = effective_group_id(customer_group_id)
    if group_id is None:
        return []

    tiers = db.session.query(ProductGroupPrice).filter(
        ProductGroupPrice.product_id == product.id,
        ProductGroupPrice.customer_group_id == group_id,
    ).order_by(ProductGroupPrice.min_quantity.asc()).all()

    result = []
    for tier in tiers:
        info = price_info(product, currency_code, exchange_rate, tier.min_quantity, group_id, country_id)
        result.append({
            "min_quantity": tier.min_quantity,
            "price_ron": cents_to_float(tier.price_ron_cents),
            "price_display": info.to_dict()["unit_price_display"],
        })
    return result
