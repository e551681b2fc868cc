# Overview: Pytest coverage for tiered pricing, VAT resolution, currency conversion and the price routes.

"""
Pricing Tests

Verifies:
- Quantity tiers: highest min_quantity <= quantity wins, else base price
- B2C pays the country's highest VAT rate, B2B pays none
- Missing country or VAT rate is a configuration error, never a default
- Conversion divides by the rate, unit prices rounded before multiplying
"""

from decimal import Decimal

import pytest

from teomarket.models import ProductGroupPrice
from teomarket.money import add_vat, remove_vat, ron_to_currency, currency_to_ron, to_cents
from teomarket.services import address_service, pricing_service
from teomarket.services.session_service import create_session
from teomarket.validation import ConfigurationError


ONE = Decimal("1.0000")


@pytest.fixture
def b2c_tiers(db_session, groups, product):
    db_session.add_all([
        ProductGroupPrice(product_id=product.id, customer_group_id=groups["B2C"].id,
                          min_quantity=5, price_ron_cents=8000),
        ProductGroupPrice(product_id=product.id, customer_group_id=groups["B2C"].id,
                          min_quantity=10, price_ron_cents=7000),
    ])
    db_session.commit()


class TestMoney:

    def test_vat_round_trip(self):
        assert add_vat(10000, 1900) == 11900
        assert remove_vat(2380, 1900) == 2000

    def test_half_up_rounding(self):
        assert add_vat(5, 1900) == 6
        assert add_vat(1, 1900) == 1
        assert to_cents("12.345") == 1235

    def test_conversion(self):
        assert ron_to_currency(11900, Decimal("5.0000")) == 2380
        assert ron_to_currency(100, Decimal("3")) == 33
        assert ron_to_currency(1234, ONE) == 1234
        assert currency_to_ron(2380, Decimal("5.0000")) == 11900

    @pytest.mark.parametrize("value", ["abc", True, "NaN"])
    def test_non_numeric_amounts(self, value):
        with pytest.raises(ValueError):
            to_cents(value)

    def test_empty_amount(self):
        assert to_cents("") is None
        assert to_cents(None) is None


class TestUnitPrice:

    def test_base_price_without_tiers(self, groups, product):
        assert pricing_service.resolve_unit_price_ron(product, 3, groups["B2C"].id) == 10000

    @pytest.mark.parametrize("quantity,expected", [(1, 10000), (4, 10000), (5, 8000), (9, 8000), (10, 7000), (50, 7000)])
    def test_highest_matching_tier(self, groups, product, b2c_tiers, quantity, expected):
        assert pricing_service.resolve_unit_price_ron(product, quantity, groups["B2C"].id) == expected

    def test_tiers_of_other_groups_are_ignored(self, groups, product, b2c_tiers):
        assert pricing_service.resolve_unit_price_ron(product, 10, groups["B2B"].id) == 10000

    def test_anonymous_visitors_price_as_b2c(self, romania, groups, product, b2c_tiers):
        info = pricing_service.price_info(product, "RON", ONE, 5, None, romania.id)
        assert info.customer_group_id == groups["B2C"].id
        assert info.unit_price_ron_excl_vat == 8000


class TestVat:

    def test_highest_rate_of_the_country(self, romania):
        assert pricing_service.get_vat_rate_bps(romania.id) == 1900

    def test_country_without_rate(self, bulgaria):
        with pytest.raises(ConfigurationError) as exc:
            pricing_service.get_vat_rate_bps(bulgaria.id)
        assert str(exc.value) == "VAT rate not found for country: Bulgaria"

    def test_unknown_country(self, db_session):
        with pytest.raises(ConfigurationError) as exc:
            pricing_service.get_vat_rate_bps(4242)
        assert str(exc.value) == "VAT rate not found for country: ID: 4242"

    def test_b2c_needs_a_country(self, groups, product):
        with pytest.raises(ConfigurationError) as exc:
            pricing_service.price_info(product, "RON", ONE, 1, groups["B2C"].id, None)
        assert str(exc.value) == "Country is required for VAT calculation"

    def test_b2b_pays_no_vat_and_needs_no_country(self, groups, product):
        info = pricing_service.price_info(product, "RON", ONE, 2, groups["B2B"].id, None)
        assert info.is_b2b is True
        assert info.vat_rate_bps == 0
        assert info.unit_price_ron_incl_vat == 10000
        assert info.total_incl_vat == 20000

    def test_unknown_group_is_not_b2b(self, db_session):
        assert pricing_service.is_b2b(4242) is False
        assert pricing_service.is_b2b(None) is False


class TestPriceInfo:

    def test_ron_b2c(self, romania, groups, product):
        info = pricing_service.price_info(product, "RON", ONE, 3, groups["B2C"].id, romania.id)

        assert info.vat_rate_bps == 1900
        assert info.unit_price_ron_incl_vat == 11900
        assert info.unit_price_incl_vat == 11900
        assert info.total_ron_excl_vat == 30000
        assert info.total_incl_vat == 35700

    def test_foreign_currency_divides_by_rate(self, romania, groups, product):
        info = pricing_service.price_info(product, "EUR", Decimal("5.0000"), 2, groups["B2C"].id, romania.id)

        assert info.unit_price_excl_vat == 2000
        assert info.unit_price_incl_vat == 2380
        assert info.total_incl_vat == 4760
        assert info.total_ron_incl_vat == 23800

    def test_unit_rounded_before_quantity(self, db_session, romania, groups, product):
        product.price_ron_cents = 1001
        db_session.commit()

        info = pricing_service.price_info(product, "EUR", Decimal("3"), 3, groups["B2B"].id)
        assert info.unit_price_excl_vat == 334
        assert info.total_excl_vat == 1002

    def test_to_dict_display_values(self, romania, groups, product):
        b2c = pricing_service.price_info(product, "RON", ONE, 2, groups["B2C"].id, romania.id).to_dict()
        assert b2c["show_vat"] is True
        assert b2c["vat_rate"] == 19.0
        assert b2c["exchange_rate"] == 1.0
        assert b2c["unit_price_display"] == 119.0
        assert b2c["total_price_display"] == 238.0

        b2b = pricing_service.price_info(product, "RON", ONE, 2, groups["B2B"].id).to_dict()
        assert b2b["show_vat"] is False
        assert b2b["unit_price_display"] == 100.0


class TestPriceTiers:

    def test_converted_tiers(self, romania, groups, product, b2c_tiers):
        tiers = pricing_service.price_tiers(product, "EUR", Decimal("5.0000"), groups["B2C"].id, romania.id)
        assert tiers == [
            {"min_quantity": 5, "price_ron": 80.0, "price_display": 19.04},
            {"min_quantity": 10, "price_ron": 70.0, "price_display": 16.66},
        ]

    def test_no_groups_configured(self, db_session, product):
        assert pricing_service.price_tiers(product, "RON", ONE) == []


# =============================================================================
# ROUTES
# =============================================================================


@pytest.fixture
def catalog(romania, currencies, groups, product):
    return product


class TestPriceRoutes:

    def test_anonymous_quote_uses_default_country(self, client, catalog):
        response = client.get(f'/api/products/{catalog.id}/price?quantity=2')
        assert response.status_code == 200
        price = response.get_json()["price"]
        assert price["vat_rate"] == 19.0
        assert price["total_price_display"] == 238.0

    def test_currency_code_is_case_insensitive(self, client, catalog):
        price = client.get(f'/api/products/{catalog.id}/price?currency=eur').get_json()["price"]
        assert price["currency_code"] == "EUR"
        assert price["unit_price_display"] == 23.8

    def test_unknown_currency_is_a_server_error(self, client, catalog):
        response = client.get(f'/api/products/{catalog.id}/price?currency=GBP')
        assert response.status_code == 500

    @pytest.mark.parametrize("quantity", ["abc", "1.5", "0"])
    def test_bad_quantity(self, client, catalog, quantity):
        response = client.get(f'/api/products/{catalog.id}/price?quantity={quantity}')
        assert response.status_code == 400

    def test_inactive_product_is_not_found(self, client, db_session, catalog):
        catalog.is_active = False
        db_session.commit()
        assert client.get(f'/api/products/{catalog.id}/price').status_code == 404

    def test_company_sees_prices_without_vat(self, client, db_session, catalog, company_customer):
        _, token = create_session(company_customer.users[0].id)
        response = client.get(f'/api/products/{catalog.id}/price', headers={'Authorization': f'Bearer {token}'})
        price = response.get_json()["price"]
        assert price["is_b2b"] is True
        assert price["unit_price_display"] == 100.0

    def test_customer_address_country_wins(self, client, catalog, bulgaria, customer, customer_headers,
                                           address_payload):
        address_service.create_address(customer, address_payload(country_id=bulgaria.id))
        response = client.get(f'/api/products/{catalog.id}/price', headers=customer_headers)
        assert response.status_code == 500

    def test_tiers(self, client, catalog, b2c_tiers):
        body = client.get(f'/api/products/{catalog.id}/tiers').get_json()
        assert body["currency"] == "RON"
        assert [tier["min_quantity"] for tier in body["tiers"]] == [5, 10]
        assert body["tiers"][0]["price_display"] == 95.2
