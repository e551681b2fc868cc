# Overview: Pytest coverage for checkout snapshots, order history entries and admin order changes.

"""
Checkout Tests

Verifies:
- Exchange rate, VAT and prices are frozen onto the order and its lines
- Later catalog/currency changes never alter an existing order
- B2B orders are VAT exempt (products and shipping)
- Profit per line uses the purchase price at checkout
- Initial status / paid flag follow the payment method
- Idempotency keys replay the original order
- Missing VAT or currency configuration aborts the whole checkout
"""

import re
from decimal import Decimal

import pytest

from teomarket.models import (
    Order, OrderHistory, PaymentMethod, ProductGroupPrice, VatRate,
)
from teomarket.services import address_service, order_service
from teomarket.services.order_service import OrderError
from teomarket.validation import ValidationError, NotFoundError, ConfigurationError


ORDER_NUMBER = re.compile(r"^[34679CDEFGHJKMNPQRTUVWXY]{3}-[34679CDEFGHJKMNPQRTUVWXY]{3}-[34679CDEFGHJKMNPQRTUVWXY]{3}$")


# =============================================================================
# SNAPSHOT
# =============================================================================


class TestRonSnapshot:

    def test_totals_and_lines(self, place_order, customer, customer_user):
        order = place_order(customer=customer, user=customer_user)

        assert order.currency == "RON"
        assert order.exchange_rate == Decimal("1")
        assert order.vat_rate_applied_bps == 1900
        assert order.is_vat_exempt is False
        assert order.total_ron_excl_vat_cents == 20000
        assert order.total_ron_incl_vat_cents == 23800
        assert order.total_incl_vat_cents == 23800

        line = order.products[0]
        assert line.name == "Wireless Mouse"
        assert line.sku == "MOUSE-001"
        assert line.ean == "5940000000011"
        assert line.vat_rate_bps == 1900
        assert line.unit_price_ron_cents == 11900
        assert line.unit_purchase_price_ron_cents == 6000
        assert line.profit_ron_cents == (10000 - 6000) * 2

    def test_order_number_format(self, place_order):
        order = place_order()
        assert ORDER_NUMBER.match(order.order_number)

    def test_order_numbers_are_unique(self, place_order):
        numbers = {place_order().order_number for _ in range(5)}
        assert len(numbers) == 5

    def test_addresses_and_shipping_are_snapshotted(self, place_order):
        order = place_order()

        billing = order.address_of_type("billing")
        shipping = order.address_of_type("shipping")
        assert billing.email == "ana@example.com"
        assert shipping.city == "Brasov"

        assert order.shipping.title == "Courier"
        assert order.shipping.cost_ron_incl_vat_cents == 2380
        assert order.shipping.cost_ron_excl_vat_cents == 2000

    def test_totals_exclude_shipping(self, place_order):
        order = place_order()
        assert order.total_ron_incl_vat_cents == sum(line.total_ron_incl_vat_cents for line in order.products)

    def test_repeated_items_are_merged(self, place_order, product):
        order = place_order(items=[
            {"product_id": product.id, "quantity": 1},
            {"product_id": product.id, "quantity": 2},
        ])
        assert len(order.products) == 1
        assert order.products[0].quantity == 3


class TestForeignCurrencySnapshot:

    def test_exchange_rate_is_frozen(self, place_order):
        order = place_order(currency="EUR")

        assert order.currency == "EUR"
        assert order.exchange_rate == Decimal("5.0000")
        assert order.total_incl_vat_cents == 4760
        assert order.total_ron_incl_vat_cents == 23800

        line = order.products[0]
        assert line.exchange_rate == Decimal("5.0000")
        assert line.unit_price_currency_cents == 2380
        assert line.unit_price_ron_cents == 11900

        assert order.shipping.cost_incl_vat_cents == 476

    def test_later_changes_do_not_touch_the_order(self, db_session, place_order, currencies, product, romania):
        order = place_order(currency="EUR")
        order_id = order.id

        currencies["EUR"].value = Decimal("6.0000")
        product.price_ron_cents = 50000
        product.purchase_price_ron_cents = 1000
        product.name = "Renamed Mouse"
        db_session.add(VatRate(country_id=romania.id, rate_bps=2100, description="New standard"))
        db_session.commit()
        db_session.expire_all()

        order = db_session.get(Order, order_id)
        line = order.products[0]
        assert order.exchange_rate == Decimal("5.0000")
        assert order.vat_rate_applied_bps == 1900
        assert order.total_incl_vat_cents == 4760
        assert line.name == "Wireless Mouse"
        assert line.unit_price_currency_cents == 2380
        assert line.profit_ron_cents == 8000

    def test_new_orders_use_the_new_rate(self, db_session, place_order, currencies):
        place_order(currency="EUR")
        currencies["EUR"].value = Decimal("4.0000")
        db_session.commit()

        order = place_order(currency="EUR")
        assert order.exchange_rate == Decimal("4.0000")
        assert order.products[0].unit_price_currency_cents == 2975

    def test_unknown_currency_aborts(self, db_session, place_order):
        with pytest.raises(ConfigurationError):
            place_order(currency="USD")
        assert db_session.query(Order).count() == 0

    def test_non_positive_rate_aborts(self, db_session, place_order, currencies):
        currencies["EUR"].value = Decimal("0")
        db_session.commit()
        with pytest.raises(ConfigurationError):
            place_order(currency="EUR")
        assert db_session.query(Order).count() == 0


class TestB2B:

    def test_vat_exempt_order(self, place_order, company_customer):
        order = place_order(customer=company_customer)

        assert order.is_vat_exempt is True
        assert order.vat_rate_applied_bps == 0
        assert order.total_ron_excl_vat_cents == 20000
        assert order.total_ron_incl_vat_cents == 20000
        assert order.products[0].vat_rate_bps == 0

    def test_shipping_is_not_split_for_vat(self, place_order, company_customer):
        order = place_order(customer=company_customer)
        assert order.shipping.cost_ron_excl_vat_cents == 2380
        assert order.shipping.cost_ron_incl_vat_cents == 2380

    def test_group_tier_price_and_profit(self, db_session, place_order, company_customer, groups, product):
        db_session.add(ProductGroupPrice(
            product_id=product.id, customer_group_id=groups["B2B"].id, min_quantity=5, price_ron_cents=8000,
        ))
        db_session.commit()

        order = place_order(customer=company_customer, items=[{"product_id": product.id, "quantity": 5}])
        line = order.products[0]
        assert line.unit_price_ron_cents == 8000
        assert line.total_ron_excl_vat_cents == 40000
        assert line.profit_ron_cents == (8000 - 6000) * 5

    def test_b2b_needs_no_vat_configuration(self, place_order, company_customer, bulgaria, address_payload):
        address = address_payload(country_id=bulgaria.id, email="office@acme.ro")
        order = place_order(customer=company_customer, billing_address=address, shipping_address=address)
        assert order.is_vat_exempt is True

    def test_company_data_copied_from_address_book(self, db_session, place_order, company_customer, address_payload):
        book = address_service.create_address(company_customer, address_payload())
        order = place_order(customer=company_customer, billing_address_id=book.id)

        billing = order.address_of_type("billing")
        assert billing.company_name == "Acme SRL"
        assert billing.fiscal_code == "RO12345678"
        assert billing.reg_number == "J40/123/2020"


class TestStatusAndPayment:

    @pytest.mark.parametrize("code,status,paid", [
        ("ramburs", "confirmed", False),
        ("card", "awaiting_payment", True),
        ("bank_transfer", "pending", False),
    ])
    def test_initial_status_by_payment_method(self, place_order, code, status, paid):
        order = place_order(payment=code)
        assert order.status == status
        assert order.is_paid is paid
        assert (order.paid_at is not None) is paid

    def test_initial_status_helpers(self):
        assert order_service.initial_status(None).value == "pending"
        assert order_service.initial_status(PaymentMethod(code="COD")).value == "confirmed"
        assert order_service.is_paid_on_checkout(PaymentMethod(code="paypal")) is True
        assert order_service.average_vat_bps([1900, 900]) == 1400
        assert order_service.average_vat_bps([]) == 0


class TestHistoryAndStock:

    def test_guest_order_history_entry(self, db_session, place_order):
        order = place_order()
        entries = db_session.query(OrderHistory).filter_by(order_id=order.id).all()

        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == "order_created"
        assert entry.old_value is None
        assert entry.new_value["is_guest"] is True
        assert entry.new_value["order_number"] == order.order_number
        assert entry.new_value["total_ron_incl_vat"] == 238.0
        assert entry.description == "Order created with status: Confirmed (Guest)"
        assert entry.user_id is None

    def test_customer_order_history_names_the_user(self, db_session, place_order, customer, customer_user):
        order = place_order(customer=customer, user=customer_user)
        entry = db_session.query(OrderHistory).filter_by(order_id=order.id).one()
        assert entry.user_id == customer_user.id
        assert entry.new_value["is_guest"] is False
        assert entry.description == "Order created with status: Confirmed"

    def test_stock_is_decremented(self, db_session, place_order, product):
        place_order()
        db_session.refresh(product)
        assert product.stock_quantity == 8

    def test_backorders_go_negative(self, db_session, place_order, product):
        place_order(items=[{"product_id": product.id, "quantity": 12}])
        db_session.refresh(product)
        assert product.stock_quantity == -2


class TestIdempotency:

    def test_same_key_replays_the_order(self, db_session, place_order, product):
        first = place_order(idempotency_key="checkout-123")
        second = place_order(idempotency_key="checkout-123")

        assert first.id == second.id
        assert db_session.query(Order).count() == 1
        db_session.refresh(product)
        assert product.stock_quantity == 8

    def test_different_keys_create_orders(self, db_session, place_order):
        place_order(idempotency_key="a")
        place_order(idempotency_key="b")
        assert db_session.query(Order).count() == 2


class TestCheckoutValidation:

    def test_items_must_be_integers(self, place_order):
        with pytest.raises(ValidationError) as exc:
            place_order(items=[{"product_id": "abc", "quantity": 1}])
        assert "items.0" in exc.value.errors

    def test_guest_needs_an_email(self, place_order, address_payload):
        with pytest.raises(ValidationError) as exc:
            place_order(billing_address=address_payload())
        assert "billing_address.email" in exc.value.errors

    def test_nested_address_errors_are_prefixed(self, place_order, address_payload):
        with pytest.raises(ValidationError) as exc:
            place_order(shipping_address=address_payload(city=""))
        assert "shipping_address.city" in exc.value.errors

    def test_inactive_product_rejected(self, db_session, place_order, product):
        product.is_active = False
        db_session.commit()
        with pytest.raises(ValidationError) as exc:
            place_order()
        assert "items" in exc.value.errors
        assert db_session.query(Order).count() == 0

    def test_inactive_payment_method_rejected(self, db_session, place_order, payment_methods):
        payment_methods["card"].is_active = False
        db_session.commit()
        with pytest.raises(ValidationError) as exc:
            place_order(payment="card")
        assert "payment_method_id" in exc.value.errors

    def test_missing_vat_rate_aborts_everything(self, db_session, place_order, product, bulgaria, address_payload):
        address = address_payload(country_id=bulgaria.id, email="ana@example.com")
        with pytest.raises(ConfigurationError) as exc:
            place_order(billing_address=address, shipping_address=address)

        assert "Bulgaria" in str(exc.value)
        assert db_session.query(Order).count() == 0
        db_session.refresh(product)
        assert product.stock_quantity == 10

    def test_foreign_address_book_entry_not_found(self, place_order, customer, customer_user,
                                                  other_customer, address_payload):
        foreign = address_service.create_address(other_customer, address_payload())
        with pytest.raises(NotFoundError):
            place_order(customer=customer, user=customer_user, shipping_address_id=foreign.id)

    def test_address_book_changes_do_not_alter_the_order(self, db_session, place_order, customer,
                                                          customer_user, address_payload):
        book = address_service.create_address(customer, address_payload(city="Cluj"))
        order = place_order(customer=customer, user=customer_user, shipping_address_id=book.id)

        address_service.update_address(customer, book.id, address_payload(city="Iasi"))
        db_session.expire_all()

        assert order.address_of_type("shipping").city == "Cluj"
        assert order.address_of_type("shipping").email == "ana@example.com"


def test_empty_item_list_is_rejected(db_session, romania, currencies, groups, payment_methods, courier, address_payload):
    address = address_payload(email="ana@example.com")
    with pytest.raises(ValidationError) as exc:
        order_service.create_order(
            None, [],
            payment_method_id=payment_methods["ramburs"].id,
            shipping_method_id=courier.id,
            billing_address=address,
            shipping_address=address,
        )
    assert exc.value.errors["items"] == "The items field is required."


# =============================================================================
# POST-CHECKOUT CHANGES
# =============================================================================


class TestOrderStatusChanges:

    def test_status_change_is_logged(self, db_session, place_order, admin_user):
        order = place_order()
        order_service.update_status(order.order_number, "processing", user_id=admin_user.id)

        entry = db_session.query(OrderHistory).filter_by(order_id=order.id, action="status_changed").one()
        assert entry.old_value == {"status": "confirmed", "status_label": "Confirmed"}
        assert entry.new_value == {"status": "processing", "status_label": "Processing"}
        assert entry.description == "Status changed from Confirmed to Processing"
        assert entry.user_id == admin_user.id

    def test_cancelling_adds_cancelled_entry(self, db_session, place_order):
        order = place_order()
        order_service.update_status(order.order_number, "cancelled")

        actions = [e.action for e in db_session.query(OrderHistory).filter_by(order_id=order.id).order_by(OrderHistory.id)]
        assert actions == ["order_created", "status_changed", "order_cancelled"]

    def test_same_status_is_a_no_op(self, db_session, place_order):
        order = place_order()
        order_service.update_status(order.order_number, "confirmed")
        assert db_session.query(OrderHistory).filter_by(order_id=order.id).count() == 1

    def test_unknown_status_rejected(self, place_order):
        order = place_order()
        with pytest.raises(ValidationError):
            order_service.update_status(order.order_number, "teleported")

    def test_unknown_order_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.update_status("XXX-XXX-XXX", "processing")

    def test_snapshot_survives_status_changes(self, place_order):
        order = place_order(currency="EUR")
        order_service.update_status(order.order_number, "shipped")
        order_service.update_status(order.order_number, "delivered")
        assert order.exchange_rate == Decimal("5.0000")
        assert order.total_incl_vat_cents == 4760


class TestPaymentFlags:

    def test_mark_paid_and_unpaid(self, db_session, place_order):
        order = place_order()
        order_service.mark_paid(order.order_number)
        assert order.is_paid is True
        assert order.paid_at is not None

        order_service.mark_unpaid(order.order_number)
        assert order.is_paid is False
        assert order.paid_at is None

        actions = [e.action for e in db_session.query(OrderHistory).filter_by(order_id=order.id).order_by(OrderHistory.id)]
        assert actions == ["order_created", "payment_received", "payment_reversed"]

    def test_marking_paid_twice_fails(self, place_order):
        order = place_order(payment="card")
        with pytest.raises(OrderError, match="already marked as paid"):
            order_service.mark_paid(order.order_number)

    def test_marking_unpaid_twice_fails(self, place_order):
        order = place_order()
        with pytest.raises(OrderError, match="already marked as unpaid"):
            order_service.mark_unpaid(order.order_number)


# =============================================================================
# ROUTES
# =============================================================================


class TestCheckoutRoute:

    def _body(self, product, payment_methods, courier, address_payload, **overrides):
        address = address_payload(email="guest@example.com")
        body = {
            "items": [{"product_id": product.id, "quantity": 1}],
            "payment_method_id": payment_methods["ramburs"].id,
            "shipping_method_id": courier.id,
            "billing_address": address,
            "shipping_address": address,
        }
        body.update(overrides)
        return body

    def test_guest_checkout(self, client, product, payment_methods, courier, address_payload, currencies, groups):
        response = client.post('/api/checkout/', json=self._body(product, payment_methods, courier, address_payload))

        assert response.status_code == 201
        order = response.get_json()["order"]
        assert ORDER_NUMBER.match(order["order_number"])
        assert order["total_ron_incl_vat"] == 119.0
        assert order["products"][0]["unit_price_ron"] == 119.0
        assert order["shipping"]["shipping_cost_ron_incl_vat"] == 23.8
        assert order["is_vat_exempt"] is False

    def test_idempotency_header(self, client, db_session, product, payment_methods, courier, address_payload,
                                currencies, groups):
        body = self._body(product, payment_methods, courier, address_payload)
        first = client.post('/api/checkout/', json=body, headers={"Idempotency-Key": "k-1"})
        second = client.post('/api/checkout/', json=body, headers={"Idempotency-Key": "k-1"})

        assert first.get_json()["order"]["order_number"] == second.get_json()["order"]["order_number"]
        assert db_session.query(Order).count() == 1

    def test_validation_errors(self, client, product, payment_methods, courier, address_payload, currencies, groups):
        body = self._body(product, payment_methods, courier, address_payload, items=[])
        response = client.post('/api/checkout/', json=body)
        assert response.status_code == 422
        assert "items" in response.get_json()["errors"]

    @pytest.mark.parametrize("currency", [5, ["EUR"], {"code": "EUR"}])
    def test_non_string_currency_is_a_field_error(self, client, db_session, product, payment_methods, courier,
                                                  address_payload, currencies, groups, currency):
        body = self._body(product, payment_methods, courier, address_payload, currency=currency)
        response = client.post('/api/checkout/', json=body)
        assert response.status_code == 422
        assert response.get_json()["errors"]["currency"] == "The currency field must be a string."
        assert db_session.query(Order).count() == 0

    def test_currency_code_is_case_insensitive(self, client, product, payment_methods, courier, address_payload,
                                               currencies, groups):
        body = self._body(product, payment_methods, courier, address_payload, currency=" eur ")
        response = client.post('/api/checkout/', json=body)
        assert response.status_code == 201
        assert response.get_json()["order"]["currency"] == "EUR"

    def test_missing_vat_is_a_server_error(self, client, product, payment_methods, courier, address_payload,
                                           currencies, groups, bulgaria):
        address = address_payload(country_id=bulgaria.id, email="guest@example.com")
        body = self._body(product, payment_methods, courier, address_payload,
                          billing_address=address, shipping_address=address)
        response = client.post('/api/checkout/', json=body)
        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}


class TestAdminOrderRoutes:

    def test_customer_cannot_change_status(self, client, place_order, customer_headers):
        order = place_order()
        response = client.post(f'/api/admin/orders/{order.order_number}/status',
                               json={"status": "shipped"}, headers=customer_headers)
        assert response.status_code == 403

    def test_manager_changes_status(self, client, place_order, manager_headers):
        order = place_order()
        response = client.post(f'/api/admin/orders/{order.order_number}/status',
                               json={"status": "shipped"}, headers=manager_headers)
        assert response.status_code == 200
        assert response.get_json()["order"]["order_status"]["value"] == "shipped"

    def test_mark_paid_twice_is_bad_request(self, client, place_order, admin_headers):
        order = place_order()
        first = client.post(f'/api/admin/orders/{order.order_number}/paid', headers=admin_headers)
        second = client.post(f'/api/admin/orders/{order.order_number}/paid', headers=admin_headers)

        assert first.status_code == 200
        assert first.get_json()["order"]["is_paid"] is True
        assert second.status_code == 400
        assert second.get_json()["error"] == "Order is already marked as paid."

    def test_unknown_order_is_404(self, client, admin_headers):
        response = client.post('/api/admin/orders/XXX-XXX-XXX/paid', headers=admin_headers)
        assert response.status_code == 404
