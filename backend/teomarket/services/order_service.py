# Overview: Checkout snapshot creation and post-checkout order status/payment changes.

"""
Order Service

CHECKOUT (create_order) runs as one transaction:
1. Lock the currency row and freeze its exchange rate onto the order
2. Price every line (group tiers, VAT of the shipping country, B2B exemption)
3. Snapshot lines, billing/shipping addresses and the shipping cost
4. Assign the order number from the row id and log order_created
5. Decrement stock under row locks (backorders allowed)

After checkout only status, payment fields and the append-only history
change. Nothing here rewrites a snapshot column.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..enums import (
    OrderStatus, AddressType, CARD_PAYMENT_CODES, CASH_ON_DELIVERY_CODES, AUTO_PAID_CODES,
    HISTORY_ORDER_CREATED, HISTORY_STATUS_CHANGED, HISTORY_ORDER_CANCELLED,
    HISTORY_PAYMENT_RECEIVED, HISTORY_PAYMENT_REVERSED,
)
from ..models import (
    Address, Order, OrderAddress, OrderHistory, OrderProduct, OrderShipping,
    PaymentMethod, Product, ShippingMethod,
)
from ..money import remove_vat, ron_to_currency
from ..time_utils import utcnow
from ..validation import FieldErrors, NotFoundError, ValidationError, parse_int
from . import pricing_service
from .address_service import validate_address_fields
from .code_service import order_number_for
from .concurrency import lock_for_update
from .currency_service import lock_currency, frozen_exchange_rate


class OrderError(Exception):
    """Raised for order state errors (already paid, unknown order, ...)."""
    pass


SNAPSHOT_EXTRA_FIELDS = ("company_name", "fiscal_code", "reg_number", "email")


# =============================================================================
# HELPERS
# =============================================================================

def initial_status(payment_method: PaymentMethod | None) -> OrderStatus:
    """Card payments wait for confirmation, cash on delivery is ready to process."""
    if payment_method is None:
        return OrderStatus.PENDING
    code = (payment_method.code or "").lower()
    if code in CARD_PAYMENT_CODES:
        return OrderStatus.AWAITING_PAYMENT
    if code in CASH_ON_DELIVERY_CODES:
        return OrderStatus.CONFIRMED
    return OrderStatus.PENDING


def is_paid_on_checkout(payment_method: PaymentMethod | None) -> bool:
    if payment_method is None:
        return False
    return (payment_method.code or "").lower() in AUTO_PAID_CODES


def average_vat_bps(rates: list[int]) -> int:
    if not rates:
        return 0
    average = Decimal(sum(rates)) / len(rates)
    return int(average.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def log_history(order: Order, action: str, old_value=None, new_value=None,
                description: str | None = None, user_id: int | None = None) -> OrderHistory:
    entry = OrderHistory(
        order_id=order.id,
        user_id=user_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        description=description,
    )
    db.session.add(entry)
    return entry


def _parse_items(items, errs: FieldErrors) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        errs.add("items", "The items field is required.")
        return []

    # Quantities of repeated products are merged; sorted ids keep row lock order stable
    parsed: dict[int, int] = {}
    for index, item in enumerate(items):
        item = item if isinstance(item, dict) else {}
        try:
            product_id = parse_int(item.get("product_id"))
            quantity = parse_int(item.get("quantity"))
        except ValueError:
            errs.add(f"items.{index}", "Each item needs an integer product_id and quantity.")
            continue
        if product_id < 1 or quantity < 1:
            errs.add(f"items.{index}", "The quantity must be at least 1.")
            continue
        parsed[product_id] = parsed.get(product_id, 0) + quantity
    return sorted(parsed.items())


def _address_snapshot(customer, address_id, address_data, field: str, errs: FieldErrors) -> dict | None:
    """Snapshot fields for one order address, from the address book or from raw input."""
    if address_id not in (None, ""):
        if customer is None:
            errs.add(field, f"The {field.replace('_', ' ')} is invalid.")
            return None
        try:
            address_id = parse_int(address_id)
        except ValueError:
            errs.add(field, f"The {field.replace('_', ' ')} is invalid.")
            return None
        address = db.session.query(Address).filter(
            Address.id == address_id,
            Address.customer_id == customer.id,
        ).one_or_none()
        if address is None:
            raise NotFoundError(f"Address {address_id} not found")
        snapshot = {
            "first_name": address.first_name,
            "last_name": address.last_name,
            "phone": address.phone,
            "address_line_1": address.address_line_1,
            "address_line_2": address.address_line_2,
            "city": address.city,
            "county_name": address.county_name,
            "county_code": address.county_code,
            "country_id": address.country_id,
            "zip_code": address.zip_code,
        }
        if customer.is_company:
            snapshot.update(
                company_name=customer.company_name,
                fiscal_code=customer.fiscal_code,
                reg_number=customer.reg_number,
            )
        return snapshot

    if not isinstance(address_data, dict):
        errs.add(field, f"The {field.replace('_', ' ')} field is required.")
        return None

    nested = FieldErrors()
    snapshot = validate_address_fields(address_data, nested)
    for key in SNAPSHOT_EXTRA_FIELDS:
        snapshot[key] = nested.optional_string(address_data, key)
    for key, message in nested.errors.items():
        errs.add(f"{field}.{key}", message)
    return snapshot


def _shipping_cost(method: ShippingMethod, vat_bps: int, rate: Decimal) -> dict:
    """ShippingMethod.cost_ron_cents includes VAT; vat_bps is 0 for B2B orders."""
    cost_ron_incl = method.cost_ron_cents
    cost_ron_excl = remove_vat(cost_ron_incl, vat_bps)
    return {
        "cost_ron_incl_vat_cents": cost_ron_incl,
        "cost_ron_excl_vat_cents": cost_ron_excl,
        "cost_incl_vat_cents": ron_to_currency(cost_ron_incl, rate),
        "cost_excl_vat_cents": ron_to_currency(cost_ron_excl, rate),
    }


def get_order_by_number(order_number: str) -> Order:
    order = db.session.query(Order).filter(Order.order_number == order_number).one_or_none()
    if order is None:
        raise NotFoundError(f"Order {order_number} not found")
    return order


# =============================================================================
# CHECKOUT
# =============================================================================

def create_order(
    customer,
    items: list[dict],
    *,
    payment_method_id,
    shipping_method_id,
    currency_code: str = "RON",
    billing_address_id=None,
    billing_address: dict | None = None,
    shipping_address_id=None,
    shipping_address: dict | None = None,
    customer_group_id: int | None = None,
    pickup_point_id: str | None = None,
    courier_data: dict | None = None,
    idempotency_key: str | None = None,
    user=None,
) -> Order:
    """
    Create an order with its full price/currency snapshot.

    customer is None for guest checkout; guests pass address dicts and an
    email on the billing address. customer_group_id overrides the
    customer's group (used by tests and back-office orders).

    Raises:
        ValidationError: bad input (missing items, unknown methods, addresses)
        NotFoundError: address id not in the customer's address book
        ConfigurationError: missing currency rate or VAT configuration
    """
    if idempotency_key:
        existing = db.session.query(Order).filter(Order.idempotency_key == idempotency_key).one_or_none()
        if existing is not None:
            current_app.logger.info(
                "order.idempotent_replay order_number=%s key=%s", existing.order_number, idempotency_key
            )
            return existing

    is_guest = customer is None
    errs = FieldErrors()
    lines_requested = _parse_items(items, errs)

    if isinstance(currency_code, str) and currency_code.strip():
        currency_code = currency_code.strip().upper()
    else:
        errs.add("currency", "The currency field must be a string.")

    payment_method = None
    payment_id = errs.integer({"payment_method_id": payment_method_id}, "payment_method_id", min_value=1)
    if payment_id is not None:
        payment_method = db.session.query(PaymentMethod).filter_by(id=payment_id, is_active=True).first()
        if payment_method is None:
            errs.add("payment_method_id", "The selected payment method id is invalid.")

    shipping_method = None
    shipping_id = errs.integer({"shipping_method_id": shipping_method_id}, "shipping_method_id", min_value=1)
    if shipping_id is not None:
        shipping_method = db.session.query(ShippingMethod).filter_by(id=shipping_id, is_active=True).first()
        if shipping_method is None:
            errs.add("shipping_method_id", "The selected shipping method id is invalid.")

    billing = _address_snapshot(customer, billing_address_id, billing_address, "billing_address", errs)
    shipping = _address_snapshot(customer, shipping_address_id, shipping_address, "shipping_address", errs)
    if is_guest and billing is not None and not billing.get("email"):
        errs.add("billing_address.email", "The email field is required.")
    errs.raise_if_any()

    shipping_country_id = shipping.get("country_id") if shipping else None
    if not shipping_country_id:
        raise ValidationError({"shipping_address": "Shipping country is required for VAT calculation"})

    if customer is not None:
        email = (user.email if user is not None else None) or billing.get("email")
        billing["email"] = billing.get("email") or email
        shipping["email"] = shipping.get("email") or email
    else:
        shipping["email"] = shipping.get("email") or billing["email"]

    group_id = pricing_service.effective_group_id(
        customer_group_id if customer_group_id is not None
        else (customer.customer_group_id if customer is not None else None)
    )
    b2b = pricing_service.is_b2b(group_id)

    try:
        currency = lock_currency(currency_code)
        rate = frozen_exchange_rate(currency)

        lines = []
        for product_id, quantity in lines_requested:
            product = lock_for_update(
                db.session.query(Product).filter(Product.id == product_id)
            ).one_or_none()
            if product is None or not product.is_active:
                raise ValidationError({"items": f"Product {product_id} is not available."})
            info = pricing_service.price_info(
                product, currency.code, rate, quantity, group_id,
                None if b2b else shipping_country_id,
            )
            lines.append((product, info))

        status = initial_status(payment_method)
        paid = is_paid_on_checkout(payment_method)
        now = utcnow()

        order = Order(
            customer_id=customer.id if customer is not None else None,
            order_number=f"TEMP-{uuid.uuid4().hex[:16].upper()}",
            idempotency_key=idempotency_key or None,
            currency=currency.code,
            exchange_rate=rate,
            vat_rate_applied_bps=average_vat_bps([info.vat_rate_bps for _, info in lines]),
            is_vat_exempt=b2b,
            total_excl_vat_cents=sum(info.total_excl_vat for _, info in lines),
            total_incl_vat_cents=sum(info.total_incl_vat for _, info in lines),
            total_ron_excl_vat_cents=sum(info.total_ron_excl_vat for _, info in lines),
            total_ron_incl_vat_cents=sum(info.total_ron_incl_vat for _, info in lines),
            status=status.value,
            is_paid=paid,
            paid_at=now if paid else None,
            payment_method_id=payment_method.id,
        )
        db.session.add(order)
        db.session.flush()

        order.order_number = order_number_for(order.id)

        log_history(
            order,
            HISTORY_ORDER_CREATED,
            None,
            {
                "order_number": order.order_number,
                "status": status.label,
                "total_ron_incl_vat": order.total_ron_incl_vat_cents / 100,
                "is_guest": is_guest,
            },
            f"Order created with status: {status.label}" + (" (Guest)" if is_guest else ""),
            None if is_guest or user is None else user.id,
        )

        db.session.add(OrderAddress(order_id=order.id, address_type=AddressType.BILLING.value, **billing))
        db.session.add(OrderAddress(order_id=order.id, address_type=AddressType.SHIPPING.value, **shipping))

        for product, info in lines:
            db.session.add(OrderProduct(
                order_id=order.id,
                product_id=product.id,
                name=product.name,
                sku=product.sku,
                ean=product.ean,
                quantity=info.quantity,
                vat_rate_bps=info.vat_rate_bps,
                exchange_rate=rate,
                unit_price_currency_cents=info.unit_price_incl_vat,
                unit_price_ron_cents=info.unit_price_ron_incl_vat,
                unit_purchase_price_ron_cents=product.purchase_price_ron_cents,
                total_currency_excl_vat_cents=info.total_excl_vat,
                total_currency_incl_vat_cents=info.total_incl_vat,
                total_ron_excl_vat_cents=info.total_ron_excl_vat,
                total_ron_incl_vat_cents=info.total_ron_incl_vat,
                profit_ron_cents=(info.unit_price_ron_excl_vat - product.purchase_price_ron_cents) * info.quantity,
            ))

        shipping_vat_bps = 0 if b2b else pricing_service.get_vat_rate_bps(shipping_country_id)
        db.session.add(OrderShipping(
            order_id=order.id,
            shipping_method_id=shipping_method.id,
            title=shipping_method.name,
            pickup_point_id=pickup_point_id,
            courier_data=courier_data,
            **_shipping_cost(shipping_method, shipping_vat_bps, rate),
        ))

        for product, info in lines:
            db.session.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(stock_quantity=Product.stock_quantity - info.quantity)
                .execution_options(synchronize_session=False)
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "order.created order_number=%s currency=%s exchange_rate=%s total_ron_incl_vat_cents=%s guest=%s",
        order.order_number, order.currency, order.exchange_rate, order.total_ron_incl_vat_cents, is_guest,
    )
    return order


# =============================================================================
# POST-CHECKOUT CHANGES
# =============================================================================

def update_status(order_number: str, status, user_id: int | None = None) -> Order:
    """Admin status change. Logs status_changed, plus order_cancelled when cancelling."""
    new_status = OrderStatus.parse(status)
    if new_status is None:
        raise ValidationError({"status": "The selected status is invalid."})

    order = lock_for_update(
        db.session.query(Order).filter(Order.order_number == order_number)
    ).one_or_none()
    if order is None:
        raise NotFoundError(f"Order {order_number} not found")

    old_status = order.status_enum
    if old_status == new_status:
        return order

    old_raw = order.status
    old_label = old_status.label if old_status else old_raw
    try:
        order.status = new_status.value
        log_history(
            order,
            HISTORY_STATUS_CHANGED,
            {"status": old_raw, "status_label": old_label},
            {"status": new_status.value, "status_label": new_status.label},
            f"Status changed from {old_label} to {new_status.label}",
            user_id,
        )
        if new_status == OrderStatus.CANCELLED:
            log_history(
                order,
                HISTORY_ORDER_CANCELLED,
                {"status": old_raw},
                {"status": new_status.value},
                "Order cancelled",
                user_id,
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "order.status.updated order_number=%s old_status=%s new_status=%s user_id=%s",
        order.order_number, old_status.value if old_status else None, new_status.value, user_id,
    )
    return order


def mark_paid(order_number: str, user_id: int | None = None, now: datetime | None = None) -> Order:
    order = get_order_by_number(order_number)
    if order.is_paid:
        raise OrderError("Order is already marked as paid.")

    order.is_paid = True
    order.paid_at = now or utcnow()
    log_history(order, HISTORY_PAYMENT_RECEIVED, False, True, "Order marked as paid", user_id)
    db.session.commit()

    current_app.logger.info("order.payment.received order_number=%s user_id=%s", order.order_number, user_id)
    return order


def mark_unpaid(order_number: str, user_id: int | None = None) -> Order:
    order = get_order_by_number(order_number)
    if not order.is_paid:
        raise OrderError("Order is already marked as unpaid.")

    order.is_paid = False
    order.paid_at = None
    log_history(order, HISTORY_PAYMENT_REVERSED, True, False, "Order marked as unpaid", user_id)
    db.session.commit()

    current_app.logger.info("order.payment.reversed order_number=%s user_id=%s", order.order_number, user_id)
    return order
