# Overview: Customer order history: filter predicates, listing, dropdown search and detail.

"""
Order History Queries

Filters are built from independent predicates (status, time window, text
match) that each return a SQLAlchemy clause or None, then AND-ed together.

Status semantics:
- active    = status != cancelled AND no "order_cancelled" history entry
- cancelled = status == cancelled OR an "order_cancelled" history entry exists

The history log is authoritative for "was ever cancelled": an order whose
status moved on after cancellation still counts as cancelled.

Time ranges:
- 3months / 6months are relative to now
- year is the calendar year of the customer's FIRST order, not the current year
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import and_, or_, func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..enums import OrderStatus, HISTORY_ORDER_CANCELLED
from ..models import Order, OrderProduct, OrderHistory, OrderShipping
from ..money import cents_to_float, bps_to_percent
from ..time_utils import (
    utcnow, subtract_months, year_bounds,
    format_datetime, format_datetime_local,
)
from ..validation import NotFoundError
from .pagination import parse_per_page, parse_page, paginate, echo_per_page


STATUS_FILTERS = ("all", "active", "cancelled")
TIME_RANGES = ("3months", "6months", "year", "all")

SEARCH_MIN_LENGTH = 2
SEARCH_MAX_ORDERS = 10
SEARCH_MAX_RESULTS = 10


# =============================================================================
# PREDICATES
# =============================================================================

def _cancelled_in_history():
    return Order.history.any(OrderHistory.action == HISTORY_ORDER_CANCELLED)


def is_order_cancelled(order: Order) -> bool:
    """In-memory counterpart of the cancelled predicate."""
    if order.status == OrderStatus.CANCELLED.value:
        return True
    return any(entry.action == HISTORY_ORDER_CANCELLED for entry in order.history)


def cancelled_at(order: Order) -> datetime | None:
    """Time of the latest cancellation entry, if any."""
    stamps = [entry.created_at for entry in order.history if entry.action == HISTORY_ORDER_CANCELLED]
    return max(stamps) if stamps else None


def status_predicate(status: str):
    if status == "active":
        return and_(
            or_(Order.status != OrderStatus.CANCELLED.value, Order.status.is_(None)),
            ~_cancelled_in_history(),
        )
    if status == "cancelled":
        return or_(
            Order.status == OrderStatus.CANCELLED.value,
            _cancelled_in_history(),
        )
    return None


def first_order_year(customer_id: int) -> int | None:
    first = db.session.query(func.min(Order.created_at)).filter(
        Order.customer_id == customer_id
    ).scalar()
    if first is None:
        return None
    # SQLite may hand back a string for aggregates over DateTime columns
    if isinstance(first, str):
        first = datetime.fromisoformat(first)
    return first.year


def time_range_predicate(customer_id: int, time_range: str, now: datetime):
    if time_range == "3months":
        return Order.created_at >= subtract_months(now, 3)
    if time_range == "6months":
        return Order.created_at >= subtract_months(now, 6)
    if time_range == "year":
        year = first_order_year(customer_id)
        if year is None:
            return None
        start, end = year_bounds(year)
        return and_(Order.created_at >= start, Order.created_at < end)
    return None


def _contains(column, text: str):
    return func.lower(column).contains(text.lower(), autoescape=True)


def search_predicate(search: str):
    if not search:
        return None
    return or_(
        _contains(Order.order_number, search),
        Order.products.any(_contains(OrderProduct.name, search)),
    )


def normalize_filters(filters: dict | None) -> dict:
    filters = filters or {}
    status = filters.get("status") or "all"
    time_range = filters.get("time_range") or "3months"
    search = (filters.get("search") or "").strip()
    return {
        "status": status if status in STATUS_FILTERS else "all",
        "time_range": time_range if time_range in TIME_RANGES else "all",
        "search": search,
    }


def build_order_filters(customer_id: int, filters: dict | None, *, now: datetime | None = None) -> list:
    """
    Compose the WHERE clauses for a customer's order history.

    Always scoped to customer_id; each filter contributes at most one clause.
    """
    f = normalize_filters(filters)
    now = now or utcnow()

    clauses = [Order.customer_id == customer_id]
    for clause in (
        status_predicate(f["status"]),
        time_range_predicate(customer_id, f["time_range"], now),
        search_predicate(f["search"]),
    ):
        if clause is not None:
            clauses.append(clause)
    return clauses


# =============================================================================
# SERIALIZATION
# =============================================================================

def _status_dict(order: Order) -> dict | None:
    status = order.status_enum
    if status is None:
        return None
    return {"value": status.value, "name": status.label, "color_code": status.color_code}


def _address_dict(address) -> dict | None:
    if address is None:
        return None
    return {
        "first_name": address.first_name,
        "last_name": address.last_name,
        "phone": address.phone,
        "address_line_1": address.address_line_1,
        "address_line_2": address.address_line_2,
        "city": address.city,
        "county_name": address.county_name,
        "zip_code": address.zip_code,
    }


def _line_dict(line: OrderProduct) -> dict:
    return {
        "id": line.id,
        "product_id": line.product_id,
        "name": line.name,
        "sku": line.sku,
        "quantity": int(line.quantity),
        "unit_price_currency": cents_to_float(line.unit_price_currency_cents),
        "unit_price_ron": cents_to_float(line.unit_price_ron_cents),
        "total_currency_excl_vat": cents_to_float(line.total_currency_excl_vat_cents),
        "total_currency_incl_vat": cents_to_float(line.total_currency_incl_vat_cents),
        "total_ron_excl_vat": cents_to_float(line.total_ron_excl_vat_cents),
        "total_ron_incl_vat": cents_to_float(line.total_ron_incl_vat_cents),
    }


def _shipping_dict(shipping: OrderShipping | None, *, detailed: bool = False) -> dict | None:
    if shipping is None:
        return None
    data = {
        "pickup_point_id": shipping.pickup_point_id,
        "shipping_cost_excl_vat": cents_to_float(shipping.cost_excl_vat_cents),
        "shipping_cost_incl_vat": cents_to_float(shipping.cost_incl_vat_cents),
        "shipping_cost_ron_excl_vat": cents_to_float(shipping.cost_ron_excl_vat_cents),
        "shipping_cost_ron_incl_vat": cents_to_float(shipping.cost_ron_incl_vat_cents),
    }
    if detailed:
        method = shipping.shipping_method
        data.update({
            "id": shipping.id,
            "title": shipping.title,
            "tracking_number": shipping.tracking_number,
            "shipping_method": {
                "id": method.id,
                "name": method.name,
                "code": method.code,
            } if method else None,
        })
    return data


def serialize_order(order: Order, *, detailed: bool = False) -> dict:
    cancelled = cancelled_at(order)
    payment_method = order.payment_method
    data = {
        "id": order.id,
        "order_number": order.order_number,
        "currency": order.currency,
        "vat_rate_applied": bps_to_percent(order.vat_rate_applied_bps) if order.vat_rate_applied_bps else None,
        "total_excl_vat": cents_to_float(order.total_excl_vat_cents),
        "total_incl_vat": cents_to_float(order.total_incl_vat_cents),
        "total_ron_excl_vat": cents_to_float(order.total_ron_excl_vat_cents),
        "total_ron_incl_vat": cents_to_float(order.total_ron_incl_vat_cents),
        "created_at": format_datetime(order.created_at),
        "created_at_formatted": format_datetime_local(order.created_at),
        "cancelled_at": format_datetime(cancelled),
        "order_status": _status_dict(order),
        "payment_method": {
            "id": payment_method.id,
            "name": payment_method.name,
        } if payment_method else None,
        "payment": {
            "is_paid": bool(order.is_paid),
            "paid_at": format_datetime(order.paid_at),
            "paid_at_formatted": format_datetime_local(order.paid_at),
        },
        "billing_address": _address_dict(order.address_of_type("billing")),
        "shipping_address": _address_dict(order.address_of_type("shipping")),
        "shipping": _shipping_dict(order.shipping, detailed=detailed),
        "products": [_line_dict(line) for line in order.products],
    }
    if detailed:
        data["exchange_rate"] = float(order.exchange_rate) if order.exchange_rate is not None else None
        data["is_vat_exempt"] = order.is_vat_exempt
    return data


# =============================================================================
# QUERIES
# =============================================================================

def _with_relations(query):
    return query.options(
        selectinload(Order.products),
        selectinload(Order.addresses),
        selectinload(Order.history),
        selectinload(Order.shipping),
        selectinload(Order.payment_method),
    )


def list_orders(
    customer,
    filters: dict | None = None,
    page=1,
    per_page=None,
    now: datetime | None = None,
) -> dict:
    """
    Paginated order history for customer, newest first.

    per_page: int, "all", or the legacy 999999 sentinel. Missing or
    non-positive values use ORDERS_PER_PAGE. The filter state is echoed
    back for the UI.
    """
    f = normalize_filters(filters)
    default_per_page = current_app.config.get("ORDERS_PER_PAGE", 5)
    size = parse_per_page(per_page, default_per_page)
    page = parse_page(page)

    if customer is None:
        return {
            "orders": [],
            "pagination": {"current_page": 1, "last_page": 1, "per_page": 0, "total": 0},
            "filters": {**f, "per_page": echo_per_page(size)},
        }

    query = _with_relations(
        db.session.query(Order).filter(*build_order_filters(customer.id, f, now=now))
    ).order_by(Order.created_at.desc(), Order.id.desc())

    orders, pagination = paginate(query, page, size)

    return {
        "orders": [serialize_order(order) for order in orders],
        "pagination": pagination,
        "filters": {**f, "per_page": echo_per_page(size)},
    }


def get_order(customer, order_id: int) -> dict:
    """Order detail. Raises NotFoundError when the order is not the customer's."""
    if customer is None:
        raise NotFoundError(f"Order {order_id} not found")

    order = _with_relations(db.session.query(Order)).filter(
        Order.id == order_id,
        Order.customer_id == customer.id,
    ).one_or_none()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")

    return serialize_order(order, detailed=True)


def _search_result(order: Order, line: OrderProduct, price_cents: int) -> dict:
    status = order.status_enum
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "product_id": line.product_id,
        "product_name": line.name,
        "price": cents_to_float(price_cents),
        "date": order.created_at.strftime("%d %b %Y"),
        "date_timestamp": int(order.created_at.replace(tzinfo=timezone.utc).timestamp()),
        "cancelled": is_order_cancelled(order),
        "delivered": order.status == OrderStatus.DELIVERED.value,
        "status": {"name": status.label, "color_code": status.color_code} if status else None,
    }


def search_order_products(customer, q: str | None) -> list[dict]:
    """
    Dropdown search over the customer's orders.

    One result per line whose product name matches. An order-number match
    contributes the order's first product once. Results are unique on
    (order_id, product_id) and capped at SEARCH_MAX_RESULTS.
    """
    q = (q or "").strip()
    if customer is None or len(q) < SEARCH_MIN_LENGTH:
        return []

    orders = _with_relations(
        db.session.query(Order).filter(
            Order.customer_id == customer.id,
            search_predicate(q),
        )
    ).order_by(Order.created_at.desc(), Order.id.desc()).limit(SEARCH_MAX_ORDERS).all()

    needle = q.lower()
    results: list[dict] = []
    seen: set[tuple[int, int]] = set()

    def _add(order, line, price_cents):
        key = (order.id, line.product_id)
        if key in seen or len(results) >= SEARCH_MAX_RESULTS:
            return
        seen.add(key)
        results.append(_search_result(order, line, price_cents))

    for order in orders:
        for line in order.products:
            if needle in (line.name or "").lower():
                _add(order, line, line.total_ron_incl_vat_cents)

        if needle in (order.order_number or "").lower() and order.products:
            _add(order, order.products[0], order.total_ron_incl_vat_cents)

    return results
