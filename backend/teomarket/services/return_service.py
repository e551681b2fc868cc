# Overview: Return requests: order lookup, creation, admin status/refund/restock and listings.

"""
Return Processing Service

LIFECYCLE:
    pending -> received -> inspecting -> completed
    pending | received | inspecting -> rejected

completed and rejected are terminal. Moves outside RETURN_TRANSITIONS
raise ReturnError; setting the current status again is a no-op.

RESTOCK:
restocked_at is an applied-once guard. Stock is incremented only by the
statement that flips restocked_at from NULL, so repeated or concurrent
requests to restock the same return add the quantity exactly once.
Turning restock_item off later never takes stock back out.

SNAPSHOT:
Customer and product identity on a return is copied from the order and
order line when the return is created and never re-read afterwards.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import and_, or_, func, update
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..enums import (
    OrderStatus, ReturnStatus, ReturnReason, RETURN_TRANSITIONS,
    REASONS_REQUIRING_DETAILS, CASH_ON_DELIVERY_CODES,
)
from ..models import Order, OrderProduct, Product, ProductReturn
from ..money import MAX_AMOUNT_CENTS, to_cents
from ..time_utils import (
    utcnow, subtract_months, year_bounds, parse_iso_date,
    format_date, format_date_local, format_datetime, format_datetime_local,
)
from ..validation import FieldErrors, NotFoundError, ValidationError, parse_bool
from .code_service import return_number_for
from .concurrency import lock_for_update
from .fiscal_service import normalize_iban, is_valid_iban_shape
from .pagination import parse_per_page, parse_page, paginate, echo_per_page


class ReturnError(Exception):
    """Raised for return operation errors."""
    pass


TIME_RANGES = ("3months", "6months", "year", "all")
DETAILS_MAX_LENGTH = 1000


# =============================================================================
# ORDER LOOKUP
# =============================================================================

def normalize_phone(value: str | None) -> str:
    return re.sub(r"[^0-9+]", "", value or "")


def _email_matches(candidate: str | None, email: str | None) -> bool:
    if not candidate or not email:
        return False
    return candidate.strip().lower() == email.strip().lower()


def _phone_matches(candidate: str | None, phone: str | None) -> bool:
    if not candidate or not phone:
        return False
    return normalize_phone(candidate) == normalize_phone(phone)


def contact_matches_order(order: Order, email: str | None, phone: str | None) -> bool:
    """Guest verification: email or phone must match something on file for the order."""
    for address in order.addresses:
        if _email_matches(address.email, email) or _phone_matches(address.phone, phone):
            return True

    customer = order.customer
    if customer is not None:
        if any(_email_matches(user.email, email) for user in customer.users):
            return True
        if _phone_matches(customer.phone, phone):
            return True
    return False


def is_cash_on_delivery(order: Order) -> bool:
    method = order.payment_method
    return bool(method and (method.code or "").lower() in CASH_ON_DELIVERY_CODES)


def _order_contact(order: Order) -> dict:
    shipping = order.address_of_type("shipping") or order.address_of_type("billing")
    customer = order.customer
    user = customer.users[0] if customer is not None and customer.users else None
    return {
        "first_name": (shipping.first_name if shipping else None) or (user.first_name if user else None) or "",
        "last_name": (shipping.last_name if shipping else None) or (user.last_name if user else None) or "",
        "email": (shipping.email if shipping else None) or (user.email if user else None) or "",
        "phone": (shipping.phone if shipping else None) or (customer.phone if customer else None) or "",
    }


def lookup_order_for_return(
    order_number: str,
    customer=None,
    email: str | None = None,
    phone: str | None = None,
    honeypot: str | None = None,
) -> dict:
    """
    Find an order a return can be opened for.

    Authenticated customers must own the order. Anonymous callers prove
    ownership with the order's email or phone. Returns the data the
    return form is prefilled with.
    """
    if honeypot:
        raise ValidationError({"message": "Order not found"})

    errs = FieldErrors()
    order_number = errs.required_string({"order_number": order_number}, "order_number")
    if customer is None and not (email or phone):
        errs.add("email", "The email field is required when phone is not present.")
    errs.raise_if_any()

    order = db.session.query(Order).options(
        selectinload(Order.products),
        selectinload(Order.addresses),
        selectinload(Order.payment_method),
    ).filter(Order.order_number == order_number.strip().upper()).one_or_none()

    if order is None:
        raise ValidationError({"message": "Order not found"})

    if customer is not None:
        if order.customer_id != customer.id:
            raise ValidationError({"message": "This order does not belong to your account"})
    elif not contact_matches_order(order, email, phone):
        raise ValidationError({"message": "Email or phone does not match the order"})

    payment_code = (order.payment_method.code or "").lower() if order.payment_method else ""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "order_date": format_date(order.created_at.date()),
        "status": order.status,
        "payment_method_code": payment_code,
        "is_ramburs": is_cash_on_delivery(order),
        **_order_contact(order),
        "products": [
            {
                "id": line.id,
                "product_id": line.product_id,
                "name": line.name,
                "sku": line.sku,
                "quantity": line.quantity,
                "available_quantity": line.quantity - returned_quantity(line.id),
            }
            for line in order.products
        ],
    }


# =============================================================================
# RETURN CREATION
# =============================================================================

def returned_quantity(order_product_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(ProductReturn.quantity), 0)).filter(
        ProductReturn.order_product_id == order_product_id
    ).scalar()
    return int(total or 0)


def create_return(data: dict, customer=None, user=None) -> ProductReturn:
    """
    Open a return for one order line (status: pending).

    Request data: order_id, order_product_id, quantity, return_reason,
    return_reason_details, is_product_opened, iban, and for guests email
    and phone. Identity fields are taken from the order, not the request.

    Raises:
        NotFoundError: order or line does not exist / is not the caller's
        ValidationError: field-keyed input problems
    """
    if data.get("website"):
        raise ValidationError({"order_id": "Invalid request."})

    errs = FieldErrors()
    order_id = errs.integer(data, "order_id", min_value=1)
    order_product_id = errs.integer(data, "order_product_id", min_value=1)
    quantity = errs.integer(data, "quantity", min_value=1)
    reason = errs.choice(data, "return_reason", ReturnReason.values())
    opened = errs.choice(data, "is_product_opened", ("yes", "no"), required=False)

    details = errs.optional_string(data, "return_reason_details", max_length=DETAILS_MAX_LENGTH,
                                   label="return reason details")
    if ReturnReason.parse(reason) in REASONS_REQUIRING_DETAILS and not details \
            and "return_reason_details" not in errs.errors:
        errs.add("return_reason_details", "Details are required for this return reason")

    email = errs.optional_string(data, "email")
    phone = errs.optional_string(data, "phone")
    if user is not None:
        email = email or user.email
        phone = phone or (customer.phone if customer is not None else None)
    else:
        if not email:
            errs.add("email", "Email is required")
        if not phone:
            errs.add("phone", "Phone is required")

    iban = normalize_iban(data.get("iban"))
    if iban is not None and not is_valid_iban_shape(iban):
        errs.add("iban", "The iban format is invalid.")
    errs.raise_if_any()

    order = db.session.get(Order, order_id)
    if order is None or (customer is not None and order.customer_id != customer.id):
        raise NotFoundError(f"Order {order_id} not found")
    if customer is None and not contact_matches_order(order, email, phone):
        raise NotFoundError(f"Order {order_id} not found")

    try:
        line = lock_for_update(
            db.session.query(OrderProduct).filter(
                OrderProduct.id == order_product_id,
                OrderProduct.order_id == order.id,
            )
        ).one_or_none()
        if line is None:
            raise NotFoundError(f"Order line {order_product_id} not found")

        if order.status != OrderStatus.DELIVERED.value:
            errs.add("order_id", "Return can only be requested for delivered orders.")
        if is_cash_on_delivery(order) and not iban:
            errs.add("iban", "IBAN is required for cash on delivery (ramburs) orders.")

        already = returned_quantity(line.id)
        available = line.quantity - already
        if quantity > available:
            errs.add(
                "quantity",
                f"Cannot return more than available quantity. Ordered: {line.quantity}, "
                f"Already returned: {already}, Available: {available}.",
            )
        errs.raise_if_any()

        contact = _order_contact(order)
        product_return = ProductReturn(
            order_id=order.id,
            order_product_id=line.id,
            return_number=f"TEMP-RET-{uuid.uuid4().hex[:12].upper()}",
            first_name=contact["first_name"],
            last_name=contact["last_name"],
            email=email or contact["email"] or None,
            phone=phone or contact["phone"] or None,
            order_number=order.order_number,
            order_date=order.created_at.date(),
            product_name=line.name,
            product_sku=line.sku,
            quantity=quantity,
            return_reason=reason,
            return_reason_details=details,
            is_product_opened=opened,
            iban=iban,
            status=ReturnStatus.PENDING.value,
        )
        db.session.add(product_return)
        db.session.flush()

        product_return.return_number = return_number_for(product_return.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "return.created return_number=%s order_number=%s quantity=%s",
        product_return.return_number, product_return.order_number, product_return.quantity,
    )
    return product_return


# =============================================================================
# ADMIN MUTATIONS
# =============================================================================

def get_return(return_id: int) -> ProductReturn:
    product_return = db.session.get(ProductReturn, return_id)
    if product_return is None:
        raise NotFoundError(f"Return {return_id} not found")
    return product_return


def can_transition(current: ReturnStatus, new: ReturnStatus) -> bool:
    return current == new or new in RETURN_TRANSITIONS.get(current, frozenset())


def _apply_restock(product_return: ProductReturn, now: datetime) -> bool:
    """
    Flip restocked_at from NULL and add the quantity back to stock.

    Returns True when this call applied the restock.
    """
    claimed = db.session.execute(
        update(ProductReturn)
        .where(ProductReturn.id == product_return.id)
        .where(ProductReturn.restocked_at.is_(None))
        .values(restocked_at=now)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        return False

    product_id = db.session.query(OrderProduct.product_id).filter(
        OrderProduct.id == product_return.order_product_id
    ).scalar()
    db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + product_return.quantity)
        .execution_options(synchronize_session=False)
    )
    return True


def update_status(return_id: int, status, actor_id: int | None = None, now: datetime | None = None) -> ProductReturn:
    new_status = ReturnStatus.parse(status)
    if new_status is None:
        raise ValidationError({"status": "The selected status is invalid."})

    product_return = get_return(return_id)
    old_status = ReturnStatus.parse(product_return.status)

    if old_status == new_status:
        return product_return
    if old_status is not None and not can_transition(old_status, new_status):
        raise ReturnError(
            f"Cannot change return status from {old_status.value} to {new_status.value}"
        )

    try:
        product_return.status = new_status.value
        db.session.flush()
        restocked = False
        if new_status == ReturnStatus.COMPLETED and product_return.restock_item:
            restocked = _apply_restock(product_return, now or utcnow())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "return.status.updated return_id=%s return_number=%s old_status=%s new_status=%s restocked=%s actor=%s",
        product_return.id, product_return.return_number,
        old_status.value if old_status else None, new_status.value, restocked, actor_id,
    )
    return product_return


def update_refund_amount(return_id: int, amount, actor_id: int | None = None) -> ProductReturn:
    """Set or clear (None / "") the manual refund amount. 0 <= amount <= 999,999,999.99."""
    try:
        cents = to_cents(amount)
    except ValueError:
        raise ValidationError({"refund_amount": "Refund amount must be a number"})
    if cents is not None and cents < 0:
        raise ValidationError({"refund_amount": "Refund amount cannot be negative"})
    if cents is not None and cents > MAX_AMOUNT_CENTS:
        raise ValidationError({"refund_amount": "Refund amount is too large"})

    product_return = get_return(return_id)
    old_cents = product_return.refund_amount_cents
    product_return.refund_amount_cents = cents
    db.session.commit()

    current_app.logger.info(
        "return.refund_amount.updated return_id=%s old_refund_cents=%s new_refund_cents=%s actor=%s",
        product_return.id, old_cents, cents, actor_id,
    )
    return product_return


def update_restock_flag(return_id: int, flag, actor_id: int | None = None,
                        now: datetime | None = None) -> tuple[ProductReturn, bool]:
    """
    Set restock_item. Setting it to true restocks the item unless that has
    already happened. Returns (return, applied_now).
    """
    try:
        restock = parse_bool(flag)
    except ValueError:
        raise ValidationError({"restock_item": "The restock item field must be true or false."})

    product_return = get_return(return_id)
    old_flag = product_return.restock_item

    try:
        product_return.restock_item = restock
        db.session.flush()
        applied = _apply_restock(product_return, now or utcnow()) if restock else False
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "return.restock_item.updated return_id=%s old=%s new=%s applied=%s actor=%s",
        product_return.id, old_flag, restock, applied, actor_id,
    )
    return product_return, applied


# =============================================================================
# LISTINGS
# =============================================================================

def _contains(column, text: str):
    return func.lower(column).contains(text.lower(), autoescape=True)


def _customer_time_predicate(time_range: str, now: datetime):
    if time_range == "3months":
        return ProductReturn.created_at >= subtract_months(now, 3)
    if time_range == "6months":
        return ProductReturn.created_at >= subtract_months(now, 6)
    if time_range == "year":
        start, end = year_bounds(now.year)
        return and_(ProductReturn.created_at >= start, ProductReturn.created_at < end)
    return None


def serialize_customer_return(product_return: ProductReturn) -> dict:
    return {
        "id": product_return.id,
        "return_number": product_return.return_number,
        "order_id": product_return.order_id,
        "order_number": product_return.order_number,
        "order_date": format_date(product_return.order_date),
        "order_date_formatted": format_date_local(product_return.order_date),
        "product_name": product_return.product_name,
        "product_sku": product_return.product_sku,
        "quantity": product_return.quantity,
        "status": product_return.status,
        "return_reason": product_return.return_reason,
        "return_reason_details": product_return.return_reason_details,
        "is_product_opened": product_return.is_product_opened,
        "created_at": format_datetime(product_return.created_at),
        "created_at_formatted": format_datetime_local(product_return.created_at),
        "updated_at": format_datetime(product_return.updated_at),
        "updated_at_formatted": format_datetime_local(product_return.updated_at),
    }


def list_customer_returns(customer, filters: dict | None = None, page=1, per_page=None,
                          now: datetime | None = None) -> dict:
    """
    Returns on the customer's own orders, newest first.

    status: all or a return status; time_range: 3months (default), 6months,
    year (current calendar year) or all; search: order number, product
    name or SKU.
    """
    filters = filters or {}
    status = filters.get("status") or "all"
    time_range = filters.get("time_range") or "3months"
    if time_range not in TIME_RANGES:
        time_range = "all"
    search = (filters.get("search") or "").strip()

    size = parse_per_page(per_page, current_app.config.get("RETURNS_PER_PAGE", 10))
    page = parse_page(page)
    echoed = {"status": status, "time_range": time_range, "search": search, "per_page": echo_per_page(size)}

    if customer is None:
        return {
            "returns": [],
            "pagination": {"current_page": 1, "last_page": 1, "per_page": size or 0, "total": 0},
            "filters": echoed,
        }

    own_orders = db.session.query(Order.id).filter(Order.customer_id == customer.id)
    query = db.session.query(ProductReturn).filter(ProductReturn.order_id.in_(own_orders))

    status_enum = ReturnStatus.parse(status) if status != "all" else None
    if status_enum is not None:
        query = query.filter(ProductReturn.status == status_enum.value)

    clause = _customer_time_predicate(time_range, now or utcnow())
    if clause is not None:
        query = query.filter(clause)

    if search:
        query = query.filter(or_(
            _contains(ProductReturn.order_number, search),
            _contains(ProductReturn.product_name, search),
            _contains(ProductReturn.product_sku, search),
        ))

    query = query.order_by(ProductReturn.created_at.desc(), ProductReturn.id.desc())
    returns, pagination = paginate(query, page, size)

    return {
        "returns": [serialize_customer_return(r) for r in returns],
        "pagination": pagination,
        "filters": echoed,
    }


def serialize_admin_return(product_return: ProductReturn) -> dict:
    return {
        "id": product_return.id,
        "return_number": product_return.return_number,
        "order_number": product_return.order_number,
        "product_name": product_return.product_name,
        "product_sku": product_return.product_sku,
        "quantity": product_return.quantity,
        "status": product_return.status,
        "customer_name": f"{product_return.first_name or ''} {product_return.last_name or ''}".strip(),
        "email": product_return.email,
        "created_at": format_datetime(product_return.created_at),
        "created_at_formatted": format_datetime_local(product_return.created_at),
    }


def list_admin_returns(filters: dict | None = None, page=1) -> dict:
    """Back-office listing across all customers. Invalid filter values are ignored."""
    filters = {key: (value or "").strip() for key, value in (filters or {}).items()
               if isinstance(value, str) or value is None}
    query = db.session.query(ProductReturn)

    status = ReturnStatus.parse(filters.get("status")) if filters.get("status") else None
    if status is not None:
        query = query.filter(ProductReturn.status == status.value)

    if filters.get("order_number"):
        query = query.filter(_contains(ProductReturn.order_number, filters["order_number"]))

    for key, op in (("date_from", "from"), ("date_to", "to")):
        if not filters.get(key):
            continue
        try:
            day = parse_iso_date(filters[key])
        except ValueError:
            continue
        start = datetime(day.year, day.month, day.day)
        if op == "from":
            query = query.filter(ProductReturn.created_at >= start)
        else:
            query = query.filter(ProductReturn.created_at < start + timedelta(days=1))

    if filters.get("email"):
        query = query.filter(_contains(ProductReturn.email, filters["email"]))

    search = filters.get("search")
    if search:
        query = query.filter(or_(
            _contains(ProductReturn.order_number, search),
            _contains(ProductReturn.email, search),
            _contains(ProductReturn.first_name, search),
            _contains(ProductReturn.last_name, search),
            _contains(ProductReturn.product_name, search),
            _contains(ProductReturn.product_sku, search),
        ))

    query = query.order_by(ProductReturn.created_at.desc(), ProductReturn.id.desc())
    returns, pagination = paginate(
        query, parse_page(page), current_app.config.get("ADMIN_RETURNS_PER_PAGE", 50)
    )

    return {
        "returns": [serialize_admin_return(r) for r in returns],
        "pagination": pagination,
        "filters": {key: filters.get(key, "") for key in
                    ("status", "order_number", "date_from", "date_to", "email", "search")},
        "statuses": ReturnStatus.values(),
    }
