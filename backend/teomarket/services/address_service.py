# Overview: Customer address book with the single-preferred-shipping-address rule.

"""
Address Book Service

INVARIANT: per customer, at most one address with address_type=shipping
has is_preferred=True.

Every mutating operation runs in one transaction that first locks the
customer row (lock_customer), so concurrent set-preferred / delete calls
for the same customer are serialized. Billing and headquarters addresses
never participate in preference.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..enums import AddressType
from ..models import Address, Country, Customer
from ..validation import FieldErrors, NotFoundError, ValidationError, parse_bool, parse_int
from .concurrency import lock_customer


EDITABLE_TYPES = (AddressType.SHIPPING.value, AddressType.BILLING.value)
SHIPPING = AddressType.SHIPPING.value


def validate_address_fields(data: dict, errs: FieldErrors) -> dict:
    fields = {
        "first_name": errs.required_string(data, "first_name"),
        "last_name": errs.required_string(data, "last_name"),
        "phone": errs.required_string(data, "phone"),
        "address_line_1": errs.required_string(data, "address_line_1"),
        "address_line_2": errs.optional_string(data, "address_line_2"),
        "city": errs.required_string(data, "city"),
        "county_name": errs.optional_string(data, "county_name"),
        "county_code": errs.optional_string(data, "county_code", max_length=2),
        "zip_code": errs.required_string(data, "zip_code"),
    }

    country_id = data.get("country_id")
    if country_id in (None, ""):
        errs.add("country_id", "The country id field is required.")
    else:
        try:
            country_id = parse_int(country_id)
        except ValueError:
            country_id = None
        if country_id is None or db.session.get(Country, country_id) is None:
            errs.add("country_id", "The selected country id is invalid.")
    fields["country_id"] = country_id
    return fields


def _get_owned(customer_id: int, address_id: int) -> Address:
    """Load the address fresh from the database. Call after lock_customer."""
    address = db.session.query(Address).populate_existing().filter(
        Address.id == address_id,
        Address.customer_id == customer_id,
    ).one_or_none()
    if address is None:
        raise NotFoundError(f"Address {address_id} not found")
    return address


def _unmark_shipping_siblings(customer_id: int, keep_id: int | None) -> None:
    stmt = (
        update(Address)
        .where(Address.customer_id == customer_id)
        .where(Address.address_type == SHIPPING)
        .where(Address.is_preferred.is_(True))
        .values(is_preferred=False)
        .execution_options(synchronize_session="fetch")
    )
    if keep_id is not None:
        stmt = stmt.where(Address.id != keep_id)
    db.session.execute(stmt)


def list_addresses(customer: Customer, address_type: str | None = SHIPPING) -> list[Address]:
    query = db.session.query(Address).filter(Address.customer_id == customer.id)
    if address_type:
        query = query.filter(Address.address_type == address_type)
    return query.order_by(Address.created_at.asc(), Address.id.asc()).all()


def get_preferred_shipping_address(customer_id: int) -> Address | None:
    return db.session.query(Address).filter(
        Address.customer_id == customer_id,
        Address.address_type == SHIPPING,
        Address.is_preferred.is_(True),
    ).first()


def create_address(customer: Customer, data: dict) -> Address:
    """
    Add an address to the customer's book.

    The first shipping address becomes preferred unless the caller sends
    is_preferred explicitly. A new preferred address unmarks the others.
    """
    errs = FieldErrors()
    fields = validate_address_fields(data, errs)
    address_type = errs.choice(data, "address_type", EDITABLE_TYPES, default=SHIPPING)

    explicit_preferred = None
    if data.get("is_preferred") is not None:
        try:
            explicit_preferred = parse_bool(data["is_preferred"])
        except ValueError:
            errs.add("is_preferred", "The is preferred field must be true or false.")
    errs.raise_if_any()

    try:
        lock_customer(customer.id)

        if address_type == SHIPPING:
            has_shipping = db.session.query(Address.id).filter(
                Address.customer_id == customer.id,
                Address.address_type == SHIPPING,
            ).first() is not None
            is_preferred = explicit_preferred if explicit_preferred is not None else not has_shipping
        else:
            is_preferred = False

        address = Address(
            customer_id=customer.id,
            address_type=address_type,
            is_preferred=is_preferred,
            **fields,
        )
        db.session.add(address)
        db.session.flush()

        if is_preferred:
            _unmark_shipping_siblings(customer.id, keep_id=address.id)

        db.session.commit()
        return address
    except Exception:
        db.session.rollback()
        raise


def update_address(customer: Customer, address_id: int, data: dict) -> Address:
    """Edit address fields. The stored address_type is kept."""
    try:
        lock_customer(customer.id)
        address = _get_owned(customer.id, address_id)

        errs = FieldErrors()
        fields = validate_address_fields(data, errs)
        errs.raise_if_any()

        for key, value in fields.items():
            setattr(address, key, value)
        if address.address_type != SHIPPING:
            address.is_preferred = False
        db.session.commit()
        return address
    except Exception:
        db.session.rollback()
        raise


def delete_address(customer: Customer, address_id: int) -> Address | None:
    """
    Delete an address. When it was the preferred shipping address, the
    oldest remaining shipping address is promoted.

    Returns the promoted address, if any.
    """
    try:
        lock_customer(customer.id)
        address = _get_owned(customer.id, address_id)
        was_preferred = address.is_preferred and address.address_type == SHIPPING

        db.session.delete(address)
        db.session.flush()

        promoted = None
        if was_preferred:
            promoted = db.session.query(Address).filter(
                Address.customer_id == customer.id,
                Address.address_type == SHIPPING,
            ).order_by(Address.created_at.asc(), Address.id.asc()).first()

            if promoted is not None:
                _unmark_shipping_siblings(customer.id, keep_id=promoted.id)
                promoted.is_preferred = True
                db.session.flush()
                # Re-check after promotion, inside the same lock
                _unmark_shipping_siblings(customer.id, keep_id=promoted.id)

        db.session.commit()
        return promoted
    except Exception:
        db.session.rollback()
        raise


def set_preferred(customer: Customer, address_id: int) -> Address:
    try:
        lock_customer(customer.id)
        address = _get_owned(customer.id, address_id)
        if address.address_type != SHIPPING:
            raise ValidationError({"error": "Only shipping addresses can be set as preferred."})

        _unmark_shipping_siblings(customer.id, keep_id=address.id)
        address.is_preferred = True
        db.session.commit()
        return address
    except Exception:
        db.session.rollback()
        raise
