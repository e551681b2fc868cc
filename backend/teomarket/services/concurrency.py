# Overview: Row locking helpers for per-customer and per-record serialization.

from __future__ import annotations

from ..extensions import db
from ..models import Customer


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def lock_customer(customer_id: int) -> Customer | None:
    """
    Lock the customer row for the rest of the transaction.

    Address preference changes for one customer queue behind this lock.
    """
    return lock_for_update(
        db.session.query(Customer).filter(Customer.id == customer_id)
    ).one_or_none()
