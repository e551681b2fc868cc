from __future__ import annotations

from ..extensions import db
from ..enums import ReturnStatus, ReturnReason
from ..money import cents_to_float
from ..time_utils import utcnow, format_datetime, format_datetime_local, format_date


class ProductReturn(db.Model):
    """
    Return request for one order line.

    Customer and product identity are copied from the order at creation.
    restocked_at is the applied-once guard for the stock increment.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    order_product_id = db.Column(db.Integer, db.ForeignKey("order_products.id"), nullable=False, index=True)
    return_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    # Snapshot
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(255), nullable=True)
    order_number = db.Column(db.String(32), nullable=False)
    order_date = db.Column(db.Date, nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    return_reason = db.Column(db.String(32), nullable=False)
    return_reason_details = db.Column(db.Text, nullable=True)
    is_product_opened = db.Column(db.String(3), nullable=True)  # yes / no
    iban = db.Column(db.String(34), nullable=True)

    # Admin-managed
    status = db.Column(db.String(16), nullable=False, default=ReturnStatus.PENDING.value, index=True)
    refund_amount_cents = db.Column(db.Integer, nullable=True)
    restock_item = db.Column(db.Boolean, nullable=False, default=False)
    restocked_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("returns", lazy=True))
    order_product = db.relationship("OrderProduct", backref=db.backref("returns", lazy=True))

    def to_dict(self) -> dict:
        status = ReturnStatus.parse(self.status)
        reason = ReturnReason.parse(self.return_reason)
        return {
            "id": self.id,
            "return_number": self.return_number,
            "order_id": self.order_id,
            "order_product_id": self.order_product_id,
            "order_number": self.order_number,
            "order_date": format_date(self.order_date),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "return_reason": self.return_reason,
            "return_reason_label": reason.label if reason else self.return_reason,
            "return_reason_details": self.return_reason_details,
            "is_product_opened": self.is_product_opened,
            "iban": self.iban,
            "status": self.status,
            "status_label": status.label if status else self.status,
            "status_color": status.color_code if status else None,
            "refund_amount": cents_to_float(self.refund_amount_cents),
            "restock_item": self.restock_item,
            "restocked_at": format_datetime(self.restocked_at),
            "created_at": format_datetime(self.created_at),
            "created_at_formatted": format_datetime_local(self.created_at),
        }
