from __future__ import annotations

from ..extensions import db
from ..enums import OrderStatus
from ..money import cents_to_float, bps_to_percent
from ..time_utils import utcnow, format_datetime, format_datetime_local


class PaymentMethod(db.Model):
    __tablename__ = "payment_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name, "is_active": self.is_active}


class Order(db.Model):
    """
    Customer order.

    Everything except status, payment fields and history is a snapshot
    written once at checkout (currency, exchange_rate, VAT, totals,
    lines, addresses, shipping). Amounts are minor units.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)

    # Snapshot: currency and 1 unit of currency = exchange_rate RON
    currency = db.Column(db.String(3), nullable=False, default="RON")
    exchange_rate = db.Column(db.Numeric(15, 4), nullable=False, default=1)
    vat_rate_applied_bps = db.Column(db.Integer, nullable=False, default=0)
    is_vat_exempt = db.Column(db.Boolean, nullable=False, default=False)

    total_excl_vat_cents = db.Column(db.Integer, nullable=False, default=0)
    total_incl_vat_cents = db.Column(db.Integer, nullable=False, default=0)
    total_ron_excl_vat_cents = db.Column(db.Integer, nullable=False, default=0)
    total_ron_incl_vat_cents = db.Column(db.Integer, nullable=False, default=0)

    # Mutable after checkout
    status = db.Column(db.String(32), nullable=False, default=OrderStatus.PENDING.value, index=True)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime, nullable=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    payment_method = db.relationship("PaymentMethod")
    products = db.relationship(
        "OrderProduct", backref="order", lazy=True, order_by="OrderProduct.id"
    )
    addresses = db.relationship("OrderAddress", backref="order", lazy=True)
    shipping = db.relationship("OrderShipping", backref="order", uselist=False)
    history = db.relationship(
        "OrderHistory", backref="order", lazy=True, order_by="OrderHistory.id"
    )

    @property
    def status_enum(self) -> OrderStatus | None:
        return OrderStatus.parse(self.status)

    def address_of_type(self, address_type: str):
        for address in self.addresses:
            if address.address_type == address_type:
                return address
        return None

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        status = self.status_enum
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "order_number": self.order_number,
            "currency": self.currency,
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "vat_rate_applied": bps_to_percent(self.vat_rate_applied_bps),
            "is_vat_exempt": self.is_vat_exempt,
            "total_excl_vat": cents_to_float(self.total_excl_vat_cents),
            "total_incl_vat": cents_to_float(self.total_incl_vat_cents),
            "total_ron_excl_vat": cents_to_float(self.total_ron_excl_vat_cents),
            "total_ron_incl_vat": cents_to_float(self.total_ron_incl_vat_cents),
            "status": self.status,
            "status_label": status.label if status else self.status,
            "status_color": status.color_code if status else None,
            "is_paid": self.is_paid,
            "paid_at": format_datetime(self.paid_at),
            "payment_method_id": self.payment_method_id,
            "created_at": format_datetime(self.created_at),
            "created_at_formatted": format_datetime_local(self.created_at),
        }


class OrderProduct(db.Model):
    """
    Line snapshot. profit_ron_cents is computed once at checkout from the
    then-current purchase price and never recalculated.
    """
    __tablename__ = "order_products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    ean = db.Column(db.String(32), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)

    vat_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    exchange_rate = db.Column(db.Numeric(15, 4), nullable=False, default=1)

    # Unit prices incl. VAT
    unit_price_currency_cents = db.Column(db.Integer, nullable=False)
    unit_price_ron_cents = db.Column(db.Integer, nullable=False)
    unit_purchase_price_ron_cents = db.Column(db.Integer, nullable=False, default=0)

    total_currency_excl_vat_cents = db.Column(db.Integer, nullable=False)
    total_currency_incl_vat_cents = db.Column(db.Integer, nullable=False)
    total_ron_excl_vat_cents = db.Column(db.Integer, nullable=False)
    total_ron_incl_vat_cents = db.Column(db.Integer, nullable=False)
    profit_ron_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "name": self.name,
            "sku": self.sku,
            "ean": self.ean,
            "quantity": self.quantity,
            "vat_percent": bps_to_percent(self.vat_rate_bps),
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "unit_price_currency": cents_to_float(self.unit_price_currency_cents),
            "unit_price_ron": cents_to_float(self.unit_price_ron_cents),
            "total_currency_excl_vat": cents_to_float(self.total_currency_excl_vat_cents),
            "total_currency_incl_vat": cents_to_float(self.total_currency_incl_vat_cents),
            "total_ron_excl_vat": cents_to_float(self.total_ron_excl_vat_cents),
            "total_ron_incl_vat": cents_to_float(self.total_ron_incl_vat_cents),
        }


class OrderAddress(db.Model):
    """Billing/shipping snapshot, decoupled from the live address book."""
    __tablename__ = "order_addresses"
    __table_args__ = (
        db.Index("ix_order_addresses_order_type", "order_id", "address_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    address_type = db.Column(db.String(16), nullable=False)

    company_name = db.Column(db.String(255), nullable=True)
    fiscal_code = db.Column(db.String(32), nullable=True)
    reg_number = db.Column(db.String(64), nullable=True)
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address_line_1 = db.Column(db.String(255), nullable=False)
    address_line_2 = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(255), nullable=False)
    county_name = db.Column(db.String(255), nullable=True)
    county_code = db.Column(db.String(2), nullable=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False)
    zip_code = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    country = db.relationship("Country")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address_type": self.address_type,
            "company_name": self.company_name,
            "fiscal_code": self.fiscal_code,
            "reg_number": self.reg_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "address_line_1": self.address_line_1,
            "address_line_2": self.address_line_2,
            "city": self.city,
            "county_name": self.county_name,
            "county_code": self.county_code,
            "country_id": self.country_id,
            "country_name": self.country.name if self.country else None,
            "zip_code": self.zip_code,
        }


class OrderShipping(db.Model):
    __tablename__ = "order_shipping"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True)
    shipping_method_id = db.Column(db.Integer, db.ForeignKey("shipping_methods.id"), nullable=False)
    title = db.Column(db.String(255), nullable=True)
    pickup_point_id = db.Column(db.String(128), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)
    courier_data = db.Column(db.JSON, nullable=True)

    cost_excl_vat_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_incl_vat_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_ron_excl_vat_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_ron_incl_vat_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    shipping_method = db.relationship("ShippingMethod")

    def to_dict(self) -> dict:
        method = self.shipping_method
        return {
            "id": self.id,
            "shipping_method_id": self.shipping_method_id,
            "method_name": method.name if method else None,
            "method_type": method.method_type if method else None,
            "title": self.title,
            "pickup_point_id": self.pickup_point_id,
            "tracking_number": self.tracking_number,
            "cost_excl_vat": cents_to_float(self.cost_excl_vat_cents),
            "cost_incl_vat": cents_to_float(self.cost_incl_vat_cents),
            "cost_ron_excl_vat": cents_to_float(self.cost_ron_excl_vat_cents),
            "cost_ron_incl_vat": cents_to_float(self.cost_ron_incl_vat_cents),
        }


class OrderHistory(db.Model):
    """Append-only audit log. Rows are inserted, never updated."""
    __tablename__ = "order_history"
    __table_args__ = (
        db.Index("ix_order_history_order_action", "order_id", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    action = db.Column(db.String(64), nullable=False)
    old_value = db.Column(db.JSON, nullable=True)
    new_value = db.Column(db.JSON, nullable=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "action": self.action,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "description": self.description,
            "created_at": format_datetime(self.created_at),
        }
