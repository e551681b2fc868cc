from __future__ import annotations

from ..extensions import db
from ..enums import ShippingMethodType
from ..money import cents_to_float


class ShippingMethod(db.Model):
    """Courier or pickup method. cost_ron_cents includes VAT."""
    __tablename__ = "shipping_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(64), nullable=False, unique=True)
    method_type = db.Column(db.String(16), nullable=False, default=ShippingMethodType.COURIER.value)
    cost_ron_cents = db.Column(db.Integer, nullable=False, default=0)
    estimated_days = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def config(self) -> dict[str, str]:
        return {row.config_key: row.config_value for row in self.configs}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "method_type": self.method_type,
            "cost_ron": cents_to_float(self.cost_ron_cents),
            "estimated_days": self.estimated_days,
            "is_active": self.is_active,
        }


class ShippingMethodConfig(db.Model):
    """Courier credentials and options, one key per row."""
    __tablename__ = "shipping_method_configs"
    __table_args__ = (
        db.UniqueConstraint("shipping_method_id", "config_key", name="uq_shipping_method_config_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shipping_method_id = db.Column(db.Integer, db.ForeignKey("shipping_methods.id"), nullable=False, index=True)
    config_key = db.Column(db.String(64), nullable=False)
    config_value = db.Column(db.Text, nullable=True)

    shipping_method = db.relationship("ShippingMethod", backref=db.backref("configs", lazy=True))
