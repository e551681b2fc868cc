from __future__ import annotations

from ..extensions import db
from ..enums import ProductType
from ..money import cents_to_float
from ..time_utils import utcnow


class ProductFamily(db.Model):
    __tablename__ = "product_families"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)


class Attribute(db.Model):
    __tablename__ = "attributes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)


class AttributeValue(db.Model):
    __tablename__ = "attribute_values"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    attribute_id = db.Column(db.Integer, db.ForeignKey("attributes.id"), nullable=False, index=True)
    value = db.Column(db.String(255), nullable=False)

    attribute = db.relationship("Attribute", backref=db.backref("values", lazy=True))


class Product(db.Model):
    """
    Catalog product. Configurable products group variants (parent_id);
    variants carry the attribute values that distinguish them.

    price_ron_cents is the base price in RON excluding VAT.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    ean = db.Column(db.String(32), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    product_type = db.Column(db.String(16), nullable=False, default=ProductType.SIMPLE.value)
    parent_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    product_family_id = db.Column(db.Integer, db.ForeignKey("product_families.id"), nullable=True)

    price_ron_cents = db.Column(db.Integer, nullable=False, default=0)
    purchase_price_ron_cents = db.Column(db.Integer, nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    parent = db.relationship("Product", remote_side=[id], backref=db.backref("variants", lazy=True))
    family = db.relationship("ProductFamily")

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "ean": self.ean,
            "name": self.name,
            "product_type": self.product_type,
            "parent_id": self.parent_id,
            "product_family_id": self.product_family_id,
            "price_ron": cents_to_float(self.price_ron_cents),
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
        }


class ProductAttributeValue(db.Model):
    __tablename__ = "product_attribute_values"
    __table_args__ = (
        db.UniqueConstraint("product_id", "attribute_value_id", name="uq_product_attribute_value"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    attribute_value_id = db.Column(db.Integer, db.ForeignKey("attribute_values.id"), nullable=False)

    product = db.relationship("Product", backref=db.backref("attribute_values", lazy=True))
    attribute_value = db.relationship("AttributeValue")


class ProductGroupPrice(db.Model):
    """Quantity tier price (RON, excl. VAT) for one customer group."""
    __tablename__ = "product_group_prices"
    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "customer_group_id", "min_quantity",
            name="uq_product_group_prices_tier",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    customer_group_id = db.Column(db.Integer, db.ForeignKey("customer_groups.id"), nullable=False, index=True)
    min_quantity = db.Column(db.Integer, nullable=False, default=1)
    price_ron_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", backref=db.backref("group_prices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "customer_group_id": self.customer_group_id,
            "min_quantity": self.min_quantity,
            "price_ron": cents_to_float(self.price_ron_cents),
        }
