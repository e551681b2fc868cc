from __future__ import annotations

from ..extensions import db
from ..enums import AddressType, CustomerType, B2C_GROUP_CODE
from ..time_utils import utcnow, format_datetime


class CustomerGroup(db.Model):
    """Pricing group. Any code other than B2C is a business (B2B) group."""
    __tablename__ = "customer_groups"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)

    @property
    def is_b2b(self) -> bool:
        return self.code != B2C_GROUP_CODE

    def to_dict(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name, "is_b2b": self.is_b2b}


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_type = db.Column(db.String(16), nullable=False, default=CustomerType.INDIVIDUAL.value)
    customer_group_id = db.Column(db.Integer, db.ForeignKey("customer_groups.id"), nullable=True, index=True)
    phone = db.Column(db.String(32), nullable=True)

    # Company fiscal data (normalized before storage)
    company_name = db.Column(db.String(255), nullable=True)
    fiscal_code = db.Column(db.String(32), nullable=True)
    reg_number = db.Column(db.String(64), nullable=True)
    bank_name = db.Column(db.String(255), nullable=True)
    iban = db.Column(db.String(34), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    group = db.relationship("CustomerGroup", backref=db.backref("customers", lazy=True))

    @property
    def is_company(self) -> bool:
        return self.customer_type == CustomerType.COMPANY.value

    def __repr__(self) -> str:
        return f"<Customer id={self.id} type={self.customer_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_type": self.customer_type,
            "customer_group_id": self.customer_group_id,
            "phone": self.phone,
            "company_name": self.company_name,
            "fiscal_code": self.fiscal_code,
            "reg_number": self.reg_number,
            "bank_name": self.bank_name,
            "iban": self.iban,
            "created_at": format_datetime(self.created_at),
        }


class Address(db.Model):
    """
    Customer address book entry.

    At most one shipping address per customer has is_preferred=True.
    Mutations go through address_service, which serializes them per customer.
    """
    __tablename__ = "addresses"
    __table_args__ = (
        db.Index("ix_addresses_customer_type", "customer_id", "address_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    address_type = db.Column(db.String(16), nullable=False, default=AddressType.SHIPPING.value)
    is_preferred = db.Column(db.Boolean, nullable=False, default=False)

    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(255), nullable=False)
    address_line_1 = db.Column(db.String(255), nullable=False)
    address_line_2 = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(255), nullable=False)
    county_name = db.Column(db.String(255), nullable=True)
    county_code = db.Column(db.String(2), nullable=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False)
    zip_code = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("addresses", lazy=True))
    country = db.relationship("Country")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "address_type": self.address_type,
            "is_preferred": self.is_preferred,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "address_line_1": self.address_line_1,
            "address_line_2": self.address_line_2,
            "city": self.city,
            "county_name": self.county_name,
            "county_code": self.county_code,
            "country_id": self.country_id,
            "country": self.country.to_dict() if self.country else None,
            "zip_code": self.zip_code,
            "created_at": format_datetime(self.created_at),
        }
