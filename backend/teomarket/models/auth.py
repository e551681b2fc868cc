from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, format_datetime

ROLE_CUSTOMER = "customer"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CUSTOMER, ROLE_MANAGER, ROLE_ADMIN)


class User(db.Model):
    """
    Account identity. Storefront users link to a Customer record;
    back-office users (manager/admin) usually do not.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_CUSTOMER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("users", lazy=True))

    @property
    def is_admin_or_manager(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_MANAGER)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": format_datetime(self.created_at),
        }


class SessionToken(db.Model):
    """Bearer token; only the SHA-256 hash is stored."""
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    revoked_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
