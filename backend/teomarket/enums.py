# Overview: Closed status/type vocabularies stored as strings in the database.

from __future__ import annotations

from enum import Enum


class _LabeledEnum(str, Enum):
    """String enum with a display label and a UI color code."""

    @property
    def label(self) -> str:
        return self._labels()[self]

    @property
    def color_code(self) -> str:
        return self._colors().get(self, "#6B7280")

    @classmethod
    def _labels(cls) -> dict:
        return {member: member.value.replace("_", " ").title() for member in cls}

    @classmethod
    def _colors(cls) -> dict:
        return {}

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value):
        """Return the member for value, or None when value is not a member."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    def to_dict(self) -> dict:
        return {"value": self.value, "label": self.label, "color_code": self.color_code}


class OrderStatus(_LabeledEnum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @classmethod
    def _colors(cls) -> dict:
        return {
            cls.PENDING: "#F59E0B",
            cls.AWAITING_PAYMENT: "#F97316",
            cls.CONFIRMED: "#0EA5E9",
            cls.PROCESSING: "#6366F1",
            cls.SHIPPED: "#3B82F6",
            cls.DELIVERED: "#10B981",
            cls.CANCELLED: "#EF4444",
            cls.REFUNDED: "#64748B",
        }


class ReturnStatus(_LabeledEnum):
    PENDING = "pending"
    RECEIVED = "received"
    INSPECTING = "inspecting"
    REJECTED = "rejected"
    COMPLETED = "completed"

    @classmethod
    def _colors(cls) -> dict:
        return {
            cls.PENDING: "#F59E0B",
            cls.RECEIVED: "#8B5CF6",
            cls.INSPECTING: "#EC4899",
            cls.REJECTED: "#EF4444",
            cls.COMPLETED: "#6B7280",
        }


# Allowed return status moves. Terminal states have no outgoing edges.
RETURN_TRANSITIONS: dict[ReturnStatus, frozenset[ReturnStatus]] = {
    ReturnStatus.PENDING: frozenset({ReturnStatus.RECEIVED, ReturnStatus.REJECTED}),
    ReturnStatus.RECEIVED: frozenset({ReturnStatus.INSPECTING, ReturnStatus.REJECTED}),
    ReturnStatus.INSPECTING: frozenset({ReturnStatus.COMPLETED, ReturnStatus.REJECTED}),
    ReturnStatus.REJECTED: frozenset(),
    ReturnStatus.COMPLETED: frozenset(),
}


class ReturnReason(_LabeledEnum):
    OTHER = "other"
    WRONG_PRODUCT = "wrong_product"
    DEFECT = "defect"
    ORDER_ERROR = "order_error"
    SEALED_RETURN = "sealed_return"


# Reasons that require free-text details
REASONS_REQUIRING_DETAILS = frozenset({ReturnReason.OTHER, ReturnReason.DEFECT})


class AddressType(_LabeledEnum):
    SHIPPING = "shipping"
    BILLING = "billing"
    HEADQUARTERS = "headquarters"


class CustomerType(_LabeledEnum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class ProductType(_LabeledEnum):
    SIMPLE = "simple"
    CONFIGURABLE = "configurable"
    VARIANT = "variant"


class ShippingMethodType(_LabeledEnum):
    COURIER = "courier"
    PICKUP = "pickup"


# Order history actions
HISTORY_ORDER_CREATED = "order_created"
HISTORY_STATUS_CHANGED = "status_changed"
HISTORY_ORDER_CANCELLED = "order_cancelled"
HISTORY_PAYMENT_RECEIVED = "payment_received"
HISTORY_PAYMENT_REVERSED = "payment_reversed"

# Payment method codes
CASH_ON_DELIVERY_CODES = frozenset({"ramburs", "cod", "cash_on_delivery"})
CARD_PAYMENT_CODES = frozenset({"card", "credit_card", "debit_card", "online"})
AUTO_PAID_CODES = CARD_PAYMENT_CODES | {"paypal", "stripe"}

B2C_GROUP_CODE = "B2C"
