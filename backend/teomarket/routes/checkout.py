# Overview: Flask API route for placing orders; parses input and returns JSON responses.

# backend/teomarket/routes/checkout.py
"""
Checkout API Route

Places an order for a guest or an authenticated customer. Prices, VAT and
the exchange rate are recomputed server-side and frozen onto the order;
nothing price-related is read from the request.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import optional_auth
from ..responses import request_data
from ..services import order_service, order_query_service
from ..validation import ValidationError, NotFoundError, ConfigurationError


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@checkout_bp.post("/")
@optional_auth
def place_order_route():
    """
    Place an order.

    Headers:
        Idempotency-Key: optional; replays return the original order

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "currency": "EUR",  (default: RON)
        "payment_method_id": 1,
        "shipping_method_id": 1,
        "billing_address_id": 5,  (customers) or "billing_address": {...}  (guests, incl. email)
        "shipping_address_id": 6,  or "shipping_address": {...}
        "pickup_point_id": "EBX-123",  (optional)
        "courier_data": {...}  (optional)
    }

    Returns:
        201: Order created
        404: Address not in the customer's address book
        422: Field errors
        500: Missing currency/VAT configuration (logged)
    """
    data = request_data()
    idempotency_key = request.headers.get("Idempotency-Key") or data.get("idempotency_key")

    try:
        order = order_service.create_order(
            g.customer,
            data.get("items"),
            payment_method_id=data.get("payment_method_id"),
            shipping_method_id=data.get("shipping_method_id"),
            currency_code=data.get("currency") or "RON",
            billing_address_id=data.get("billing_address_id"),
            billing_address=data.get("billing_address"),
            shipping_address_id=data.get("shipping_address_id"),
            shipping_address=data.get("shipping_address"),
            pickup_point_id=data.get("pickup_point_id"),
            courier_data=data.get("courier_data"),
            idempotency_key=idempotency_key,
            user=g.current_user,
        )
        return jsonify({
            "success": True,
            "message": "Order placed successfully.",
            "order": order_query_service.serialize_order(order, detailed=True),
        }), 201

    except ValidationError as e:
        return jsonify({"success": False, "errors": e.errors, "message": str(e)}), 422
    except NotFoundError:
        return jsonify({"error": "Address not found"}), 404
    except ConfigurationError:
        current_app.logger.exception("Checkout configuration error")
        return jsonify({"error": "Internal server error"}), 500
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500
