# Overview: Flask API routes for product price quotes; parses input and returns JSON responses.

# backend/teomarket/routes/products.py
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import optional_auth
from ..extensions import db
from ..models import Product
from ..services import country_service, currency_service, pricing_service
from ..validation import ConfigurationError, parse_int


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _quote_context():
    """(currency, exchange_rate, customer_group_id, country_id) for the caller."""
    currency = currency_service.get_active_currency((request.args.get("currency") or "RON").upper())
    rate = currency_service.frozen_exchange_rate(currency)
    customer = g.customer
    group_id = pricing_service.effective_group_id(customer.customer_group_id if customer else None)
    country_id = None
    if not pricing_service.is_b2b(group_id):
        country_id = country_service.get_country_id(customer, request.remote_addr)
    return currency, rate, group_id, country_id


@products_bp.get("/<int:product_id>/price")
@optional_auth
def product_price_route(product_id: int):
    """
    Price of quantity units for the caller's group and country.

    Query params:
        quantity: default 1
        currency: default RON
    """
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return jsonify({"error": "Product not found"}), 404

    try:
        quantity = parse_int(request.args.get("quantity", 1))
    except ValueError:
        return jsonify({"error": "quantity must be an integer"}), 400
    if quantity < 1:
        return jsonify({"error": "quantity must be at least 1"}), 400

    try:
        currency, rate, group_id, country_id = _quote_context()
        info = pricing_service.price_info(product, currency.code, rate, quantity, group_id, country_id)
        return jsonify({"product_id": product.id, "price": info.to_dict()}), 200
    except ConfigurationError:
        current_app.logger.exception("Pricing configuration error")
        return jsonify({"error": "Internal server error"}), 500
    except Exception:
        current_app.logger.exception("Failed to price product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/tiers")
@optional_auth
def product_tiers_route(product_id: int):
    """Quantity price tiers of the caller's customer group."""
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return jsonify({"error": "Product not found"}), 404

    try:
        currency, rate, group_id, country_id = _quote_context()
        tiers = pricing_service.price_tiers(product, currency.code, rate, group_id, country_id)
        return jsonify({"product_id": product.id, "currency": currency.code, "tiers": tiers}), 200
    except ConfigurationError:
        current_app.logger.exception("Pricing configuration error")
        return jsonify({"error": "Internal server error"}), 500
    except Exception:
        current_app.logger.exception("Failed to load price tiers")
        return jsonify({"error": "Internal server error"}), 500
