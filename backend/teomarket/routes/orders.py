# Overview: Flask API routes for the customer's order history; parses filters and returns JSON responses.

# backend/teomarket/routes/orders.py
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import order_query_service
from ..validation import NotFoundError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("/")
@require_auth
def list_orders_route():
    """
    Order history of the authenticated customer, newest first.

    Query params:
        status: all | active | cancelled
        time_range: 3months (default) | 6months | year | all
            ("year" is the calendar year of the first order)
        search: order number or product name
        page, per_page: per_page may be "all"
    """
    filters = {
        "status": request.args.get("status"),
        "time_range": request.args.get("time_range"),
        "search": request.args.get("search"),
    }
    try:
        result = order_query_service.list_orders(
            g.customer,
            filters,
            page=request.args.get("page", 1),
            per_page=request.args.get("per_page"),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/search")
@require_auth
def search_orders_route():
    """Dropdown search: {"results": [...]} of matching order lines."""
    try:
        results = order_query_service.search_order_products(g.customer, request.args.get("q"))
        return jsonify({"results": results}), 200
    except Exception:
        current_app.logger.exception("Failed to search orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_query_service.get_order(g.customer, order_id)
        return jsonify({"order": order}), 200
    except NotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500
