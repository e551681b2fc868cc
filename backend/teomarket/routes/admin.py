# Overview: Flask API routes for back-office order and return management; parses input and returns JSON responses.

# backend/teomarket/routes/admin.py
"""
Back-office API Routes

ORDERS:
- Status changes (logged to order history; cancelling also logs order_cancelled)
- Mark paid / unpaid

RETURNS:
- Listing with filters, detail
- Status changes along the allowed transitions
- Manual refund amount
- Restock flag (stock is added back at most once per return)

SECURITY:
- admin or manager role required
- Every change is logged with the acting user id
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models import ROLE_ADMIN, ROLE_MANAGER
from ..money import cents_to_float
from ..responses import request_data
from ..services import order_query_service, order_service, return_service
from ..services.order_service import OrderError
from ..services.return_service import ReturnError
from ..time_utils import format_datetime, format_datetime_local
from ..validation import ValidationError, NotFoundError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _validation_error(e: ValidationError):
    return jsonify({"success": False, "errors": e.errors, "message": str(e)}), 422


# =============================================================================
# ORDERS
# =============================================================================

@admin_bp.post("/orders/<order_number>/status")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_order_status_route(order_number: str):
    """
    Change an order's status.

    Request body:
    {
        "status": "shipped"
    }
    """
    data = request_data()
    try:
        order = order_service.update_status(order_number, data.get("status"), user_id=g.current_user.id)
        return jsonify({
            "message": "Status updated successfully",
            "order": order_query_service.serialize_order(order, detailed=True),
        }), 200
    except NotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


def _payment_payload(order) -> dict:
    return {
        "is_paid": order.is_paid,
        "paid_at": format_datetime(order.paid_at),
        "paid_at_formatted": format_datetime_local(order.paid_at),
    }


@admin_bp.post("/orders/<order_number>/paid")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def mark_order_paid_route(order_number: str):
    try:
        order = order_service.mark_paid(order_number, user_id=g.current_user.id)
        return jsonify({"message": "Order marked as paid successfully.", "order": _payment_payload(order)}), 200
    except NotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except OrderError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to mark order as paid")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/orders/<order_number>/unpaid")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def mark_order_unpaid_route(order_number: str):
    try:
        order = order_service.mark_unpaid(order_number, user_id=g.current_user.id)
        return jsonify({"message": "Order marked as unpaid successfully.", "order": _payment_payload(order)}), 200
    except NotFoundError:
        return jsonify({"error": "Order not found"}), 404
    except OrderError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to mark order as unpaid")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# RETURNS
# =============================================================================

@admin_bp.get("/returns")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_returns_route():
    """
    Query params:
        status, order_number, date_from, date_to (YYYY-MM-DD), email, search, page
    """
    filters = {
        key: request.args.get(key)
        for key in ("status", "order_number", "date_from", "date_to", "email", "search")
    }
    try:
        result = return_service.list_admin_returns(filters, page=request.args.get("page", 1))
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list returns")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/returns/<int:return_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def get_return_route(return_id: int):
    try:
        product_return = return_service.get_return(return_id)
        return jsonify({"return": product_return.to_dict()}), 200
    except NotFoundError:
        return jsonify({"error": "Return not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to get return")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/returns/<int:return_id>/status")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_return_status_route(return_id: int):
    """
    Move a return along its lifecycle.

    Request body:
    {
        "status": "received"
    }

    Returns:
        200: Status updated (completing a return with restock_item set restocks it)
        400: Transition not allowed
        404: Return not found
        422: Unknown status
    """
    data = request_data()
    try:
        product_return = return_service.update_status(
            return_id, data.get("status"), actor_id=g.current_user.id
        )
        return jsonify({
            "message": "Status updated successfully",
            "return": product_return.to_dict(),
        }), 200
    except NotFoundError:
        return jsonify({"error": "Return not found"}), 404
    except ValidationError as e:
        return _validation_error(e)
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update return status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/returns/<int:return_id>/refund-amount")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_refund_amount_route(return_id: int):
    """
    Request body:
    {
        "refund_amount": 149.99  (null clears it)
    }
    """
    data = request_data()
    try:
        product_return = return_service.update_refund_amount(
            return_id, data.get("refund_amount"), actor_id=g.current_user.id
        )
        return jsonify({
            "message": "Refund amount updated successfully",
            "refund_amount": cents_to_float(product_return.refund_amount_cents),
        }), 200
    except NotFoundError:
        return jsonify({"error": "Return not found"}), 404
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to update refund amount")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/returns/<int:return_id>/restock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_restock_route(return_id: int):
    """
    Request body:
    {
        "restock_item": true
    }

    Response includes "restocked": true only for the request that added
    the quantity back to stock.
    """
    data = request_data()
    try:
        product_return, applied = return_service.update_restock_flag(
            return_id, data.get("restock_item"), actor_id=g.current_user.id
        )
        return jsonify({
            "message": "Restock option updated successfully",
            "restock_item": product_return.restock_item,
            "restocked": applied,
            "restocked_at": format_datetime(product_return.restocked_at),
        }), 200
    except NotFoundError:
        return jsonify({"error": "Return not found"}), 404
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to update restock option")
        return jsonify({"error": "Internal server error"}), 500
