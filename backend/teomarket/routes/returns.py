# Overview: Flask API routes for customer return requests; parses input and returns dual-mode responses.

# backend/teomarket/routes/returns.py
"""
Return Request API Routes

Guests and customers can open returns:
- Look up the order (customers must own it, guests prove it with email or phone)
- Submit a return for one order line (status: pending)
- Customers list their own returns

Review (status, refund, restock) lives under /api/admin/returns.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, optional_auth
from ..enums import ReturnReason, ReturnStatus, REASONS_REQUIRING_DETAILS
from ..responses import success, failure, not_found, request_data
from ..services import return_service
from ..validation import ValidationError, NotFoundError


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")

RETURN_FORM_PAGE = "/returns"


@returns_bp.get("/reasons")
def list_reasons_route():
    """Return reasons and statuses for the request form and filters."""
    return jsonify({
        "reasons": [
            {**reason.to_dict(), "requires_details": reason in REASONS_REQUIRING_DETAILS}
            for reason in ReturnReason
        ],
        "statuses": [status.to_dict() for status in ReturnStatus],
    }), 200


@returns_bp.post("/lookup")
@optional_auth
def lookup_order_route():
    """
    Find the order a return is opened for.

    Request body:
    {
        "order_number": "34C-DEF-GHJ",
        "email": "client@example.com",  (guests: email or phone)
        "phone": "0722000000"
    }
    """
    data = request_data()
    try:
        order = return_service.lookup_order_for_return(
            data.get("order_number"),
            customer=g.customer,
            email=data.get("email"),
            phone=data.get("phone"),
            honeypot=data.get("website"),
        )
        return jsonify({"success": True, "order": order}), 200
    except ValidationError as e:
        return failure(e.errors, fallback=RETURN_FORM_PAGE)
    except Exception:
        current_app.logger.exception("Failed to look up order for return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.post("/")
@optional_auth
def create_return_route():
    """
    Submit a return request (status: pending).

    Request body:
    {
        "order_id": 12,
        "order_product_id": 34,
        "quantity": 1,
        "return_reason": "defect",
        "return_reason_details": "Screen flickers",  (required for other/defect)
        "is_product_opened": "yes",  (optional)
        "iban": "RO49AAAA1B31007593840000",  (required for cash on delivery)
        "email": "...", "phone": "..."  (guests)
    }

    Returns:
        201: Return created
        404: Order or line not found (or not the caller's)
        422: Field errors
    """
    try:
        product_return = return_service.create_return(
            request_data(), customer=g.customer, user=g.current_user
        )
        return success(
            "Return request submitted successfully.",
            fallback=RETURN_FORM_PAGE,
            status=201,
            id=product_return.id,
            return_number=product_return.return_number,
        )
    except NotFoundError:
        return not_found("Order not found", fallback=RETURN_FORM_PAGE)
    except ValidationError as e:
        return failure(e.errors, fallback=RETURN_FORM_PAGE)
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/")
@require_auth
def list_returns_route():
    """
    The customer's returns, newest first.

    Query params:
        status: all or a return status
        time_range: 3months (default) | 6months | year | all
        search: order number, product name or SKU
        page, per_page: per_page may be "all"
    """
    filters = {
        "status": request.args.get("status"),
        "time_range": request.args.get("time_range"),
        "search": request.args.get("search"),
    }
    try:
        result = return_service.list_customer_returns(
            g.customer,
            filters,
            page=request.args.get("page", 1),
            per_page=request.args.get("per_page"),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list returns")
        return jsonify({"error": "Internal server error"}), 500
