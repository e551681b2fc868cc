# Overview: Flask API routes for the customer address book; parses input and returns dual-mode responses.

# backend/teomarket/routes/addresses.py
"""
Address Book API Routes

Every mutation keeps at most one preferred shipping address per customer.
Form posts are answered with a redirect and a flashed message, JSON
clients with {"success", "id"?, "message"}.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_customer, require_customer_record
from ..responses import success, failure, not_found, request_data
from ..services import address_service
from ..validation import ValidationError, NotFoundError


addresses_bp = Blueprint("addresses", __name__, url_prefix="/api/addresses")

SETTINGS_PAGE = "/settings/addresses"


@addresses_bp.get("/")
@require_auth
@require_customer
def list_addresses_route():
    """
    List the customer's addresses.

    Query params:
        type: shipping (default), billing, headquarters, or all
    """
    address_type = request.args.get("type", "shipping")
    if address_type == "all":
        address_type = None

    try:
        addresses = address_service.list_addresses(g.customer, address_type)
        return jsonify({"addresses": [a.to_dict() for a in addresses]}), 200
    except Exception:
        current_app.logger.exception("Failed to list addresses")
        return jsonify({"error": "Internal server error"}), 500


@addresses_bp.post("/")
@require_auth
@require_customer_record(SETTINGS_PAGE)
def create_address_route():
    """
    Add an address.

    Request body:
    {
        "address_type": "shipping",  (or "billing")
        "first_name": "Ion", "last_name": "Popescu", "phone": "0722000000",
        "address_line_1": "Str. Lunga 1", "city": "Brasov", "county_name": "Brasov",
        "county_code": "BV", "country_id": 1, "zip_code": "500000",
        "is_preferred": true  (optional)
    }
    """
    try:
        address = address_service.create_address(g.customer, request_data())
        return success("Address added successfully.", fallback=SETTINGS_PAGE, status=201, id=address.id)
    except ValidationError as e:
        return failure(e.errors, fallback=SETTINGS_PAGE)
    except Exception:
        current_app.logger.exception("Failed to create address")
        return jsonify({"error": "Internal server error"}), 500


@addresses_bp.put("/<int:address_id>")
@require_auth
@require_customer_record(SETTINGS_PAGE)
def update_address_route(address_id: int):
    try:
        address = address_service.update_address(g.customer, address_id, request_data())
        return success("Address updated successfully.", fallback=SETTINGS_PAGE, id=address.id)
    except NotFoundError:
        return not_found("Address not found", fallback=SETTINGS_PAGE)
    except ValidationError as e:
        return failure(e.errors, fallback=SETTINGS_PAGE)
    except Exception:
        current_app.logger.exception("Failed to update address")
        return jsonify({"error": "Internal server error"}), 500


@addresses_bp.delete("/<int:address_id>")
@require_auth
@require_customer_record(SETTINGS_PAGE)
def delete_address_route(address_id: int):
    """Delete an address; the oldest remaining shipping address may be promoted."""
    try:
        promoted = address_service.delete_address(g.customer, address_id)
        return success(
            "Address deleted successfully.",
            fallback=SETTINGS_PAGE,
            promoted_id=promoted.id if promoted else None,
        )
    except NotFoundError:
        return not_found("Address not found", fallback=SETTINGS_PAGE)
    except Exception:
        current_app.logger.exception("Failed to delete address")
        return jsonify({"error": "Internal server error"}), 500


@addresses_bp.post("/<int:address_id>/preferred")
@require_auth
@require_customer_record(SETTINGS_PAGE)
def set_preferred_route(address_id: int):
    try:
        address = address_service.set_preferred(g.customer, address_id)
        return success("Preferred address updated.", fallback=SETTINGS_PAGE, id=address.id)
    except NotFoundError:
        return not_found("Address not found", fallback=SETTINGS_PAGE)
    except ValidationError as e:
        return failure(e.errors, fallback=SETTINGS_PAGE, status=400)
    except Exception:
        current_app.logger.exception("Failed to set preferred address")
        return jsonify({"error": "Internal server error"}), 500
