# Overview: Flask API routes for account settings and location lookups; parses input and returns JSON responses.

# backend/teomarket/routes/account.py
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_customer, require_customer_record
from ..responses import success, failure, request_data
from ..services import country_service, customer_service
from ..validation import ValidationError, parse_int


account_bp = Blueprint("account", __name__, url_prefix="/api/account")

COMPANY_PAGE = "/settings/company"


@account_bp.get("/company")
@require_auth
@require_customer
def get_company_route():
    customer = g.customer
    return jsonify({
        "company": {
            "company_name": customer.company_name,
            "fiscal_code": customer.fiscal_code,
            "reg_number": customer.reg_number,
            "bank_name": customer.bank_name,
            "iban": customer.iban,
        }
    }), 200


@account_bp.put("/company")
@require_auth
@require_customer_record(COMPANY_PAGE)
def update_company_route():
    """
    Update company data. The fiscal code is checked against VIES.

    Request body:
    {
        "company_name": "Teo Market SRL",
        "fiscal_code": "RO12345678",
        "reg_number": "J40/123/2020",
        "bank_name": "Banca Transilvania",  (optional)
        "iban": "RO49 AAAA 1B31 0075 9384 0000"  (optional)
    }
    """
    try:
        customer = customer_service.update_company_info(g.customer, request_data())
        return success(
            "Company information updated successfully.",
            fallback=COMPANY_PAGE,
            fiscal_code=customer.fiscal_code,
            iban=customer.iban,
        )
    except ValidationError as e:
        return failure(e.errors, fallback=COMPANY_PAGE)
    except Exception:
        current_app.logger.exception("Failed to update company information")
        return jsonify({"error": "Internal server error"}), 500


@account_bp.get("/countries")
def list_countries_route():
    countries = country_service.list_countries()
    return jsonify({"countries": [c.to_dict() for c in countries]}), 200


@account_bp.get("/states")
def list_states_route():
    """Query params: country_id (required)"""
    try:
        country_id = parse_int(request.args.get("country_id"))
    except ValueError:
        return jsonify({"error": "country_id required"}), 400
    return jsonify({"states": country_service.list_states(country_id)}), 200


@account_bp.get("/cities")
def list_cities_route():
    """Query params: state_id (required)"""
    try:
        state_id = parse_int(request.args.get("state_id"))
    except ValueError:
        return jsonify({"error": "state_id required"}), 400
    return jsonify({"cities": country_service.list_cities(state_id)}), 200


@account_bp.get("/detected-country")
def detected_country_route():
    """Country suggestion for address forms, from the caller's IP."""
    try:
        country = country_service.detected_country(request.remote_addr)
        return jsonify({"country": country.to_dict() if country else None}), 200
    except Exception:
        current_app.logger.exception("Failed to detect country")
        return jsonify({"error": "Internal server error"}), 500
