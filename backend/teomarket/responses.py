# Overview: Dual-mode (JSON or redirect + flash) responses for storefront form endpoints.

"""
Storefront forms post either from the single-page UI (JSON) or as plain
HTML forms. JSON clients get a JSON body; everyone else is redirected back
with a flashed status message.
"""

from flask import request, jsonify, redirect, flash


def wants_json() -> bool:
    """True when the client sent JSON or asked for a JSON answer."""
    if request.is_json:
        return True
    return "application/json" in request.headers.get("Accept", "")


def _back(fallback: str) -> str:
    return request.referrer or fallback


def success(message: str, *, fallback: str = "/", status: int = 200, **payload):
    if wants_json():
        return jsonify({"success": True, "message": message, **payload}), status
    flash(message, "success")
    return redirect(_back(fallback))


def failure(errors: dict, *, fallback: str = "/", status: int = 422):
    message = next(iter(errors.values()), "Invalid input")
    if wants_json():
        return jsonify({"success": False, "errors": errors, "message": message}), status
    for field_message in errors.values():
        flash(field_message, "error")
    return redirect(_back(fallback))


def not_found(message: str = "Not found", *, fallback: str = "/"):
    return failure({"error": message}, fallback=fallback, status=404)


def request_data() -> dict:
    """JSON body or form fields, whichever the client sent."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()
