# backend/teomarket/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the reference data that
checkout depends on (RON currency, default country, VAT) is present.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Country, Currency, VatRate
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and reference data.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        country_count = db.session.query(Country).filter_by(is_active=True).count()
        vat_count = db.session.query(VatRate).count()
        has_ron = db.session.query(Currency).filter_by(code="RON").count() > 0
        default_iso = current_app.config.get("DEFAULT_COUNTRY_ISO")
        has_default_country = db.session.query(Country).filter_by(iso_code_2=default_iso).count() > 0

        elapsed_ms = (time.time() - start_time) * 1000
        details = {
            "active_countries": country_count,
            "vat_rates": vat_count,
            "base_currency_configured": has_ron,
            "default_country_configured": has_default_country,
        }

        if not (has_ron and has_default_country and vat_count):
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Reference data missing; run 'flask system init'",
                "details": details,
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (operational, reference data missing)
    - 503: database unreachable
    """
    database_health = check_database_health()

    if database_health["status"] == "unhealthy":
        http_status = 503
    else:
        http_status = 200

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status
