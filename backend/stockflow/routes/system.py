# backend/stockflow/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the built-in locations exist.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Location, Product
from ..services.catalog_service import DEFAULT_LOCATIONS
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        codes = {code for (code,) in db.session.query(Location.code).all()}
        elapsed_ms = (time.time() - start_time) * 1000

        missing = [code for code, _name, _kind in DEFAULT_LOCATIONS if code not in codes]
        if missing:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": f"Missing locations: {', '.join(missing)}",
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "locations": len(codes),
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: healthy, or degraded (locations not seeded yet)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200
    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, http_status
