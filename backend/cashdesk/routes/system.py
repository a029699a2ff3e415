# backend/cashdesk/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Shift
from ..models.shifts import SHIFT_OPEN
from cashdesk.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        open_shifts = db.session.query(Shift).filter_by(status=SHIFT_OPEN).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "open_shifts": open_shifts,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    ok = database["status"] == "healthy"
    return jsonify({
        "status": "ok" if ok else "degraded",
        "time": to_utc_z(utcnow()),
        "database": database,
    }), 200 if ok else 503
