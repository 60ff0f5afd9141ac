# Overview: Liveness endpoint.

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import DeviceStatus
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        status_count = db.session.query(DeviceStatus).count()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": {"device_statuses": status_count},
        }
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    ok = database["status"] == "healthy"
    body = {"ok": ok, "timestamp": to_utc_z(utcnow()), "database": database}
    return jsonify(body), 200 if ok else 503
