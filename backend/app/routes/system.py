# backend/app/routes/system.py
"""
System health endpoint.

Reports database connectivity and the ledger/lot consistency summary so a
deployment probe can tell a broken ledger from a dead database.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from ..extensions import db
from ..services.stock_ledger_service import check_consistency
from app.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_ledger_health() -> dict:
    try:
        rows = check_consistency()
    except Exception:
        current_app.logger.exception("Ledger health check failed")
        return {"status": "unhealthy", "error": "Ledger check failed"}

    broken = [r["ingredient_id"] for r in rows if not r["consistent"]]
    if broken:
        return {"status": "degraded", "inconsistent_ingredient_ids": broken}
    return {"status": "healthy", "ingredients_checked": len(rows)}


@system_bp.get("/health")
def health():
    checks = {"database": check_database_health()}
    if checks["database"]["status"] == "healthy":
        checks["ledger"] = check_ledger_health()

    statuses = {c["status"] for c in checks.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    code = 503 if overall == "unhealthy" else 200
    return jsonify({"status": overall, "checks": checks, "timestamp": to_utc_z(utcnow())}), code
