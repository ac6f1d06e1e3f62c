# backend/counterpos/routes/system.py
"""
System health endpoint.

Reports database reachability plus row counts for the shop the request
is scoped to, for deployment debugging.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import CompanyProfile, Customer, Product, Sale
from ..services.tenant_service import current_namespace
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    namespace = current_namespace()
    try:
        details = {
            "products": db.session.query(Product).filter_by(namespace=namespace).count(),
            "customers": db.session.query(Customer).filter_by(namespace=namespace).count(),
            "sales": db.session.query(Sale).filter_by(namespace=namespace).count(),
            "profile_initialized": db.session.query(CompanyProfile.id)
            .filter_by(namespace=namespace)
            .first() is not None,
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "error",
        "namespace": current_namespace(),
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }
    return jsonify(body), 200 if healthy else 503
