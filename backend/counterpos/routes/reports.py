# backend/counterpos/routes/reports.py
from flask import Blueprint, jsonify, request

from ..decorators import handle_pos_errors
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@handle_pos_errors("Failed to build dashboard summary")
def dashboard():
    """
    Query params:
    - start, end: ISO-8601 datetimes bounding sale_date (optional, inclusive)
    """
    summary = reporting_service.dashboard_summary(
        start=request.args.get("start"),
        end=request.args.get("end"),
    )
    return jsonify(summary)
