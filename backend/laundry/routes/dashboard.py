# Overview: Flask API route for dashboard counters.

from flask import Blueprint, request, jsonify, g

from ..services import reporting_service
from ..decorators import require_auth
from laundry.validation import coerce_date


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard_route():
    """
    Query params:
    - outlet_id: admin filter (omit for all outlets)
    - date: ISO date the counters are relative to (defaults to today)
    """
    summary = reporting_service.dashboard_summary(
        g.caller,
        outlet_id=request.args.get("outlet_id", type=int),
        today=coerce_date(request.args.get("date"), "date", required=False),
    )
    return jsonify({"dashboard": summary}), 200
