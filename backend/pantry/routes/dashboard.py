# Overview: Flask API route for the admin dashboard rollup.

# backend/pantry/routes/dashboard.py
from flask import Blueprint, jsonify, g

from ..services import dashboard_service
from ..decorators import require_auth, require_permission

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard():
    """
    Counts, 7-day series, status breakdown, recent activity and top products.

    Always 200: if the data cannot be read the body is an empty rollup with
    "degraded": true.
    """
    return jsonify(dashboard_service.build_dashboard(g.actor)), 200
