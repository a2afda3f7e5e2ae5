# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services.reporting_service import sales_report
from ..decorators import require_operator


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_operator
def sales_report_route():
    """
    Sales per item and per operator.

    Query params:
    - start: ISO-8601 datetime (optional, inclusive)
    - end: ISO-8601 datetime (optional, inclusive)
    """
    try:
        report = sales_report(start=request.args.get("start"), end=request.args.get("end"))
        return jsonify(report), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500
