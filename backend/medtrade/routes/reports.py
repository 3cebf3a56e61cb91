# Overview: Flask API routes for reporting; read-only aggregates for the dashboard.

from flask import Blueprint, jsonify, request

from ..commands import int_arg
from ..services import reporting_service
from ..validation import DomainError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
def dashboard_report():
    try:
        report = reporting_service.dashboard_summary(dealer_id=int_arg(request.args, "dealer_id"))
        return jsonify(report), 200
    except DomainError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/requests")
def request_status_report():
    try:
        counts = reporting_service.request_status_counts(dealer_id=int_arg(request.args, "dealer_id"))
        return jsonify({"by_status": counts, "total": sum(counts.values())}), 200
    except DomainError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/stock")
def stock_report():
    try:
        report = reporting_service.stock_report(dealer_id=int_arg(request.args, "dealer_id"))
        return jsonify(report), 200
    except DomainError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/revenue")
def revenue_report():
    try:
        report = reporting_service.revenue_report(dealer_id=int_arg(request.args, "dealer_id"))
        return jsonify(report), 200
    except DomainError as exc:
        return jsonify(exc.to_dict()), exc.status_code
