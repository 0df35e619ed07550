"""KPI catalogue blueprint.

  GET    /api/v1/kpis           all KPIs (order, then createdAt)
  POST   /api/v1/kpis           create
  PUT    /api/v1/kpis           update, body carries ``id``
  DELETE /api/v1/kpis?id=       delete
"""

from flask import Blueprint, jsonify, request

from bpmn_docs.blueprints import json_body
from bpmn_docs.services import kpi_service
from bpmn_docs.utils.errors import E, api_error, register_api_error_handlers
from bpmn_docs.utils.helpers import db_commit_or_error

kpi_bp = Blueprint("kpis", __name__, url_prefix="/api/v1/kpis")
register_api_error_handlers(kpi_bp, "Failed to process KPI request")


@kpi_bp.route("", methods=["GET"])
def list_kpis():
    return jsonify({"success": True, "kpis": [k.to_dict() for k in kpi_service.list_kpis()]})


@kpi_bp.route("", methods=["POST"])
def create_kpi():
    data, err = json_body()
    if err:
        return err
    kpi = kpi_service.create_kpi(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "message": "KPI created successfully", "kpi": kpi.to_dict()})


@kpi_bp.route("", methods=["PUT"])
def update_kpi():
    data, err = json_body()
    if err:
        return err
    kpi_id = data.get("id")
    if not kpi_id:
        return api_error(E.VALIDATION_REQUIRED, "KPI ID is required")
    kpi = kpi_service.update_kpi(kpi_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "message": "KPI updated successfully", "kpi": kpi.to_dict()})


@kpi_bp.route("", methods=["DELETE"])
def delete_kpi():
    kpi_id = request.args.get("id")
    if not kpi_id:
        return api_error(E.VALIDATION_REQUIRED, "KPI ID is required")
    kpi_service.delete_kpi(kpi_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "message": "KPI deleted successfully"})
