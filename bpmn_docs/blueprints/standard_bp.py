"""Reference standards blueprint.

  GET  /api/v1/standards   active standards sorted by name
  POST /api/v1/standards   add one (409 on duplicate name / code)
"""

from flask import Blueprint, jsonify

from bpmn_docs.blueprints import json_body
from bpmn_docs.services import standard_service
from bpmn_docs.utils.errors import register_api_error_handlers
from bpmn_docs.utils.helpers import db_commit_or_error

standard_bp = Blueprint("standards", __name__, url_prefix="/api/v1/standards")
register_api_error_handlers(standard_bp, "Failed to fetch standards")


@standard_bp.route("", methods=["GET"])
def list_standards():
    standards = standard_service.list_active_standards()
    return jsonify({"success": True, "standards": [s.to_dict() for s in standards]})


@standard_bp.route("", methods=["POST"])
def create_standard():
    data, err = json_body()
    if err:
        return err
    std = standard_service.create_standard(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "standard": std.to_dict()}), 201
