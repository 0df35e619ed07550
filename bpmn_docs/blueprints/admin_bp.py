"""Admin blueprint: cross-user BPMN file management.

Endpoint groups (admin JWT required):
  Listing     GET    /api/v1/admin/bpmn-files[?format=tree]
              GET    /api/v1/admin/bpmn-files/archived
  Export      GET    /api/v1/admin/bpmn-files/export?ids=a,b
  One file    GET    /api/v1/admin/bpmn-files/<id>
              PATCH  /api/v1/admin/bpmn-files/<id>
              DELETE /api/v1/admin/bpmn-files/<id>
  Seeding     POST   /api/v1/admin/seed-standards
              POST   /api/v1/admin/seed-kpis
"""

import io

from flask import Blueprint, jsonify, request, send_file

from bpmn_docs import limiter
from bpmn_docs.blueprints import json_body
from bpmn_docs.middleware.jwt_auth import admin_required
from bpmn_docs.middleware.rate_limiter import EXPORT_LIMIT
from bpmn_docs.services import admin_file_service, kpi_service, standard_service
from bpmn_docs.services.tree_builder import count_nodes
from bpmn_docs.utils.errors import E, api_error, register_api_error_handlers
from bpmn_docs.utils.helpers import db_commit_or_error

admin_bp = Blueprint("admin_files", __name__, url_prefix="/api/v1/admin")
register_api_error_handlers(admin_bp, "Server error")


@admin_bp.route("/bpmn-files", methods=["GET"])
@admin_required
def list_files():
    if request.args.get("format") == "tree":
        tree = admin_file_service.get_forest()
        return jsonify({"success": True, "tree": tree, "total": count_nodes(tree)})
    return jsonify({"success": True, "files": admin_file_service.list_files_with_paths()})


@admin_bp.route("/bpmn-files/archived", methods=["GET"])
@admin_required
def list_archived():
    return jsonify({"success": True, "files": admin_file_service.list_archived()})


@admin_bp.route("/bpmn-files/export", methods=["GET"])
@limiter.limit(EXPORT_LIMIT)
@admin_required
def export_files():
    ids = admin_file_service.parse_ids(request.args.get("ids"))
    if not ids:
        return api_error(E.VALIDATION_REQUIRED, "No ids provided")
    payload = admin_file_service.export_zip(ids)
    return send_file(
        io.BytesIO(payload),
        mimetype="application/zip",
        as_attachment=True,
        download_name=admin_file_service.EXPORT_FILENAME,
    )


@admin_bp.route("/bpmn-files/<file_id>", methods=["GET"])
@admin_required
def get_file(file_id):
    return jsonify({"success": True, "file": admin_file_service.get_file(file_id)})


@admin_bp.route("/bpmn-files/<file_id>", methods=["PATCH"])
@admin_required
def patch_file(file_id):
    """Body: {name?, ownerUserId?, userId?, archived?}"""
    data, err = json_body()
    if err:
        return err
    return jsonify({"success": True, "file": admin_file_service.patch_file(file_id, data)})


@admin_bp.route("/bpmn-files/<file_id>", methods=["DELETE"])
@admin_required
def delete_file(file_id):
    deleted = admin_file_service.delete_file(file_id)
    return jsonify({"success": True, "deleted": deleted})


@admin_bp.route("/seed-standards", methods=["POST"])
@admin_required
def seed_standards():
    inserted = standard_service.seed_default_standards()
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "inserted": inserted})


@admin_bp.route("/seed-kpis", methods=["POST"])
@admin_required
def seed_kpis():
    inserted = kpi_service.seed_default_kpis()
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "inserted": inserted})
