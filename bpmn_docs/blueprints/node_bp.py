"""BPMN node tree blueprint.

Endpoints (all scoped by userId):
  GET    /api/v1/bpmn-nodes?userId=[&nodeId=]   nested tree, or one node
  POST   /api/v1/bpmn-nodes                      create folder / file
  PUT    /api/v1/bpmn-nodes                      partial update (nodeId, userId in body)
  DELETE /api/v1/bpmn-nodes?nodeId=&userId=      cascading delete

The service owns validation and commits; errors map through the handlers
registered below.
"""

from flask import Blueprint, jsonify, request

from bpmn_docs.blueprints import json_body
from bpmn_docs.services import node_service
from bpmn_docs.utils.errors import E, api_error, register_api_error_handlers

node_bp = Blueprint("bpmn_nodes", __name__, url_prefix="/api/v1/bpmn-nodes")
register_api_error_handlers(node_bp, "Failed to process BPMN node request")


@node_bp.route("", methods=["GET"])
def get_nodes():
    user_id = request.args.get("userId")
    if not user_id:
        return api_error(E.VALIDATION_REQUIRED, "userId is required")

    node_id = request.args.get("nodeId")
    if node_id:
        return jsonify({"success": True, "node": node_service.get_node(user_id, node_id)})
    return jsonify({"success": True, "tree": node_service.get_tree(user_id)})


@node_bp.route("", methods=["POST"])
def create_node():
    """Body: {userId, type, name, parentId?, content?, processMetadata?, advancedDetails?,
    signOffData?, historyData?, triggerData?, selectedStandards?, selectedKPIs?}
    """
    data, err = json_body()
    if err:
        return err
    node = node_service.create_node(data.get("userId"), data)
    return jsonify({"success": True, "node": node})


@node_bp.route("", methods=["PUT"])
def update_node():
    data, err = json_body()
    if err:
        return err
    node_id = data.get("nodeId")
    user_id = data.get("userId")
    if not node_id or not user_id:
        return api_error(E.VALIDATION_REQUIRED, "nodeId and userId are required")

    fields = {k: v for k, v in data.items() if k not in ("nodeId", "userId")}
    node = node_service.update_node(user_id, node_id, fields)
    return jsonify({"success": True, "node": node})


@node_bp.route("", methods=["DELETE"])
def delete_node():
    node_id = request.args.get("nodeId")
    user_id = request.args.get("userId")
    if not node_id or not user_id:
        return api_error(E.VALIDATION_REQUIRED, "nodeId and userId are required")

    deleted = node_service.delete_node(user_id, node_id)
    return jsonify({"success": True, "deleted": deleted})
