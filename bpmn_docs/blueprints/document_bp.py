"""Document generation blueprint.

  POST /api/v1/documents/latex          {nodeId, userId} | {node}  -> {latex}
  POST /api/v1/documents/latex/parse    {latex}                    -> {metadata}
  POST /api/v1/documents/latex/html     {latex}                    -> {html}
  POST /api/v1/documents/html/latex     {html, preamble?}          -> {latex}
  POST /api/v1/documents/bpmn           {processName?, laneName?, description?} -> {xml}
  POST /api/v1/documents/bpmn/metadata  {xml, metadata?}           -> {metadata[, xml]}
"""

from flask import Blueprint, jsonify

from bpmn_docs.blueprints import json_body
from bpmn_docs.generators import bpmn_xml, latex, latex_html
from bpmn_docs.services import document_service
from bpmn_docs.utils.errors import E, api_error, register_api_error_handlers

document_bp = Blueprint("documents", __name__, url_prefix="/api/v1/documents")
register_api_error_handlers(document_bp, "Failed to generate document")


def _text_field(data, key):
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return None, api_error(E.VALIDATION_REQUIRED, f"{key} is required")
    return value, None


@document_bp.route("/latex", methods=["POST"])
def generate_latex():
    data, err = json_body()
    if err:
        return err
    return jsonify({"success": True, "latex": document_service.render_latex(data)})


@document_bp.route("/latex/parse", methods=["POST"])
def parse_latex():
    data, err = json_body()
    if err:
        return err
    source, err = _text_field(data, "latex")
    if err:
        return err
    return jsonify({"success": True, "metadata": latex.parse_document(source)})


@document_bp.route("/latex/html", methods=["POST"])
def latex_to_html():
    data, err = json_body()
    if err:
        return err
    source, err = _text_field(data, "latex")
    if err:
        return err
    preamble, _ = latex_html.split_preamble(source)
    return jsonify({"success": True, "html": latex_html.latex_to_html(source), "preamble": preamble})


@document_bp.route("/html/latex", methods=["POST"])
def html_to_latex():
    data, err = json_body()
    if err:
        return err
    html, err = _text_field(data, "html")
    if err:
        return err
    return jsonify({"success": True, "latex": latex_html.html_to_latex(html, data.get("preamble"))})


@document_bp.route("/bpmn", methods=["POST"])
def generate_bpmn():
    data, err = json_body()
    if err:
        return err
    return jsonify({"success": True, "xml": document_service.render_bpmn(data)})


@document_bp.route("/bpmn/metadata", methods=["POST"])
def bpmn_metadata():
    data, err = json_body()
    if err:
        return err
    xml, err = _text_field(data, "xml")
    if err:
        return err
    if isinstance(data.get("metadata"), dict):
        xml = bpmn_xml.apply_metadata(xml, data["metadata"])
        return jsonify({"success": True, "xml": xml, "metadata": bpmn_xml.extract_metadata(xml)})
    return jsonify({"success": True, "metadata": bpmn_xml.extract_metadata(xml)})
