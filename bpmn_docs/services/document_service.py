"""Document generation glue.

Loads what a LaTeX document needs (the node, its KPIs and standards) and
hands it to the pure generators in ``bpmn_docs.generators``.
"""

import logging

from sqlalchemy import select

from bpmn_docs.core.exceptions import ValidationError
from bpmn_docs.generators import bpmn_xml, latex
from bpmn_docs.models import db
from bpmn_docs.models.kpi import KPI
from bpmn_docs.models.standard import Standard
from bpmn_docs.services import node_service

logger = logging.getLogger(__name__)


def _int_ids(ids):
    out = []
    for i in ids or []:
        try:
            out.append(int(i))
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric id %r", i)
    return out


def kpis_for(ids):
    """KPI dicts for ``ids`` in the given order; unknown ids are dropped."""
    pks = _int_ids(ids)
    if not pks:
        return []
    rows = {k.id: k for k in db.session.execute(select(KPI).where(KPI.id.in_(pks))).scalars()}
    return [rows[pk].to_dict() for pk in pks if pk in rows]


def standards_for(ids):
    pks = _int_ids(ids)
    if not pks:
        return []
    rows = {s.id: s for s in db.session.execute(select(Standard).where(Standard.id.in_(pks))).scalars()}
    return [rows[pk].to_dict() for pk in pks if pk in rows]


def render_latex(data):
    """Build LaTeX from a stored file (``nodeId`` + ``userId``) or an inline ``node`` dict."""
    tables = data.get("tables")
    if tables is not None and not isinstance(tables, list):
        raise ValidationError("tables must be a list")

    if data.get("nodeId"):
        if not data.get("userId"):
            raise ValidationError("userId is required with nodeId")
        node = node_service.get_node(data["userId"], data["nodeId"])
        if node["type"] != "file":
            raise ValidationError("LaTeX can only be generated for files")
    elif isinstance(data.get("node"), dict):
        node = data["node"]
    else:
        raise ValidationError("nodeId or node is required")

    return latex.build_document(
        node,
        kpis=kpis_for(node.get("selectedKPIs")),
        standards=standards_for(node.get("selectedStandards")),
        tables=tables,
        author=data.get("author"),
    )


def render_bpmn(data):
    """Starter diagram carrying the supplied process metadata."""
    xml = bpmn_xml.initial_diagram(data.get("processName"), data.get("laneName"))
    if data.get("description"):
        xml = bpmn_xml.apply_metadata(xml, {"description": data["description"]})
    return xml
