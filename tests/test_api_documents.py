"""
Document generation API tests.

Covers:
  - LaTeX from a stored file (KPIs and standards resolved) and from an inline node
  - LaTeX parse, LaTeX -> HTML, HTML -> LaTeX endpoints
  - BPMN starter diagram and metadata read/write
"""

from bpmn_docs.models import db
from bpmn_docs.models.standard import Standard
from bpmn_docs.services import node_service

BASE = "/api/v1/documents"


def _stored_file(kpi_ids=(), standard_ids=()):
    return node_service.create_node("u1", {
        "type": "file",
        "name": "capacity",
        "content": "<bpmn:definitions/>",
        "processMetadata": {"processName": "Capacity Management", "processOwner": "Jane"},
        "selectedKPIs": list(kpi_ids),
        "selectedStandards": list(standard_ids),
    })


class TestLatexEndpoints:
    def test_latex_from_stored_file(self, client, make_kpi):
        kpi_id = make_kpi("Planning accuracy")
        std = Standard(name="ITIL 4", code="ITIL4", description="ITSM practice")
        db.session.add(std)
        db.session.commit()
        f = _stored_file([kpi_id], [str(std.id)])

        res = client.post(f"{BASE}/latex", json={"nodeId": f["id"], "userId": "u1"})
        assert res.status_code == 200
        doc = res.get_json()["latex"]
        assert "\\title{Capacity Management}" in doc
        assert "Planning accuracy & <5 & down & Monthly\\\\" in doc
        assert "ITIL 4 & ITIL4 & ITSM practice\\\\" in doc

    def test_latex_from_inline_node(self, client):
        res = client.post(f"{BASE}/latex", json={
            "node": {"name": "Inline", "processMetadata": {"processName": "Inline Process"}},
            "tables": ["processTable"],
            "author": "Reviewer",
        })
        doc = res.get_json()["latex"]
        assert "\\title{Inline Process}" in doc
        assert "\\author{Reviewer}" in doc
        assert "History Table" not in doc

    def test_latex_for_folder_is_rejected(self, client):
        folder = node_service.create_node("u1", {"type": "folder", "name": "F"})
        res = client.post(f"{BASE}/latex", json={"nodeId": folder["id"], "userId": "u1"})
        assert res.status_code == 400

    def test_latex_requires_source(self, client):
        assert client.post(f"{BASE}/latex", json={}).status_code == 400
        assert client.post(f"{BASE}/latex", json={"nodeId": "x"}).status_code == 400

    def test_latex_other_users_file(self, client):
        f = _stored_file()
        res = client.post(f"{BASE}/latex", json={"nodeId": f["id"], "userId": "u2"})
        assert res.status_code == 404

    def test_parse(self, client):
        doc = client.post(f"{BASE}/latex", json={
            "node": {"processMetadata": {"processName": "Payroll", "processOwner": "Finance"}},
        }).get_json()["latex"]
        res = client.post(f"{BASE}/latex/parse", json={"latex": doc})
        meta = res.get_json()["metadata"]
        assert meta["processMetadata"]["processName"] == "Payroll"
        assert meta["processMetadata"]["processOwner"] == "Finance"

    def test_latex_to_html(self, client):
        res = client.post(f"{BASE}/latex/html", json={
            "latex": "\\documentclass{article}\n\\begin{document}\\section{Scope}\\end{document}",
        })
        body = res.get_json()
        assert "Scope</h2>" in body["html"]
        assert body["preamble"] == "\\documentclass{article}\n"

    def test_html_to_latex(self, client):
        res = client.post(f"{BASE}/html/latex", json={"html": "<h3>Steps</h3>"})
        assert "\\subsection{Steps}" in res.get_json()["latex"]

    def test_text_fields_required(self, client):
        assert client.post(f"{BASE}/latex/parse", json={}).status_code == 400
        assert client.post(f"{BASE}/latex/html", json={"latex": "  "}).status_code == 400
        assert client.post(f"{BASE}/html/latex", json={"html": 5}).status_code == 400


class TestBpmnEndpoints:
    def test_starter_diagram(self, client):
        res = client.post(f"{BASE}/bpmn", json={"processName": "Hiring", "description": "From req to offer"})
        xml = res.get_json()["xml"]
        meta = client.post(f"{BASE}/bpmn/metadata", json={"xml": xml}).get_json()["metadata"]
        assert meta["processName"] == "Hiring"
        assert meta["description"] == "From req to offer"
        assert meta["lanes"] == ["Actor"]

    def test_metadata_write_back(self, client):
        xml = client.post(f"{BASE}/bpmn", json={}).get_json()["xml"]
        res = client.post(f"{BASE}/bpmn/metadata", json={"xml": xml, "metadata": {"processName": "Renamed"}})
        body = res.get_json()
        assert "Renamed" in body["xml"]
        assert body["metadata"]["processName"] == "Renamed"

    def test_invalid_xml(self, client):
        res = client.post(f"{BASE}/bpmn/metadata", json={"xml": "<broken"})
        assert res.status_code == 400
        assert res.get_json()["error"].startswith("Invalid BPMN XML")
