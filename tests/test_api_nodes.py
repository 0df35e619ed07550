"""
BPMN node API tests.

Test blocks:
  1. Request validation (userId, JSON body, content type)
  2. End-to-end: folder -> file with KPIs -> tree -> cascading delete
  3. Update semantics over HTTP (move, cycle, version bump)
  4. Ownership scoping (another user's node is a 404)
"""

import pytest

from bpmn_docs.models import db
from bpmn_docs.models.kpi import KPI

BASE = "/api/v1/bpmn-nodes"
XML = '<?xml version="1.0" encoding="UTF-8"?><bpmn:definitions/>'


def _post(client, **body):
    body.setdefault("userId", "u1")
    return client.post(BASE, json=body)


def _create_folder(client, name="Folder", parent_id=None, user_id="u1"):
    res = _post(client, userId=user_id, type="folder", name=name, parentId=parent_id)
    assert res.status_code == 200, res.get_json()
    return res.get_json()["node"]


def _create_file(client, name="Process", parent_id=None, user_id="u1", **extra):
    res = _post(client, userId=user_id, type="file", name=name, parentId=parent_id, content=XML, **extra)
    assert res.status_code == 200, res.get_json()
    return res.get_json()["node"]


# ── 1. Validation ────────────────────────────────────────────────────────────


class TestValidation:
    def test_get_requires_user_id(self, client):
        res = client.get(BASE)
        assert res.status_code == 400
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_VALIDATION_REQUIRED"

    def test_create_requires_type_and_name(self, client):
        res = _post(client, type="folder")
        assert res.status_code == 400
        assert res.get_json()["error"] == "userId, type, and name are required"

    def test_create_rejects_non_object_body(self, client):
        res = client.post(BASE, json=["not", "an", "object"])
        assert res.status_code == 400

    def test_create_rejects_non_json_content_type(self, client):
        res = client.post(BASE, data="type=folder", content_type="text/plain")
        assert res.status_code == 415
        assert res.get_json()["success"] is False

    def test_update_requires_ids(self, client):
        res = client.put(BASE, json={"name": "x"})
        assert res.status_code == 400

    def test_delete_requires_ids(self, client):
        res = client.delete(f"{BASE}?nodeId=abc")
        assert res.status_code == 400

    def test_non_object_advanced_details_is_400(self, client):
        res = _post(client, type="file", name="Bad", content=XML, advancedDetails="v2")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["details"] == {"advancedDetails": "must be an object"}

        f = _create_file(client)
        res = client.put(BASE, json={"nodeId": f["id"], "userId": "u1", "historyData": ["x"]})
        assert res.status_code == 400

    def test_missing_node_is_404(self, client):
        res = client.get(f"{BASE}?userId=u1&nodeId=nope")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ── 2. End-to-end ────────────────────────────────────────────────────────────


class TestEndToEnd:
    def test_tree_lifecycle(self, client, make_kpi):
        k1, k2 = make_kpi("Incidents"), make_kpi("Response time", order=2)

        folder = _create_folder(client, name="Operations")
        f = _create_file(client, name="Capacity", parent_id=folder["id"], selectedKPIs=[k1, k2])

        tree = client.get(f"{BASE}?userId=u1").get_json()["tree"]
        assert len(tree) == 1
        root = tree[0]
        assert root["id"] == folder["id"]
        assert "content" not in root
        assert [c["id"] for c in root["children"]] == [f["id"]]
        assert root["children"][0]["children"] == []
        assert root["children"][0]["content"] == XML

        for kpi_id in (k1, k2):
            assert f["id"] in db.session.get(KPI, int(kpi_id)).associated_bpmn_processes

        res = client.delete(f"{BASE}?nodeId={folder['id']}&userId=u1")
        assert res.status_code == 200
        assert res.get_json() == {"success": True, "deleted": 2}

        assert client.get(f"{BASE}?userId=u1").get_json()["tree"] == []
        db.session.expire_all()
        for kpi_id in (k1, k2):
            assert db.session.get(KPI, int(kpi_id)).associated_bpmn_processes == []

    def test_kpi_link_follows_update_and_folder_delete(self, client, make_kpi):
        kpi_id = make_kpi("Change success rate")

        folder = _create_folder(client, name="Release")
        f = _create_file(client, name="Deploy", parent_id=folder["id"], selectedKPIs=[])
        assert db.session.get(KPI, int(kpi_id)).associated_bpmn_processes == []

        res = client.put(BASE, json={"nodeId": f["id"], "userId": "u1", "selectedKPIs": [kpi_id]})
        assert res.get_json()["node"]["selectedKPIs"] == [kpi_id]
        db.session.expire_all()
        assert db.session.get(KPI, int(kpi_id)).associated_bpmn_processes == [f["id"]]

        res = client.delete(f"{BASE}?nodeId={folder['id']}&userId=u1")
        assert res.get_json() == {"success": True, "deleted": 2}
        db.session.expire_all()
        assert f["id"] not in db.session.get(KPI, int(kpi_id)).associated_bpmn_processes

    def test_single_node_fetch(self, client):
        f = _create_file(client)
        res = client.get(f"{BASE}?userId=u1&nodeId={f['id']}")
        assert res.status_code == 200
        node = res.get_json()["node"]
        assert node["id"] == f["id"]
        assert node["advancedDetails"]["versionNo"] == "1.0.0"

    def test_delete_many_descendants(self, client):
        root = _create_folder(client, name="Root")
        parent_id = root["id"]
        for depth in range(4):
            sub = _create_folder(client, name=f"L{depth}", parent_id=parent_id)
            _create_file(client, name=f"f{depth}", parent_id=sub["id"])
            parent_id = sub["id"]

        res = client.delete(f"{BASE}?nodeId={root['id']}&userId=u1")
        assert res.get_json()["deleted"] == 9
        assert client.get(f"{BASE}?userId=u1").get_json()["tree"] == []


# ── 3. Updates ───────────────────────────────────────────────────────────────


class TestUpdate:
    def test_move_between_folders(self, client):
        a = _create_folder(client, name="A")
        b = _create_folder(client, name="B")
        f = _create_file(client, parent_id=a["id"])

        res = client.put(BASE, json={"nodeId": f["id"], "userId": "u1", "parentId": b["id"]})
        assert res.status_code == 200
        assert res.get_json()["node"]["parentId"] == b["id"]

        tree = {n["name"]: n for n in client.get(f"{BASE}?userId=u1").get_json()["tree"]}
        assert tree["A"]["children"] == []
        assert [c["id"] for c in tree["B"]["children"]] == [f["id"]]

    def test_cyclic_move_is_rejected(self, client):
        a = _create_folder(client, name="A")
        b = _create_folder(client, name="B", parent_id=a["id"])

        res = client.put(BASE, json={"nodeId": a["id"], "userId": "u1", "parentId": b["id"]})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"parentId": b["id"]}

        tree = client.get(f"{BASE}?userId=u1").get_json()["tree"]
        assert [n["id"] for n in tree] == [a["id"]]

    @pytest.mark.parametrize("stored,expected", [("1.0.0", "1.0.1"), ("2.4.9", "2.4.10")])
    def test_advanced_details_bumps_version(self, client, stored, expected):
        f = _create_file(client, advancedDetails={"versionNo": stored})
        res = client.put(BASE, json={
            "nodeId": f["id"], "userId": "u1",
            "advancedDetails": {"versionNo": "5.0.0", "changeDescription": "Added lane"},
        })
        details = res.get_json()["node"]["advancedDetails"]
        assert details["versionNo"] == expected
        assert details["changeDescription"] == "Added lane"

    def test_metadata_blocks_are_normalised(self, client):
        f = _create_file(client)
        res = client.put(BASE, json={
            "nodeId": f["id"], "userId": "u1",
            "processMetadata": {"processName": "Capacity Management"},
        })
        pm = res.get_json()["node"]["processMetadata"]
        assert pm["processName"] == "Capacity Management"
        assert pm["description"] == ""

    def test_content_update(self, client):
        f = _create_file(client)
        res = client.put(BASE, json={"nodeId": f["id"], "userId": "u1", "content": "<new/>"})
        assert res.get_json()["node"]["content"] == "<new/>"


# ── 4. Ownership ─────────────────────────────────────────────────────────────


class TestOwnership:
    def test_other_users_node_is_404(self, client):
        f = _create_file(client, user_id="u1")
        assert client.get(f"{BASE}?userId=u2&nodeId={f['id']}").status_code == 404
        res = client.put(BASE, json={"nodeId": f["id"], "userId": "u2", "name": "x"})
        assert res.status_code == 404
        assert client.delete(f"{BASE}?nodeId={f['id']}&userId=u2").status_code == 404

    def test_trees_are_per_user(self, client):
        _create_folder(client, user_id="u1", name="Mine")
        _create_folder(client, user_id="u2", name="Theirs")
        tree = client.get(f"{BASE}?userId=u2").get_json()["tree"]
        assert [n["name"] for n in tree] == ["Theirs"]

    def test_cannot_attach_to_other_users_folder(self, client):
        folder = _create_folder(client, user_id="u2")
        res = _post(client, userId="u1", type="file", name="x", content=XML, parentId=folder["id"])
        assert res.status_code == 404
