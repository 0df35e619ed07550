"""
Service-level tests for the BPMN node tree.

Covers:
  - create: validation (incl. non-object blocks), defaults for file blocks, createdBy resolution
  - children cache: push/pull idempotency
  - reparent: cache consistency, cycle rejection, non-folder parent
  - update: version bump on advancedDetails, block shapes, folders ignoring file-only fields
  - delete: cascade count, drifted cache, ownership scoping
"""

import pytest

from bpmn_docs.core.exceptions import NotFoundError, ValidationError
from bpmn_docs.models import db
from bpmn_docs.models.kpi import KPI
from bpmn_docs.models.node import BpmnNode
from bpmn_docs.models.user import User
from bpmn_docs.services import node_service

XML = "<bpmn:definitions/>"


def _folder(user_id="u1", name="Folder", parent_id=None):
    return node_service.create_node(user_id, {"type": "folder", "name": name, "parentId": parent_id})


def _file(user_id="u1", name="Process", parent_id=None, **extra):
    data = {"type": "file", "name": name, "parentId": parent_id, "content": XML}
    data.update(extra)
    return node_service.create_node(user_id, data)


def _children(node_id):
    return db.session.get(BpmnNode, node_id).children


# ═════════════════════════════════════════════════════════════════════════════
# Create
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateNode:
    def test_folder_defaults(self):
        node = _folder()
        assert node["type"] == "folder"
        assert node["children"] == []
        assert node["parentId"] is None
        assert node["content"] is None
        assert node["advancedDetails"] is None

    def test_file_gets_default_blocks(self):
        node = _file()
        assert node["content"] == XML
        assert node["advancedDetails"]["versionNo"] == "1.0.0"
        assert set(node["signOffData"]) == {"responsibility", "date", "name", "designation", "signature"}
        assert node["historyData"]["statusRemarks"] == ""
        assert node["triggerData"] == {"triggers": "", "inputs": "", "outputs": ""}
        assert node["selectedKPIs"] == []
        assert node["selectedStandards"] == []

    def test_missing_required_fields(self):
        with pytest.raises(ValidationError):
            node_service.create_node("u1", {"type": "folder"})
        with pytest.raises(ValidationError):
            node_service.create_node("", {"type": "folder", "name": "x"})

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            node_service.create_node("u1", {"type": "diagram", "name": "x"})

    def test_file_requires_content(self):
        with pytest.raises(ValidationError):
            node_service.create_node("u1", {"type": "file", "name": "x"})

    def test_parent_must_exist_for_user(self):
        folder = _folder(user_id="u2")
        with pytest.raises(NotFoundError):
            _file(user_id="u1", parent_id=folder["id"])

    def test_parent_must_be_folder(self):
        f = _file()
        with pytest.raises(ValidationError):
            _file(parent_id=f["id"])

    def test_child_is_pushed_to_parent_cache(self):
        folder = _folder()
        f = _file(parent_id=folder["id"])
        assert _children(folder["id"]) == [f["id"]]

    def test_created_by_uses_display_name(self):
        db.session.add(User(id="u1", email="alice@example.com", name="Alice"))
        db.session.commit()
        assert _file()["advancedDetails"]["createdBy"] == "Alice"

    def test_created_by_falls_back_to_user_id(self):
        assert _file(user_id="ghost")["advancedDetails"]["createdBy"] == "ghost"

    def test_created_by_explicit_value_wins(self):
        node = _file(advancedDetails={"createdBy": "Bob", "processStatus": "Draft"})
        assert node["advancedDetails"]["createdBy"] == "Bob"
        assert node["advancedDetails"]["processStatus"] == "Draft"
        assert node["advancedDetails"]["versionNo"] == "1.0.0"

    @pytest.mark.parametrize("key", ["advancedDetails", "triggerData"])
    def test_non_object_block_is_rejected(self, key):
        with pytest.raises(ValidationError) as exc:
            _file(**{key: "v2"})
        assert exc.value.details == {key: "must be an object"}
        assert db.session.query(BpmnNode).count() == 0

    def test_selected_kpis_must_be_list(self):
        with pytest.raises(ValidationError):
            _file(selectedKPIs="1,2")


# ═════════════════════════════════════════════════════════════════════════════
# children cache
# ═════════════════════════════════════════════════════════════════════════════


class TestChildrenCache:
    def test_push_never_duplicates(self):
        folder = _folder()
        assert node_service.push_child(folder["id"], "x") is True
        assert node_service.push_child(folder["id"], "x") is False
        assert _children(folder["id"]) == ["x"]

    def test_pull_is_idempotent(self):
        folder = _folder()
        node_service.push_child(folder["id"], "x")
        assert node_service.pull_child(folder["id"], "x") is True
        assert node_service.pull_child(folder["id"], "x") is False
        assert _children(folder["id"]) == []

    def test_missing_parent_is_noop(self):
        assert node_service.push_child("nope", "x") is False
        assert node_service.pull_child("nope", "x") is False


# ═════════════════════════════════════════════════════════════════════════════
# Update
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateNode:
    def test_rename(self):
        f = _file()
        updated = node_service.update_node("u1", f["id"], {"name": "  Renamed "})
        assert updated["name"] == "Renamed"

    def test_blank_name_rejected(self):
        f = _file()
        with pytest.raises(ValidationError):
            node_service.update_node("u1", f["id"], {"name": " "})

    def test_reparent_keeps_caches_consistent(self):
        a = _folder(name="A")
        b = _folder(name="B")
        f = _file(parent_id=a["id"])

        node_service.update_node("u1", f["id"], {"parentId": b["id"]})
        assert _children(a["id"]) == []
        assert _children(b["id"]) == [f["id"]]
        assert db.session.get(BpmnNode, f["id"]).parent_id == b["id"]

        node_service.update_node("u1", f["id"], {"parentId": None})
        assert _children(b["id"]) == []
        assert db.session.get(BpmnNode, f["id"]).parent_id is None

    def test_cannot_move_folder_under_descendant(self):
        a = _folder(name="A")
        b = _folder(name="B", parent_id=a["id"])
        c = _folder(name="C", parent_id=b["id"])
        with pytest.raises(ValidationError):
            node_service.update_node("u1", a["id"], {"parentId": c["id"]})

    def test_cannot_be_own_parent(self):
        a = _folder()
        with pytest.raises(ValidationError):
            node_service.update_node("u1", a["id"], {"parentId": a["id"]})

    def test_new_parent_must_be_folder(self):
        f1 = _file(name="one")
        f2 = _file(name="two")
        with pytest.raises(ValidationError):
            node_service.update_node("u1", f2["id"], {"parentId": f1["id"]})

    def test_advanced_details_bumps_patch(self):
        f = _file()
        updated = node_service.update_node(
            "u1", f["id"], {"advancedDetails": {"versionNo": "9.9.9", "processStatus": "Draft"}},
        )
        assert updated["advancedDetails"]["versionNo"] == "1.0.1"
        assert updated["advancedDetails"]["processStatus"] == "Draft"
        assert updated["advancedDetails"]["modificationDate"]

        again = node_service.update_node("u1", f["id"], {"advancedDetails": {}})
        assert again["advancedDetails"]["versionNo"] == "1.0.2"

    def test_missing_version_bumps_to_1_0_1(self):
        f = _file()
        node = db.session.get(BpmnNode, f["id"])
        node.advanced_details = {"processStatus": "Draft"}
        db.session.commit()

        updated = node_service.update_node("u1", f["id"], {"advancedDetails": {"processStatus": "Final"}})
        assert updated["advancedDetails"]["versionNo"] == "1.0.1"

    def test_other_users_node_is_not_found(self):
        f = _file(user_id="u1")
        with pytest.raises(NotFoundError):
            node_service.update_node("u2", f["id"], {"name": "stolen"})

    @pytest.mark.parametrize("key", ["advancedDetails", "processMetadata", "signOffData"])
    def test_non_object_block_is_rejected(self, key):
        f = _file()
        with pytest.raises(ValidationError) as exc:
            node_service.update_node("u1", f["id"], {key: "v2"})
        assert exc.value.details == {key: "must be an object"}

    def test_folder_ignores_file_only_fields(self, make_kpi):
        kpi_id = make_kpi("Throughput")
        folder = _folder()
        updated = node_service.update_node(
            "u1", folder["id"], {"selectedKPIs": [kpi_id], "content": XML, "name": "Renamed"},
        )
        assert updated["name"] == "Renamed"
        stored = db.session.get(BpmnNode, folder["id"])
        assert not stored.selected_kpis
        assert stored.content is None
        assert db.session.get(KPI, int(kpi_id)).associated_bpmn_processes == []


# ═════════════════════════════════════════════════════════════════════════════
# Delete
# ═════════════════════════════════════════════════════════════════════════════


class TestDeleteNode:
    def test_file_delete_pulls_from_parent(self):
        folder = _folder()
        f = _file(parent_id=folder["id"])
        assert node_service.delete_node("u1", f["id"]) == 1
        assert _children(folder["id"]) == []

    def test_cascade_counts_every_row(self):
        root = _folder(name="Root")
        sub = _folder(name="Sub", parent_id=root["id"])
        for i in range(3):
            _file(name=f"f{i}", parent_id=sub["id"])
        _file(name="top", parent_id=root["id"])

        assert node_service.delete_node("u1", root["id"]) == 6
        assert db.session.query(BpmnNode).count() == 0

    def test_child_missing_from_cache_is_still_deleted(self):
        folder = _folder()
        f = _file(parent_id=folder["id"])
        parent = db.session.get(BpmnNode, folder["id"])
        parent.children = []
        db.session.commit()

        assert node_service.delete_node("u1", folder["id"]) == 2
        assert db.session.get(BpmnNode, f["id"]) is None

    def test_stale_cache_entry_is_skipped(self):
        folder = _folder()
        parent = db.session.get(BpmnNode, folder["id"])
        parent.children = ["does-not-exist"]
        db.session.commit()

        assert node_service.delete_node("u1", folder["id"]) == 1

    def test_other_user_cannot_delete(self):
        f = _file(user_id="u1")
        with pytest.raises(NotFoundError):
            node_service.delete_node("u2", f["id"])
        assert db.session.get(BpmnNode, f["id"]) is not None


def test_descendant_ids():
    a = _folder(name="A")
    b = _folder(name="B", parent_id=a["id"])
    f = _file(parent_id=b["id"])
    assert node_service.descendant_ids("u1", a["id"]) == {b["id"], f["id"]}
    assert node_service.descendant_ids("u1", f["id"]) == set()
