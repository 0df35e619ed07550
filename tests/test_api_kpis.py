"""
KPI catalogue API tests.

Covers:
  - create: required fields, direction enum, createdBy default
  - list ordering by ``order``
  - update / delete incl. missing id and unknown id
  - seed_default_kpis only fills an empty table
"""

from bpmn_docs.models import db
from bpmn_docs.services.kpi_service import SAMPLE_KPIS, seed_default_kpis

BASE = "/api/v1/kpis"


def _payload(**overrides):
    data = {
        "typeOfKPI": "Efficiency KPI",
        "kpi": "Mean time to restore",
        "formula": "Sum(restore time) / incidents",
        "kpiDirection": "down",
        "targetValue": "<4h",
        "frequency": "Weekly",
        "receiver": "Incident Manager",
        "source": "ITSM Tool",
        "active": True,
        "mode": "Automatic",
        "tag": "Incident",
        "category": "IT Operations",
        "order": 2,
    }
    data.update(overrides)
    return data


class TestCreateKPI:
    def test_create(self, client):
        res = client.post(BASE, json=_payload())
        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        kpi = body["kpi"]
        assert kpi["id"].isdigit()
        assert kpi["kpi"] == "Mean time to restore"
        assert kpi["order"] == 2.0
        assert kpi["createdBy"] == "system"
        assert kpi["associatedBPMNProcesses"] == []
        assert kpi["level"] == 0

    def test_missing_fields_listed(self, client):
        data = _payload()
        del data["kpi"]
        del data["frequency"]
        res = client.post(BASE, json=data)
        assert res.status_code == 400
        body = res.get_json()
        assert "kpi" in body["error"]
        assert body["details"] == {"kpi": "required", "frequency": "required"}

    def test_invalid_direction(self, client):
        res = client.post(BASE, json=_payload(kpiDirection="sideways"))
        assert res.status_code == 400

    def test_non_numeric_order(self, client):
        res = client.post(BASE, json=_payload(order="first"))
        assert res.status_code == 400

    def test_order_zero_is_accepted(self, client):
        res = client.post(BASE, json=_payload(order=0))
        assert res.status_code == 200


class TestListKPIs:
    def test_sorted_by_order(self, client):
        client.post(BASE, json=_payload(kpi="third", order=3))
        client.post(BASE, json=_payload(kpi="first", order=1))
        client.post(BASE, json=_payload(kpi="second", order=1.5))

        kpis = client.get(BASE).get_json()["kpis"]
        assert [k["kpi"] for k in kpis] == ["first", "second", "third"]


class TestUpdateDeleteKPI:
    def test_update(self, client, make_kpi):
        kpi_id = make_kpi("Old name")
        res = client.put(BASE, json={"id": kpi_id, "kpi": "New name", "active": True})
        assert res.status_code == 200
        kpi = res.get_json()["kpi"]
        assert kpi["id"] == kpi_id
        assert kpi["kpi"] == "New name"
        assert kpi["active"] is True
        assert kpi["frequency"] == "Monthly"

    def test_update_requires_id(self, client):
        res = client.put(BASE, json={"kpi": "x"})
        assert res.status_code == 400
        assert res.get_json()["error"] == "KPI ID is required"

    def test_update_unknown_id(self, client):
        res = client.put(BASE, json={"id": "9999", "kpi": "x"})
        assert res.status_code == 404

    def test_update_rejects_bad_direction(self, client, make_kpi):
        kpi_id = make_kpi()
        res = client.put(BASE, json={"id": kpi_id, "kpiDirection": "left"})
        assert res.status_code == 400

    def test_delete(self, client, make_kpi):
        kpi_id = make_kpi()
        res = client.delete(f"{BASE}?id={kpi_id}")
        assert res.status_code == 200
        assert client.get(BASE).get_json()["kpis"] == []

    def test_delete_requires_id(self, client):
        assert client.delete(BASE).status_code == 400

    def test_delete_unknown_id(self, client):
        assert client.delete(f"{BASE}?id=abc").status_code == 404


class TestSeedKPIs:
    def test_seeds_empty_table_once(self):
        assert seed_default_kpis() == len(SAMPLE_KPIS)
        db.session.commit()
        assert seed_default_kpis() == 0

    def test_skips_non_empty_table(self, make_kpi):
        make_kpi()
        assert seed_default_kpis() == 0
