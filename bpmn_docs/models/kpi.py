"""
KPI catalogue.

``associated_bpmn_processes`` is the reverse side of ``BpmnNode.selected_kpis``:
a list of node ids maintained by ``bpmn_docs.services.kpi_sync``.
"""

from datetime import datetime, timezone

from bpmn_docs.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class KPI(db.Model):
    __tablename__ = "kpis"
    __table_args__ = (
        db.Index("ix_kpis_type", "type_of_kpi"),
        db.Index("ix_kpis_category", "category"),
        db.Index("ix_kpis_active", "active"),
        db.Index("ix_kpis_parent", "parent_id"),
    )

    VALID_DIRECTIONS = {"up", "down", "neutral"}
    REQUIRED_FIELDS = (
        "typeOfKPI", "kpi", "kpiDirection", "targetValue", "frequency",
        "receiver", "source", "mode", "tag", "category", "order",
    )

    # API key -> column
    FIELD_MAP = {
        "typeOfKPI": "type_of_kpi",
        "kpi": "kpi",
        "formula": "formula",
        "kpiDirection": "kpi_direction",
        "targetValue": "target_value",
        "frequency": "frequency",
        "receiver": "receiver",
        "source": "source",
        "active": "active",
        "mode": "mode",
        "tag": "tag",
        "category": "category",
        "parentId": "parent_id",
        "level": "level",
        "order": "order",
        "associatedBPMNProcesses": "associated_bpmn_processes",
        "createdBy": "created_by",
    }

    id = db.Column(db.Integer, primary_key=True)
    type_of_kpi = db.Column(db.String(100), nullable=False)
    kpi = db.Column(db.String(500), nullable=False)
    formula = db.Column(db.Text, nullable=True)
    kpi_direction = db.Column(db.String(10), nullable=False, comment="up | down | neutral")
    target_value = db.Column(db.String(100), nullable=False)
    frequency = db.Column(db.String(50), nullable=False)
    receiver = db.Column(db.String(200), nullable=False)
    source = db.Column(db.String(200), nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=False)
    mode = db.Column(db.String(50), nullable=False)
    tag = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    parent_id = db.Column(db.String(64), nullable=True)
    level = db.Column(db.Integer, nullable=False, default=0)
    order = db.Column(db.Float, nullable=False)
    associated_bpmn_processes = db.Column(db.JSON, nullable=False, default=list)
    created_by = db.Column(db.String(200), nullable=False, default="system")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "typeOfKPI": self.type_of_kpi,
            "kpi": self.kpi,
            "formula": self.formula,
            "kpiDirection": self.kpi_direction,
            "targetValue": self.target_value,
            "frequency": self.frequency,
            "receiver": self.receiver,
            "source": self.source,
            "active": bool(self.active),
            "mode": self.mode,
            "tag": self.tag,
            "category": self.category,
            "parentId": self.parent_id,
            "level": self.level,
            "order": self.order,
            "associatedBPMNProcesses": list(self.associated_bpmn_processes or []),
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
