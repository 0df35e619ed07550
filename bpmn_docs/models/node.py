"""
BPMN node tree — folders and files stored as flat rows.

Models:
  - BpmnNode:          one folder or file in a per-user hierarchy
  - BpmnArchivedNode:  mirror of a file an administrator archived

Structure is carried twice: ``parent_id`` on the child and a denormalised
``children`` id list on the folder. ``parent_id`` is a plain indexed column
(no FK); the node service keeps the two in step.

JSON list columns are always reassigned, never mutated in place, so the
ORM sees the change.
"""

import uuid
from datetime import datetime, timezone

from bpmn_docs.models import db

NODE_TYPES = ("folder", "file")

# Blocks carried by file nodes; each key maps to its default field set.
PROCESS_METADATA_FIELDS = ("processName", "description", "processOwner", "processManager")
ADVANCED_DETAILS_FIELDS = (
    "versionNo", "processStatus", "classification", "dateOfCreation",
    "dateOfReview", "effectiveDate", "modificationDate", "modifiedBy",
    "changeDescription", "createdBy",
)
SIGN_OFF_FIELDS = ("responsibility", "date", "name", "designation", "signature")
HISTORY_FIELDS = ("versionNo", "date", "statusRemarks", "author")
TRIGGER_FIELDS = ("triggers", "inputs", "outputs")

DEFAULT_VERSION = "1.0.0"


def _uuid():
    """Generate a new UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _blank(fields):
    return {f: "" for f in fields}


def default_advanced_details(created_by="", date_of_creation=""):
    d = _blank(ADVANCED_DETAILS_FIELDS)
    d["versionNo"] = DEFAULT_VERSION
    d["createdBy"] = created_by or ""
    d["dateOfCreation"] = date_of_creation or ""
    return d


def default_sign_off_data():
    return _blank(SIGN_OFF_FIELDS)


def default_history_data():
    return _blank(HISTORY_FIELDS)


def default_trigger_data():
    return _blank(TRIGGER_FIELDS)


def normalize_block(value, fields):
    """Fill a submitted block up to its full field set.

    Unknown keys are kept; missing keys default to "".
    """
    out = _blank(fields)
    if isinstance(value, dict):
        out.update({k: ("" if v is None else v) for k, v in value.items()})
    return out


def _iso(value):
    return value.isoformat() if value else None


class _NodeColumns:
    """Columns shared by live and archived nodes."""

    user_id = db.Column(db.String(64), nullable=False, index=True)
    owner_user_id = db.Column(db.String(64), nullable=False, default="")
    type = db.Column(db.String(10), nullable=False, comment="folder | file")
    name = db.Column(db.String(255), nullable=False)
    parent_id = db.Column(db.String(36), nullable=True, index=True, comment="NULL for root nodes")
    children = db.Column(db.JSON, nullable=True, comment="Child node ids (folders only)")
    content = db.Column(db.Text, nullable=True, comment="BPMN XML (files only)")
    process_metadata = db.Column(db.JSON, nullable=True)
    advanced_details = db.Column(db.JSON, nullable=True)
    sign_off_data = db.Column(db.JSON, nullable=True)
    history_data = db.Column(db.JSON, nullable=True)
    trigger_data = db.Column(db.JSON, nullable=True)
    selected_standards = db.Column(db.JSON, nullable=True)
    selected_kpis = db.Column(db.JSON, nullable=True)
    archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, index=True)

    @property
    def is_folder(self):
        return self.type == "folder"

    @property
    def is_file(self):
        return self.type == "file"

    def to_dict(self):
        """Full record in API (camelCase) shape."""
        is_file = self.is_file
        return {
            "id": self.id,
            "userId": self.user_id,
            "ownerUserId": self.owner_user_id or "",
            "name": self.name,
            "type": self.type,
            "parentId": self.parent_id,
            "children": list(self.children or []),
            "content": self.content if is_file else None,
            "processMetadata": self.process_metadata if is_file else None,
            "advancedDetails": self.advanced_details if is_file else None,
            "signOffData": self.sign_off_data if is_file else None,
            "historyData": self.history_data if is_file else None,
            "triggerData": self.trigger_data if is_file else None,
            "selectedStandards": list(self.selected_standards or []) if is_file else None,
            "selectedKPIs": list(self.selected_kpis or []) if is_file else None,
            "archived": bool(self.archived),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_summary(self):
        """Listing shape used by the admin views."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "parentId": self.parent_id,
            "userId": self.user_id or "",
            "ownerUserId": self.owner_user_id or "",
            "archived": bool(self.archived),
            "createdBy": (self.advanced_details or {}).get("createdBy", ""),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class BpmnNode(_NodeColumns, db.Model):
    """One folder or file in a user's process tree."""

    __tablename__ = "bpmn_nodes"
    __table_args__ = (
        db.Index("ix_bpmn_nodes_user_parent", "user_id", "parent_id"),
        db.Index("ix_bpmn_nodes_name", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)

    def __repr__(self):
        return f"<BpmnNode {self.id} {self.type} {self.name!r}>"


class BpmnArchivedNode(_NodeColumns, db.Model):
    """Snapshot of an archived file; removed again when it is un-archived."""

    __tablename__ = "bpmn_archived_nodes"

    id = db.Column(db.String(36), primary_key=True)

    ARCHIVE_COLUMNS = (
        "user_id", "owner_user_id", "type", "name", "parent_id", "children",
        "content", "process_metadata", "advanced_details", "sign_off_data",
        "history_data", "trigger_data", "selected_standards", "selected_kpis",
        "created_at",
    )

    def copy_from(self, node):
        """Overwrite this snapshot with the current state of ``node``."""
        for col in self.ARCHIVE_COLUMNS:
            setattr(self, col, getattr(node, col))
        self.archived = True
        self.updated_at = _utcnow()
        return self
