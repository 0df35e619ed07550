"""Reference standards catalogue.

Transaction policy: flush only; callers commit.
"""
import logging

from sqlalchemy import or_, select

from bpmn_docs.core.exceptions import ConflictError, ValidationError
from bpmn_docs.models import db
from bpmn_docs.models.standard import Standard

logger = logging.getLogger(__name__)

DEFAULT_STANDARDS = [
    ("ISO 20000", "ISO20000", "IT service management system requirements", "IT Service Management"),
    ("ISO 27001", "ISO27001", "Information security management systems", "Information Security"),
    ("CoBIT 2019", "COBIT2019", "Governance and management of enterprise IT", "IT Governance"),
    ("COSO", "COSO", "Internal control integrated framework", "Internal Control"),
    ("ITIL 4", "ITIL4", "IT service management best practice", "IT Service Management"),
    ("ISO 9001", "ISO9001", "Quality management systems", "Quality Management"),
    ("ISO 14001", "ISO14001", "Environmental management systems", "Environmental Management"),
    ("ISO 45001", "ISO45001", "Occupational health and safety", "Health & Safety"),
    ("TOGAF 9.2", "TOGAF92", "Enterprise architecture framework", "Enterprise Architecture"),
    ("PMBOK 7", "PMBOK7", "Project management body of knowledge", "Project Management"),
]


def list_active_standards():
    return list(
        db.session.execute(
            select(Standard).where(Standard.is_active.is_(True)).order_by(Standard.name)
        ).scalars()
    )


def create_standard(data):
    name = (data.get("name") or "").strip()
    code = (data.get("code") or "").strip()
    if not name or not code:
        raise ValidationError("name and code are required")

    clash = db.session.execute(
        select(Standard).where(or_(Standard.name == name, Standard.code == code))
    ).scalars().first()
    if clash is not None:
        field, value = ("name", name) if clash.name == name else ("code", code)
        raise ConflictError(resource="Standard", field=field, value=value)

    std = Standard(
        name=name,
        code=code,
        description=data.get("description") or "",
        category=data.get("category") or "General",
        is_active=bool(data.get("isActive", True)),
    )
    db.session.add(std)
    db.session.flush()
    logger.info("Standard created id=%s code=%s", std.id, code)
    return std


def seed_default_standards():
    """Insert any default standard whose code is not present yet."""
    existing = set(db.session.execute(select(Standard.code)).scalars())
    added = 0
    for name, code, description, category in DEFAULT_STANDARDS:
        if code in existing:
            continue
        db.session.add(Standard(name=name, code=code, description=description, category=category))
        added += 1
    db.session.flush()
    return added
