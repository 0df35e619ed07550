"""Reference standards (ISO, ITIL, ...) a process file can be mapped to."""

from datetime import datetime, timezone

from bpmn_docs.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Standard(db.Model):
    __tablename__ = "standards"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    code = db.Column(db.String(50), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(100), nullable=False, default="General", index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "code": self.code,
            "description": self.description or "",
            "category": self.category,
        }
