"""
User directory rows.

Only what the node service needs to resolve a "created by" display value and
what the admin gate needs to recognise an administrator. Sign-up, passwords and
sessions live outside this service.
"""

from datetime import datetime, timezone

from bpmn_docs.models import db


class User(db.Model):
    __tablename__ = "users"

    VALID_ROLES = {"user", "admin", "supervisor"}

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    name = db.Column(db.String(200), nullable=False, default="")
    role = db.Column(db.String(20), nullable=False, default="user", comment="user | admin | supervisor")
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def display_name(self):
        """Name if set, else email."""
        return self.name or self.email or ""

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
