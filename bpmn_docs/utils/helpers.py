"""Shared helpers for blueprints and services.

utcnow:              timezone-aware "now"
parse_id_list:       normalise list-of-ids payload fields
db_commit_or_error:  commit + map DB failures to a JSON error tuple
"""
import logging
from datetime import datetime, timezone

from flask import jsonify

from bpmn_docs.models import db

logger = logging.getLogger(__name__)


def utcnow():
    return datetime.now(timezone.utc)


def parse_id_list(value, field):
    """Return ``value`` as a de-duplicated list of id strings.

    ``None`` becomes ``[]``. Anything that is not a list raises ValueError
    naming ``field``; callers turn that into a 400.
    """
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{field} must be a list")
    out = []
    for item in value:
        if item is None or item == "":
            continue
        sid = str(item)
        if sid not in out:
            out.append(sid)
    return out


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"success": False, "error": "Duplicate or constraint violation"}), 409
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return jsonify({"success": False, "error": "Database error"}), 500
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return jsonify({"success": False, "error": "Database error"}), 500
