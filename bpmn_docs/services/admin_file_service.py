"""
Admin view over every user's process files.

Unlike node_service nothing here is scoped by user: callers sit behind the
``admin_required`` gate. Reads return plain dicts; mutations commit.
"""

import io
import logging
import zipfile

from sqlalchemy import select

from bpmn_docs.core.exceptions import NotFoundError, ValidationError
from bpmn_docs.models import db
from bpmn_docs.models.node import BpmnArchivedNode, BpmnNode
from bpmn_docs.services.node_service import delete_subtree
from bpmn_docs.services.tree_builder import build_forest
from bpmn_docs.utils.helpers import utcnow

logger = logging.getLogger(__name__)

FOREST_FIELDS = ("name", "type", "userId", "archived", "createdAt", "updatedAt")
PATCH_STRING_FIELDS = {"name": "name", "ownerUserId": "owner_user_id", "userId": "user_id"}
EXPORT_FILENAME = "bpmn-files.zip"


def _get_file(file_id):
    node = db.session.execute(
        select(BpmnNode).where(BpmnNode.id == file_id, BpmnNode.type == "file")
    ).scalar_one_or_none()
    if node is None:
        raise NotFoundError(resource="File", resource_id=file_id)
    return node


def compute_path(node_id, parents, names):
    """Join ancestor names root-first: ``"A/B/file"``.

    ``parents`` maps id -> parent id and ``names`` id -> name. A dangling
    parent id ends the walk; a cycle is cut at the first repeat.
    """
    parts = []
    seen = set()
    current = node_id
    while current and current not in seen:
        seen.add(current)
        name = names.get(current)
        if name:
            parts.append(name)
        current = parents.get(current)
    return "/".join(reversed(parts))


def list_files_with_paths():
    """Every file across all users, newest first, with its folder path."""
    rows = db.session.execute(select(BpmnNode.id, BpmnNode.name, BpmnNode.parent_id)).all()
    parents = {r.id: r.parent_id for r in rows}
    names = {r.id: r.name for r in rows}

    files = db.session.execute(
        select(BpmnNode)
        .where(BpmnNode.type == "file")
        .order_by(BpmnNode.created_at.desc(), BpmnNode.id)
    ).scalars()
    out = []
    for f in files:
        item = f.to_summary()
        item.pop("type", None)
        item.pop("parentId", None)
        item["path"] = compute_path(f.id, parents, names)
        out.append(item)
    return out


def get_forest():
    nodes = db.session.execute(
        select(BpmnNode).order_by(BpmnNode.created_at, BpmnNode.id)
    ).scalars().all()
    return build_forest([n.to_summary() for n in nodes], fields=FOREST_FIELDS)


def get_file(file_id):
    return _get_file(file_id).to_dict()


def _sync_archive_mirror(node, archived):
    mirror = db.session.get(BpmnArchivedNode, node.id)
    if archived:
        if mirror is None:
            mirror = BpmnArchivedNode(id=node.id)
            db.session.add(mirror)
        mirror.copy_from(node)
    elif mirror is not None:
        db.session.delete(mirror)


def patch_file(file_id, data):
    """Rename, reassign or (un)archive one file.

    String fields are applied only when a string is supplied; ``archived``
    only when a bool is supplied. Archiving writes the mirror row,
    un-archiving removes it.
    """
    node = _get_file(file_id)
    changed = []
    for key, column in PATCH_STRING_FIELDS.items():
        value = data.get(key)
        if isinstance(value, str):
            if key == "name" and not value.strip():
                raise ValidationError("name must be a non-empty string")
            setattr(node, column, value)
            changed.append(key)

    archived = data.get("archived")
    if isinstance(archived, bool):
        node.archived = archived
        changed.append("archived")

    node.updated_at = utcnow()
    db.session.flush()
    if isinstance(archived, bool):
        _sync_archive_mirror(node, archived)

    db.session.commit()
    logger.info("Admin patched file id=%s fields=%s", file_id, changed)
    return node.to_dict()


def delete_file(file_id):
    node = _get_file(file_id)
    mirror = db.session.get(BpmnArchivedNode, node.id)
    if mirror is not None:
        db.session.delete(mirror)
    deleted = delete_subtree(node)
    db.session.commit()
    logger.info("Admin deleted file id=%s", file_id)
    return deleted


def list_archived():
    """Archived files from the mirror table, else from the flag on live rows."""
    mirrors = db.session.execute(
        select(BpmnArchivedNode)
        .where(BpmnArchivedNode.archived.is_(True))
        .order_by(BpmnArchivedNode.updated_at.desc())
    ).scalars().all()
    rows = mirrors or db.session.execute(
        select(BpmnNode)
        .where(BpmnNode.type == "file", BpmnNode.archived.is_(True))
        .order_by(BpmnNode.updated_at.desc())
    ).scalars().all()

    out = []
    for r in rows:
        item = r.to_summary()
        item.pop("type", None)
        item.pop("parentId", None)
        out.append(item)
    return out


def parse_ids(raw):
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


def _archive_name(name, used):
    base = (name or "").replace("/", "_").replace("\\", "_") or "untitled"
    candidate = f"{base}.bpmn.xml"
    n = 1
    while candidate in used:
        n += 1
        candidate = f"{base} ({n}).bpmn.xml"
    used.add(candidate)
    return candidate


def export_zip(ids):
    """ZIP archive with one ``<name>.bpmn.xml`` entry per requested file.

    Unknown ids and folders are skipped. Returns the archive bytes.
    """
    if not ids:
        raise ValidationError("No ids provided")
    nodes = db.session.execute(
        select(BpmnNode)
        .where(BpmnNode.id.in_(ids), BpmnNode.type == "file")
        .order_by(BpmnNode.created_at, BpmnNode.id)
    ).scalars().all()

    buf = io.BytesIO()
    used = set()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for node in nodes:
            zf.writestr(_archive_name(node.name or node.id, used), node.content or "")
    logger.info("Admin export requested=%d exported=%d", len(ids), len(nodes))
    return buf.getvalue()
