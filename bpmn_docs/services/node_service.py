"""BPMN node service — folder/file tree CRUD for one user.

Every read and write is scoped by ``user_id``: a node owned by someone else
is reported exactly like a missing one (NotFoundError → 404).

Tree bookkeeping:
  - ``parent_id`` on the child is the source of truth.
  - ``children`` on the folder is a cache kept in step on create, reparent
    and delete via ``push_child`` / ``pull_child`` (both idempotent).
  - Deletes walk descendants by querying ``parent_id`` and also honour ids
    still listed in the cache, so a drifted cache cannot leave rows behind.

Transaction policy: one commit per public mutating call, issued here. The
parent-pull, parent-push and node write of a request succeed or fail
together; only the KPI sync runs in its own savepoint (see kpi_sync).
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bpmn_docs.core.exceptions import NotFoundError, ValidationError
from bpmn_docs.models import db
from bpmn_docs.models.node import (
    ADVANCED_DETAILS_FIELDS,
    DEFAULT_VERSION,
    HISTORY_FIELDS,
    NODE_TYPES,
    PROCESS_METADATA_FIELDS,
    SIGN_OFF_FIELDS,
    TRIGGER_FIELDS,
    BpmnNode,
    default_advanced_details,
    default_history_data,
    default_sign_off_data,
    default_trigger_data,
    normalize_block,
)
from bpmn_docs.models.user import User
from bpmn_docs.services.kpi_sync import remove_node_from_kpis, sync_kpi_associations
from bpmn_docs.services.tree_builder import build_tree
from bpmn_docs.services.versioning import bump_patch_lenient
from bpmn_docs.utils.helpers import parse_id_list, utcnow

logger = logging.getLogger(__name__)

# API block key -> (column, field set)
_BLOCKS = {
    "processMetadata": ("process_metadata", PROCESS_METADATA_FIELDS),
    "signOffData": ("sign_off_data", SIGN_OFF_FIELDS),
    "historyData": ("history_data", HISTORY_FIELDS),
    "triggerData": ("trigger_data", TRIGGER_FIELDS),
}


# ── Lookups ──────────────────────────────────────────────────────────────────


def _find_owned(user_id: str, node_id: str) -> BpmnNode | None:
    return db.session.execute(
        select(BpmnNode).where(BpmnNode.id == node_id, BpmnNode.user_id == user_id)
    ).scalar_one_or_none()


def _get_owned(user_id: str, node_id: str, label: str = "Node") -> BpmnNode:
    node = _find_owned(user_id, node_id)
    if node is None:
        raise NotFoundError(resource=label, resource_id=node_id)
    return node


def _require_folder(user_id: str, parent_id: str, label: str) -> BpmnNode:
    parent = _get_owned(user_id, parent_id, label=label)
    if not parent.is_folder:
        raise ValidationError("Parent must be a folder", details={"parentId": parent_id})
    return parent


def list_nodes(user_id: str) -> list[BpmnNode]:
    """All of a user's nodes, oldest first."""
    return list(
        db.session.execute(
            select(BpmnNode)
            .where(BpmnNode.user_id == user_id)
            .order_by(BpmnNode.created_at, BpmnNode.id)
        ).scalars()
    )


def get_tree(user_id: str) -> list[dict]:
    """Nested folder/file tree for a user."""
    return build_tree(list_nodes(user_id))


def get_node(user_id: str, node_id: str) -> dict:
    """Full record of one node, no nesting."""
    return _get_owned(user_id, node_id).to_dict()


def descendant_ids(user_id: str, node_id: str) -> set[str]:
    """Ids of every node below ``node_id``, found through ``parent_id``."""
    found: set[str] = set()
    frontier = [node_id]
    while frontier:
        rows = db.session.execute(
            select(BpmnNode.id).where(
                BpmnNode.user_id == user_id,
                BpmnNode.parent_id.in_(frontier),
            )
        ).scalars().all()
        frontier = [r for r in rows if r not in found and r != node_id]
        found.update(frontier)
    return found


# ── children cache ───────────────────────────────────────────────────────────


def push_child(parent_id: str, child_id: str) -> bool:
    """Append ``child_id`` to the parent's ``children``; never duplicates."""
    parent = db.session.get(BpmnNode, parent_id)
    if parent is None:
        return False
    current = list(parent.children or [])
    if child_id in current:
        return False
    parent.children = current + [child_id]
    return True


def pull_child(parent_id: str, child_id: str) -> bool:
    """Remove ``child_id`` from the parent's ``children``.

    Safe to repeat: a missing parent or an already-pulled id is a no-op.
    """
    parent = db.session.get(BpmnNode, parent_id)
    if parent is None:
        return False
    current = list(parent.children or [])
    if child_id not in current:
        return False
    parent.children = [c for c in current if c != child_id]
    return True


# ── Create ───────────────────────────────────────────────────────────────────


def _resolve_created_by(user_id: str, advanced_details: dict | None) -> str:
    """Explicit value, else the user's display name, else the raw user id."""
    if advanced_details and advanced_details.get("createdBy"):
        return advanced_details["createdBy"]
    try:
        user = db.session.get(User, user_id)
    except SQLAlchemyError:
        logger.warning("User lookup failed for createdBy user_id=%s", user_id, exc_info=True)
        return user_id
    if user is not None and user.display_name:
        return user.display_name
    return user_id


def _check_blocks(data: dict) -> None:
    """Metadata blocks must be JSON objects when present."""
    for key in ("advancedDetails", *_BLOCKS):
        value = data.get(key)
        if value is not None and not isinstance(value, dict):
            raise ValidationError(f"{key} must be an object", details={key: "must be an object"})


def _id_list(data: dict, key: str) -> list[str]:
    try:
        return parse_id_list(data.get(key), key)
    except ValueError as exc:
        raise ValidationError(str(exc), details={key: "must be a list of ids"}) from exc


def create_node(user_id: str, data: dict) -> dict:
    """Create a folder or file, optionally under an existing folder.

    Raises:
        ValidationError: missing userId/type/name, unknown type, file without
                         content, or a parent that is not a folder.
        NotFoundError:   parentId does not exist for this user.
    """
    node_type = data.get("type")
    name = data.get("name")
    if not user_id or not node_type or not name:
        raise ValidationError("userId, type, and name are required")
    if node_type not in NODE_TYPES:
        raise ValidationError("type must be folder or file", details={"type": node_type})
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name must be a non-empty string")

    is_file = node_type == "file"
    content = data.get("content")
    if is_file and not content:
        raise ValidationError("content is required for files")
    if is_file:
        _check_blocks(data)

    node_id = str(uuid.uuid4())
    parent_id = data.get("parentId") or None
    if parent_id:
        _require_folder(user_id, parent_id, label="Parent node")

    node = BpmnNode(
        id=node_id,
        user_id=user_id,
        owner_user_id=data.get("ownerUserId") or "",
        type=node_type,
        name=name.strip(),
        parent_id=parent_id,
        children=[] if not is_file else None,
    )

    selected_kpis: list[str] = []
    if is_file:
        supplied = data.get("advancedDetails")
        created_by = _resolve_created_by(user_id, supplied)
        if supplied:
            details = normalize_block(supplied, ADVANCED_DETAILS_FIELDS)
            details["versionNo"] = details["versionNo"] or DEFAULT_VERSION
            details["createdBy"] = details["createdBy"] or created_by
        else:
            details = default_advanced_details(created_by=created_by)

        selected_kpis = _id_list(data, "selectedKPIs")
        node.content = content
        node.process_metadata = normalize_block(data.get("processMetadata"), PROCESS_METADATA_FIELDS)
        node.advanced_details = details
        node.sign_off_data = (
            normalize_block(data["signOffData"], SIGN_OFF_FIELDS)
            if data.get("signOffData") else default_sign_off_data()
        )
        node.history_data = (
            normalize_block(data["historyData"], HISTORY_FIELDS)
            if data.get("historyData") else default_history_data()
        )
        node.trigger_data = (
            normalize_block(data["triggerData"], TRIGGER_FIELDS)
            if data.get("triggerData") else default_trigger_data()
        )
        node.selected_standards = _id_list(data, "selectedStandards")
        node.selected_kpis = selected_kpis

    if parent_id:
        push_child(parent_id, node_id)
    db.session.add(node)
    db.session.flush()

    if is_file and selected_kpis:
        sync_kpi_associations(node_id, selected_kpis, [])

    db.session.commit()
    logger.info("Node created id=%s type=%s user_id=%s parent_id=%s", node_id, node_type, user_id, parent_id)
    return node.to_dict()


# ── Update ───────────────────────────────────────────────────────────────────


def _reparent(user_id: str, node: BpmnNode, new_parent_id: str | None) -> None:
    if new_parent_id == node.id:
        raise ValidationError("A node cannot be its own parent", details={"parentId": new_parent_id})
    if new_parent_id:
        _require_folder(user_id, new_parent_id, label="New parent")
        if node.is_folder and new_parent_id in descendant_ids(user_id, node.id):
            raise ValidationError(
                "Cannot move a folder into one of its own descendants",
                details={"parentId": new_parent_id},
            )

    old_parent_id = node.parent_id
    if old_parent_id:
        pull_child(old_parent_id, node.id)
    if new_parent_id:
        push_child(new_parent_id, node.id)
    node.parent_id = new_parent_id
    logger.info("Node moved id=%s from=%s to=%s", node.id, old_parent_id, new_parent_id)


def update_node(user_id: str, node_id: str, data: dict) -> dict:
    """Apply a partial update.

    Supplying ``advancedDetails`` always bumps the stored version's patch
    number and stamps ``modificationDate``; a ``versionNo`` in the payload
    is ignored. On folders only ``name`` and ``parentId`` apply.

    Raises:
        NotFoundError:   node (or new parent) not found for this user.
        ValidationError: bad field shapes, non-folder parent, cyclic move.
    """
    if not node_id or not user_id:
        raise ValidationError("nodeId and userId are required")
    node = _get_owned(user_id, node_id)

    if "parentId" in data:
        new_parent_id = data.get("parentId") or None
        if new_parent_id != node.parent_id:
            _reparent(user_id, node, new_parent_id)

    if "name" in data:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name must be a non-empty string")
        node.name = name.strip()

    new_kpis = None
    # File-only fields are ignored on folders, as on create
    if node.is_file:
        _check_blocks(data)

        if "content" in data:
            node.content = data.get("content")

        for key, (column, fields) in _BLOCKS.items():
            if key in data:
                setattr(node, column, normalize_block(data.get(key), fields))

        if "selectedStandards" in data:
            node.selected_standards = _id_list(data, "selectedStandards")

        if "advancedDetails" in data:
            current_version = (node.advanced_details or {}).get("versionNo")
            details = normalize_block(data.get("advancedDetails") or {}, ADVANCED_DETAILS_FIELDS)
            details["versionNo"] = bump_patch_lenient(current_version)
            details["modificationDate"] = utcnow().isoformat()
            node.advanced_details = details

        if "selectedKPIs" in data:
            new_kpis = _id_list(data, "selectedKPIs")
            old_kpis = list(node.selected_kpis or [])
            node.selected_kpis = new_kpis

    node.updated_at = utcnow()
    db.session.flush()

    if new_kpis is not None:
        sync_kpi_associations(node.id, new_kpis, old_kpis)

    db.session.commit()
    logger.info("Node updated id=%s user_id=%s fields=%s", node.id, user_id, sorted(data))
    return node.to_dict()


# ── Delete ───────────────────────────────────────────────────────────────────


def _child_ids(node: BpmnNode) -> list[str]:
    """Cached children first, then any row pointing here that the cache missed."""
    ids = list(node.children or [])
    rows = db.session.execute(
        select(BpmnNode.id)
        .where(BpmnNode.user_id == node.user_id, BpmnNode.parent_id == node.id)
        .order_by(BpmnNode.created_at, BpmnNode.id)
    ).scalars().all()
    ids.extend(r for r in rows if r not in ids)
    return ids


def _delete_recursive(node: BpmnNode, seen: set[str]) -> int:
    seen.add(node.id)
    deleted = 0
    if node.is_folder:
        for child_id in _child_ids(node):
            if child_id in seen:
                continue
            child = _find_owned(node.user_id, child_id)
            if child is not None:
                deleted += _delete_recursive(child, seen)

    if node.parent_id:
        pull_child(node.parent_id, node.id)
    if node.is_file and node.selected_kpis:
        remove_node_from_kpis(node.id, node.selected_kpis)

    db.session.delete(node)
    db.session.flush()
    return deleted + 1


def delete_subtree(node: BpmnNode) -> int:
    """Depth-first delete of ``node`` and everything below it (no commit)."""
    return _delete_recursive(node, set())


def delete_node(user_id: str, node_id: str) -> int:
    """Delete a node and, for folders, all descendants.

    Returns:
        Number of node rows removed (folder + descendants).

    Raises:
        NotFoundError: node not found for this user.
    """
    if not node_id or not user_id:
        raise ValidationError("nodeId and userId are required")
    node = _get_owned(user_id, node_id)
    deleted = delete_subtree(node)
    db.session.commit()
    logger.info("Node deleted id=%s user_id=%s rows=%d", node_id, user_id, deleted)
    return deleted
