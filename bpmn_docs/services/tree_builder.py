"""Nested tree reconstruction from flat node rows.

Pure functions: no DB access. Input may be ``BpmnNode`` rows or the dicts
produced by ``to_dict()``; output is always plain dicts ready for jsonify.
"""

FILE_ONLY_KEYS = (
    "content", "processMetadata", "advancedDetails", "signOffData",
    "historyData", "triggerData", "selectedStandards", "selectedKPIs",
)


def _as_dict(node):
    return node if isinstance(node, dict) else node.to_dict()


def build_tree(nodes, parent_id=None):
    """Nest ``nodes`` under ``parent_id`` (``None`` = roots).

    Each level re-scans the full list, which keeps the function trivial and
    is fine for per-user trees. Folders recurse on their own id; files are
    leaves with ``children == []`` and folders carry no file-only keys.
    Sibling order is the input order.
    """
    records = [_as_dict(n) for n in nodes]
    return _build(records, parent_id)


def _build(records, parent_id):
    tree = []
    for rec in records:
        if rec.get("parentId") != parent_id:
            continue
        item = dict(rec)
        if item.get("type") == "folder":
            item["children"] = _build(records, item["id"])
            for key in FILE_ONLY_KEYS:
                item.pop(key, None)
        else:
            item["children"] = []
        tree.append(item)
    return tree


def build_forest(nodes, fields=None):
    """Attach every node to its parent in one pass; orphans become roots.

    Used by the cross-user admin view, where a parent may belong to another
    user or have disappeared. ``fields`` limits the keys copied per node.
    """
    records = [_as_dict(n) for n in nodes]
    by_id = {}
    for rec in records:
        item = {k: rec.get(k) for k in fields} if fields else dict(rec)
        item["id"] = rec["id"]
        item["parentId"] = rec.get("parentId")
        item["children"] = []
        by_id[rec["id"]] = item

    roots = []
    for rec in records:
        item = by_id[rec["id"]]
        parent = by_id.get(item["parentId"]) if item["parentId"] else None
        if parent is not None and parent is not item:
            parent["children"].append(item)
        else:
            roots.append(item)
    return roots


def count_nodes(tree):
    """Total nodes in a nested tree."""
    return sum(1 + count_nodes(item.get("children") or []) for item in tree)
