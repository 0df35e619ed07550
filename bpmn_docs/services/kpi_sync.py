"""KPI ↔ process-file association bookkeeping.

A file node lists the KPIs it measures in ``selected_kpis``; every KPI keeps
the reverse list in ``associated_bpmn_processes``. This module keeps the
reverse side in step.

Best-effort by contract: each sync runs inside a SAVEPOINT. If anything
fails, only the savepoint is rolled back, the error is logged, and the
caller's node write carries on. The two sides may therefore drift; a failed
sync never fails the request that triggered it.

Transaction policy: flush only, the caller commits.
"""

import logging

from bpmn_docs.models import db
from bpmn_docs.models.kpi import KPI

logger = logging.getLogger(__name__)


def diff_selection(new_ids, old_ids=()):
    """Return ``(added, removed)`` preserving first-seen order."""
    new_ids = _unique(new_ids)
    old_ids = _unique(old_ids)
    added = [k for k in new_ids if k not in old_ids]
    removed = [k for k in old_ids if k not in new_ids]
    return added, removed


def _unique(ids):
    out = []
    for i in ids or ():
        s = str(i)
        if s not in out:
            out.append(s)
    return out


def _load_kpi(kpi_id):
    try:
        pk = int(kpi_id)
    except (TypeError, ValueError):
        logger.warning("Skipping non-numeric KPI id %r", kpi_id)
        return None
    kpi = db.session.get(KPI, pk)
    if kpi is None:
        logger.warning("Skipping unknown KPI id=%s", kpi_id)
    return kpi


def add_process(kpi, node_id):
    """Add ``node_id`` to the KPI's reverse list (set semantics)."""
    current = list(kpi.associated_bpmn_processes or [])
    if node_id not in current:
        kpi.associated_bpmn_processes = current + [node_id]


def pull_process(kpi, node_id):
    """Remove every occurrence of ``node_id``; no-op if absent."""
    current = list(kpi.associated_bpmn_processes or [])
    if node_id in current:
        kpi.associated_bpmn_processes = [p for p in current if p != node_id]


def sync_kpi_associations(node_id, new_kpis, old_kpis=()):
    """Apply the selection change of one file node to the KPI side.

    KPIs are updated one at a time: added ones gain ``node_id``, removed ones
    lose it, unchanged ones are not touched. Unknown KPI ids are skipped.

    Returns:
        True when the sync was applied, False when it failed and was discarded.
    """
    added, removed = diff_selection(new_kpis, old_kpis)
    if not added and not removed:
        return True

    try:
        with db.session.begin_nested():
            for kpi_id in added:
                kpi = _load_kpi(kpi_id)
                if kpi is not None:
                    add_process(kpi, node_id)
            for kpi_id in removed:
                kpi = _load_kpi(kpi_id)
                if kpi is not None:
                    pull_process(kpi, node_id)
            db.session.flush()
    except Exception:
        logger.exception(
            "KPI association sync failed node_id=%s added=%s removed=%s",
            node_id, added, removed,
        )
        return False

    logger.info("KPI associations synced node_id=%s added=%s removed=%s", node_id, added, removed)
    return True


def remove_node_from_kpis(node_id, kpi_ids):
    """Pull a deleted file's id from every KPI it referenced."""
    return sync_kpi_associations(node_id, [], kpi_ids)
