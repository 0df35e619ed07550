"""KPI catalogue service.

Transaction policy: methods use flush(), never commit(). The route handler
commits via ``db_commit_or_error``.
"""
import logging

from sqlalchemy import select

from bpmn_docs.core.exceptions import NotFoundError, ValidationError
from bpmn_docs.models import db
from bpmn_docs.models.kpi import KPI

logger = logging.getLogger(__name__)

# Default catalogue used by ``flask seed-kpis``.
SAMPLE_KPIS = [
    {
        "typeOfKPI": "Effectiveness KPI",
        "kpi": "Number of Incidents Caused by Inadequate Capacity",
        "formula": "Number of Incidents Caused by Inadequate Capacity",
        "kpiDirection": "down",
        "targetValue": "<5",
        "frequency": "Monthly",
        "receiver": "Capacity Manager",
        "source": "ITSM Tool",
        "active": False,
        "mode": "Manual",
        "tag": "Capacity",
        "category": "IT Operations",
        "level": 0,
        "order": 1,
    },
    {
        "typeOfKPI": "Efficiency KPI",
        "kpi": "Response Time for Capacity Issues",
        "formula": "Average time to resolve capacity incidents",
        "kpiDirection": "down",
        "targetValue": "<2 hours",
        "frequency": "Daily",
        "receiver": "Capacity Manager",
        "source": "ITSM Tool",
        "active": True,
        "mode": "Automatic",
        "tag": "Capacity",
        "category": "IT Operations",
        "level": 1,
        "order": 1.1,
    },
    {
        "typeOfKPI": "Quality KPI",
        "kpi": "Capacity Planning Accuracy",
        "formula": "Planned vs Actual capacity usage",
        "kpiDirection": "up",
        "targetValue": ">90%",
        "frequency": "Monthly",
        "receiver": "Capacity Manager",
        "source": "Capacity Planning Tool",
        "active": True,
        "mode": "Semi-Automatic",
        "tag": "Capacity",
        "category": "IT Operations",
        "level": 1,
        "order": 1.2,
    },
]


def _apply(kpi, data):
    for key, column in KPI.FIELD_MAP.items():
        if key in data:
            setattr(kpi, column, data[key])


def _validate(data, partial=False):
    if not partial:
        missing = [f for f in KPI.REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={f: "required" for f in missing},
            )
    direction = data.get("kpiDirection")
    if direction is not None and direction not in KPI.VALID_DIRECTIONS:
        raise ValidationError(
            "kpiDirection must be one of: down, neutral, up",
            details={"kpiDirection": direction},
        )
    if "order" in data:
        try:
            data["order"] = float(data["order"])
        except (TypeError, ValueError) as exc:
            raise ValidationError("order must be a number") from exc
    assoc = data.get("associatedBPMNProcesses")
    if assoc is not None and not isinstance(assoc, list):
        raise ValidationError("associatedBPMNProcesses must be a list")


def get_kpi(kpi_id):
    try:
        pk = int(kpi_id)
    except (TypeError, ValueError):
        raise NotFoundError(resource="KPI", resource_id=kpi_id)
    kpi = db.session.get(KPI, pk)
    if kpi is None:
        raise NotFoundError(resource="KPI", resource_id=kpi_id)
    return kpi


def list_kpis():
    """All KPIs ordered by catalogue order, then creation time."""
    return list(db.session.execute(select(KPI).order_by(KPI.order, KPI.created_at, KPI.id)).scalars())


def create_kpi(data):
    """Create a KPI. Returns the flushed instance."""
    data = dict(data)
    _validate(data)
    kpi = KPI(created_by=data.get("createdBy") or "system", associated_bpmn_processes=[])
    _apply(kpi, {k: v for k, v in data.items() if k != "createdBy"})
    if kpi.associated_bpmn_processes is None:
        kpi.associated_bpmn_processes = []
    db.session.add(kpi)
    db.session.flush()
    logger.info("KPI created id=%s kpi=%r", kpi.id, kpi.kpi)
    return kpi


def update_kpi(kpi_id, data):
    """Partial update. ``id`` in the payload is ignored."""
    kpi = get_kpi(kpi_id)
    data = {k: v for k, v in data.items() if k != "id"}
    _validate(data, partial=True)
    _apply(kpi, data)
    db.session.flush()
    logger.info("KPI updated id=%s fields=%s", kpi.id, sorted(data))
    return kpi


def delete_kpi(kpi_id):
    kpi = get_kpi(kpi_id)
    db.session.delete(kpi)
    db.session.flush()
    logger.info("KPI deleted id=%s", kpi_id)


def seed_default_kpis():
    """Insert the sample catalogue when the table is empty. Returns rows added."""
    if db.session.execute(select(KPI.id).limit(1)).first() is not None:
        return 0
    for row in SAMPLE_KPIS:
        create_kpi(row)
    return len(SAMPLE_KPIS)
