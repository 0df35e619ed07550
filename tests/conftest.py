"""
Shared pytest fixtures for the BPMN docs test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin_headers / user_headers: Authorization headers for the admin gate
    - make_kpi: factory for KPI rows
"""

import pytest

from bpmn_docs import create_app
from bpmn_docs.models import db as _db
from bpmn_docs.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Auth fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def admin_headers():
    token = generate_access_token("admin-1", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_headers():
    token = generate_access_token("user-1", role="user")
    return {"Authorization": f"Bearer {token}"}


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_kpi():
    """Return a factory that inserts a KPI and returns its id as a string."""
    from bpmn_docs.services.kpi_service import create_kpi

    def _make(name="Incident count", order=1, **overrides):
        data = {
            "typeOfKPI": "Effectiveness KPI",
            "kpi": name,
            "kpiDirection": "down",
            "targetValue": "<5",
            "frequency": "Monthly",
            "receiver": "Service Owner",
            "source": "ITSM Tool",
            "mode": "Manual",
            "tag": "Ops",
            "category": "IT Operations",
            "order": order,
        }
        data.update(overrides)
        kpi = create_kpi(data)
        _db.session.commit()
        return str(kpi.id)

    return _make
