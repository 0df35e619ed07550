"""
BPMN process documentation service
Flask Application Factory.

Usage:
    from bpmn_docs import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from bpmn_docs.config import config
from bpmn_docs.middleware.jwt_auth import init_jwt_middleware
from bpmn_docs.middleware.logging_config import configure_logging
from bpmn_docs.middleware.rate_limiter import init_rate_limits
from bpmn_docs.middleware.timing import init_request_timing
from bpmn_docs.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _init_request_guards(app):
    """Body size cap and JSON Content-Type on mutating API calls."""

    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")


def _register_cli(app):
    @app.cli.command("seed-standards")
    def seed_standards_cmd():
        """Insert the default reference standards (skips existing codes)."""
        from bpmn_docs.services.standard_service import seed_default_standards
        count = seed_default_standards()
        db.session.commit()
        logger.info("Seeded %s new standards.", count)

    @app.cli.command("seed-kpis")
    def seed_kpis_cmd():
        """Insert the sample KPI catalogue when the KPI table is empty."""
        from bpmn_docs.services.kpi_service import seed_default_kpis
        count = seed_default_kpis()
        db.session.commit()
        logger.info("Seeded %s new KPIs.", count)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Middleware ───────────────────────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)
    _init_request_guards(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from bpmn_docs.models import kpi as _kpi_models             # noqa: F401
    from bpmn_docs.models import node as _node_models           # noqa: F401
    from bpmn_docs.models import standard as _standard_models   # noqa: F401
    from bpmn_docs.models import user as _user_models           # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in \
            app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from bpmn_docs.blueprints.admin_bp import admin_bp
    from bpmn_docs.blueprints.document_bp import document_bp
    from bpmn_docs.blueprints.kpi_bp import kpi_bp
    from bpmn_docs.blueprints.node_bp import node_bp
    from bpmn_docs.blueprints.standard_bp import standard_bp

    app.register_blueprint(node_bp)
    app.register_blueprint(kpi_bp)
    app.register_blueprint(standard_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(document_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    _register_cli(app)

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/api/v1/health")
    @limiter.exempt
    def health():
        return {"status": "ok", "app": "BPMN Docs"}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"success": False, "error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"success": False, "error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"success": False, "error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"success": False, "error": e.description}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"success": False, "error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"success": False, "error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
