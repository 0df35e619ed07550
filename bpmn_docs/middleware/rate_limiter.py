"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in bpmn_docs/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from bpmn_docs.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"
EXPORT_LIMIT = "10/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Admin ZIP export:  10/minute  (decorated on the route in admin_bp)
        - Node / KPI / documents / admin: 60/minute
        - Standards (read-mostly):       200/minute
        - Health check:      exempt (see create_app)

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("bpmn_nodes", "kpis", "documents", "admin_files"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("standards")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    logger.info(
        "Rate limiter configured: export=%s write=%s read=%s",
        EXPORT_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
