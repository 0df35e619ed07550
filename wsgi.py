"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-standards
    gunicorn wsgi:app
"""

from bpmn_docs import create_app

app = create_app()
