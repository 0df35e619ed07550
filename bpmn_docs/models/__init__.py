"""
BPMN Process Documentation Service
SQLAlchemy models package.

All model modules import ``db`` from here:

    from bpmn_docs.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
