"""
BI Spec Builder
Database models package.

``db`` is the shared Flask-SQLAlchemy handle; model modules import it
from here and ``create_app`` imports every model module so that
``db.create_all()`` and Alembic see the full schema.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
