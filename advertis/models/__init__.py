"""
ADVERTIS Strategy Platform
Shared SQLAlchemy handle.

Usage:
    from advertis.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
