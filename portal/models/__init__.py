"""
Client Spaces Portal
Shared SQLAlchemy instance for all models.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
