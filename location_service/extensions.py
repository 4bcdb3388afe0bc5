"""
Location Service Extensions Module

Contains Flask extension instances (SQLAlchemy, Migrate, CORS) that are
initialized in the app factory and shared across the application.
"""

from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# SQLAlchemy database instance
# Initialized in app factory with Flask app configuration
db = SQLAlchemy(model_class=Base)

# Flask-Migrate instance for database migrations
migrate = Migrate()

# Cross-origin access for web clients; origins come from CORS_ORIGINS
cors = CORS()
