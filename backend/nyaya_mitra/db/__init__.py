# backend/nyaya_mitra/db/__init__.py

"""
Database Module

Contains SQLAlchemy models, Pydantic schemas, and database configuration.
"""

from nyaya_mitra.db.database import Base, engine, SessionLocal, get_db, init_db
from nyaya_mitra.db import models, schemas

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'get_db',
    'init_db',
    'models',
    'schemas'
]
