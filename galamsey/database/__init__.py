"""
Database module for GalamseyWatch
SQLAlchemy persistence for reports and wizard drafts
"""

from .connection import DatabaseConnection, init_db
from .models import Base, GalamseyReport, DraftSlot
from .repository import ReportStore, PersistenceError

__all__ = [
    "DatabaseConnection",
    "init_db",
    "Base",
    "GalamseyReport",
    "DraftSlot",
    "ReportStore",
    "PersistenceError",
]
