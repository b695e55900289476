"""
GalamseyWatch - Draft Module
Wizard draft persistence with pluggable storage media.
"""

from galamsey.drafts.store import DraftStore, DraftMedium, MemoryMedium
from galamsey.drafts.sql_medium import SqlDraftMedium

__all__ = [
    "DraftStore",
    "DraftMedium",
    "MemoryMedium",
    "SqlDraftMedium",
]
