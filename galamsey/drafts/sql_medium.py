"""
SQL-backed draft medium
Stores draft slots in the draft_slots table, scoped to one wizard session
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, select

from galamsey.database.connection import DatabaseConnection
from galamsey.database.models import DraftSlot

logger = logging.getLogger(__name__)


class SqlDraftMedium:
    """
    Draft medium for one wizard session.

    Args:
        db: Database connection
        session_id: Wizard session the slots belong to
    """

    def __init__(self, db: DatabaseConnection, session_id: str):
        self.db = db
        self.session_id = session_id

    def get(self, key: str) -> Optional[str]:
        with self.db.get_session() as session:
            row = session.execute(
                select(DraftSlot.value).where(
                    DraftSlot.session_id == self.session_id,
                    DraftSlot.slot == key,
                )
            ).scalar_one_or_none()
        return row

    def set(self, key: str, value: str) -> None:
        with self.db.get_session() as session:
            row = session.get(DraftSlot, (self.session_id, key))
            if row is None:
                session.add(DraftSlot(session_id=self.session_id, slot=key, value=value))
            else:
                row.value = value
                row.updated_at = datetime.utcnow()

    def delete_many(self, keys: Iterable[str]) -> None:
        # One transaction so slots are never partially cleared
        with self.db.get_session() as session:
            session.execute(
                delete(DraftSlot).where(
                    DraftSlot.session_id == self.session_id,
                    DraftSlot.slot.in_(list(keys)),
                )
            )
