"""
Report store
Durable persistence of reports and their enrichment / chain annotations
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from galamsey.crowdsource.report import ReportDraft
from .connection import DatabaseConnection
from .models import GalamseyReport

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """The report store could not complete an operation."""


class ReportStore:
    """
    Async facade over the galamsey_reports table.

    Each call runs its SQLAlchemy session in a worker thread so the event
    loop stays responsive while the database works.
    """

    def __init__(self, db: DatabaseConnection):
        self.db = db

    async def insert(self, draft: ReportDraft, user_id: str) -> Dict[str, Any]:
        """
        Insert a validated draft and read the stored record back by id.

        Returns:
            The stored report as a dictionary (including its generated id)

        Raises:
            PersistenceError: on any database failure
        """
        return await asyncio.to_thread(self._insert, draft, user_id)

    async def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._get, report_id)

    async def update_enrichment(self, report_id: str, summary: str, category: str) -> bool:
        """Patch only the AI field group."""
        return await asyncio.to_thread(
            self._patch, report_id, {"ai_summary": summary, "ai_category": category}
        )

    async def attach_tx_hash(self, report_id: str, tx_hash: str) -> bool:
        """Patch only the chain field group."""
        return await asyncio.to_thread(
            self._patch, report_id, {"scroll_tx_hash": tx_hash}
        )

    async def list_reports(
        self,
        category: Optional[str] = None,
        unprocessed: bool = False,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list, category, unprocessed, limit)

    async def delete(self, report_id: str) -> bool:
        return await asyncio.to_thread(self._delete, report_id)

    def _insert(self, draft: ReportDraft, user_id: str) -> Dict[str, Any]:
        coords = draft.gps_coordinates
        report = GalamseyReport(
            user_id=user_id,
            date=draft.date.strip(),
            location=draft.location.strip(),
            description=draft.description.strip(),
            gps_latitude=coords.lat if coords else None,
            gps_longitude=coords.lng if coords else None,
            gps_address=draft.gps_address,
            photos=list(draft.photos),
            wallet_address=draft.wallet_address,
        )
        try:
            with self.db.get_session() as session:
                session.add(report)
                session.flush()
                report_id = report.id
            stored = self._get(report_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save report: {e}") from e

        if stored is None:
            raise PersistenceError("Report was not found after insert")

        logger.info(f"Report stored: {stored['id']} by user {user_id}")
        return stored

    def _get(self, report_id: str) -> Optional[Dict[str, Any]]:
        try:
            with self.db.get_session() as session:
                report = session.get(GalamseyReport, report_id)
                return report.to_dict() if report else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load report {report_id}: {e}") from e

    def _patch(self, report_id: str, values: Dict[str, Any]) -> bool:
        # Column-scoped UPDATE, so concurrent patches of other fields survive
        try:
            with self.db.get_session() as session:
                result = session.execute(
                    update(GalamseyReport)
                    .where(GalamseyReport.id == report_id)
                    .values(**values)
                )
                updated = result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update report {report_id}: {e}") from e

        if not updated:
            logger.warning(f"Report {report_id} not found for update of {sorted(values)}")
        return updated

    def _list(
        self,
        category: Optional[str],
        unprocessed: bool,
        limit: int
    ) -> List[Dict[str, Any]]:
        query = select(GalamseyReport).order_by(GalamseyReport.created_at.desc())
        if category:
            query = query.where(GalamseyReport.ai_category == category)
        if unprocessed:
            query = query.where(GalamseyReport.ai_category.is_(None))
        query = query.limit(limit)

        try:
            with self.db.get_session() as session:
                return [r.to_dict() for r in session.execute(query).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list reports: {e}") from e

    def _delete(self, report_id: str) -> bool:
        try:
            with self.db.get_session() as session:
                result = session.execute(
                    delete(GalamseyReport).where(GalamseyReport.id == report_id)
                )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete report {report_id}: {e}") from e
