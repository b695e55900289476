"""
SQLAlchemy models for GalamseyWatch
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Float, String, Text, DateTime, Index, JSON
)
from sqlalchemy.orm import declarative_base

from galamsey.core.constants import UNPROCESSED_LABEL

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class GalamseyReport(Base):
    """
    Illegal mining report submitted by a user.

    Two field groups are patched after insertion by independent paths:
    {ai_summary, ai_category} by enrichment and {scroll_tx_hash} by chain
    recording. Neither path may write the other's columns.
    """
    __tablename__ = "galamsey_reports"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False, index=True)

    # Report details
    date = Column(String(40), nullable=False)
    location = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)

    # GPS
    gps_latitude = Column(Float)
    gps_longitude = Column(Float)
    gps_address = Column(String(500))

    # Base64 data URLs
    photos = Column(JSON, default=list)

    wallet_address = Column(String(42))

    # AI enrichment
    ai_summary = Column(Text)
    ai_category = Column(String(50))

    # Chain recording
    scroll_tx_hash = Column(String(66))

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_report_ai_category", ai_category),
    )

    def __repr__(self):
        return f"<GalamseyReport({self.id}, location={self.location!r})>"

    @property
    def gps_coordinates(self):
        if self.gps_latitude is None or self.gps_longitude is None:
            return None
        return {"lat": self.gps_latitude, "lng": self.gps_longitude}

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date,
            "location": self.location,
            "description": self.description,
            "gps_coordinates": self.gps_coordinates,
            "gps_address": self.gps_address,
            "photos": list(self.photos or []),
            "wallet_address": self.wallet_address,
            "ai_summary": self.ai_summary,
            "ai_category": self.ai_category,
            "ai_status": self.ai_category or UNPROCESSED_LABEL,
            "scroll_tx_hash": self.scroll_tx_hash,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class DraftSlot(Base):
    """One JSON slot of a wizard draft."""
    __tablename__ = "draft_slots"

    session_id = Column(String(64), primary_key=True)
    slot = Column(String(32), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<DraftSlot({self.session_id}, {self.slot})>"
