"""
Draft storage for the report wizard
Keeps the in-progress report across wizard steps without a report-store round trip
"""

import json
import logging
from typing import Any, Dict, Iterable, Optional, Protocol

from galamsey.core.constants import (
    DRAFT_FORM_SLOT,
    DRAFT_LOCATION_SLOT,
    DRAFT_PHOTOS_SLOT,
    DRAFT_SLOT_FIELDS,
    DRAFT_SLOTS,
)
from galamsey.crowdsource.report import Coordinates, ReportDraft

logger = logging.getLogger(__name__)


class DraftMedium(Protocol):
    """String-keyed storage the draft store writes JSON slots into."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete_many(self, keys: Iterable[str]) -> None:
        ...


class MemoryMedium:
    """Dictionary-backed medium, lives as long as the process."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


def _slot_for(field_name: str) -> str:
    for slot, fields in DRAFT_SLOT_FIELDS.items():
        if field_name in fields:
            return slot
    raise KeyError(f"Unknown draft field: {field_name}")


def _encode_value(field_name: str, value: Any) -> Any:
    if field_name == "gps_coordinates" and isinstance(value, Coordinates):
        return value.to_dict()
    if field_name == "photos":
        return list(value or [])
    return value


class DraftStore:
    """
    Persists a ReportDraft in three JSON slots.

    Every save is written through immediately so a reload cannot lose data.
    Only the active wizard step writes; any step may read.
    """

    def __init__(self, medium: DraftMedium):
        self.medium = medium

    def save_step(self, partial: Dict[str, Any]) -> ReportDraft:
        """
        Merge the supplied fields into the stored draft.

        Args:
            partial: Draft fields to overwrite (other fields are untouched)

        Returns:
            The merged draft

        Raises:
            KeyError: if a key is not a draft field
        """
        by_slot: Dict[str, Dict[str, Any]] = {}
        for field_name, value in partial.items():
            slot = _slot_for(field_name)
            by_slot.setdefault(slot, {})[field_name] = _encode_value(field_name, value)

        for slot, updates in by_slot.items():
            current = self._read_slot(slot)
            current.update(updates)
            self.medium.set(slot, json.dumps(current))

        logger.debug(f"Draft updated: {sorted(partial.keys())}")
        return self.load_draft()

    def load_draft(self) -> ReportDraft:
        """Return the last persisted draft, or an empty one. Never raises."""
        form = self._read_slot(DRAFT_FORM_SLOT)
        location = self._read_slot(DRAFT_LOCATION_SLOT)
        photos = self._read_slot(DRAFT_PHOTOS_SLOT)

        draft = ReportDraft()

        draft.date = _as_str(form.get("date"))
        draft.location = _as_str(form.get("location"))
        draft.description = _as_str(form.get("description"))

        try:
            draft.gps_coordinates = Coordinates.from_dict(location.get("gps_coordinates"))
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding unreadable GPS coordinates from draft")
        address = location.get("gps_address")
        draft.gps_address = address if isinstance(address, str) else None

        photo_list = photos.get("photos")
        if isinstance(photo_list, list):
            draft.photos = [p for p in photo_list if isinstance(p, str)]

        return draft

    def clear(self) -> None:
        """Remove all draft slots together."""
        self.medium.delete_many(DRAFT_SLOTS)
        logger.info("Draft cleared")

    def _read_slot(self, slot: str) -> Dict[str, Any]:
        try:
            raw = self.medium.get(slot)
        except Exception as e:
            logger.warning(f"Draft slot {slot} unavailable: {e}")
            return {}

        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Draft slot {slot} is not valid JSON, ignoring it")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Draft slot {slot} has unexpected shape, ignoring it")
            return {}
        return data


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""
