"""
Validation for galamsey reports
Per-step checks for the report wizard and the final gate before persistence
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Sequence, Dict, Any

from web3 import Web3

from galamsey.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_GPS_ADDRESS_LENGTH,
    MAX_LOCATION_LENGTH,
    MAX_PHOTO_SIZE,
    MAX_PHOTOS,
    MIN_DESCRIPTION_LENGTH,
)
from galamsey.crowdsource.report import Coordinates, ReportDraft

logger = logging.getLogger(__name__)


class ViolationCode(str, Enum):
    """Machine-checkable reason a validation failed."""
    INVALID_DATE = "invalid_date"
    LOCATION_REQUIRED = "location_required"
    LOCATION_TOO_LONG = "location_too_long"
    DESCRIPTION_TOO_SHORT = "description_too_short"
    DESCRIPTION_TOO_LONG = "description_too_long"
    LATITUDE_OUT_OF_RANGE = "latitude_out_of_range"
    LONGITUDE_OUT_OF_RANGE = "longitude_out_of_range"
    GPS_ADDRESS_TOO_LONG = "gps_address_too_long"
    TOO_MANY_PHOTOS = "too_many_photos"
    PHOTO_TOO_LARGE = "photo_too_large"
    INVALID_OWNER = "invalid_owner"
    INVALID_WALLET_ADDRESS = "invalid_wallet_address"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation check. Only the first violation is reported."""
    ok: bool
    code: Optional[ViolationCode] = None
    message: str = ""
    field: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "code": self.code.value if self.code else None,
            "message": self.message,
            "field": self.field,
        }


VALID = ValidationResult(ok=True)


def _fail(code: ViolationCode, message: str, field: str) -> ValidationResult:
    return ValidationResult(ok=False, code=code, message=message, field=field)


def _parses_as_date(value: str) -> bool:
    """Accept ISO-8601 calendar dates and datetimes."""
    if not isinstance(value, str) or not value.strip():
        return False
    text = value.strip()
    for parser in (date.fromisoformat, datetime.fromisoformat):
        try:
            parser(text)
            return True
        except ValueError:
            continue
    return False


def validate_step1(
    date: str,
    location: str,
    description: str
) -> ValidationResult:
    """
    Validate the details step of the wizard.

    Args:
        date: Observation date (ISO-8601)
        location: Free-text place name
        description: What the reporter observed

    Returns:
        ValidationResult for the first violated rule
    """
    if not _parses_as_date(date):
        return _fail(ViolationCode.INVALID_DATE, "Please enter a valid date", "date")

    location = (location or "").strip()
    if len(location) < 1:
        return _fail(ViolationCode.LOCATION_REQUIRED, "Location is required", "location")
    if len(location) > MAX_LOCATION_LENGTH:
        return _fail(
            ViolationCode.LOCATION_TOO_LONG,
            f"Location must be less than {MAX_LOCATION_LENGTH} characters",
            "location",
        )

    description = (description or "").strip()
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return _fail(
            ViolationCode.DESCRIPTION_TOO_SHORT,
            f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters",
            "description",
        )
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return _fail(
            ViolationCode.DESCRIPTION_TOO_LONG,
            f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters",
            "description",
        )

    return VALID


def validate_coordinates(coordinates: Optional[Coordinates]) -> ValidationResult:
    """Coordinates are optional; when present both axes must be in range."""
    if coordinates is None:
        return VALID

    if not -90 <= coordinates.lat <= 90:
        return _fail(
            ViolationCode.LATITUDE_OUT_OF_RANGE,
            "Latitude must be between -90 and 90",
            "gps_coordinates",
        )
    if not -180 <= coordinates.lng <= 180:
        return _fail(
            ViolationCode.LONGITUDE_OUT_OF_RANGE,
            "Longitude must be between -180 and 180",
            "gps_coordinates",
        )
    return VALID


def validate_photos(photos: Sequence[str]) -> ValidationResult:
    """
    Validate the photo list.

    Raises:
        TypeError: if photos is not a list of strings
    """
    if isinstance(photos, (str, bytes)) or not isinstance(photos, Sequence):
        raise TypeError(f"photos must be a list of encoded images, got {type(photos).__name__}")

    if len(photos) > MAX_PHOTOS:
        return _fail(
            ViolationCode.TOO_MANY_PHOTOS,
            f"Maximum {MAX_PHOTOS} photos allowed",
            "photos",
        )

    for index, photo in enumerate(photos):
        if not isinstance(photo, str):
            raise TypeError(f"photo {index} must be an encoded string")
        if len(photo) > MAX_PHOTO_SIZE:
            return _fail(
                ViolationCode.PHOTO_TOO_LARGE,
                f"Photo {index + 1} is too large (max 5MB)",
                "photos",
            )

    return VALID


def validate_submission(draft: ReportDraft, user_id: Optional[str]) -> ValidationResult:
    """
    Final gate before a report is persisted.

    Re-runs every per-step check because steps can be revisited and stored
    drafts can be altered between steps.
    """
    result = validate_step1(draft.date, draft.location, draft.description)
    if not result:
        return result

    result = validate_coordinates(draft.gps_coordinates)
    if not result:
        return result

    if draft.gps_address is not None and len(draft.gps_address) > MAX_GPS_ADDRESS_LENGTH:
        return _fail(
            ViolationCode.GPS_ADDRESS_TOO_LONG,
            f"GPS address must be less than {MAX_GPS_ADDRESS_LENGTH} characters",
            "gps_address",
        )

    result = validate_photos(draft.photos)
    if not result:
        return result

    if not _is_uuid(user_id):
        return _fail(ViolationCode.INVALID_OWNER, "Invalid user ID", "user_id")

    if draft.wallet_address is not None and not Web3.is_address(draft.wallet_address):
        return _fail(
            ViolationCode.INVALID_WALLET_ADDRESS,
            "Invalid wallet address",
            "wallet_address",
        )

    return VALID


def _is_uuid(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True
