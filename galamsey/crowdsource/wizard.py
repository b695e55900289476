"""
Report wizard
Step-level logic for details -> location -> photos -> confirmation
"""

import logging
from dataclasses import dataclass
from typing import Optional

from galamsey.core.constants import MAX_GPS_ADDRESS_LENGTH
from galamsey.crowdsource.photos import PhotoCollector
from galamsey.crowdsource.report import Coordinates, ReportDraft
from galamsey.crowdsource.submission import SubmissionOrchestrator
from galamsey.crowdsource.validation import (
    ValidationResult,
    ViolationCode,
    VALID,
    validate_coordinates,
    validate_step1,
)
from galamsey.geo.resolver import ResolvedLocation, ResolverError

logger = logging.getLogger(__name__)


@dataclass
class LocationOutcome:
    """Result of a location lookup; notice is set when the lookup failed."""
    location: Optional[ResolvedLocation] = None
    notice: Optional[str] = None


class ReportWizard:
    """
    Wizard over a draft store.

    Each step validates its own input before saving it, so a step with
    missing or invalid data blocks progression.
    """

    def __init__(self, draft_store, resolver=None):
        self.draft_store = draft_store
        self.resolver = resolver

    @property
    def draft(self) -> ReportDraft:
        return self.draft_store.load_draft()

    def submit_details(self, date: str, location: str, description: str) -> ValidationResult:
        """Step 1: date, location label and description."""
        result = validate_step1(date, location, description)
        if result:
            self.draft_store.save_step({
                "date": date,
                "location": location,
                "description": description,
            })
        return result

    def details_complete(self) -> ValidationResult:
        """Whether the stored details allow moving past step 1."""
        draft = self.draft
        return validate_step1(draft.date, draft.location, draft.description)

    def set_location(
        self,
        coordinates: Optional[Coordinates],
        address: Optional[str] = None
    ) -> ValidationResult:
        """Step 2: optional GPS position and address."""
        result = validate_coordinates(coordinates)
        if not result:
            return result

        if address is not None and len(address) > MAX_GPS_ADDRESS_LENGTH:
            return ValidationResult(
                ok=False,
                code=ViolationCode.GPS_ADDRESS_TOO_LONG,
                message=f"GPS address must be less than {MAX_GPS_ADDRESS_LENGTH} characters",
                field="gps_address",
            )

        self.draft_store.save_step({"gps_coordinates": coordinates, "gps_address": address})
        return VALID

    async def use_device_location(self) -> LocationOutcome:
        """Fill step 2 from the device position; failure is only a notice."""
        if self.resolver is None:
            return LocationOutcome(notice="Location services are not available.")

        try:
            position = await self.resolver.current_device_position()
        except ResolverError as e:
            logger.warning(f"Device location failed: {e}")
            return LocationOutcome(notice="Could not get your location. You can continue without GPS.")

        address = None
        try:
            address = await self.resolver.reverse(position.lat, position.lng)
        except ResolverError as e:
            logger.warning(f"Reverse geocoding failed: {e}")

        label = address or f"{position.lat:.6f}, {position.lng:.6f}"
        result = self.set_location(position, label[:MAX_GPS_ADDRESS_LENGTH])
        if not result:
            return LocationOutcome(notice=result.message)

        return LocationOutcome(
            location=ResolvedLocation(lat=position.lat, lng=position.lng, address=label)
        )

    def add_photo(self, image_data: bytes, content_type: str = "image/jpeg") -> ValidationResult:
        """Step 3: append a photo."""
        collector = PhotoCollector(self.draft.photos)
        result = collector.add(image_data, content_type)
        if result:
            self.draft_store.save_step({"photos": collector.photos})
        return result

    def remove_photo(self, index: int) -> None:
        collector = PhotoCollector(self.draft.photos)
        collector.remove(index)
        self.draft_store.save_step({"photos": collector.photos})

    def abandon(self) -> None:
        """Explicitly discard the draft."""
        self.draft_store.clear()

    def begin_submission(
        self,
        report_store,
        user_id: Optional[str],
        wallet=None,
        enrichment=None,
        chain_config=None
    ) -> SubmissionOrchestrator:
        """Create the orchestrator for the confirmation step."""
        return SubmissionOrchestrator(
            draft_store=self.draft_store,
            report_store=report_store,
            user_id=user_id,
            wallet=wallet,
            enrichment=enrichment,
            chain_config=chain_config,
        )
