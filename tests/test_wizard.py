"""
Tests for the report wizard
"""
import asyncio

from galamsey.crowdsource.report import Coordinates
from galamsey.crowdsource.submission import SubmissionOrchestrator
from galamsey.crowdsource.validation import ViolationCode
from galamsey.crowdsource.wizard import ReportWizard
from galamsey.geo.resolver import ResolverError


class FakeResolver:

    def __init__(self, position=None, address=None, fail_position=False, fail_reverse=False):
        self.position = position
        self.address = address
        self.fail_position = fail_position
        self.fail_reverse = fail_reverse

    async def current_device_position(self):
        if self.fail_position:
            raise ResolverError("permission denied")
        return self.position

    async def reverse(self, lat, lng):
        if self.fail_reverse:
            raise ResolverError("geocoder down")
        return self.address


class TestReportWizard:
    """Test suite for wizard steps."""

    def test_details_saved_when_valid(self, draft_store, sample_details):
        wizard = ReportWizard(draft_store)

        result = wizard.submit_details(**sample_details)

        assert result.ok
        assert wizard.draft.location == "Obuasi"
        assert wizard.details_complete().ok

    def test_invalid_details_not_saved(self, draft_store):
        wizard = ReportWizard(draft_store)

        result = wizard.submit_details("2024-05-01", "Obuasi", "short")

        assert result.code == ViolationCode.DESCRIPTION_TOO_SHORT
        assert wizard.draft.is_empty
        assert not wizard.details_complete()

    def test_set_location(self, draft_store):
        wizard = ReportWizard(draft_store)

        result = wizard.set_location(Coordinates(lat=6.2, lng=-1.67), "Obuasi, Ghana")

        assert result.ok
        assert wizard.draft.gps_coordinates == Coordinates(lat=6.2, lng=-1.67)

    def test_location_is_optional(self, draft_store):
        wizard = ReportWizard(draft_store)
        assert wizard.set_location(None).ok

    def test_out_of_range_location_not_saved(self, draft_store):
        wizard = ReportWizard(draft_store)

        result = wizard.set_location(Coordinates(lat=95, lng=0))

        assert result.code == ViolationCode.LATITUDE_OUT_OF_RANGE
        assert wizard.draft.gps_coordinates is None

    def test_device_location_with_address(self, draft_store):
        resolver = FakeResolver(position=Coordinates(lat=6.2, lng=-1.67), address="Obuasi, Ghana")
        wizard = ReportWizard(draft_store, resolver=resolver)

        outcome = asyncio.run(wizard.use_device_location())

        assert outcome.notice is None
        assert outcome.location.address == "Obuasi, Ghana"
        assert wizard.draft.gps_address == "Obuasi, Ghana"

    def test_device_location_without_address(self, draft_store):
        resolver = FakeResolver(position=Coordinates(lat=6.2, lng=-1.67), fail_reverse=True)
        wizard = ReportWizard(draft_store, resolver=resolver)

        outcome = asyncio.run(wizard.use_device_location())

        assert outcome.location.address == "6.200000, -1.670000"
        assert wizard.draft.gps_coordinates == Coordinates(lat=6.2, lng=-1.67)

    def test_device_location_failure_is_a_notice(self, draft_store):
        wizard = ReportWizard(draft_store, resolver=FakeResolver(fail_position=True))

        outcome = asyncio.run(wizard.use_device_location())

        assert outcome.location is None
        assert "continue without GPS" in outcome.notice
        assert wizard.draft.gps_coordinates is None

    def test_photos(self, draft_store):
        wizard = ReportWizard(draft_store)

        assert wizard.add_photo(b"first", "image/png").ok
        assert wizard.add_photo(b"second", "image/webp").ok
        wizard.remove_photo(0)

        photos = wizard.draft.photos
        assert len(photos) == 1
        assert photos[0].startswith("data:image/webp;base64,")

    def test_abandon_clears_draft(self, draft_store, sample_details):
        wizard = ReportWizard(draft_store)
        wizard.submit_details(**sample_details)

        wizard.abandon()

        assert wizard.draft.is_empty

    def test_begin_submission(self, draft_store, report_store, user_id):
        wizard = ReportWizard(draft_store)

        orchestrator = wizard.begin_submission(report_store, user_id)

        assert isinstance(orchestrator, SubmissionOrchestrator)
        assert orchestrator.draft_store is draft_store
        assert orchestrator.user_id == user_id
