"""
Tests for report validation
"""
import pytest

from galamsey.core.constants import MAX_PHOTO_SIZE, MAX_PHOTOS
from galamsey.crowdsource.report import Coordinates, ReportDraft
from galamsey.crowdsource.validation import (
    ViolationCode,
    validate_coordinates,
    validate_photos,
    validate_step1,
    validate_submission,
)


class TestStep1:
    """Test suite for the details step."""

    def test_valid_details(self, sample_details):
        result = validate_step1(**sample_details)

        assert result.ok
        assert result.code is None

    def test_short_description_rejected(self):
        """Nine characters is one short of the minimum."""
        result = validate_step1("2024-05-01", "Obuasi", "too short")

        assert not result
        assert result.code == ViolationCode.DESCRIPTION_TOO_SHORT
        assert result.field == "description"

    def test_description_minimum_is_inclusive(self):
        assert validate_step1("2024-05-01", "Obuasi", "x" * 10).ok

    def test_description_too_long(self):
        result = validate_step1("2024-05-01", "Obuasi", "x" * 5001)
        assert result.code == ViolationCode.DESCRIPTION_TOO_LONG

    def test_description_measured_after_trimming(self):
        result = validate_step1("2024-05-01", "Obuasi", "   short    ")
        assert result.code == ViolationCode.DESCRIPTION_TOO_SHORT

    def test_location_required(self):
        result = validate_step1("2024-05-01", "   ", "Illegal mining near river")
        assert result.code == ViolationCode.LOCATION_REQUIRED

    def test_location_too_long(self):
        result = validate_step1("2024-05-01", "a" * 501, "Illegal mining near river")
        assert result.code == ViolationCode.LOCATION_TOO_LONG

    @pytest.mark.parametrize("value", ["", "yesterday", "2024-13-01", "01/05/2024"])
    def test_invalid_dates(self, value):
        result = validate_step1(value, "Obuasi", "Illegal mining near river")
        assert result.code == ViolationCode.INVALID_DATE

    def test_datetime_accepted(self):
        assert validate_step1("2024-05-01T08:30:00", "Obuasi", "Illegal mining near river").ok

    def test_first_violation_only(self):
        """A bad date is reported even if other fields are also bad."""
        result = validate_step1("nope", "", "short")
        assert result.code == ViolationCode.INVALID_DATE

    def test_result_to_dict(self):
        data = validate_step1("2024-05-01", "Obuasi", "short").to_dict()

        assert data["ok"] is False
        assert data["code"] == "description_too_short"
        assert "at least 10" in data["message"]


class TestCoordinates:
    """Test suite for GPS validation."""

    def test_missing_coordinates_are_valid(self):
        assert validate_coordinates(None).ok

    def test_in_range(self):
        assert validate_coordinates(Coordinates(lat=6.2, lng=-1.67)).ok

    def test_boundaries_inclusive(self):
        assert validate_coordinates(Coordinates(lat=90, lng=180)).ok
        assert validate_coordinates(Coordinates(lat=-90, lng=-180)).ok

    def test_latitude_out_of_range(self):
        result = validate_coordinates(Coordinates(lat=95.0, lng=0.0))
        assert result.code == ViolationCode.LATITUDE_OUT_OF_RANGE

    def test_longitude_out_of_range(self):
        result = validate_coordinates(Coordinates(lat=0.0, lng=-181.0))
        assert result.code == ViolationCode.LONGITUDE_OUT_OF_RANGE


class TestPhotos:
    """Test suite for photo list validation."""

    def test_empty_list(self):
        assert validate_photos([]).ok

    def test_ten_photos_allowed(self):
        assert validate_photos(["data:image/png;base64,AA"] * MAX_PHOTOS).ok

    def test_eleven_photos_rejected(self):
        result = validate_photos(["data:image/png;base64,AA"] * (MAX_PHOTOS + 1))
        assert result.code == ViolationCode.TOO_MANY_PHOTOS

    def test_oversized_photo(self):
        result = validate_photos(["x" * (MAX_PHOTO_SIZE + 1)])
        assert result.code == ViolationCode.PHOTO_TOO_LARGE

    def test_not_a_list_raises(self):
        with pytest.raises(TypeError):
            validate_photos("data:image/png;base64,AA")

    def test_non_string_entry_raises(self):
        with pytest.raises(TypeError):
            validate_photos([b"raw bytes"])


class TestSubmission:
    """Test suite for the final pre-persistence gate."""

    def test_complete_draft(self, sample_draft, user_id):
        assert validate_submission(sample_draft, user_id).ok

    def test_minimal_draft(self, sample_details, user_id):
        draft = ReportDraft(**sample_details)
        assert validate_submission(draft, user_id).ok

    def test_rechecks_step1(self, sample_draft, user_id):
        sample_draft.description = "short"
        result = validate_submission(sample_draft, user_id)
        assert result.code == ViolationCode.DESCRIPTION_TOO_SHORT

    def test_gps_address_too_long(self, sample_draft, user_id):
        sample_draft.gps_address = "a" * 501
        result = validate_submission(sample_draft, user_id)
        assert result.code == ViolationCode.GPS_ADDRESS_TOO_LONG

    @pytest.mark.parametrize("owner", [None, "", "user-1"])
    def test_owner_must_be_uuid(self, sample_draft, owner):
        result = validate_submission(sample_draft, owner)
        assert result.code == ViolationCode.INVALID_OWNER

    def test_valid_wallet_address(self, sample_draft, user_id, wallet_address):
        sample_draft.wallet_address = wallet_address
        assert validate_submission(sample_draft, user_id).ok

    def test_invalid_wallet_address(self, sample_draft, user_id):
        sample_draft.wallet_address = "0x123"
        result = validate_submission(sample_draft, user_id)
        assert result.code == ViolationCode.INVALID_WALLET_ADDRESS
