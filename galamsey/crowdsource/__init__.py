"""
GalamseyWatch - Crowdsource Module
Report drafting, validation and submission.
"""

from galamsey.crowdsource.report import ReportDraft, Coordinates
from galamsey.crowdsource.validation import (
    ValidationResult,
    ViolationCode,
    validate_step1,
    validate_coordinates,
    validate_photos,
    validate_submission,
)
from galamsey.crowdsource.photos import PhotoCollector, encode_photo
from galamsey.crowdsource.submission import (
    SubmissionOrchestrator,
    SubmissionState,
    SubmissionStatus,
    SubmissionError,
)

__all__ = [
    # Draft
    "ReportDraft",
    "Coordinates",
    # Validation
    "ValidationResult",
    "ViolationCode",
    "validate_step1",
    "validate_coordinates",
    "validate_photos",
    "validate_submission",
    # Photos
    "PhotoCollector",
    "encode_photo",
    # Submission
    "SubmissionOrchestrator",
    "SubmissionState",
    "SubmissionStatus",
    "SubmissionError",
]
