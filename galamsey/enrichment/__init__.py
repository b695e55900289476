"""
GalamseyWatch - Enrichment Module
AI summaries and categories for submitted reports.
"""

from galamsey.enrichment.classifier import (
    ReportClassifier,
    EnrichmentService,
    Classification,
    ClassifierError,
    RateLimitedError,
    CreditsExhaustedError,
    ReportNotFoundError,
    AccessDeniedError,
    parse_classification,
    sanitize_description,
)

__all__ = [
    "ReportClassifier",
    "EnrichmentService",
    "Classification",
    "ClassifierError",
    "RateLimitedError",
    "CreditsExhaustedError",
    "ReportNotFoundError",
    "AccessDeniedError",
    "parse_classification",
    "sanitize_description",
]
