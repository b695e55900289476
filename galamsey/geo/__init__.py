"""
GalamseyWatch - Geo Module
Geocoding and device location for report locations.
"""

from galamsey.geo.resolver import (
    LocationResolver,
    DebouncedLocationSearch,
    ResolvedLocation,
    ResolverError,
)

__all__ = [
    "LocationResolver",
    "DebouncedLocationSearch",
    "ResolvedLocation",
    "ResolverError",
]
