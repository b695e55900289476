"""
Report draft data model
The in-progress report composed across the three wizard steps
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class Coordinates:
    """GPS position in decimal degrees."""
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Coordinates"]:
        """Build coordinates from a {lat, lng} mapping, None passes through."""
        if data is None:
            return None
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass
class ReportDraft:
    """
    Report being composed by a user.

    Lives for one traversal of the wizard; never sent to the report store
    unless every field passes validation.
    """
    date: str = ""
    location: str = ""
    description: str = ""

    # Location step
    gps_coordinates: Optional[Coordinates] = None
    gps_address: Optional[str] = None

    # Photo step (base64 data URLs)
    photos: List[str] = field(default_factory=list)

    # Set at submission time if a wallet is connected
    wallet_address: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.date or self.location or self.description
            or self.gps_coordinates or self.gps_address or self.photos
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "date": self.date,
            "location": self.location,
            "description": self.description,
            "gps_coordinates": self.gps_coordinates.to_dict() if self.gps_coordinates else None,
            "gps_address": self.gps_address,
            "photos": list(self.photos),
            "wallet_address": self.wallet_address,
        }
