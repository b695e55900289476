"""
Photo collection for report evidence
Encodes captured images and enforces count and size limits
"""

import base64
import logging
from typing import List, Optional

from galamsey.core.constants import ACCEPTED_PHOTO_TYPES, MAX_PHOTO_RAW_BYTES
from galamsey.crowdsource.validation import (
    ValidationResult,
    ViolationCode,
    validate_photos,
)

logger = logging.getLogger(__name__)


class UnsupportedPhotoType(ValueError):
    """Image content type is not accepted."""


def encode_photo(image_data: bytes, content_type: str = "image/jpeg") -> str:
    """
    Encode image bytes as a data URL.

    Args:
        image_data: Raw image bytes
        content_type: MIME type of the image

    Returns:
        "data:<type>;base64,<payload>" string
    """
    content_type = (content_type or "").lower()
    if content_type not in ACCEPTED_PHOTO_TYPES:
        raise UnsupportedPhotoType(f"Unsupported image type: {content_type or 'unknown'}")
    payload = base64.b64encode(image_data).decode("ascii")
    return f"data:{content_type};base64,{payload}"


class PhotoCollector:
    """
    Ordered list of encoded photos for one draft.
    """

    def __init__(self, photos: Optional[List[str]] = None):
        self._photos: List[str] = list(photos or [])

    @property
    def photos(self) -> List[str]:
        return list(self._photos)

    def __len__(self) -> int:
        return len(self._photos)

    def add(self, image_data: bytes, content_type: str = "image/jpeg") -> ValidationResult:
        """
        Encode and append a photo if the limits allow it.

        Returns:
            ValidationResult; the photo is kept only when ok
        """
        if len(image_data) > MAX_PHOTO_RAW_BYTES:
            return ValidationResult(
                ok=False,
                code=ViolationCode.PHOTO_TOO_LARGE,
                message="Photo is too large (max 5MB)",
                field="photos",
            )

        encoded = encode_photo(image_data, content_type)
        result = validate_photos(self._photos + [encoded])
        if result:
            self._photos.append(encoded)
            logger.debug(f"Photo added ({len(image_data)} bytes), {len(self._photos)} total")
        return result

    def remove(self, index: int) -> None:
        """Remove the photo at index."""
        del self._photos[index]
