"""
GalamseyWatch - Location Resolver
Turns free-text searches and device GPS into coordinates and addresses
via OpenStreetMap Nominatim.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Any, Optional

import httpx

from galamsey.crowdsource.report import Coordinates

logger = logging.getLogger(__name__)


class ResolverError(Exception):
    """Geocoding or device location failed."""


@dataclass(frozen=True)
class ResolvedLocation:
    """A search hit."""
    lat: float
    lng: float
    address: str

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)

    def to_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng, "address": self.address}


PositionSource = Callable[[], Awaitable[Coordinates]]


class LocationResolver:
    """
    Client for Nominatim search and reverse geocoding.
    """

    NOMINATIM_URL = "https://nominatim.openstreetmap.org"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        position_source: Optional[PositionSource] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the resolver.

        Args:
            base_url: Nominatim base URL
            timeout: Request timeout in seconds
            position_source: Coroutine returning the device position
            client: Shared HTTP client
        """
        self.base_url = (base_url or self.NOMINATIM_URL).rstrip("/")
        self.timeout = timeout
        self.position_source = position_source
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": "GalamseyWatch/1.0"}
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def search(self, text: str) -> Optional[ResolvedLocation]:
        """
        Geocode a place name.

        Returns:
            ResolvedLocation, or None if nothing matched
        """
        query = (text or "").strip()
        if not query:
            return None

        try:
            response = await self._get_client().get(
                f"{self.base_url}/search",
                params={"q": query, "format": "json", "limit": 1},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ResolverError(f"Location search failed: {e}") from e

        if not data:
            return None

        try:
            hit = data[0]
            return ResolvedLocation(
                lat=float(hit["lat"]),
                lng=float(hit["lon"]),
                address=hit.get("display_name", query),
            )
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise ResolverError(f"Unexpected location search response: {data!r:.200}") from e

    async def reverse(self, lat: float, lng: float) -> Optional[str]:
        """Reverse geocode coordinates to an address string."""
        try:
            response = await self._get_client().get(
                f"{self.base_url}/reverse",
                params={"lat": lat, "lon": lng, "format": "json"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ResolverError(f"Reverse geocoding failed: {e}") from e

        if not isinstance(data, dict):
            raise ResolverError(f"Unexpected reverse geocoding response: {data!r:.200}")
        return data.get("display_name")

    async def current_device_position(self) -> Coordinates:
        """Ask the configured position source for the device location."""
        if self.position_source is None:
            raise ResolverError("Device location is not available")
        try:
            return await self.position_source()
        except ResolverError:
            raise
        except Exception as e:
            raise ResolverError(f"Could not get device location: {e}") from e


class DebouncedLocationSearch:
    """
    Keystroke-driven search with a quiet period.

    Each keystroke cancels the pending lookup, so at most one resolution is
    in flight. Results arriving after close() are dropped.
    """

    def __init__(
        self,
        resolver: LocationResolver,
        on_result: Callable[[Optional[ResolvedLocation]], None],
        on_error: Optional[Callable[[str], None]] = None,
        delay: float = 0.5
    ):
        self.resolver = resolver
        self.on_result = on_result
        self.on_error = on_error
        self.delay = delay
        self._task: Optional[asyncio.Task] = None
        self._alive = True

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def keystroke(self, text: str) -> None:
        """Schedule a lookup for the latest text."""
        if not self._alive:
            return
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(text))

    async def _run(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        try:
            result = await self.resolver.search(text)
        except ResolverError as e:
            logger.warning(f"Location search failed: {e}")
            if self._alive and self.on_error:
                self.on_error("Could not find that location. You can continue without GPS.")
            return

        if self._alive:
            self.on_result(result)

    async def wait(self) -> None:
        """Wait for the pending lookup, if any."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def close(self) -> None:
        self._alive = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
