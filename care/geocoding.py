"""
Reverse geocoding for emergency reports.

Turns the reporter's GPS fix into a readable "city, region" address.
A lookup that fails is not an error for the report: the location simply
stays as raw coordinates.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from care.incidents import Location
import config

logger = logging.getLogger(__name__)


class ReverseGeocoder(ABC):
    @abstractmethod
    async def address_for(self, latitude: float, longitude: float) -> str | None:
        """A human-readable address, or None when none could be found."""


def format_address(data: dict) -> str | None:
    """Prefer "city, principal subdivision"; fall back to the locality."""
    if not isinstance(data, dict):
        return None
    city = (data.get("city") or "").strip()
    region = (data.get("principalSubdivision") or "").strip()
    if city and region:
        return f"{city}, {region}"
    locality = (data.get("locality") or "").strip()
    return locality or None


class BigDataCloudGeocoder(ReverseGeocoder):
    """BigDataCloud's free client-side reverse-geocode endpoint."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url or config.GEOCODER_URL
        self.timeout = timeout if timeout is not None else config.GEOCODER_TIMEOUT_SECONDS
        self._transport = transport

    async def address_for(self, latitude: float, longitude: float) -> str | None:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "localityLanguage": "en",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[Geocoder] Lookup failed for %.4f, %.4f: %s", latitude, longitude, e)
            return None
        return format_address(data)


async def locate(
    latitude: float | None,
    longitude: float | None,
    address: str | None = None,
    geocoder: ReverseGeocoder | None = None,
) -> Location | None:
    """
    Build the report location from a GPS fix.

    A typed address is kept as is. Otherwise the geocoder is asked, and
    if it has nothing the location describes itself by its coordinates.
    """
    if latitude is None or longitude is None:
        return None
    address = (address or "").strip() or None
    if address is None and geocoder is not None:
        address = await geocoder.address_for(latitude, longitude)
    return Location(float(latitude), float(longitude), address)
