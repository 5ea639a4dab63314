"""Address to coordinate lookup."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from carpool.config import Settings, get_settings
from carpool.core.exceptions import AddressNotFoundError, LookupUnavailableError
from carpool.models.records import Coordinates

logger = logging.getLogger(__name__)


class Geocoder(ABC):
    @abstractmethod
    async def geocode(self, address: str) -> list[Coordinates]:
        """Best matches for ``address``; empty when nothing matches.

        Raises LookupUnavailableError when the lookup service cannot be reached.
        """


class NominatimGeocoder(Geocoder):
    """
    Geocoder backed by the OpenStreetMap Nominatim search API.

    The HTTP call is blocking, so it runs in a worker thread to keep the
    event loop free.
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_seconds: float = 10.0,
        email: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.email = email
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "NominatimGeocoder":
        settings = settings or get_settings()
        return cls(
            base_url=settings.geocoder_url,
            user_agent=settings.geocoder_user_agent,
            timeout_seconds=settings.geocoder_timeout_seconds,
            email=settings.geocoder_email,
        )

    async def geocode(self, address: str) -> list[Coordinates]:
        results = await asyncio.to_thread(self._search, address)

        matches = []
        for item in results[:1]:
            coordinates = self._parse_result(item)
            if coordinates is not None:
                matches.append(coordinates)

        logger.debug("Geocoded %r to %d match(es)", address, len(matches))
        return matches

    def _search(self, address: str) -> list[dict[str, Any]]:
        params = {"q": address, "format": "jsonv2", "limit": 1}
        if self.email:
            params["email"] = self.email

        try:
            response = self.session.get(
                self.base_url,
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Geocoding request for %r failed: %s", address, e)
            raise LookupUnavailableError(f"Geocoding service unavailable: {e}") from e

        if not isinstance(data, list):
            logger.warning("Unexpected geocoder response for %r: %r", address, data)
            return []
        return data

    @staticmethod
    def _parse_result(item: dict[str, Any]) -> Optional[Coordinates]:
        try:
            return Coordinates(
                latitude=float(item["lat"]),
                longitude=float(item["lon"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


async def locate(geocoder: Geocoder, address: str) -> Coordinates:
    """Resolve ``address`` to its best match or raise AddressNotFoundError."""
    if not address or not address.strip():
        raise AddressNotFoundError(address)

    results = await geocoder.geocode(address.strip())
    if not results:
        raise AddressNotFoundError(address)

    best = results[0]
    if best is None or best.latitude is None or best.longitude is None:
        raise AddressNotFoundError(address)
    return best
