"""
Geocoding adapter.

Resolves free-text addresses to coordinates using a Nominatim-compatible
search endpoint. A miss is a normal outcome and is reported as None.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger("parcel_delivery.geocoding")


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float


class NominatimGeocoder:
    """
    Geocoder backed by the OpenStreetMap Nominatim search API.

    All addresses are assumed to lie in a single metropolitan area, so the
    configured locality is appended to every query.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        locality: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self._client = client
        self._base_url = base_url
        self._locality = locality
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._timeout = timeout

    def qualify(self, address: str) -> str:
        address = address.strip()
        if self._locality:
            return f"{address}, {self._locality}"
        return address

    async def resolve(self, address: str) -> Optional[Coordinate]:
        """
        Resolve `address` to a coordinate pair.

        Never retries. Transport failures, error statuses, empty result sets
        and malformed results are all reported as None.
        """
        query = self.qualify(address)
        try:
            response = await self._client.get(
                self._base_url,
                params={"format": "json", "q": query, "limit": 1},
                headers=self._headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            results = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Geocoding request failed for %r: %s", query, exc)
            return None
        except ValueError:
            logger.warning("Geocoding response for %r was not valid JSON", query)
            return None

        if not isinstance(results, list) or not results:
            logger.info("No geocoding match for %r", query)
            return None

        first = results[0]
        try:
            return Coordinate(lat=float(first["lat"]), lng=float(first["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoding result for %r has no usable coordinates", query)
            return None
