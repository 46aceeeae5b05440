"""Free-text address lookup against the Nominatim search API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import httpx

from moving.config import settings
from moving.models.booking import Coordinates

log = logging.getLogger("moving.location.geocoding")

MIN_QUERY_LENGTH = 3
MIN_SCORE = 0.00001
MAX_SUGGESTIONS = 10


class GeocodingError(Exception):
    """The geocoding service could not be reached or returned garbage."""


@dataclass
class Suggestion:
    """A ranked candidate address. Never persisted."""

    id: str
    display_name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    kind: str = ""
    score: float = 0.0

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.lat is None or self.lng is None:
            return None
        return Coordinates(lat=self.lat, lng=self.lng)

    @property
    def short_name(self) -> str:
        """First three comma-separated parts of the display name."""
        parts = self.display_name.split(",")
        if len(parts) > 3:
            return ",".join(parts[:3]) + "..."
        return self.display_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "shortName": self.short_name,
            "lat": self.lat,
            "lng": self.lng,
            "kind": self.kind,
            "score": self.score,
        }

    @classmethod
    def from_nominatim(cls, item: dict) -> "Suggestion":
        """Build from one element of a Nominatim ``format=json`` response."""
        lat = item.get("lat")
        lon = item.get("lon")
        return cls(
            id=str(item["place_id"]),
            display_name=item["display_name"],
            lat=float(lat) if lat not in (None, "") else None,
            lng=float(lon) if lon not in (None, "") else None,
            kind=item.get("type", ""),
            score=float(item.get("importance") or 0.0),
        )


def rank_suggestions(
    items: Iterable[Suggestion],
    min_score: float = MIN_SCORE,
    limit: int = MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """Deduplicate by id, drop low scores, sort best-first and truncate."""
    unique: dict[str, Suggestion] = {}
    for item in items:
        unique[item.id] = item

    kept = [s for s in unique.values() if s.score > min_score]
    kept.sort(key=lambda s: s.score, reverse=True)
    return kept[:limit]


class NominatimGeocoder:
    """Query OpenStreetMap Nominatim for places matching free text.

    ``client`` is optional; when omitted a short-lived ``httpx.AsyncClient``
    is opened per lookup.
    """

    def __init__(
        self,
        base_url: str = "",
        user_agent: str = "",
        country_codes: str = "",
        language: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = (base_url or settings.nominatim_url).rstrip("/")
        self._user_agent = user_agent or settings.geocoder_user_agent
        self._country_codes = country_codes or settings.geocoder_country_codes
        self._language = language or settings.geocoder_language
        self._client = client

    def _params(self, query: str) -> dict[str, str]:
        return {
            "q": query,
            "format": "json",
            "addressdetails": "1",
            "limit": "8",
            "countrycodes": self._country_codes,
            "accept-language": self._language,
            "dedupe": "1",
        }

    async def _get(self, client: httpx.AsyncClient, query: str) -> httpx.Response:
        return await client.get(
            f"{self._base_url}/search",
            params=self._params(query),
            headers={"User-Agent": self._user_agent},
        )

    async def search(self, query: str) -> list[Suggestion]:
        """Return ranked suggestions for ``query``.

        Raises:
            GeocodingError: on transport errors, non-2xx responses or a
                body that is not a list of places.
        """
        try:
            if self._client is not None:
                resp = await self._get(self._client, query)
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    resp = await self._get(client, query)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise GeocodingError(
                f"Geocoding returned status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GeocodingError(f"Geocoding request failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError("Geocoding returned invalid JSON") from exc

        if not isinstance(data, list):
            raise GeocodingError("Geocoding returned an unexpected payload")

        try:
            suggestions = [Suggestion.from_nominatim(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Malformed geocoding result: {exc}") from exc

        ranked = rank_suggestions(suggestions)
        log.info("Geocoded %r: %d raw, %d kept", query, len(data), len(ranked))
        return ranked
