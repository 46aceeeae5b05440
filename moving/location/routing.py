"""Driving distance between two points, with a straight-line fallback.

The OpenRouteService directions API is tried first.  If it is not
configured, times out, or answers with anything unusable, the estimate is
computed from the great-circle distance and an assumed average speed.  The
caller always gets exactly one ``RouteEstimate`` and can tell which kind
it is from ``estimated``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from moving.config import settings
from moving.models.booking import Coordinates

log = logging.getLogger("moving.location.routing")

EARTH_RADIUS_KM = 6371.0
AVERAGE_SPEED_KMH = 50.0


@dataclass
class RouteEstimate:
    """Distance/duration between pick-up and drop-off."""

    distance_km: float
    duration_min: int
    estimated: bool
    geometry: list[tuple[float, float]] = field(default_factory=list)  # (lat, lng)

    @property
    def label(self) -> str:
        return "Estimated Route" if self.estimated else "Route Info"

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "estimated": self.estimated,
            "distanceKm": round(self.distance_km, 1),
            "durationMin": self.duration_min,
            "geometry": [list(p) for p in self.geometry],
        }


def haversine_km(start: Coordinates, end: Coordinates) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(end.lat - start.lat)
    d_lng = math.radians(end.lng - start.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(start.lat))
        * math.cos(math.radians(end.lat))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def straight_line_estimate(start: Coordinates, end: Coordinates) -> RouteEstimate:
    distance = haversine_km(start, end)
    return RouteEstimate(
        distance_km=distance,
        duration_min=round(distance / AVERAGE_SPEED_KMH * 60),
        estimated=True,
        geometry=[(start.lat, start.lng), (end.lat, end.lng)],
    )


class RouteEstimator:
    """Driving route lookup against OpenRouteService."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "",
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = settings.ors_api_key if api_key is None else api_key
        self._base_url = (base_url or settings.ors_url).rstrip("/")
        self._timeout = settings.route_timeout_seconds if timeout is None else timeout
        self._client = client

    async def estimate(self, start: Coordinates, end: Coordinates) -> RouteEstimate:
        """Return the driving route, or a straight-line estimate on any failure."""
        if not self._api_key:
            log.debug("No routing API key configured, using straight-line estimate")
            return straight_line_estimate(start, end)

        try:
            # httpx timeouts are per phase; bound the whole lookup
            data = await asyncio.wait_for(self._fetch(start, end), self._timeout)
            return self._parse(data)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            log.warning("Route lookup timed out after %.1fs", self._timeout)
        except httpx.HTTPStatusError as exc:
            log.warning("Route lookup returned status %d", exc.response.status_code)
        except httpx.HTTPError as exc:
            log.warning("Route lookup failed: %s", exc)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            log.warning("Route response malformed: %s", exc)

        return straight_line_estimate(start, end)

    async def _fetch(self, start: Coordinates, end: Coordinates) -> Any:
        url = f"{self._base_url}/v2/directions/driving-car"
        params = {
            "api_key": self._api_key,
            "start": f"{start.lng},{start.lat}",
            "end": f"{end.lng},{end.lat}",
        }
        headers = {"Accept": "application/json"}

        if self._client is not None:
            resp = await self._client.get(url, params=params, headers=headers, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _parse(data: Any) -> RouteEstimate:
        """Pull summary and geometry out of an ORS GeoJSON response."""
        feature = data["features"][0]
        summary = feature["properties"]["summary"]
        coordinates = feature["geometry"]["coordinates"]

        return RouteEstimate(
            distance_km=float(summary["distance"]) / 1000,
            duration_min=round(float(summary["duration"]) / 60),
            estimated=False,
            # ORS returns [lng, lat]
            geometry=[(float(lat), float(lng)) for lng, lat, *_ in coordinates],
        )
