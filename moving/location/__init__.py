"""Address search and route estimation."""

from .geocoding import GeocodingError, NominatimGeocoder, Suggestion, rank_suggestions
from .routing import RouteEstimate, RouteEstimator, haversine_km
from .search import LocationSearch, SearchStatus

__all__ = [
    "GeocodingError",
    "LocationSearch",
    "NominatimGeocoder",
    "RouteEstimate",
    "RouteEstimator",
    "SearchStatus",
    "Suggestion",
    "haversine_km",
    "rank_suggestions",
]
