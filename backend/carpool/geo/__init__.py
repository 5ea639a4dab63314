"""Geospatial lookup and distance helpers."""

from carpool.geo.distance import EARTH_RADIUS_KM, haversine_km
from carpool.geo.geocoder import Geocoder, NominatimGeocoder, locate

__all__ = [
    "EARTH_RADIUS_KM",
    "haversine_km",
    "Geocoder",
    "NominatimGeocoder",
    "locate",
]
