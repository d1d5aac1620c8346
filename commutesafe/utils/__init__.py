"""
Utility modules for the CommuteSafe campus app

This package contains outbound service clients:
- osm_services: OSRM driving routes and Nominatim geocoding
"""

from .osm_services import (
    OSMService,
    RoutingService,
    GeocodingService,
    routing_service,
    geocoding_service
)

__all__ = [
    "OSMService",
    "RoutingService",
    "GeocodingService",
    "routing_service",
    "geocoding_service"
]
