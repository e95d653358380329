"""
Location Services Module

Coordinate resolution and nearest-place ranking for saved-place CSVs.
Primary geocoder: Photon (OpenStreetMap, no key)
Fallback geocoder: Nominatim (OpenStreetMap, User-Agent required)

Usage:
    from services.location.ranking import NearbyPipeline, fixed_location
    from services.location.distance import haversine_km, format_distance
"""
