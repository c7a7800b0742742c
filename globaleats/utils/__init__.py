from .geo import EARTH_RADIUS_KM, distance_km

__all__ = ["EARTH_RADIUS_KM", "distance_km"]
