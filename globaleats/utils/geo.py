"""
地理计算工具
"""

import math

from ..models.catalog import Coordinate

EARTH_RADIUS_KM = 6371.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """两点间的大圆距离（haversine），单位公里"""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    # 取绝对值，保证 distance_km(a, b) 与 distance_km(b, a) 逐位相等
    d_lat = math.radians(abs(b.latitude - a.latitude))
    d_lon = math.radians(abs(b.longitude - a.longitude))

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
