"""
Point-in-polygon tests for delivery zones.

Points and coordinates follow GeoJSON order: (longitude, latitude).
Polygons are matched with the even-odd ray casting rule; the first ring
of a polygon is its outline and any further rings are holes.
"""

import logging
import math
from typing import Any, Iterable, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

Point = tuple[float, float]
T = TypeVar("T")


def is_point_in_ring(point: Point, ring: Sequence[Sequence[float]]) -> bool:
    if not ring or len(ring) < 3:
        return False

    x, y = point
    inside = False
    j = len(ring) - 1

    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]

        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


def is_point_in_polygon(point: Point, coordinates: Sequence) -> bool:
    if not coordinates:
        return False

    if not is_point_in_ring(point, coordinates[0]):
        return False

    return not any(is_point_in_ring(point, hole) for hole in coordinates[1:])


def is_point_in_multipolygon(point: Point, coordinates: Sequence) -> bool:
    if not coordinates:
        return False
    return any(is_point_in_polygon(point, polygon) for polygon in coordinates)


def is_point_in_geojson(point: Point, geometry: Optional[dict]) -> bool:
    if not geometry or not geometry.get("coordinates"):
        return False

    geometry_type = geometry.get("type")
    if geometry_type == "Polygon":
        return is_point_in_polygon(point, geometry["coordinates"])
    if geometry_type == "MultiPolygon":
        return is_point_in_multipolygon(point, geometry["coordinates"])

    logger.warning(f"Unsupported geometry type: {geometry_type}")
    return False


def find_matching_zone(point: Point, zones: Iterable[T], polygon_of=lambda z: z["polygon"]) -> Optional[T]:
    """First zone whose polygon contains point, or None."""
    for zone in zones:
        polygon = polygon_of(zone)
        if polygon and is_point_in_geojson(point, polygon):
            return zone
    return None


def is_valid_geometry(geometry: Any) -> bool:
    """Shape check for Polygon / MultiPolygon GeoJSON accepted on delivery areas."""
    if not isinstance(geometry, dict):
        return False

    def valid_ring(ring) -> bool:
        return (
            isinstance(ring, list)
            and len(ring) >= 3
            and all(
                isinstance(p, (list, tuple)) and len(p) >= 2
                and all(isinstance(c, (int, float)) for c in p[:2])
                for p in ring
            )
        )

    def valid_polygon(rings) -> bool:
        return isinstance(rings, list) and len(rings) > 0 and all(valid_ring(r) for r in rings)

    coordinates = geometry.get("coordinates")
    if geometry.get("type") == "Polygon":
        return valid_polygon(coordinates)
    if geometry.get("type") == "MultiPolygon":
        return isinstance(coordinates, list) and len(coordinates) > 0 and all(valid_polygon(p) for p in coordinates)
    return False


EARTH_RADIUS_METERS = 6_371_000


def circle_polygon(latitude: float, longitude: float, radius_meters: float, segments: int = 32) -> dict:
    """Approximate a radius around a point as a closed GeoJSON Polygon."""
    ring = []
    lat_rad = math.radians(latitude)
    for i in range(segments):
        bearing = 2 * math.pi * i / segments
        d_lat = (radius_meters / EARTH_RADIUS_METERS) * math.cos(bearing)
        d_lng = (radius_meters / (EARTH_RADIUS_METERS * math.cos(lat_rad))) * math.sin(bearing)
        ring.append([round(longitude + math.degrees(d_lng), 6), round(latitude + math.degrees(d_lat), 6)])
    ring.append(ring[0])
    return {"type": "Polygon", "coordinates": [ring]}
