"""
Compiles area constraints into Elasticsearch geo filters.

within / near / intersects each become their own filter and are ANDed with
the rest of the query. The entries of ``areas`` are alternatives: they are
ORed inside a single bool/should that is itself ANDed, so a multi-area search
never widens the other constraints.

Malformed areas are dropped, never raised. A bad spatial hint must not sink
an otherwise valid text search.
"""

import logging
import math
from numbers import Real
from typing import List, Optional

from tripsearch.core.config import settings
from tripsearch.nlp.types import AreaFilter, AreaType, SpatialContext

logger = logging.getLogger(__name__)

REGION_FIELDS = ["city", "state", "country", "region", "location_name"]


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _is_point(lng, lat) -> bool:
    return (
        _is_number(lng) and _is_number(lat) and -180 <= lng <= 180 and -90 <= lat <= 90
    )


def _format_km(radius_km: float) -> str:
    return f"{radius_km:g}km"


def _circle(area: AreaFilter) -> Optional[dict]:
    coords = area.coordinates
    if not isinstance(coords, (list, tuple)) or len(coords) < 2 or area.radius_km is None:
        return None
    lng, lat = coords[0], coords[1]
    if not _is_point(lng, lat) or not _is_number(area.radius_km) or area.radius_km <= 0:
        return None
    return {
        "geo_distance": {
            "distance": _format_km(area.radius_km),
            "location": {"lat": float(lat), "lon": float(lng)},
        }
    }


def _polygon(area: AreaFilter) -> Optional[dict]:
    coords = area.coordinates
    if not isinstance(coords, (list, tuple)):
        return None
    points = []
    for pair in coords:
        if isinstance(pair, (list, tuple)) and len(pair) >= 2:
            lng, lat = pair[0], pair[1]
            if _is_point(lng, lat):
                points.append({"lat": float(lat), "lon": float(lng)})
    if len(points) < 3:
        return None
    return {"geo_polygon": {"location": {"points": points}}}


def _bounds(area: AreaFilter) -> Optional[dict]:
    coords = area.coordinates
    if not isinstance(coords, (list, tuple)) or len(coords) != 4:
        return None
    if not all(_is_number(c) for c in coords):
        return None
    min_lng, min_lat, max_lng, max_lat = (float(c) for c in coords)
    # min_lng > max_lng is a box across the antimeridian; an inverted latitude range is not
    if not (_is_point(min_lng, min_lat) and _is_point(max_lng, max_lat)) or min_lat > max_lat:
        return None
    return {
        "geo_bounding_box": {
            "location": {
                "top_left": {"lat": max_lat, "lon": min_lng},
                "bottom_right": {"lat": min_lat, "lon": max_lng},
            }
        }
    }


def _region(area: AreaFilter) -> Optional[dict]:
    if not area.name or not area.name.strip():
        return None
    return {
        "multi_match": {
            "query": area.name,
            "fields": list(REGION_FIELDS),
            "type": "best_fields",
            # Name hits must not outrank precise content matches
            "boost": settings.BOOST_REGION,
        }
    }


_BUILDERS = {
    AreaType.CIRCLE: _circle,
    AreaType.POLYGON: _polygon,
    AreaType.BOUNDS: _bounds,
    AreaType.REGION: _region,
}


def compile_area(area: Optional[AreaFilter]) -> Optional[dict]:
    """Compile one area, or return None when it is unusable."""
    if area is None:
        return None
    clause = _BUILDERS[area.type](area)
    if clause is None:
        logger.debug(f"Dropping malformed {area.type.value} area: {area!r}")
    return clause


def compile_spatial(spatial: Optional[SpatialContext]) -> List[dict]:
    if spatial is None:
        return []

    clauses = []
    for area in (spatial.within, spatial.near, spatial.intersects):
        clause = compile_area(area)
        if clause is not None:
            clauses.append(clause)

    if spatial.areas:
        alternatives = [c for c in (compile_area(a) for a in spatial.areas) if c is not None]
        if alternatives:
            clauses.append({"bool": {"should": alternatives, "minimum_should_match": 1}})

    return clauses


def apply_spatial(query: dict, spatial: Optional[SpatialContext]) -> dict:
    """Append compiled spatial filters to ``query['query']['bool']['filter']``."""
    clauses = compile_spatial(spatial)
    if not clauses:
        return query
    bool_query = query.setdefault("query", {}).setdefault("bool", {})
    bool_query.setdefault("must", [{"match_all": {}}])
    bool_query.setdefault("filter", []).extend(clauses)
    return query
