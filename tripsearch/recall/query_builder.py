import logging
from typing import Dict, Optional, Tuple

from tripsearch.core.config import settings
from tripsearch.nlp.types import (
    ActivityTypesFilter,
    AreaType,
    DifficultyFilter,
    Filter,
    GeoDistanceFilter,
    MaxDistanceFilter,
    MaxDurationFilter,
    OwnerVisibilityFilter,
    ParsedQuery,
    PublicVisibilityFilter,
    WaterFeaturesFilter,
)
from tripsearch.recall.spatial import apply_spatial
from tripsearch.recall.visibility import visibility_clause

logger = logging.getLogger(__name__)


def _range_or_missing(field: str, upper: float) -> dict:
    # Places carry no duration/length, so a missing field must not exclude them
    return {
        "bool": {
            "should": [
                {"range": {field: {"lte": upper}}},
                {"bool": {"must_not": {"exists": {"field": field}}}},
            ],
            "minimum_should_match": 1,
        }
    }


def filter_clause(filter_: Filter) -> Optional[dict]:
    """Compile one typed filter into an Elasticsearch filter clause."""
    if isinstance(filter_, ActivityTypesFilter):
        if filter_.values:
            return {"terms": {"activity_type": list(filter_.values)}}
    elif isinstance(filter_, DifficultyFilter):
        if filter_.levels:
            return {"terms": {"difficulty_level": list(filter_.levels)}}
    elif isinstance(filter_, WaterFeaturesFilter):
        if filter_.values:
            return {"terms": {"water_features": list(filter_.values)}}
    elif isinstance(filter_, MaxDurationFilter):
        return _range_or_missing("duration_hours", filter_.hours)
    elif isinstance(filter_, MaxDistanceFilter):
        return _range_or_missing("distance_km", filter_.km)
    elif isinstance(filter_, GeoDistanceFilter):
        return {
            "geo_distance": {
                "distance": f"{filter_.radius_km:g}km",
                "location": {"lat": filter_.lat, "lon": filter_.lng},
            }
        }
    elif isinstance(filter_, (PublicVisibilityFilter, OwnerVisibilityFilter)):
        return visibility_clause(filter_)
    return None


def build_filters(filters: Dict[str, Filter]) -> list:
    # Sorted by key so identical filter maps compile identically
    clauses = []
    for key in sorted(filters):
        clause = filter_clause(filters[key])
        if clause is not None:
            clauses.append(clause)
    return clauses


def build_query(search_text: str, filters: Dict[str, Filter], limit: int, offset: int) -> dict:
    if search_text:
        must = [
            {
                "multi_match": {
                    "query": search_text,
                    "fields": [
                        f"title^{settings.BOOST_TITLE:g}",
                        f"description^{settings.BOOST_DESCRIPTION:g}",
                        f"name^{settings.BOOST_NAME:g}",
                    ],
                    "type": "best_fields",
                    "fuzziness": "AUTO",
                }
            }
        ]
    else:
        must = [{"match_all": {}}]

    return {
        "size": limit,
        "from": offset,
        "sort": [
            {"_score": {"order": "desc"}},
            {"created_at": {"order": "desc", "unmapped_type": "date"}},
        ],
        "query": {"bool": {"must": must, "filter": build_filters(filters)}},
    }


def compile_query(parsed: ParsedQuery, limit: int, offset: int) -> dict:
    """Build the full Elasticsearch request body for a parsed query.

    A located query with coordinates adds a distance filter (unless the
    spatial context already anchors a ``near`` area); one with only a name
    folds the name into the text match instead.
    """
    search_text = parsed.search_text
    location = parsed.location
    if location is not None:
        has_near = parsed.spatial is not None and parsed.spatial.near is not None
        if location.has_coordinates:
            if not has_near:
                parsed.filters["location"] = GeoDistanceFilter(
                    lat=location.latitude,
                    lng=location.longitude,
                    radius_km=location.radius_km or settings.DEFAULT_RADIUS_KM,
                )
        elif location.name and location.name not in search_text:
            search_text = f"{search_text} {location.name}".strip()

    query = build_query(search_text, parsed.filters, limit, offset)
    apply_spatial(query, parsed.spatial)
    return query


def anchor_point(parsed: ParsedQuery) -> Optional[Tuple[float, float]]:
    """The (lat, lng) results are measured from, if the query has one."""
    spatial = parsed.spatial
    if spatial is not None and spatial.near is not None and spatial.near.type == AreaType.CIRCLE:
        coords = spatial.near.coordinates
        if isinstance(coords, (list, tuple)) and len(coords) >= 2:
            try:
                return float(coords[1]), float(coords[0])
            except (TypeError, ValueError):
                pass
    if parsed.location is not None and parsed.location.has_coordinates:
        return parsed.location.latitude, parsed.location.longitude
    return None
