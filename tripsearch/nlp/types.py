"""
Shared query model.

Every structure here is created per request by the analyzer and thrown away
once the response is assembled. Filters are typed variants tagged by ``kind``
so the filter map can be serialized for the parse endpoint and compiled
without runtime type guessing.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Intent(str, Enum):
    ACTIVITY = "activity"
    PLACE = "place"
    MIXED = "mixed"


class AreaType(str, Enum):
    CIRCLE = "circle"
    POLYGON = "polygon"
    BOUNDS = "bounds"
    REGION = "region"


class Location(BaseModel):
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class AreaFilter(BaseModel):
    """One geospatial or named-region constraint.

    Geometry is not validated here. Whether an area is usable is decided
    when it is compiled, and unusable areas are dropped there.
    """

    type: AreaType
    # circle: [lng, lat]; polygon: [[lng, lat], ...]; bounds: [minLng, minLat, maxLng, maxLat]
    coordinates: Optional[Any] = None
    radius_km: Optional[float] = None
    name: Optional[str] = None


class SpatialContext(BaseModel):
    # within / near / intersects are ANDed, areas are ORed
    within: Optional[AreaFilter] = None
    near: Optional[AreaFilter] = None
    intersects: Optional[AreaFilter] = None
    areas: List[AreaFilter] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return (
            self.within is None
            and self.near is None
            and self.intersects is None
            and not self.areas
        )


# ---------------------------------------------------------------------------
# Filter variants
# ---------------------------------------------------------------------------


class ActivityTypesFilter(BaseModel):
    kind: Literal["activity_types"] = "activity_types"
    values: List[str]


class DifficultyFilter(BaseModel):
    kind: Literal["difficulty_levels"] = "difficulty_levels"
    levels: List[str]


class WaterFeaturesFilter(BaseModel):
    kind: Literal["water_features"] = "water_features"
    values: List[str]


class MaxDurationFilter(BaseModel):
    kind: Literal["max_duration"] = "max_duration"
    hours: float


class MaxDistanceFilter(BaseModel):
    kind: Literal["max_distance"] = "max_distance"
    km: float


class GeoDistanceFilter(BaseModel):
    kind: Literal["geo_distance"] = "geo_distance"
    lat: float
    lng: float
    radius_km: float


class PublicVisibilityFilter(BaseModel):
    kind: Literal["public"] = "public"


class OwnerVisibilityFilter(BaseModel):
    kind: Literal["owner"] = "owner"
    user_id: str


Filter = Annotated[
    Union[
        ActivityTypesFilter,
        DifficultyFilter,
        WaterFeaturesFilter,
        MaxDurationFilter,
        MaxDistanceFilter,
        GeoDistanceFilter,
        PublicVisibilityFilter,
        OwnerVisibilityFilter,
    ],
    Field(discriminator="kind"),
]


class ParsedQuery(BaseModel):
    intent: Intent = Intent.MIXED
    search_text: str = ""
    filters: Dict[str, Filter] = Field(default_factory=dict)
    location: Optional[Location] = None
    spatial: Optional[SpatialContext] = None
    confidence: float = 0.0
    keywords: List[str] = Field(default_factory=list)
    explanation: str = ""


class SearchResult(BaseModel):
    id: str
    type: str  # "activity" or "place"
    score: Optional[float] = None
    source: Dict[str, Any] = Field(default_factory=dict)
    distance_km: Optional[float] = None


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    total: int = 0
    took_ms: int = 0
