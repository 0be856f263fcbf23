import re
from typing import List, Optional

from tripsearch.core.config import settings
from tripsearch.core.errors import InvalidQueryError
from tripsearch.nlp import gazetteer
from tripsearch.nlp.types import (
    ActivityTypesFilter,
    AreaFilter,
    AreaType,
    DifficultyFilter,
    Intent,
    Location,
    MaxDistanceFilter,
    MaxDurationFilter,
    ParsedQuery,
    SpatialContext,
    WaterFeaturesFilter,
)

MILES_TO_KM = 1.60934

NUM = r"(?P<dist>\d+(?:\.\d+)?)"
UNIT = r"(?P<unit>miles?|mi|kilometers?|km)"
# A place name: lowercase words, shortest match wins
NAME = r"(?P<name>[a-z][a-z\s]*?)"
# Where a place name stops
END = (
    r"(?=\s+(?:with|for|that|and|or|in|on|under|within|at|during|this|next|"
    r"near|around|from|of|to|but)\b|\s*[,.!?;]|\s*$)"
)

STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has",
    "he", "in", "is", "it", "its", "of", "on", "that", "the", "to", "was",
    "were", "will", "with", "me", "my", "i", "you", "your", "we", "our",
    "they", "their", "them",
}


def _compile(*patterns):
    return [re.compile(p) for p in patterns]


class QueryAnalyzer:
    """Rule-based query understanding.

    Turns free text into a ParsedQuery. Deterministic and free of I/O; the
    only failure is an empty query.
    """

    ACTIVITY_KEYWORDS = [
        "hiking", "biking", "climbing", "trail", "hike", "bike", "climb",
        "skiing", "snowboarding", "kayaking", "swimming", "running",
        "backpacking", "camping", "fishing", "activity", "activities",
        "route", "easy", "moderate", "hard", "difficult",
        "weekend", "day trip", "overnight",
    ]

    PLACE_KEYWORDS = [
        "restaurant", "hotel", "coffee", "shop", "store", "museum",
        "park", "beach", "lake", "mountain", "city", "town",
        "attraction", "landmark", "place", "spot",
        "near", "in", "around",
    ]

    ACTIVITY_TYPES = {
        "hiking": "hiking",
        "hike": "hiking",
        "trail": "hiking",
        "walk": "walking",
        "biking": "biking",
        "bike": "biking",
        "cycling": "biking",
        "climbing": "climbing",
        "climb": "climbing",
        "skiing": "skiing",
        "ski": "skiing",
        "snowboard": "snowboarding",
        "snowboarding": "snowboarding",
        "kayaking": "kayaking",
        "kayak": "kayaking",
        "swimming": "swimming",
        "swim": "swimming",
        "running": "running",
        "run": "running",
        "backpacking": "backpacking",
        "camping": "camping",
        "camp": "camping",
        "fishing": "fishing",
        "fish": "fishing",
    }

    DIFFICULTY_LEVELS = {
        "easy": "easy",
        "beginner": "easy",
        "simple": "easy",
        "moderate": "moderate",
        "medium": "moderate",
        "intermediate": "moderate",
        "hard": "hard",
        "difficult": "hard",
        "challenging": "hard",
        "expert": "expert",
        "advanced": "expert",
    }

    WATER_WORDS = [
        "waterfall", "river", "lake", "pond", "creek", "stream",
        "swimming", "swim", "water",
    ]

    LOCATION_PATTERNS = _compile(
        rf"\bnear\s+(?:the\s+)?{NAME}{END}",
        rf"\baround\s+(?:the\s+)?{NAME}{END}",
        rf"\bin\s+(?:the\s+)?{NAME}{END}",
        r"\b(?P<name>[a-z]+(?:\s+[a-z]+)?)\s+area\b",
    )

    WITHIN_PATTERNS = _compile(
        rf"\bwithin\s+(?:the\s+)?{NAME}(?:\s+(?:area|region|bounds))?{END}",
        rf"\binside\s+(?:the\s+)?{NAME}(?:\s+(?:area|region|bounds))?{END}",
        rf"\bin\s+the\s+{NAME}\s+(?:area|region|zone|district)\b",
        r"\b(?P<name>(?:[a-z]+\s+){0,2}[a-z]+)\s+city\s+limits\b",
        r"\b(?P<name>(?:[a-z]+\s+){0,2}[a-z]+)\s+county\b",
        r"\b(?P<name>(?:[a-z]+\s+){0,2}[a-z]+)\s+state\s+park\b",
        r"\b(?P<name>(?:[a-z]+\s+){0,2}[a-z]+)\s+national\s+park\b",
    )

    # "within 10 miles of x" style; each yields a circle around x
    NEAR_DISTANCE_PATTERNS = _compile(
        rf"\bwithin\s+{NUM}\s*{UNIT}\s+of\s+(?:the\s+)?{NAME}{END}",
        rf"{NUM}\s*{UNIT}\s+(?:from|of|around)\s+(?:the\s+)?{NAME}{END}",
        rf"\bnear\s+(?:the\s+)?{NAME}\s+within\s+{NUM}\s*{UNIT}\b",
        rf"\baround\s+(?:the\s+)?{NAME}\s+{NUM}\s*{UNIT}\b",
    )

    NEAR_PATTERNS = _compile(
        rf"\b(?:near|around|close\s+to)\s+(?:the\s+)?{NAME}{END}",
    )

    # Regions whose kind narrows the whole search rather than naming one option
    ENCLOSING_REGION_KINDS = {
        "mountain", "mountains", "coast", "coastline", "shore", "shoreline",
        "desert", "forest",
    }

    REGION_PATTERNS = _compile(
        rf"\bin\s+(?:the\s+)?{NAME}\s+(?P<kind>mountains?|hills?|valleys?)\b",
        rf"\b(?:along|near)\s+(?:the\s+)?{NAME}\s+(?P<kind>coastline|coast|shoreline|shore)\b",
        rf"\bin\s+(?:the\s+)?{NAME}\s+(?P<kind>desert|wilderness|forest)\b",
        rf"\b(?:around|near)\s+(?:the\s+)?{NAME}\s+(?P<kind>river|lake|bay|peninsula)\b",
        rf"\b(?P<kind>north|south|east|west|northern|southern|eastern|western)\s+{NAME}{END}",
    )

    DISTANCE_PATTERNS = _compile(
        rf"\b(?:under|less\s+than)\s+{NUM}\s*{UNIT}\b",
        rf"{NUM}\s*{UNIT}\b",
    )

    def parse(self, query: str) -> ParsedQuery:
        clean = " ".join((query or "").lower().split())
        if not clean:
            raise InvalidQueryError()

        parsed = ParsedQuery(search_text=clean, confidence=0.5)

        activity_hits = self._count_matches(clean, self.ACTIVITY_KEYWORDS)
        place_hits = self._count_matches(clean, self.PLACE_KEYWORDS)
        if activity_hits > place_hits:
            parsed.intent = Intent.ACTIVITY
            parsed.confidence += 0.2
        elif place_hits > activity_hits:
            parsed.intent = Intent.PLACE
            parsed.confidence += 0.2
        else:
            parsed.intent = Intent.MIXED

        if parsed.intent in (Intent.ACTIVITY, Intent.MIXED):
            self._parse_activity_filters(clean, parsed)

        location = self._parse_location(clean)
        if location is not None:
            parsed.location = location
            parsed.confidence += 0.1

        spatial = self._parse_spatial(clean)
        if spatial is not None:
            parsed.spatial = spatial
            parsed.confidence += 0.15

        self._parse_duration(clean, parsed)
        self._parse_distance(clean, parsed)

        if parsed.filters:
            parsed.confidence += 0.05
        parsed.confidence = round(min(max(parsed.confidence, 0.0), 1.0), 2)

        parsed.keywords = self._extract_keywords(clean)
        parsed.explanation = self.explain(parsed)
        return parsed

    # ------------------------------------------------------------------
    # Intent & attribute filters
    # ------------------------------------------------------------------

    @staticmethod
    def _has_word(text: str, word: str) -> bool:
        return re.search(rf"\b{re.escape(word)}(?:s|es)?\b", text) is not None

    def _count_matches(self, text: str, keywords: List[str]) -> int:
        return sum(1 for kw in keywords if self._has_word(text, kw))

    def _collect(self, text: str, mapping: dict) -> List[str]:
        values = []
        for keyword, value in mapping.items():
            if value not in values and self._has_word(text, keyword):
                values.append(value)
        return values

    def _parse_activity_filters(self, text: str, parsed: ParsedQuery):
        activity_types = self._collect(text, self.ACTIVITY_TYPES)
        if activity_types:
            parsed.filters["activity_types"] = ActivityTypesFilter(values=activity_types)

        levels = self._collect(text, self.DIFFICULTY_LEVELS)
        if levels:
            parsed.filters["difficulty_levels"] = DifficultyFilter(levels=levels)

        if any(self._has_word(text, w) for w in self.WATER_WORDS):
            parsed.filters["water_features"] = WaterFeaturesFilter(values=["water"])

    def _parse_duration(self, text: str, parsed: ParsedQuery):
        hours = None
        if re.search(r"\bhalf\s*day\b", text):
            hours = 4.0
        elif re.search(r"\bfull\s*day\b", text):
            hours = 8.0
        elif re.search(r"\bweekend\b", text):
            hours = 48.0
        else:
            m = re.search(r"(\d+(?:\.\d+)?)\s*(?:day\s*trip|days?)\b", text)
            if m:
                hours = float(m.group(1)) * 24
            else:
                m = re.search(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b", text)
                if m:
                    hours = float(m.group(1))
        if hours is not None:
            parsed.filters["max_duration"] = MaxDurationFilter(hours=hours)

    def _parse_distance(self, text: str, parsed: ParsedQuery):
        # A distance that sets a search radius is not a route length
        for pattern in self.NEAR_DISTANCE_PATTERNS:
            text = pattern.sub(" ", text)
        for pattern in self.DISTANCE_PATTERNS:
            m = pattern.search(text)
            if m:
                parsed.filters["max_distance"] = MaxDistanceFilter(
                    km=round(self._to_km(m.group("dist"), m.group("unit")), 3)
                )
                return

    # ------------------------------------------------------------------
    # Location & spatial context
    # ------------------------------------------------------------------

    def _clean_name(self, name: str) -> str:
        """Drop leading filler ("hikes in the") from a captured place name."""
        noise = STOP_WORDS | {"near", "around", "inside", "within"}
        # Place nouns can start a real name ("lake tahoe")
        vocabulary = set(self.ACTIVITY_KEYWORDS) | (
            set(self.PLACE_KEYWORDS) - {"lake", "mountain", "city", "town", "park"}
        )
        words = name.split()
        while words and (
            words[0] in noise
            or words[0] in vocabulary
            or words[0].rstrip("s") in vocabulary
            or words[0].rstrip("s") in self.ACTIVITY_TYPES
        ):
            words.pop(0)
        return " ".join(words)

    def _first_name(self, text: str, patterns) -> Optional[str]:
        for pattern in patterns:
            for m in pattern.finditer(text):
                name = self._clean_name(m.group("name"))
                if len(name) > 2:
                    return name
        return None

    def _parse_location(self, text: str) -> Optional[Location]:
        name = self._first_name(text, self.LOCATION_PATTERNS)
        if name is None:
            return None
        location = Location(name=name, radius_km=settings.DEFAULT_RADIUS_KM)
        point = gazetteer.resolve(name)
        if point is not None:
            location.latitude, location.longitude = point
        return location

    def _circle_or_region(self, name: str, radius_km: float) -> AreaFilter:
        point = gazetteer.resolve(name)
        if point is None:
            return AreaFilter(type=AreaType.REGION, name=name)
        lat, lng = point
        return AreaFilter(
            type=AreaType.CIRCLE,
            coordinates=[lng, lat],
            radius_km=radius_km,
            name=name,
        )

    def _parse_spatial(self, text: str) -> Optional[SpatialContext]:
        spatial = SpatialContext()

        within = self._first_name(text, self.WITHIN_PATTERNS)
        if within is not None:
            spatial.within = AreaFilter(type=AreaType.REGION, name=within)

        for pattern in self.NEAR_DISTANCE_PATTERNS:
            m = pattern.search(text)
            if not m:
                continue
            name = self._clean_name(m.group("name"))
            if len(name) > 2:
                radius = round(self._to_km(m.group("dist"), m.group("unit")), 3)
                spatial.near = self._circle_or_region(name, radius)
                break

        if spatial.near is None:
            # Plain "near x" only constrains when x can be pinned to a point
            name = self._first_name(text, self.NEAR_PATTERNS)
            if name is not None and gazetteer.resolve(name) is not None:
                spatial.near = self._circle_or_region(name, settings.DEFAULT_RADIUS_KM)

        regions = self._parse_regions(text)
        if len(regions) == 1 and spatial.within is None and regions[0][1] in self.ENCLOSING_REGION_KINDS:
            spatial.within = regions[0][0]
        else:
            spatial.areas = [area for area, _ in regions]

        if spatial.is_empty():
            return None
        return spatial

    def _parse_regions(self, text: str):
        found = []
        seen = set()
        for pattern in self.REGION_PATTERNS:
            for m in pattern.finditer(text):
                name = self._clean_name(m.group("name"))
                if len(name) <= 2 or name in seen:
                    continue
                seen.add(name)
                found.append((m.start(), AreaFilter(type=AreaType.REGION, name=name), m.group("kind")))
        found.sort(key=lambda item: item[0])
        return [(area, kind) for _, area, kind in found]

    @staticmethod
    def _to_km(value: str, unit: str) -> float:
        distance = float(value)
        if unit.startswith("mi"):
            distance *= MILES_TO_KM
        return distance

    # ------------------------------------------------------------------
    # Keywords & explanation
    # ------------------------------------------------------------------

    def _extract_keywords(self, text: str) -> List[str]:
        keywords = []
        for word in text.split():
            cleaned = word.strip(".,!?;:")
            if len(cleaned) > 2 and cleaned not in STOP_WORDS:
                keywords.append(cleaned)
        return keywords

    def explain(self, parsed: ParsedQuery) -> str:
        """Human readable summary, shown as "I understand: ..." by clients."""
        parts = []
        if parsed.intent == Intent.ACTIVITY:
            parts.append("Looking for activities")
        elif parsed.intent == Intent.PLACE:
            parts.append("Looking for places")
        else:
            parts.append("Looking for activities and places")

        filters = parsed.filters
        if "activity_types" in filters:
            parts.append(f"Activity types: {', '.join(filters['activity_types'].values)}")
        if "difficulty_levels" in filters:
            parts.append(f"Difficulty: {', '.join(filters['difficulty_levels'].levels)}")

        if parsed.location and parsed.location.name:
            parts.append(f"Near {parsed.location.name}")

        spatial = parsed.spatial
        if spatial:
            if spatial.within and spatial.within.name:
                parts.append(f"Within {spatial.within.name}")
            if spatial.near:
                if spatial.near.radius_km is not None:
                    parts.append(f"Within {spatial.near.radius_km:.1f} km of {spatial.near.name}")
                else:
                    parts.append(f"Near {spatial.near.name}")
            if spatial.areas:
                parts.append(f"In areas: {', '.join(a.name or '' for a in spatial.areas)}")

        if "max_duration" in filters:
            hours = filters["max_duration"].hours
            if hours < 24:
                parts.append(f"Up to {hours:.1f} hours")
            else:
                parts.append(f"Up to {hours / 24:.1f} days")
        if "max_distance" in filters:
            parts.append(f"Up to {filters['max_distance'].km:.1f} km")

        return " • ".join(parts)


analyzer = QueryAnalyzer()
