from typing import List

from tripsearch.nlp.types import Intent, ParsedQuery, SearchResponse

FEW_RESULTS = 5

NO_RESULT_SUGGESTIONS = {
    Intent.ACTIVITY: [
        "Try broadening your search area",
        "Consider different difficulty levels",
        "Look for similar activity types",
    ],
    Intent.PLACE: [
        "Try searching in nearby cities",
        "Look for similar types of places",
        "Expand your search radius",
    ],
    Intent.MIXED: [
        "Try more specific keywords",
        "Include location information",
        "Use activity or place names",
    ],
}

FEW_RESULT_SUGGESTIONS = [
    "Expand search area for more results",
    "Try different keywords",
]

COMMON_QUERIES = [
    "hiking trails near me",
    "easy bike routes",
    "waterfall hikes",
    "weekend camping spots",
    "moderate difficulty trails",
    "mountain climbing routes",
    "family-friendly activities",
    "dog-friendly hikes",
    "scenic bike paths",
    "swimming holes",
]


def suggest(parsed: ParsedQuery, response: SearchResponse) -> List[str]:
    """Next-query hints from the result count and the filters in play."""
    suggestions = []
    if response.total == 0:
        suggestions.extend(NO_RESULT_SUGGESTIONS[parsed.intent])
    elif response.total < FEW_RESULTS:
        suggestions.extend(FEW_RESULT_SUGGESTIONS)

    if parsed.intent == Intent.ACTIVITY:
        if "activity_types" not in parsed.filters:
            suggestions.append("Try specifying an activity type (hiking, biking, etc.)")
        if "difficulty_levels" not in parsed.filters:
            suggestions.append("Specify difficulty level (easy, moderate, hard)")

    return suggestions


def prefix_suggestions(prefix: str, limit: int) -> List[str]:
    """Autocomplete: common queries containing ``prefix``, ignoring case."""
    needle = (prefix or "").strip().casefold()
    matches = [q for q in COMMON_QUERIES if needle in q.casefold()]
    return matches[:max(limit, 0)]
