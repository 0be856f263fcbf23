from tripsearch.nlp.types import (
    ActivityTypesFilter,
    DifficultyFilter,
    Intent,
    ParsedQuery,
    SearchResponse,
)
from tripsearch.search.suggestions import COMMON_QUERIES, prefix_suggestions, suggest


def test_no_results_by_intent():
    empty = SearchResponse()

    assert suggest(ParsedQuery(intent=Intent.PLACE), empty) == [
        "Try searching in nearby cities",
        "Look for similar types of places",
        "Expand your search radius",
    ]
    assert suggest(ParsedQuery(intent=Intent.MIXED), empty)[0] == "Try more specific keywords"


def test_few_results():
    assert suggest(ParsedQuery(intent=Intent.PLACE), SearchResponse(total=3)) == [
        "Expand search area for more results",
        "Try different keywords",
    ]


def test_enough_results():
    assert suggest(ParsedQuery(intent=Intent.MIXED), SearchResponse(total=5)) == []


def test_activity_hints_for_missing_filters():
    parsed = ParsedQuery(intent=Intent.ACTIVITY)
    assert suggest(parsed, SearchResponse(total=50)) == [
        "Try specifying an activity type (hiking, biking, etc.)",
        "Specify difficulty level (easy, moderate, hard)",
    ]

    parsed.filters["activity_types"] = ActivityTypesFilter(values=["hiking"])
    parsed.filters["difficulty_levels"] = DifficultyFilter(levels=["easy"])
    assert suggest(parsed, SearchResponse(total=50)) == []


def test_suggest_is_deterministic():
    parsed = ParsedQuery(intent=Intent.ACTIVITY)
    assert suggest(parsed, SearchResponse()) == suggest(parsed, SearchResponse())


def test_prefix_is_case_insensitive():
    assert prefix_suggestions("HIK", 10) == [
        "hiking trails near me",
        "waterfall hikes",
        "dog-friendly hikes",
    ]


def test_prefix_limit():
    assert prefix_suggestions("hik", 2) == ["hiking trails near me", "waterfall hikes"]
    assert prefix_suggestions("", 10) == COMMON_QUERIES
    assert prefix_suggestions("zzz", 10) == []
