from tripsearch.nlp.types import OwnerVisibilityFilter, ParsedQuery, PublicVisibilityFilter
from tripsearch.recall.query_builder import compile_query
from tripsearch.recall.visibility import apply_visibility, visibility_clause

OWNER_CLAUSE = {
    "bool": {
        "should": [
            {"term": {"visibility": "public"}},
            {
                "bool": {
                    "must": [
                        {"term": {"visibility": "private"}},
                        {"term": {"owner_id": "U1"}},
                    ]
                }
            },
        ],
        "minimum_should_match": 1,
    }
}


def test_anonymous_sees_public_only():
    filters = apply_visibility({}, "")

    assert isinstance(filters["visibility"], PublicVisibilityFilter)
    assert "visibility_filter" not in filters
    assert visibility_clause(filters["visibility"]) == {"term": {"visibility": "public"}}


def test_caller_sees_own_private():
    filters = apply_visibility({}, "U1")

    assert filters["visibility_filter"] == OwnerVisibilityFilter(user_id="U1")
    assert "visibility" not in filters
    assert visibility_clause(filters["visibility_filter"]) == OWNER_CLAUSE


def test_clause_is_part_of_compiled_query():
    parsed = ParsedQuery(search_text="lakes")
    apply_visibility(parsed.filters, "U1")
    body = compile_query(parsed, 20, 0)

    assert OWNER_CLAUSE in body["query"]["bool"]["filter"]


def test_other_owner_is_never_admitted():
    filters = apply_visibility({}, "B")
    clause = visibility_clause(filters["visibility_filter"])

    private_branch = clause["bool"]["should"][1]["bool"]["must"]
    assert {"term": {"owner_id": "B"}} in private_branch
    assert {"term": {"owner_id": "A"}} not in private_branch
