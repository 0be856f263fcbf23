"""
Visibility rules.

Access control is part of the compiled query itself. Results are never
post-filtered, so a caller cannot learn anything about another user's
private documents from counts or timing.
"""

from typing import Dict

from tripsearch.nlp.types import Filter, OwnerVisibilityFilter, PublicVisibilityFilter


def apply_visibility(filters: Dict[str, Filter], caller_id: str) -> Dict[str, Filter]:
    """Record who is searching in the filter map.

    Anonymous callers only see public documents. Authenticated callers see
    public documents plus their own private ones.
    """
    if caller_id:
        filters["visibility_filter"] = OwnerVisibilityFilter(user_id=caller_id)
    else:
        filters["visibility"] = PublicVisibilityFilter()
    return filters


def visibility_clause(filter_: Filter) -> dict:
    if isinstance(filter_, OwnerVisibilityFilter):
        # public OR (private AND owned by the caller)
        return {
            "bool": {
                "should": [
                    {"term": {"visibility": "public"}},
                    {
                        "bool": {
                            "must": [
                                {"term": {"visibility": "private"}},
                                {"term": {"owner_id": filter_.user_id}},
                            ]
                        }
                    },
                ],
                "minimum_should_match": 1,
            }
        }
    return {"term": {"visibility": "public"}}
