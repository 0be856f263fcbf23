from pydantic import BaseModel
from typing import List

from tripsearch.nlp.types import ParsedQuery, SearchResult


class SearchResponse(BaseModel):
    query: ParsedQuery
    results: List[SearchResult]
    total: int
    took: int
    suggestions: List[str] = []
    degraded: bool = False


class HealthResponse(BaseModel):
    status: str
    elasticsearch: bool
