"""
Natural-language search orchestration.

A request moves through parse -> visibility -> compile -> execute, falls
back to the relational store when Elasticsearch is down or fails, then gets
suggestions attached. Only an empty query is reported to the caller as an
error; every backend problem degrades the answer instead.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tripsearch.core.config import settings
from tripsearch.core.errors import InvalidQueryError
from tripsearch.nlp.analyzer import QueryAnalyzer, analyzer as default_analyzer
from tripsearch.nlp.types import (
    AreaFilter,
    AreaType,
    Intent,
    ParsedQuery,
    SearchResponse,
    SearchResult,
    SpatialContext,
)
from tripsearch.recall.query_builder import anchor_point, compile_query
from tripsearch.recall.visibility import apply_visibility
from tripsearch.search.suggestions import prefix_suggestions, suggest

logger = logging.getLogger(__name__)


@dataclass
class SearchRequest:
    query: str
    limit: Optional[int] = None
    offset: Optional[int] = None
    user_id: str = ""
    session_id: str = ""
    # (minLng, minLat, maxLng, maxLat) of the map viewport
    bbox: Optional[List[float]] = None


@dataclass
class SearchOutcome:
    query: ParsedQuery
    results: List[SearchResult] = field(default_factory=list)
    total: int = 0
    took: int = 0
    suggestions: List[str] = field(default_factory=list)
    degraded: bool = False


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.SEARCH_DEFAULT_LIMIT
    return min(max(limit, 1), settings.SEARCH_MAX_LIMIT)


def clamp_offset(offset: Optional[int]) -> int:
    if offset is None:
        return 0
    return max(offset, 0)


class SearchService:
    def __init__(
        self,
        es_client,
        analyzer: QueryAnalyzer = None,
        fallback=None,
        analytics=None,
        timeout: float = None,
    ):
        self.es_client = es_client
        self.analyzer = analyzer or default_analyzer
        self.fallback = fallback
        self.analytics = analytics
        self.timeout = timeout if timeout is not None else settings.SEARCH_TIMEOUT_SECONDS

    def parse(self, query: str) -> ParsedQuery:
        return self.analyzer.parse(query)

    async def search(self, req: SearchRequest) -> SearchOutcome:
        if not req.query or not req.query.strip():
            raise InvalidQueryError()
        limit = clamp_limit(req.limit)
        offset = clamp_offset(req.offset)

        # 1. Parse
        parsed = self.analyzer.parse(req.query)

        # 2. Visibility
        apply_visibility(parsed.filters, req.user_id)

        # 3. Viewport
        if req.bbox is not None:
            if parsed.spatial is None:
                parsed.spatial = SpatialContext()
            parsed.spatial.intersects = AreaFilter(type=AreaType.BOUNDS, coordinates=list(req.bbox))

        # 4. Compile
        body = compile_query(parsed, limit, offset)

        # 5. Execute (primary, else fallback)
        response = None
        degraded = False
        if await self.es_client.is_available():
            try:
                response = await asyncio.wait_for(
                    self._execute(parsed, body), timeout=self.timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Elasticsearch search timed out after {self.timeout}s")
            except Exception as e:
                logger.warning(f"Elasticsearch search failed: {e}")
        else:
            logger.info("Elasticsearch unavailable, skipping primary search")

        if response is None:
            degraded = True
            response = await self._fallback_search(parsed, req.user_id, limit, offset)

        # 6. Suggestions
        suggestions = suggest(parsed, response)

        if self.analytics is not None:
            meta = {"query": req.query, "user_id": req.user_id, "session_id": req.session_id}
            self.analytics.log_async(meta, parsed, response, degraded=degraded)

        return SearchOutcome(
            query=parsed,
            results=response.results,
            total=response.total,
            took=response.took_ms,
            suggestions=suggestions,
            degraded=degraded,
        )

    async def _execute(self, parsed: ParsedQuery, body: dict) -> SearchResponse:
        anchor = anchor_point(parsed)
        if parsed.intent == Intent.ACTIVITY:
            return await self.es_client.search_activities(body, anchor)
        if parsed.intent == Intent.PLACE:
            return await self.es_client.search_places(body, anchor)
        return await self.es_client.search_unified(body, anchor)

    async def _fallback_search(
        self, parsed: ParsedQuery, user_id: str, limit: int, offset: int
    ) -> SearchResponse:
        logger.info(f"Using fallback search for query: {parsed.search_text}")
        if self.fallback is None:
            return SearchResponse()
        try:
            return await asyncio.wait_for(
                self.fallback.search(parsed, user_id, limit, offset), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Fallback search timed out after {self.timeout}s")
        except Exception as e:
            logger.warning(f"Fallback search failed: {e}")
        return SearchResponse()

    def suggestions(self, prefix: str, limit: int) -> List[str]:
        return prefix_suggestions(prefix, limit)

    # ------------------------------------------------------------------
    # Index maintenance, called by the trip/place services after writes
    # ------------------------------------------------------------------

    async def index_activity(self, activity_id: str, activity: dict):
        if not await self.es_client.is_available():
            logger.info(f"Elasticsearch not available, skipping activity indexing: {activity_id}")
            return
        try:
            await self.es_client.index_activity(activity_id, activity)
        except Exception as e:
            logger.warning(f"Failed to index activity {activity_id}: {e}")

    async def index_place(self, place_id: str, place: dict):
        if not await self.es_client.is_available():
            logger.info(f"Elasticsearch not available, skipping place indexing: {place_id}")
            return
        try:
            await self.es_client.index_place(place_id, place)
        except Exception as e:
            logger.warning(f"Failed to index place {place_id}: {e}")

    async def delete_from_index(self, doc_type: str, document_id: str):
        if not await self.es_client.is_available():
            logger.info(f"Elasticsearch not available, skipping delete: {doc_type} {document_id}")
            return
        index = self.es_client.place_index if doc_type == "place" else self.es_client.activity_index
        try:
            await self.es_client.delete_document(index, document_id)
        except Exception as e:
            logger.warning(f"Failed to delete {doc_type} {document_id} from index: {e}")
