import asyncio
import logging
import time
from typing import Iterable, Optional, Tuple

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError, TransportError
from geopy.distance import geodesic

from tripsearch.core.config import settings
from tripsearch.core.errors import BackendUnavailableError
from tripsearch.nlp.types import SearchResponse, SearchResult

logger = logging.getLogger(__name__)


class ESClient:
    """Elasticsearch access for searching, indexing and query logging.

    One instance is shared by all requests; AsyncElasticsearch pools its
    connections. Search failures are raised as BackendUnavailableError so
    the caller can fall back. Writes that fail are logged and dropped.
    """

    def __init__(self, host: str = None):
        self.client = AsyncElasticsearch(
            host or settings.ES_HOST, request_timeout=settings.ES_REQUEST_TIMEOUT
        )
        self.activity_index = settings.ES_ACTIVITY_INDEX
        self.place_index = settings.ES_PLACE_INDEX
        self.analytics_index = settings.ES_ANALYTICS_INDEX
        self.health_ttl = settings.ES_HEALTH_TTL_SECONDS
        self._available = False
        self._checked_at: Optional[float] = None
        self._refresh_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    async def ping(self) -> bool:
        try:
            ok = bool(
                await asyncio.wait_for(self.client.ping(), timeout=settings.SEARCH_TIMEOUT_SECONDS)
            )
        except Exception as e:
            logger.warning(f"Elasticsearch ping failed: {e}")
            ok = False
        self._available = ok
        self._checked_at = time.monotonic()
        return ok

    def _is_stale(self) -> bool:
        return self._checked_at is None or time.monotonic() - self._checked_at > self.health_ttl

    async def is_available(self) -> bool:
        """Cached liveness flag, refreshed by a ping once it is stale.

        Concurrent callers share one refresh.
        """
        if not self._is_stale():
            return self._available
        async with self._refresh_lock:
            if self._is_stale():
                await self.ping()
            return self._available

    def mark_unavailable(self):
        self._available = False
        self._checked_at = time.monotonic()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_activities(self, body: dict, anchor: Tuple[float, float] = None) -> SearchResponse:
        return await self._search([self.activity_index], body, anchor)

    async def search_places(self, body: dict, anchor: Tuple[float, float] = None) -> SearchResponse:
        return await self._search([self.place_index], body, anchor)

    async def search_unified(self, body: dict, anchor: Tuple[float, float] = None) -> SearchResponse:
        return await self._search([self.activity_index, self.place_index], body, anchor)

    async def _search(self, indices: Iterable[str], body: dict, anchor) -> SearchResponse:
        try:
            resp = await self.client.search(
                index=list(indices),
                query=body["query"],
                size=body.get("size"),
                from_=body.get("from"),
                sort=body.get("sort"),
                track_total_hits=True,
            )
        except Exception as e:
            if _is_outage(e):
                self.mark_unavailable()
            raise BackendUnavailableError(f"search failed: {e}") from e

        try:
            hits = resp["hits"]
            total = hits["total"]
            return SearchResponse(
                total=total["value"] if isinstance(total, dict) else int(total),
                took_ms=resp["took"],
                results=[self._parse_hit(hit, anchor) for hit in hits["hits"]],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BackendUnavailableError(f"malformed search response: {e}") from e

    def _doc_type(self, index_name: str) -> str:
        # Concrete index names may carry a version suffix behind an alias
        if index_name and index_name.startswith(self.place_index):
            return "place"
        return "activity"

    def _parse_hit(self, hit: dict, anchor) -> SearchResult:
        source = hit.get("_source") or {}

        dist_km = None
        location = source.get("location")
        if anchor is not None and isinstance(location, dict):
            try:
                dist_km = round(geodesic(anchor, (location["lat"], location["lon"])).km, 3)
            except (KeyError, TypeError, ValueError):
                dist_km = None

        return SearchResult(
            id=str(hit["_id"]),
            type=self._doc_type(hit.get("_index", "")),
            score=hit.get("_score"),
            source=source,
            distance_km=dist_km,
        )

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def index_activity(self, activity_id: str, activity: dict):
        await self.client.index(
            index=self.activity_index, id=activity_id, document=activity, refresh=True
        )

    async def index_place(self, place_id: str, place: dict):
        await self.client.index(
            index=self.place_index, id=place_id, document=place, refresh=True
        )

    async def delete_document(self, index: str, document_id: str):
        try:
            await self.client.delete(index=index, id=document_id, refresh=True)
        except NotFoundError:
            logger.info(f"Document {document_id} already absent from {index}")

    async def log_query(self, query_log: dict):
        await self.client.index(index=self.analytics_index, document=query_log)

    async def close(self):
        await self.client.close()


def _is_outage(exc: Exception) -> bool:
    """Whether a search failure means the cluster is down for everyone.

    A 4xx is about one request's query and leaves the shared flag alone.
    """
    if isinstance(exc, ApiError):
        return exc.meta.status >= 500
    return isinstance(exc, (TransportError, OSError, asyncio.TimeoutError))
