import logging
import math
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from tripsearch.analytics.sink import AnalyticsSink
from tripsearch.core.config import settings
from tripsearch.core.errors import InvalidQueryError
from tripsearch.core.logging import setup_logging
from tripsearch.models import HealthResponse, SearchResponse
from tripsearch.nlp.types import ParsedQuery
from tripsearch.recall.es_client import ESClient
from tripsearch.recall.fallback import create_fallback_repository
from tripsearch.search.service import SearchRequest, SearchService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    es_client = ESClient()
    if not await es_client.ping():
        # Keep serving; searches go to the fallback until the backend is back
        logger.warning(f"Elasticsearch not available at {settings.ES_HOST}")

    fallback = None
    if settings.DATABASE_URL:
        fallback = create_fallback_repository(settings.DATABASE_URL)

    analytics = AnalyticsSink(es_client)
    analytics.start()

    app.state.search_service = SearchService(es_client, fallback=fallback, analytics=analytics)
    try:
        yield
    finally:
        await analytics.stop()
        if fallback is not None:
            await fallback.close()
        await es_client.close()


app = FastAPI(title="Trip Search Service", version="1.0", lifespan=lifespan)


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def parse_bbox(raw: Optional[str]) -> Optional[List[float]]:
    """"minLng,minLat,maxLng,maxLat" -> floats; anything else is ignored."""
    if not raw:
        return None
    try:
        values = [float(v) for v in raw.split(",")]
    except ValueError:
        return None
    if len(values) != 4 or not all(math.isfinite(v) for v in values):
        return None
    return values


@app.get("/search", response_model=SearchResponse)
async def search(
    request: Request,
    q: str = Query(""),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    bbox: Optional[str] = None,
    x_user_id: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
    service: SearchService = Depends(get_search_service),
):
    session_id = x_session_id or (request.client.host if request.client else "")
    outcome = await service.search(
        SearchRequest(
            query=q,
            limit=limit,
            offset=offset,
            user_id=x_user_id or "",
            session_id=session_id,
            bbox=parse_bbox(bbox),
        )
    )
    return SearchResponse(
        query=outcome.query,
        results=outcome.results,
        total=outcome.total,
        took=outcome.took,
        suggestions=outcome.suggestions,
        degraded=outcome.degraded,
    )


@app.get("/search/suggestions", response_model=List[str])
async def search_suggestions(
    prefix: str = "",
    limit: Optional[int] = None,
    service: SearchService = Depends(get_search_service),
):
    if limit is None or limit < 1 or limit > settings.SUGGESTION_MAX_LIMIT:
        limit = settings.SUGGESTION_DEFAULT_LIMIT
    return service.suggestions(prefix, limit)


@app.get("/search/parse", response_model=ParsedQuery)
async def parse_query(q: str = Query(""), service: SearchService = Depends(get_search_service)):
    # Diagnostic only
    return service.parse(q)


@app.get("/health", response_model=HealthResponse)
async def health(service: SearchService = Depends(get_search_service)):
    return {"status": "ok", "elasticsearch": await service.es_client.is_available()}


if __name__ == "__main__":
    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
