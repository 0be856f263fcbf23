"""
Keyword search over the system-of-record tables.

Used only while Elasticsearch is down. Matches keywords with ILIKE against
titles, names and descriptions and applies the same visibility rule as the
primary path: public rows, plus the caller's own private rows.
"""

import logging
import time
from typing import List, Protocol, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tripsearch.nlp.types import Intent, ParsedQuery, SearchResponse, SearchResult

logger = logging.getLogger(__name__)


class FallbackRepository(Protocol):
    async def search(
        self, parsed: ParsedQuery, caller_id: str, limit: int, offset: int
    ) -> SearchResponse: ...


def like_patterns(parsed: ParsedQuery) -> List[str]:
    """ILIKE patterns for the query's keywords, wildcards escaped."""
    terms = parsed.keywords or [parsed.search_text]
    patterns = []
    for term in terms:
        term = term.strip()
        if not term:
            continue
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        if pattern not in patterns:
            patterns.append(pattern)
    return patterns


TRIP_MATCH = """
    FROM trips t
    WHERE t.deleted_at IS NULL
      AND (t.title ILIKE ANY(:patterns) OR t.description ILIKE ANY(:patterns))
      AND (t.visibility = 'public'
           OR (t.visibility = 'private' AND t.owner_id::text = :caller_id))
"""

PLACE_MATCH = """
    FROM places p
    WHERE p.status = 'active'
      AND (p.name ILIKE ANY(:patterns) OR p.description ILIKE ANY(:patterns)
           OR p.city ILIKE ANY(:patterns))
      AND (p.privacy = 'public'
           OR (p.privacy = 'private' AND p.created_by::text = :caller_id))
"""


class SQLFallbackRepository:
    """Fallback search against the trips (activities) and places tables.

    Mixed queries list matching activities before matching places. Each
    table is read up to ``offset + limit`` rows so either one can fill the
    page, and ``total`` counts every matching row.
    """

    def __init__(self, session_factory: async_sessionmaker, engine: AsyncEngine = None):
        self.session_factory = session_factory
        self.engine = engine

    async def close(self):
        if self.engine is not None:
            await self.engine.dispose()

    async def search(
        self, parsed: ParsedQuery, caller_id: str, limit: int, offset: int
    ) -> SearchResponse:
        start = time.monotonic()
        patterns = like_patterns(parsed)
        if not patterns:
            return SearchResponse()

        scopes = []
        if parsed.intent in (Intent.ACTIVITY, Intent.MIXED):
            scopes.append(self._search_activities)
        if parsed.intent in (Intent.PLACE, Intent.MIXED):
            scopes.append(self._search_places)

        params = {"patterns": patterns, "caller_id": caller_id or "", "limit": limit + offset}
        results: List[SearchResult] = []
        total = 0
        async with self.session_factory() as session:
            for scope in scopes:
                rows, count = await scope(session, params)
                results.extend(rows)
                total += count

        return SearchResponse(
            results=results[offset:offset + limit],
            total=total,
            took_ms=int((time.monotonic() - start) * 1000),
        )

    @staticmethod
    async def _count(session: AsyncSession, match: str, params: dict) -> int:
        counted = {k: v for k, v in params.items() if k != "limit"}
        r = await session.execute(text(f"SELECT COUNT(*) {match}"), counted)
        return int(r.scalar_one())

    async def _search_activities(
        self, session: AsyncSession, params: dict
    ) -> Tuple[List[SearchResult], int]:
        stmt = text(f"""
            SELECT t.id, t.title, t.description, t.activity_type, t.difficulty_level,
                   t.visibility, t.owner_id
            {TRIP_MATCH}
            ORDER BY t.created_at DESC
            LIMIT :limit
        """)
        r = await session.execute(stmt, params)
        rows = [
            SearchResult(
                id=str(row["id"]),
                type="activity",
                source={
                    "title": row["title"],
                    "description": row["description"],
                    "activity_type": row["activity_type"],
                    "difficulty_level": row["difficulty_level"],
                    "visibility": row["visibility"],
                },
            )
            for row in r.mappings().all()
        ]
        return rows, await self._count(session, TRIP_MATCH, params)

    async def _search_places(
        self, session: AsyncSession, params: dict
    ) -> Tuple[List[SearchResult], int]:
        stmt = text(f"""
            SELECT p.id, p.name, p.description, p.type, p.city, p.state, p.country,
                   p.privacy
            {PLACE_MATCH}
            ORDER BY p.created_at DESC
            LIMIT :limit
        """)
        r = await session.execute(stmt, params)
        rows = [
            SearchResult(
                id=str(row["id"]),
                type="place",
                source={
                    "name": row["name"],
                    "description": row["description"],
                    "type": row["type"],
                    "city": row["city"],
                    "state": row["state"],
                    "country": row["country"],
                    "visibility": row["privacy"],
                },
            )
            for row in r.mappings().all()
        ]
        return rows, await self._count(session, PLACE_MATCH, params)


def create_fallback_repository(database_url: str) -> SQLFallbackRepository:
    engine = create_async_engine(database_url, pool_pre_ping=True, pool_recycle=3600)
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    return SQLFallbackRepository(session_factory, engine=engine)
