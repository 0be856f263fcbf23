import asyncio

import pytest

from tripsearch.nlp.types import SearchResponse, SearchResult


class FakeESClient:
    """Stands in for ESClient; records every call."""

    activity_index = "activities"
    place_index = "places"

    def __init__(self, available=True, response=None, error=None, hang=False):
        self.available = available
        self.response = response or SearchResponse(
            results=[SearchResult(id="1", type="activity", score=1.0, source={"title": "Mist Trail"})],
            total=1,
            took_ms=3,
        )
        self.error = error
        self.hang = hang
        self.calls = []
        self.bodies = []
        self.indexed = []
        self.deleted = []
        self.logged = []
        self.availability_checks = 0

    async def is_available(self):
        self.availability_checks += 1
        return self.available

    async def _search(self, name, body, anchor):
        self.calls.append(name)
        self.bodies.append(body)
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return self.response

    async def search_activities(self, body, anchor=None):
        return await self._search("activities", body, anchor)

    async def search_places(self, body, anchor=None):
        return await self._search("places", body, anchor)

    async def search_unified(self, body, anchor=None):
        return await self._search("unified", body, anchor)

    async def index_activity(self, activity_id, activity):
        if self.error is not None:
            raise self.error
        self.indexed.append(("activity", activity_id, activity))

    async def index_place(self, place_id, place):
        if self.error is not None:
            raise self.error
        self.indexed.append(("place", place_id, place))

    async def delete_document(self, index, document_id):
        if self.error is not None:
            raise self.error
        self.deleted.append((index, document_id))

    async def log_query(self, query_log):
        self.logged.append(query_log)


class FakeFallback:
    def __init__(self, response=None, error=None):
        self.response = response or SearchResponse(
            results=[SearchResult(id="db-1", type="place", source={"name": "Curry Village"})],
            total=1,
            took_ms=7,
        )
        self.error = error
        self.calls = []

    async def search(self, parsed, caller_id, limit, offset):
        self.calls.append((parsed, caller_id, limit, offset))
        if self.error is not None:
            raise self.error
        return self.response


class FakeAnalytics:
    def __init__(self):
        self.events = []

    def log_async(self, meta, parsed, response, degraded=False):
        self.events.append((meta, parsed, response, degraded))


@pytest.fixture
def es():
    return FakeESClient()


@pytest.fixture
def fallback():
    return FakeFallback()


@pytest.fixture
def analytics():
    return FakeAnalytics()
