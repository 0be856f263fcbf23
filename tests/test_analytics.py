import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tripsearch.analytics.sink import AnalyticsSink, build_event
from tripsearch.nlp.types import DifficultyFilter, Intent, ParsedQuery, SearchResponse

META = {"query": "easy hikes", "user_id": "U1", "session_id": "s-1"}


def make_es(available=True):
    es = MagicMock()
    es.is_available = AsyncMock(return_value=available)
    es.log_query = AsyncMock()
    return es


def parsed_query():
    return ParsedQuery(
        intent=Intent.ACTIVITY,
        search_text="easy hikes",
        filters={"difficulty_levels": DifficultyFilter(levels=["easy"])},
        confidence=0.75,
    )


def test_build_event():
    event = build_event(META, parsed_query(), SearchResponse(total=4, took_ms=12), degraded=True)

    assert event["query"] == "easy hikes"
    assert event["interpreted_type"] == "activity"
    assert event["filters"] == {"difficulty_levels": {"kind": "difficulty_levels", "levels": ["easy"]}}
    assert event["results_count"] == 4
    assert event["user_id"] == "U1"
    assert event["session_id"] == "s-1"
    assert event["confidence"] == 0.75
    assert event["took_ms"] == 12
    assert event["degraded"] is True
    assert event["timestamp"].endswith("+00:00")


def test_anonymous_event_has_no_user():
    event = build_event({"query": "x", "user_id": "", "session_id": ""}, parsed_query(), SearchResponse())
    assert event["user_id"] is None
    assert event["session_id"] is None


@pytest.mark.asyncio
async def test_event_written():
    es = make_es()
    sink = AnalyticsSink(es)
    sink.start()
    try:
        sink.log_async(META, parsed_query(), SearchResponse(total=1))
        await sink.queue.join()
    finally:
        await sink.stop()

    es.log_query.assert_awaited_once()
    assert es.log_query.call_args.args[0]["query"] == "easy hikes"


@pytest.mark.asyncio
async def test_dropped_when_not_running():
    es = make_es()
    sink = AnalyticsSink(es)

    sink.log_async(META, parsed_query(), SearchResponse())
    assert sink.queue.empty()


@pytest.mark.asyncio
async def test_skipped_when_backend_unavailable():
    es = make_es(available=False)
    sink = AnalyticsSink(es)
    sink.start()
    try:
        sink.log_async(META, parsed_query(), SearchResponse())
        await sink.queue.join()
    finally:
        await sink.stop()

    es.log_query.assert_not_awaited()


@pytest.mark.asyncio
async def test_worker_survives_write_failure():
    es = make_es()
    es.log_query.side_effect = [RuntimeError("index closed"), None]
    sink = AnalyticsSink(es)
    sink.start()
    try:
        sink.log_async(META, parsed_query(), SearchResponse())
        sink.log_async(META, parsed_query(), SearchResponse())
        await sink.queue.join()
        assert sink.running
    finally:
        await sink.stop()

    assert es.log_query.await_count == 2


@pytest.mark.asyncio
async def test_full_queue_drops_event():
    es = make_es()
    sink = AnalyticsSink(es, queue_size=1)
    sink.start()
    try:
        # No await in between, so the worker has not taken the first one yet
        sink.log_async(META, parsed_query(), SearchResponse())
        sink.log_async(META, parsed_query(), SearchResponse())
        await sink.queue.join()
    finally:
        await sink.stop()

    assert es.log_query.await_count == 1


@pytest.mark.asyncio
async def test_slow_write_times_out():
    es = make_es()

    async def slow(event):
        await asyncio.sleep(1)

    es.log_query.side_effect = slow
    sink = AnalyticsSink(es, timeout=0.01)
    sink.start()
    try:
        sink.log_async(META, parsed_query(), SearchResponse())
        await asyncio.wait_for(sink.queue.join(), timeout=0.5)
        assert sink.running
    finally:
        await sink.stop()


@pytest.mark.asyncio
async def test_stop_discards_pending():
    es = make_es()
    sink = AnalyticsSink(es)
    sink.start()
    sink.log_async(META, parsed_query(), SearchResponse())
    await sink.stop()

    assert not sink.running
    assert sink.queue.empty()
