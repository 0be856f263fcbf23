"""
Best-effort search analytics.

Events go through a bounded in-memory queue drained by a single worker task,
so logging never blocks or fails a search. Delivery is at most once: a full
queue drops the event, a failed write is not retried, and events still
queued at shutdown are discarded.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from tripsearch.core.config import settings
from tripsearch.nlp.types import ParsedQuery, SearchResponse

logger = logging.getLogger(__name__)


class AnalyticsSink:
    def __init__(self, es_client, queue_size: int = None, timeout: float = None):
        self.es_client = es_client
        self.timeout = timeout if timeout is not None else settings.ANALYTICS_TIMEOUT_SECONDS
        self.queue: asyncio.Queue = asyncio.Queue(
            maxsize=queue_size if queue_size is not None else settings.ANALYTICS_QUEUE_SIZE
        )
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self):
        if not self.running:
            self._worker = asyncio.create_task(self._run(), name="search-analytics")

    async def stop(self):
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        dropped = self.queue.qsize()
        while not self.queue.empty():
            self.queue.get_nowait()
        if dropped:
            logger.info(f"Discarded {dropped} pending analytics events")

    def log_async(self, meta: dict, parsed: ParsedQuery, response: SearchResponse, degraded: bool = False):
        """Queue a search event without waiting. Never raises."""
        if not self.running:
            logger.debug("Analytics sink not running, dropping event")
            return
        event = build_event(meta, parsed, response, degraded)
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.debug("Analytics queue full, dropping event")

    async def _run(self):
        while True:
            event = await self.queue.get()
            try:
                await asyncio.wait_for(self._write(event), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Analytics write timed out, event dropped")
            except Exception as e:
                logger.warning(f"Failed to log search query: {e}")
            finally:
                self.queue.task_done()

    async def _write(self, event: dict):
        if not await self.es_client.is_available():
            logger.debug("Elasticsearch unavailable, skipping analytics event")
            return
        await self.es_client.log_query(event)


def build_event(meta: dict, parsed: ParsedQuery, response: SearchResponse, degraded: bool = False) -> dict:
    return {
        "query": meta.get("query"),
        "interpreted_type": parsed.intent.value,
        "filters": {key: f.model_dump() for key, f in parsed.filters.items()},
        "results_count": response.total,
        "user_id": meta.get("user_id") or None,
        "session_id": meta.get("session_id") or None,
        "confidence": parsed.confidence,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "took_ms": response.took_ms,
        "degraded": degraded,
    }
