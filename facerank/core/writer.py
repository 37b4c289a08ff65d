"""
Single-writer queue for async applications.

Scoring requests from many coroutines are funnelled through one queue and
one consumer task, which runs each insert in a worker thread so the event
loop stays responsive during recomputation.

Example:
    >>> async with ScoringWriter(engine) as writer:
    ...     result = await writer.submit("user-1", embedding, quality)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

from facerank.core.engine import ScoringEngine
from facerank.core.validation import VectorLike
from facerank.domain.entities.results import ScoringResult
from facerank.domain.entities.subject import QualityMetrics
from facerank.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class _Request:
    subject_id: str
    embedding: VectorLike
    quality: Union[QualityMetrics, dict]
    future: asyncio.Future


_STOP = object()


class ScoringWriter:
    """
    Serializes ``ScoringEngine.score`` calls behind an asyncio queue.

    Requests are processed strictly in submission order. Cancelling a
    waiting caller does not cancel a recomputation that already started.
    """

    def __init__(self, engine: ScoringEngine, maxsize: int = 0):
        """
        Args:
            engine: Engine whose store receives the writes.
            maxsize: Queue bound; 0 means unbounded.
        """
        self.engine = engine
        self.maxsize = maxsize
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self.processed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Create the queue and the consumer task on the running loop."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._task = asyncio.create_task(self._consume(), name="facerank-writer")
        logger.info("Scoring writer started")

    async def submit(
        self,
        subject_id: str,
        embedding: VectorLike,
        quality: Union[QualityMetrics, dict],
    ) -> ScoringResult:
        """
        Queue a scoring request and wait for its result.

        Raises:
            RuntimeError: If the writer is not running.
            AppException: Whatever ``ScoringEngine.score`` raised.
        """
        if not self.running:
            raise RuntimeError("ScoringWriter is not running; call start() first")

        future = asyncio.get_running_loop().create_future()
        await self._queue.put(_Request(subject_id, embedding, quality, future))
        return await asyncio.shield(future)

    async def close(self) -> None:
        """Finish queued requests, then stop the consumer."""
        if not self.running:
            return
        await self._queue.put(_STOP)
        await self._task
        self._task = None
        logger.info(f"Scoring writer stopped after {self.processed} requests")

    async def _consume(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                if request is _STOP:
                    return
                await self._handle(request)
            finally:
                self._queue.task_done()

    async def _handle(self, request: _Request) -> None:
        try:
            result = await asyncio.to_thread(
                self.engine.score, request.subject_id, request.embedding, request.quality
            )
        except Exception as e:
            logger.debug(f"Scoring {request.subject_id} failed: {e}")
            if not request.future.done():
                request.future.set_exception(e)
        else:
            if not request.future.done():
                request.future.set_result(result)
        finally:
            self.processed += 1

    async def __aenter__(self) -> "ScoringWriter":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
