"""Unit tests for the async single-writer queue."""

import asyncio
import threading

import pytest

from facerank.core.writer import ScoringWriter
from facerank.utils.exceptions import DuplicateActiveError, InvalidDimensionError, InvalidQualityError


class TestScoringWriter:
    """Test ordering and error propagation through the queue."""

    def test_submit_before_start(self, engine, make_embedding, quality):
        """Test submitting to a stopped writer."""
        async def scenario():
            writer = ScoringWriter(engine)
            await writer.submit("alice", make_embedding(), quality)

        with pytest.raises(RuntimeError, match="not running"):
            asyncio.run(scenario())

    def test_processes_in_submission_order(self, engine, make_embedding, quality):
        """Test requests are applied in submission order."""
        embeddings = [make_embedding() for _ in range(8)]

        async def scenario():
            async with ScoringWriter(engine) as writer:
                return await asyncio.gather(
                    *(writer.submit(f"s{i}", e, quality) for i, e in enumerate(embeddings))
                )

        results = asyncio.run(scenario())

        assert [r.subject_id for r in results] == [f"s{i}" for i in range(8)]
        assert [r.total_population for r in results] == list(range(1, 9))
        assert engine.store.snapshot.version == 9

    def test_errors_reach_the_caller(self, engine, make_embedding, quality):
        """Test engine errors surface at the caller."""
        vector = make_embedding()

        async def scenario():
            async with ScoringWriter(engine) as writer:
                await writer.submit("alice", vector, quality)
                with pytest.raises(DuplicateActiveError):
                    await writer.submit("alice", vector, quality)
                with pytest.raises(InvalidDimensionError):
                    await writer.submit("bob", [1.0, 2.0], quality)
                # The consumer survives failed requests
                result = await writer.submit("carol", make_embedding(), quality)
                return writer, result

        writer, result = asyncio.run(scenario())

        assert result.total_population == 2
        assert writer.processed == 4
        assert not writer.running

    def test_close_drains_queue(self, engine, make_embedding, quality):
        """Test close finishes queued requests."""
        async def scenario():
            writer = ScoringWriter(engine)
            await writer.start()
            pending = [
                asyncio.create_task(writer.submit(f"s{i}", make_embedding(), quality)) for i in range(3)
            ]
            await asyncio.sleep(0)
            await writer.close()
            return await asyncio.gather(*pending)

        results = asyncio.run(scenario())

        assert len(results) == 3
        assert engine.store.count() == 3

    def test_cancelled_caller_does_not_cancel_recompute(self, engine, make_embedding, quality, monkeypatch):
        """Test cancelling a waiting caller still commits its in-flight write exactly once."""
        started = threading.Event()
        release = threading.Event()
        original_score = engine.score

        def slow_score(*args, **kwargs):
            started.set()
            release.wait(timeout=10)
            return original_score(*args, **kwargs)

        monkeypatch.setattr(engine, "score", slow_score)
        version = engine.store.snapshot.version

        async def scenario():
            async with ScoringWriter(engine) as writer:
                caller = asyncio.create_task(writer.submit("alice", make_embedding(), quality))
                await asyncio.to_thread(started.wait, 10)
                caller.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await caller
                release.set()
                return writer

        writer = asyncio.run(scenario())

        assert writer.processed == 1
        assert engine.store.snapshot.version == version + 1
        assert engine.store.get("alice").score == 100.0

    def test_invalid_quality_reaches_the_caller(self, engine, make_embedding):
        """Test malformed quality metrics come back as a structured error."""
        async def scenario():
            async with ScoringWriter(engine) as writer:
                await writer.submit("alice", make_embedding(), {"quality": 2.0})

        with pytest.raises(InvalidQualityError):
            asyncio.run(scenario())
        assert engine.store.count() == 0

    def test_start_is_idempotent(self, engine):
        """Test starting twice keeps one consumer."""
        async def scenario():
            writer = ScoringWriter(engine)
            await writer.start()
            task = writer._task
            await writer.start()
            same = writer._task is task
            await writer.close()
            return same

        assert asyncio.run(scenario())
