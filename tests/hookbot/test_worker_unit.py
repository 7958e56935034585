"""Unit tests for the dispatch worker pool."""

import asyncio
from typing import List
from unittest.mock import AsyncMock

import pytest

from hookbot.events.emitter import EventEmitter
from hookbot.events.models import DispatchEvent, EventType
from hookbot.prompts.models import PromptRequest
from hookbot.queue.dispatch import DispatchQueue
from hookbot.queue.models import DispatchJob, JobStatus
from hookbot.queue.worker import LoggingJobProcessor, WorkerPool
from hookbot.webhook.models import (
    AcceptedCommand,
    Installation,
    RepositoryRef,
    WebhookDelivery,
)


def run_async(coro):
    return asyncio.run(coro)


def _make_job(delivery_id: str = "d-1") -> DispatchJob:
    return DispatchJob(
        delivery=WebhookDelivery(delivery_id=delivery_id, event_type="issues"),
        installation=Installation(installation_id=1),
        repository=RepositoryRef(
            full_name="acme/widgets",
            clone_url="https://github.com/acme/widgets.git",
        ),
        command=AcceptedCommand(command_text="@reviewbot go", sender="alice"),
        prompt=PromptRequest(template_id="issue_mention", rendered_text="prompt"),
    )


class RecordingEmitter(EventEmitter):
    """Collects emitted events."""

    def __init__(self) -> None:
        self.events: List[DispatchEvent] = []

    async def emit(self, event: DispatchEvent) -> None:
        self.events.append(event)


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class TestProcessJob:
    """Outcome recording for a single job."""

    def test_success_marks_completed(self):
        async def scenario():
            queue = DispatchQueue()
            emitter = RecordingEmitter()
            processor = AsyncMock()
            pool = WorkerPool(queue, processor=processor, event_emitter=emitter)
            await queue.enqueue(_make_job())
            job = await queue.dequeue()
            await pool.process_job(job)
            return queue, emitter, processor, job

        queue, emitter, processor, job = run_async(scenario())

        processor.assert_awaited_once_with(job)
        assert queue.status("d-1") == JobStatus.COMPLETED
        assert [e.event_type for e in emitter.events] == [EventType.JOB_COMPLETED]
        assert emitter.events[0].details["duration_seconds"] >= 0
        assert emitter.events[0].repository == "acme/widgets"

    def test_exception_marks_failed(self):
        async def scenario():
            queue = DispatchQueue()
            emitter = RecordingEmitter()
            processor = AsyncMock(side_effect=RuntimeError("model unavailable"))
            pool = WorkerPool(queue, processor=processor, event_emitter=emitter)
            await queue.enqueue(_make_job())
            await pool.process_job(await queue.dequeue())
            return queue, emitter

        queue, emitter = run_async(scenario())

        record = queue.get_record("d-1")
        assert record.status == JobStatus.FAILED
        assert record.error == "model unavailable"
        assert emitter.events[0].event_type == EventType.JOB_FAILED
        assert emitter.events[0].details["error_type"] == "RuntimeError"

    def test_timeout_marks_failed(self):
        async def slow(job):
            await asyncio.sleep(10)

        async def scenario():
            queue = DispatchQueue()
            emitter = RecordingEmitter()
            pool = WorkerPool(
                queue, processor=slow, job_timeout_seconds=0.05, event_emitter=emitter
            )
            await queue.enqueue(_make_job())
            await pool.process_job(await queue.dequeue())
            return queue, emitter

        queue, emitter = run_async(scenario())

        assert queue.status("d-1") == JobStatus.FAILED
        assert queue.get_record("d-1").error == "Job processing timeout"
        assert emitter.events[0].event_type == EventType.TIMEOUT

    def test_emitter_failure_does_not_propagate(self):
        async def scenario():
            queue = DispatchQueue()
            emitter = AsyncMock(spec=EventEmitter)
            emitter.emit.side_effect = RuntimeError("sink down")
            pool = WorkerPool(queue, processor=AsyncMock(), event_emitter=emitter)
            await queue.enqueue(_make_job())
            await pool.process_job(await queue.dequeue())
            return queue

        assert run_async(scenario()).status("d-1") == JobStatus.COMPLETED

    def test_logging_processor(self):
        run_async(LoggingJobProcessor()(_make_job()))


class TestWorkerPool:
    """Running workers drain the queue."""

    def test_workers_drain_queue(self):
        processed: List[str] = []

        async def processor(job):
            processed.append(job.delivery_id)

        async def scenario():
            queue = DispatchQueue()
            pool = WorkerPool(queue, processor=processor, concurrency=2)
            await pool.start()
            assert pool.running
            for i in range(5):
                await queue.enqueue(_make_job(f"d-{i}"))
            await _wait_until(lambda: len(processed) == 5)
            await pool.stop()
            return queue, pool

        queue, pool = run_async(scenario())

        assert sorted(processed) == [f"d-{i}" for i in range(5)]
        assert all(queue.status(f"d-{i}") == JobStatus.COMPLETED for i in range(5))
        assert not pool.running

    def test_concurrency_limit(self):
        active = 0
        peak = 0
        done = 0

        async def processor(job):
            nonlocal active, peak, done
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            done += 1

        async def scenario():
            queue = DispatchQueue()
            pool = WorkerPool(queue, processor=processor, concurrency=2)
            await pool.start()
            for i in range(6):
                await queue.enqueue(_make_job(f"d-{i}"))
            await _wait_until(lambda: done == 6)
            await pool.stop()

        run_async(scenario())

        assert peak == 2

    def test_stop_waits_for_busy_worker(self):
        finished: List[str] = []

        async def scenario():
            started_event = asyncio.Event()

            async def processor(job):
                started_event.set()
                await asyncio.sleep(0.05)
                finished.append(job.delivery_id)

            queue = DispatchQueue()
            pool = WorkerPool(queue, processor=processor, concurrency=1)
            await pool.start()
            await queue.enqueue(_make_job())
            await started_event.wait()
            await pool.stop(grace_seconds=1)
            return queue

        queue = run_async(scenario())

        assert finished == ["d-1"]
        assert queue.status("d-1") == JobStatus.COMPLETED

    def test_stop_cancels_overrunning_job(self):
        async def scenario():
            started_event = asyncio.Event()

            async def processor(job):
                started_event.set()
                await asyncio.sleep(10)

            queue = DispatchQueue()
            pool = WorkerPool(queue, processor=processor, concurrency=1)
            await pool.start()
            await queue.enqueue(_make_job())
            await started_event.wait()
            await pool.stop(grace_seconds=0.05)
            return queue

        queue = run_async(scenario())

        assert queue.status("d-1") == JobStatus.FAILED
        assert queue.get_record("d-1").error == "Job processing cancelled"

    def test_processor_cancellation_keeps_worker_alive(self):
        processed: List[str] = []

        async def processor(job):
            processed.append(job.delivery_id)
            if job.delivery_id == "d-1":
                raise asyncio.CancelledError()

        async def scenario():
            queue = DispatchQueue()
            emitter = RecordingEmitter()
            pool = WorkerPool(
                queue, processor=processor, concurrency=1, event_emitter=emitter
            )
            await pool.start()
            await queue.enqueue(_make_job("d-1"))
            await _wait_until(lambda: queue.status("d-1") == JobStatus.FAILED)
            await queue.enqueue(_make_job("d-2"))
            await _wait_until(lambda: queue.status("d-2") == JobStatus.COMPLETED)
            running = pool.running
            await pool.stop()
            return queue, emitter, running

        queue, emitter, running = run_async(scenario())

        assert processed == ["d-1", "d-2"]
        assert running
        assert queue.get_record("d-1").error == "Job processing cancelled"
        assert [e.event_type for e in emitter.events] == [
            EventType.JOB_FAILED,
            EventType.JOB_COMPLETED,
        ]

    def test_outcome_recording_error_keeps_worker_alive(self):
        async def scenario():
            queue = DispatchQueue()

            async def processor(job):
                # Finishing the job here makes the worker's own mark_completed fail
                if job.delivery_id == "d-1":
                    await queue.mark_completed(job.delivery_id)

            pool = WorkerPool(queue, processor=processor, concurrency=1)
            await pool.start()
            await queue.enqueue(_make_job("d-1"))
            await queue.enqueue(_make_job("d-2"))
            await _wait_until(lambda: queue.status("d-2") == JobStatus.COMPLETED)
            running = pool.running
            await pool.stop()
            return queue, running

        queue, running = run_async(scenario())

        assert running
        assert queue.status("d-1") == JobStatus.COMPLETED

    def test_running_reports_dead_worker(self):
        async def scenario():
            pool = WorkerPool(DispatchQueue(), processor=AsyncMock(), concurrency=2)
            await pool.start()
            before = pool.running
            task = pool._tasks[0]
            task.cancel()
            await _wait_until(task.done)
            after = pool.running
            await pool.stop()
            return before, after

        before, after = run_async(scenario())

        assert before
        assert not after

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            WorkerPool(DispatchQueue(), concurrency=0)
