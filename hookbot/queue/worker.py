"""Dispatch workers draining the queue.

Workers run independently of request handling: each worker suspends on
``DispatchQueue.dequeue`` until a job is available, hands the job to a
JobProcessor under a time limit, and records the outcome on the queue.
Failed jobs are not retried here; retry policy belongs to whoever supervises
the queue.

The JobProcessor is the seam to the LLM collaborator, which performs the
model call and posts results back to GitHub.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Set

from hookbot.events.emitter import EventEmitter, NullEventEmitter
from hookbot.events.models import DispatchEvent, EventType
from hookbot.queue.dispatch import DispatchQueue
from hookbot.queue.models import DispatchJob

logger = logging.getLogger(__name__)

JobProcessor = Callable[[DispatchJob], Awaitable[None]]


class LoggingJobProcessor:
    """Job processor that only logs the job.

    Used when no LLM collaborator is wired in.
    """

    async def __call__(self, job: DispatchJob) -> None:
        logger.info(
            "Dispatch job ready for LLM processing",
            extra={
                "delivery_id": job.delivery_id,
                "repository": job.repository.full_name,
                "installation_id": job.installation.installation_id,
                "template_id": job.prompt.template_id,
                "prompt_length": len(job.prompt.rendered_text),
            },
        )


class WorkerPool:
    """Pool of asyncio workers consuming a DispatchQueue.

    Attributes:
        queue: The queue to drain.
        processor: Async callable invoked once per job.
        concurrency: Number of worker tasks.
        job_timeout_seconds: Time limit for a single job.
    """

    def __init__(
        self,
        queue: DispatchQueue,
        processor: Optional[JobProcessor] = None,
        concurrency: int = 2,
        job_timeout_seconds: float = 1800,
        event_emitter: Optional[EventEmitter] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue = queue
        self.processor: JobProcessor = processor or LoggingJobProcessor()
        self.concurrency = concurrency
        self.job_timeout_seconds = job_timeout_seconds
        self.event_emitter = event_emitter or NullEventEmitter()
        self._tasks: Dict[int, "asyncio.Task[None]"] = {}
        self._busy: Set[int] = set()
        self._stopping = False

    @property
    def running(self) -> bool:
        """True while every worker task is alive and the pool is not stopping."""
        if not self._tasks or self._stopping:
            return False
        return all(not task.done() for task in self._tasks.values())

    async def start(self) -> None:
        """Start the worker tasks."""
        if self._tasks:
            return
        self._stopping = False
        for index in range(self.concurrency):
            self._tasks[index] = asyncio.create_task(
                self._run(index), name=f"dispatch-worker-{index}"
            )
        logger.info("Started %d dispatch workers", self.concurrency)

    async def stop(self, grace_seconds: Optional[float] = None) -> None:
        """Stop the workers.

        Idle workers are cancelled at once. Workers in the middle of a job
        are allowed to finish it, for up to ``grace_seconds`` (default: the
        job timeout), before they are cancelled.
        """
        if not self._tasks:
            return
        self._stopping = True
        for index, task in self._tasks.items():
            if index not in self._busy:
                task.cancel()

        tasks = list(self._tasks.values())
        grace = self.job_timeout_seconds if grace_seconds is None else grace_seconds
        _, pending = await asyncio.wait(tasks, timeout=grace)
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._tasks.clear()
        self._busy.clear()
        logger.info("Dispatch workers stopped")

    async def _run(self, index: int) -> None:
        while not self._stopping:
            job = await self.queue.dequeue()
            self._busy.add(index)
            try:
                await self.process_job(job)
            except Exception:
                logger.exception(
                    "Dispatch worker %d failed to record job outcome",
                    index,
                    extra={"delivery_id": job.delivery_id},
                )
            finally:
                self._busy.discard(index)

    def _cancel_requested(self) -> bool:
        """Whether the current worker task is being cancelled."""
        if self._stopping:
            return True
        task = asyncio.current_task()
        cancelling = getattr(task, "cancelling", None)
        return cancelling is not None and cancelling() > 0

    async def process_job(self, job: DispatchJob) -> None:
        """Run one dequeued job and record its outcome."""
        delivery_id = job.delivery_id
        repository = job.repository.full_name
        started = time.monotonic()

        try:
            await asyncio.wait_for(self.processor(job), timeout=self.job_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "Dispatch job timed out after %ss",
                self.job_timeout_seconds,
                extra={"delivery_id": delivery_id, "repository": repository},
            )
            await self.queue.mark_failed(delivery_id, "Job processing timeout")
            await self._emit(
                EventType.TIMEOUT,
                job,
                {
                    "operation": "job_processing",
                    "timeout_seconds": self.job_timeout_seconds,
                },
            )
            return
        except asyncio.CancelledError:
            await self.queue.mark_failed(delivery_id, "Job processing cancelled")
            if self._cancel_requested():
                raise
            # The processor cancelled itself; the worker keeps going
            logger.error(
                "Dispatch job cancelled by its processor",
                extra={"delivery_id": delivery_id, "repository": repository},
            )
            await self._emit(
                EventType.JOB_FAILED,
                job,
                {
                    "error_type": "CancelledError",
                    "error_message": "Job processing cancelled",
                    "duration_seconds": time.monotonic() - started,
                },
            )
            return
        except Exception as e:
            logger.exception(
                "Dispatch job failed",
                extra={"delivery_id": delivery_id, "repository": repository},
            )
            await self.queue.mark_failed(delivery_id, str(e) or type(e).__name__)
            await self._emit(
                EventType.JOB_FAILED,
                job,
                {
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                    "duration_seconds": time.monotonic() - started,
                },
            )
            return

        await self.queue.mark_completed(delivery_id)
        await self._emit(
            EventType.JOB_COMPLETED,
            job,
            {"duration_seconds": time.monotonic() - started},
        )

    async def _emit(self, event_type: EventType, job: DispatchJob, details: dict) -> None:
        details = {**details, "queue_depth": self.queue.pending_count}
        try:
            await self.event_emitter.emit(
                DispatchEvent(
                    event_type=event_type,
                    delivery_id=job.delivery_id,
                    repository=job.repository.full_name,
                    details=details,
                )
            )
        except Exception as e:
            logger.error("Failed to emit %s event: %s", event_type.value, e)
