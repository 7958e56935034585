"""In-memory dispatch queue with delivery-id deduplication.

The queue is the one piece of state shared between concurrent webhook
requests. Enqueue and the duplicate check run under a single lock, so two
deliveries with the same id can never both be enqueued. Jobs are handed out
in FIFO order; each job's status is tracked so a supervising component can
see whether it is pending, processing, completed or failed.

Dedupe memory is bounded: once more than ``dedupe_capacity`` delivery ids
are tracked, the oldest finished jobs are forgotten. Pending and processing
jobs are never evicted.
"""

import asyncio
import dataclasses
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Optional

from hookbot.errors import InvalidJobTransition, JobNotFound
from hookbot.queue.models import (
    TERMINAL_STATUSES,
    DispatchJob,
    JobRecord,
    JobStatus,
    QueueReceipt,
)

logger = logging.getLogger(__name__)


class DispatchQueue:
    """FIFO queue of dispatch jobs keyed by delivery id.

    Example:
        >>> queue = DispatchQueue()
        >>> receipt = await queue.enqueue(job)
        >>> job = await queue.dequeue()
        >>> await queue.mark_completed(job.delivery_id)
    """

    def __init__(self, dedupe_capacity: int = 10000) -> None:
        if dedupe_capacity < 1:
            raise ValueError("dedupe_capacity must be at least 1")
        self._capacity = dedupe_capacity
        self._records: "OrderedDict[str, JobRecord]" = OrderedDict()
        self._ready: "asyncio.Queue[str]" = asyncio.Queue()
        self._lock = asyncio.Lock()

    @property
    def pending_count(self) -> int:
        """Number of jobs waiting to be dequeued."""
        return self._ready.qsize()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, delivery_id: object) -> bool:
        return delivery_id in self._records

    async def enqueue(self, job: DispatchJob) -> QueueReceipt:
        """Enqueue a job unless its delivery id is already tracked.

        Args:
            job: The job to enqueue.

        Returns:
            A receipt; ``duplicate`` is True when an existing job with the
            same delivery id was found and nothing was enqueued.
        """
        delivery_id = job.delivery_id
        async with self._lock:
            existing = self._records.get(delivery_id)
            if existing is not None:
                logger.info(
                    "Duplicate delivery, not enqueued",
                    extra={
                        "delivery_id": delivery_id,
                        "status": existing.status.value,
                    },
                )
                return self._receipt(delivery_id, existing, duplicate=True)

            self._ready.put_nowait(delivery_id)
            record = JobRecord(job=job)
            self._records[delivery_id] = record
            self._evict_finished()

        logger.info(
            "Dispatch job enqueued",
            extra={
                "delivery_id": delivery_id,
                "repository": job.repository.full_name,
                "queue_depth": self.pending_count,
            },
        )
        return self._receipt(delivery_id, record, duplicate=False)

    async def dequeue(self) -> DispatchJob:
        """Wait for the next pending job and mark it processing."""
        while True:
            delivery_id = await self._ready.get()
            record = self._records.get(delivery_id)
            # Skip ids whose record was dropped or already claimed
            if record is None or record.status != JobStatus.PENDING:
                continue
            record.status = JobStatus.PROCESSING
            record.attempts += 1
            record.updated_at = datetime.now(timezone.utc)
            return record.job

    async def mark_completed(self, delivery_id: str) -> None:
        """Record that a processing job finished successfully."""
        await self._finish(delivery_id, JobStatus.COMPLETED, error=None)

    async def mark_failed(self, delivery_id: str, error: str) -> None:
        """Record that a processing job failed.

        The job is not retried automatically; see ``retry``.
        """
        await self._finish(delivery_id, JobStatus.FAILED, error=error)

    async def retry(self, delivery_id: str) -> QueueReceipt:
        """Put a failed job back in the queue.

        Raises:
            JobNotFound: If the delivery id is not tracked.
            InvalidJobTransition: If the job has not failed.
        """
        async with self._lock:
            record = self._get_record(delivery_id)
            if record.status != JobStatus.FAILED:
                raise InvalidJobTransition(
                    delivery_id, record.status.value, JobStatus.PENDING.value
                )
            self._ready.put_nowait(delivery_id)
            record.status = JobStatus.PENDING
            record.updated_at = datetime.now(timezone.utc)
            # A retried job is live again; keep it clear of eviction
            self._records.move_to_end(delivery_id)

        logger.info(
            "Dispatch job re-queued",
            extra={"delivery_id": delivery_id, "attempts": record.attempts},
        )
        return self._receipt(delivery_id, record, duplicate=False)

    def status(self, delivery_id: str) -> Optional[JobStatus]:
        """Return the job status for a delivery id, or None if untracked."""
        record = self._records.get(delivery_id)
        return record.status if record is not None else None

    def get_record(self, delivery_id: str) -> JobRecord:
        """Return a snapshot of the tracking record for a delivery id.

        Raises:
            JobNotFound: If the delivery id is not tracked.
        """
        return dataclasses.replace(self._get_record(delivery_id))

    def counts(self) -> Dict[JobStatus, int]:
        """Count tracked jobs per status."""
        counts = {status: 0 for status in JobStatus}
        for record in self._records.values():
            counts[record.status] += 1
        return counts

    async def _finish(
        self,
        delivery_id: str,
        status: JobStatus,
        error: Optional[str],
    ) -> None:
        async with self._lock:
            record = self._get_record(delivery_id)
            if record.status != JobStatus.PROCESSING:
                raise InvalidJobTransition(
                    delivery_id, record.status.value, status.value
                )
            record.status = status
            record.error = error
            record.updated_at = datetime.now(timezone.utc)
            self._evict_finished()

    def _get_record(self, delivery_id: str) -> JobRecord:
        record = self._records.get(delivery_id)
        if record is None:
            raise JobNotFound(delivery_id)
        return record

    def _evict_finished(self) -> None:
        """Forget the oldest finished jobs while over capacity."""
        excess = len(self._records) - self._capacity
        if excess <= 0:
            return
        evictable = [
            delivery_id
            for delivery_id, record in self._records.items()
            if record.status in TERMINAL_STATUSES
        ][:excess]
        for delivery_id in evictable:
            del self._records[delivery_id]

    def _receipt(
        self, delivery_id: str, record: JobRecord, duplicate: bool
    ) -> QueueReceipt:
        return QueueReceipt(
            job_id=delivery_id,
            status=record.status,
            enqueued_at=record.job.enqueued_at,
            duplicate=duplicate,
        )
