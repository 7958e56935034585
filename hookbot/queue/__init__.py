"""Dispatch queue and workers.

- DispatchQueue: FIFO job queue deduplicated by delivery id
- WorkerPool: asyncio workers that drain the queue
- DispatchJob / QueueReceipt / JobStatus: queue data models
"""

from hookbot.queue.dispatch import DispatchQueue
from hookbot.queue.models import (
    TERMINAL_STATUSES,
    DispatchJob,
    JobRecord,
    JobStatus,
    QueueReceipt,
)
from hookbot.queue.worker import JobProcessor, LoggingJobProcessor, WorkerPool

__all__ = [
    "DispatchQueue",
    "DispatchJob",
    "JobRecord",
    "JobStatus",
    "QueueReceipt",
    "TERMINAL_STATUSES",
    "JobProcessor",
    "LoggingJobProcessor",
    "WorkerPool",
]
