"""Dispatch queue models.

- JobStatus: Lifecycle of a dispatch job
- DispatchJob: The fully-resolved unit of work handed to workers
- QueueReceipt: What enqueue returns to the webhook receiver
- JobRecord: Queue-side tracking of one job
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hookbot.prompts.models import PromptRequest
from hookbot.webhook.models import (
    AcceptedCommand,
    Installation,
    RepositoryRef,
    WebhookDelivery,
)


class JobStatus(str, Enum):
    """Lifecycle of a dispatch job.

    Status Flow:
        pending → processing → completed | failed

    A failed job returns to pending only through an explicit retry by a
    supervising component.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class DispatchJob(BaseModel):
    """The unit of work handed from ingestion to asynchronous processing.

    ``command`` is always an AcceptedCommand: jobs are never created for
    deliveries without a valid mention.

    Attributes:
        delivery: The originating webhook delivery.
        installation: Installation owning the event.
        repository: Target repository.
        command: The extracted bot command.
        prompt: The rendered LLM prompt.
        event: ``event.action`` key of the originating event.
        number: Issue or pull request number, if any.
        is_pull_request: Whether the command targets a pull request.
        enqueued_at: When the job was created (UTC).
    """

    model_config = ConfigDict(frozen=True)

    delivery: WebhookDelivery

    installation: Installation

    repository: RepositoryRef

    command: AcceptedCommand

    prompt: PromptRequest

    event: str = ""

    number: Optional[int] = None

    is_pull_request: bool = False

    enqueued_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def delivery_id(self) -> str:
        return self.delivery.delivery_id


class QueueReceipt(BaseModel):
    """Acknowledgement of an enqueue call.

    Attributes:
        job_id: Identifier of the tracked job (the delivery id).
        status: Job status when the receipt was issued.
        enqueued_at: When the tracked job was first enqueued.
        duplicate: True when the delivery id was already known and
            nothing new was enqueued.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str

    status: JobStatus

    enqueued_at: datetime

    duplicate: bool = False


@dataclass
class JobRecord:
    """Queue-side tracking state of one job."""

    job: DispatchJob
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    error: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
