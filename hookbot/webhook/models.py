"""GitHub webhook delivery and event models.

This module defines the data models produced while ingesting a webhook:
- WebhookDelivery: The raw, authenticated-or-not HTTP notification
- Installation / RepositoryRef: Reference data extracted from the payload
- ClassifiedEvent: A delivery parsed into a typed, recognized event
- BotCommand: The closed two-variant result of mention extraction

The models use Pydantic for validation, consistent with the configuration
approach in config.py. All of them are immutable once created.
"""

from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class WebhookDelivery(BaseModel):
    """One HTTP notification sent by GitHub for one event occurrence.

    Used only for verification and idempotency; it is discarded after the
    delivery is acknowledged.

    Attributes:
        delivery_id: Value of the X-GitHub-Delivery header.
        event_type: Value of the X-GitHub-Event header.
        signature_header: Value of the X-Hub-Signature-256 header.
        raw_body: Exact request bytes, as signed by GitHub.
        received_at: When the delivery was received (UTC).
    """

    model_config = ConfigDict(frozen=True)

    delivery_id: str = Field(
        ...,
        min_length=1,
        description="Unique delivery identifier from the X-GitHub-Delivery header",
    )

    event_type: str = Field(
        ...,
        min_length=1,
        description="Event name from the X-GitHub-Event header",
    )

    signature_header: str = Field(
        default="",
        description="Raw X-Hub-Signature-256 header value",
    )

    raw_body: bytes = Field(
        default=b"",
        repr=False,
        description="Exact request body bytes",
    )

    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the delivery was received (UTC timezone)",
    )


class Installation(BaseModel):
    """GitHub App installation that owns the event."""

    model_config = ConfigDict(frozen=True)

    installation_id: int = Field(
        ...,
        gt=0,
        description="GitHub App installation id",
    )


class RepositoryRef(BaseModel):
    """Target repository of the event."""

    model_config = ConfigDict(frozen=True)

    full_name: str = Field(
        ...,
        min_length=1,
        description='Repository path in format "{owner}/{repo}"',
    )

    clone_url: str = Field(
        ...,
        min_length=1,
        description="HTTPS clone URL of the repository",
    )


class ClassifiedEvent(BaseModel):
    """A webhook delivery parsed into a recognized, typed event.

    ``installation`` and ``repository`` are always present for events that
    produce work; they are only absent for ``ping`` deliveries.

    Attributes:
        delivery: The originating delivery.
        action: Payload ``action`` field, if any.
        installation: Installation owning the event.
        repository: Target repository.
        text: The event's text field (comment, issue or PR body).
        sender: Login of the account that triggered the event.
        number: Issue or pull request number.
        title: Issue or pull request title.
        is_pull_request: Whether the event concerns a pull request.
    """

    model_config = ConfigDict(frozen=True)

    delivery: WebhookDelivery

    action: Optional[str] = None

    installation: Optional[Installation] = None

    repository: Optional[RepositoryRef] = None

    text: Optional[str] = None

    sender: str = ""

    number: Optional[int] = None

    title: Optional[str] = None

    is_pull_request: bool = False

    @property
    def event_type(self) -> str:
        return self.delivery.event_type

    @property
    def event_key(self) -> str:
        """Return the ``event.action`` key (or bare event name)."""
        if self.action:
            return f"{self.event_type}.{self.action}"
        return self.event_type

    @property
    def is_ping(self) -> bool:
        return self.event_type == "ping"


class AcceptedCommand(BaseModel):
    """A validated bot mention carrying the command to process.

    ``command_text`` is the full text the mention was found in, with its
    original casing; consumers strip the mention token themselves if they
    need only the remainder.
    """

    model_config = ConfigDict(frozen=True)

    should_process: Literal[True] = True

    command_text: str = Field(..., min_length=1)

    sender: str = ""

    source_delivery_id: Optional[str] = None


class SkippedCommand(BaseModel):
    """Mention extraction found nothing to process.

    Attributes:
        reason: Why the text was skipped: ``empty_text``, ``no_mention``
            or ``self_mention``.
    """

    model_config = ConfigDict(frozen=True)

    should_process: Literal[False] = False

    reason: str = "no_mention"

    sender: str = ""

    source_delivery_id: Optional[str] = None


BotCommand = Union[AcceptedCommand, SkippedCommand]
