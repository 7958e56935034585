"""Webhook receiver: one delivery in, one HTTP answer out.

The receiver runs the ingestion steps in a fixed order and tracks the
delivery with a DeliveryStateMachine:

1. verify the signature over the exact raw body
2. classify the event
3. extract the bot command from the event text
4. render the prompt
5. enqueue the dispatch job

Nothing from an unauthenticated body reaches classification. Every
rejection answers with a fixed public message; the exception text is only
logged. Deliveries that produce no work (``ping``, no mention, duplicate
delivery id) are acknowledged with 200 so GitHub does not redeliver them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from hookbot.config import BotSettings
from hookbot.errors import InternalFailure, SignatureInvalid, WebhookError
from hookbot.events.emitter import EventEmitter, NullEventEmitter
from hookbot.events.models import DispatchEvent, EventType
from hookbot.prompts.catalog import (
    ISSUE_MENTION_TEMPLATE,
    PULL_REQUEST_MENTION_TEMPLATE,
    TemplateCatalog,
)
from hookbot.queue.dispatch import DispatchQueue
from hookbot.queue.models import DispatchJob, QueueReceipt
from hookbot.state.machine import DeliveryStateMachine
from hookbot.state.models import ReceiverStage, RejectionReason, StageTransition
from hookbot.webhook.classifier import EventClassifier
from hookbot.webhook.mention import extract_command
from hookbot.webhook.models import AcceptedCommand, ClassifiedEvent
from hookbot.webhook.signature import verify_signature

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-hub-signature-256"
EVENT_HEADER = "x-github-event"
DELIVERY_HEADER = "x-github-delivery"


@dataclass
class ReceiverResult:
    """Outcome of handling one delivery.

    Attributes:
        status_code: HTTP status code to answer with.
        body: JSON response body.
        stage: Final receiver stage (acknowledged or rejected).
        rejection_reason: Why the delivery was rejected, if it was.
        receipt: Queue receipt, when the delivery reached the queue.
    """

    status_code: int
    body: Dict[str, Any]
    stage: ReceiverStage
    rejection_reason: Optional[RejectionReason] = None
    receipt: Optional[QueueReceipt] = None

    @property
    def processed(self) -> bool:
        return bool(self.body.get("processed"))


class WebhookReceiver:
    """Turns raw webhook requests into dispatch jobs.

    Attributes:
        bot_name: Handle the bot is mentioned by.
        classifier: Event classifier for the recognized event set.
        catalog: Prompt template catalog.
        queue: Dispatch queue shared by all requests.
    """

    def __init__(
        self,
        secret: str,
        bot_name: str,
        classifier: EventClassifier,
        catalog: TemplateCatalog,
        queue: DispatchQueue,
        event_emitter: Optional[EventEmitter] = None,
    ) -> None:
        self._secret = secret
        self.bot_name = bot_name
        self.classifier = classifier
        self.catalog = catalog
        self.queue = queue
        self.event_emitter = event_emitter or NullEventEmitter()

    @classmethod
    def from_settings(
        cls,
        settings: BotSettings,
        queue: DispatchQueue,
        event_emitter: Optional[EventEmitter] = None,
    ) -> "WebhookReceiver":
        """Build a receiver and its classifier and catalog from settings."""
        if settings.templates_dir:
            catalog = TemplateCatalog.from_directory(
                settings.templates_dir, strict=settings.strict_templates
            )
        else:
            catalog = TemplateCatalog(strict=settings.strict_templates)

        return cls(
            secret=settings.github_webhook_secret,
            bot_name=settings.bot_name,
            classifier=EventClassifier(settings.recognized_events),
            catalog=catalog,
            queue=queue,
            event_emitter=event_emitter,
        )

    async def handle(
        self, raw_body: bytes, headers: Mapping[str, str]
    ) -> ReceiverResult:
        """Handle one webhook delivery.

        Args:
            raw_body: Exact request body bytes.
            headers: Request headers; names are matched case-insensitively.

        Returns:
            The response to send. Never raises for bad input: signature,
            payload and internal failures are all turned into results.
        """
        normalized = {key.lower(): value for key, value in headers.items()}
        delivery_id = (normalized.get(DELIVERY_HEADER) or "").strip()
        machine = DeliveryStateMachine(delivery_id)

        try:
            return await self._process(machine, raw_body, normalized)
        except WebhookError as e:
            logger.warning(
                "Rejected webhook delivery: %s",
                e,
                extra={"delivery_id": delivery_id, "reason": e.reason},
            )
            return await self._reject(machine, e)
        except Exception as e:
            logger.exception(
                "Unexpected error handling webhook delivery",
                extra={"delivery_id": delivery_id},
            )
            return await self._reject(machine, InternalFailure(str(e)))

    async def _process(
        self,
        machine: DeliveryStateMachine,
        raw_body: bytes,
        headers: Dict[str, str],
    ) -> ReceiverResult:
        delivery_id = machine.delivery_id
        signature = headers.get(SIGNATURE_HEADER, "")

        if not verify_signature(raw_body, signature, self._secret):
            raise SignatureInvalid("Webhook signature verification failed")
        await self._transition(machine, ReceiverStage.VERIFIED)

        event = self.classifier.classify(
            raw_body,
            event_type=headers.get(EVENT_HEADER),
            delivery_id=delivery_id,
            signature_header=signature,
        )
        repository = event.repository.full_name if event.repository else ""
        await self._transition(
            machine,
            ReceiverStage.CLASSIFIED,
            repository=repository,
            event=event.event_type,
            action=event.action,
        )

        if event.is_ping:
            logger.info("Received ping", extra={"delivery_id": delivery_id})
            return await self._acknowledge(machine, processed=False)

        command = extract_command(event.text, event.sender, self.bot_name, delivery_id)
        await self._transition(
            machine,
            ReceiverStage.EXTRACTED,
            repository=repository,
            should_process=command.should_process,
        )

        if not isinstance(command, AcceptedCommand):
            logger.info(
                "No actionable mention, skipping",
                extra={
                    "delivery_id": delivery_id,
                    "repository": repository,
                    "skip_reason": command.reason,
                },
            )
            return await self._acknowledge(machine, processed=False)

        job = self._build_job(event, command)
        await self._transition(
            machine,
            ReceiverStage.RENDERED,
            repository=repository,
            template_id=job.prompt.template_id,
        )

        receipt = await self.queue.enqueue(job)
        if receipt.duplicate:
            await self._emit(
                EventType.DUPLICATE,
                delivery_id,
                repository,
                {"status": receipt.status.value},
            )
            return await self._acknowledge(machine, processed=False, receipt=receipt)

        await self._transition(machine, ReceiverStage.ENQUEUED, repository=repository)
        await self._emit(
            EventType.ENQUEUED,
            delivery_id,
            repository,
            {
                "event": job.event,
                "template_id": job.prompt.template_id,
                "queue_depth": self.queue.pending_count,
            },
        )
        return await self._acknowledge(machine, processed=True, receipt=receipt)

    def _build_job(
        self, event: ClassifiedEvent, command: AcceptedCommand
    ) -> DispatchJob:
        """Render the prompt for a command and wrap it in a DispatchJob."""
        if event.installation is None or event.repository is None:
            raise InternalFailure(
                "Classified event is missing installation or repository"
            )

        template_id = (
            PULL_REQUEST_MENTION_TEMPLATE
            if event.is_pull_request
            else ISSUE_MENTION_TEMPLATE
        )
        prompt = self.catalog.render(
            template_id,
            {
                "bot_name": self.bot_name,
                "command": command.command_text,
                "sender": command.sender,
                "repository": event.repository.full_name,
                "clone_url": event.repository.clone_url,
                "event": event.event_type,
                "action": event.action,
                "number": event.number,
                "title": event.title,
            },
        )
        return DispatchJob(
            delivery=event.delivery,
            installation=event.installation,
            repository=event.repository,
            command=command,
            prompt=prompt,
            event=event.event_key,
            number=event.number,
            is_pull_request=event.is_pull_request,
        )

    async def _acknowledge(
        self,
        machine: DeliveryStateMachine,
        processed: bool,
        receipt: Optional[QueueReceipt] = None,
    ) -> ReceiverResult:
        await self._transition(machine, ReceiverStage.ACKNOWLEDGED, processed=processed)
        body: Dict[str, Any] = {
            "success": True,
            "processed": processed,
            "delivery_id": machine.delivery_id,
        }
        if receipt is not None:
            body["job_id"] = receipt.job_id
        return ReceiverResult(
            status_code=200,
            body=body,
            stage=machine.stage,
            receipt=receipt,
        )

    async def _reject(
        self, machine: DeliveryStateMachine, error: WebhookError
    ) -> ReceiverResult:
        reason = RejectionReason(error.reason)
        if not machine.is_finished:
            machine.reject(reason)
        await self._emit(
            EventType.REJECTED,
            machine.delivery_id,
            "",
            {"reason": reason.value, "status_code": error.status_code},
        )
        return ReceiverResult(
            status_code=error.status_code,
            body={"success": False, "error": error.public_message},
            stage=ReceiverStage.REJECTED,
            rejection_reason=reason,
        )

    async def _transition(
        self,
        machine: DeliveryStateMachine,
        to_stage: ReceiverStage,
        repository: str = "",
        **details: Any,
    ) -> StageTransition:
        record = machine.transition(to_stage, **details)
        await self._emit(
            EventType.STATE_TRANSITION,
            machine.delivery_id,
            repository,
            {
                "from_stage": record.from_stage.value,
                "to_stage": record.to_stage.value,
                **details,
            },
        )
        return record

    async def _emit(
        self,
        event_type: EventType,
        delivery_id: str,
        repository: str,
        details: Dict[str, Any],
    ) -> None:
        try:
            await self.event_emitter.emit(
                DispatchEvent(
                    event_type=event_type,
                    delivery_id=delivery_id,
                    repository=repository,
                    details=details,
                )
            )
        except Exception as e:
            logger.error("Failed to emit %s event: %s", event_type.value, e)
