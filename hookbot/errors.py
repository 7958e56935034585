"""Exception hierarchy for webhook ingestion and dispatch.

Every failure that can end a webhook request maps onto one of the
``WebhookError`` subclasses below. The receiver converts them into HTTP
responses using ``status_code`` and a fixed ``public_message``; the
exception text itself is only ever logged.
"""

from typing import List, Optional


class WebhookError(Exception):
    """Base exception for all failures that reject a webhook delivery.

    Attributes:
        reason: Stable machine-readable rejection reason.
        status_code: HTTP status code returned to the sender.
        public_message: Message safe to include in the response body.
    """

    reason: str = "internal_failure"
    status_code: int = 500
    public_message: str = "Internal Server Error"


class SignatureInvalid(WebhookError):
    """The delivery signature is missing, malformed or does not match."""

    reason = "signature_invalid"
    status_code = 401
    public_message = "Invalid webhook signature"


class ClassificationError(WebhookError):
    """Base for payloads that cannot be turned into a typed event."""

    reason = "classification_error"
    status_code = 400
    public_message = "Invalid webhook payload"


class MalformedPayload(ClassificationError):
    """The body is not a JSON object or a required header is missing."""

    reason = "malformed_payload"
    public_message = "Malformed webhook payload"


class UnsupportedEvent(ClassificationError):
    """The event (or event action) is not in the recognized set."""

    reason = "unsupported_event"
    public_message = "Unsupported webhook event"

    def __init__(self, event: str, action: Optional[str] = None):
        self.event = event
        self.action = action
        key = f"{event}.{action}" if action else event
        super().__init__(f"Unsupported event: {key}")


class MissingContext(ClassificationError):
    """A payload path required for the event type is absent."""

    reason = "missing_context"
    public_message = "Webhook payload is missing required context"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required payload field: {field}")


class InternalFailure(WebhookError):
    """Unexpected failure while processing an authenticated delivery."""

    reason = "internal_failure"
    status_code = 500
    public_message = "Internal Server Error"


class TemplateError(Exception):
    """Base for prompt template failures."""


class UnknownTemplate(TemplateError):
    """No template is registered under the requested id."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Unknown prompt template: {template_id}")


class MissingTemplateValue(TemplateError):
    """Strict rendering found placeholders without a supplied value."""

    def __init__(self, names: List[str]):
        self.names = names
        super().__init__(
            "Missing values for template placeholders: " + ", ".join(names)
        )


class QueueError(Exception):
    """Base for dispatch queue misuse."""


class JobNotFound(QueueError):
    """No job is tracked for the given delivery id."""

    def __init__(self, delivery_id: str):
        self.delivery_id = delivery_id
        super().__init__(f"No dispatch job for delivery: {delivery_id}")


class InvalidJobTransition(QueueError):
    """A job status change that the queue does not allow."""

    def __init__(self, delivery_id: str, from_status: str, to_status: str):
        self.delivery_id = delivery_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid job status change for {delivery_id}: "
            f"{from_status} -> {to_status}"
        )
