"""GitHub webhook event classification.

This module parses a delivery's raw body into a ClassifiedEvent. Only the
fields the bot consumes are read:

- ``action``
- ``installation.id``
- ``repository.full_name`` and ``repository.clone_url``
- ``sender.login``
- the per-event text field (comment, issue or pull request body)
- the issue or pull request ``number`` and ``title``

GitHub Webhook Payload Structure (issue_comment event):
{
  "action": "created",
  "issue": {"number": 123, "title": "Issue title", "pull_request": {...}},
  "comment": {"body": "@fixodev please take a look"},
  "repository": {
    "full_name": "owner/repo",
    "clone_url": "https://github.com/owner/repo.git"
  },
  "installation": {"id": 42},
  "sender": {"login": "username"}
}

The recognized event set is configuration: keys are either a bare event
name (``issues``) or ``event.action`` (``issues.opened``).
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from hookbot.errors import MalformedPayload, MissingContext, UnsupportedEvent
from hookbot.webhook.models import (
    ClassifiedEvent,
    Installation,
    RepositoryRef,
    WebhookDelivery,
)

logger = logging.getLogger(__name__)

PING_EVENT = "ping"

# Payload path of the text scanned for mentions, per event name
TEXT_FIELDS: Dict[str, Tuple[str, str]] = {
    "issues": ("issue", "body"),
    "issue_comment": ("comment", "body"),
    "pull_request": ("pull_request", "body"),
    "pull_request_review": ("review", "body"),
    "pull_request_review_comment": ("comment", "body"),
}

PULL_REQUEST_EVENTS = frozenset(
    {"pull_request", "pull_request_review", "pull_request_review_comment"}
)


def _get_path(payload: Dict[str, Any], *keys: str) -> Any:
    """Walk nested dicts, returning None when any step is missing."""
    node: Any = payload
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


class EventClassifier:
    """Parses raw webhook deliveries into typed events.

    Attributes:
        recognized_events: Event keys this classifier accepts.
    """

    def __init__(self, recognized_events: Iterable[str]) -> None:
        self._recognized: FrozenSet[str] = frozenset(
            e.strip().lower() for e in recognized_events
        )

    @property
    def recognized_events(self) -> FrozenSet[str]:
        return self._recognized

    def is_recognized(self, event_type: str, action: Optional[str]) -> bool:
        """Check an event name and action against the recognized set."""
        if event_type in self._recognized:
            return True
        return action is not None and f"{event_type}.{action}" in self._recognized

    def classify(
        self,
        raw_body: bytes,
        event_type: Optional[str],
        delivery_id: Optional[str],
        signature_header: str = "",
        received_at: Optional[datetime] = None,
    ) -> ClassifiedEvent:
        """Classify a raw delivery.

        Args:
            raw_body: Exact request body bytes.
            event_type: X-GitHub-Event header value.
            delivery_id: X-GitHub-Delivery header value. The body is never
                consulted for the delivery id.
            signature_header: X-Hub-Signature-256 header value.
            received_at: Receipt time; defaults to now.

        Returns:
            The classified event.

        Raises:
            MalformedPayload: A required header is missing or the body is
                not a JSON object.
            UnsupportedEvent: The event is not in the recognized set.
            MissingContext: Installation or repository data is absent.
        """
        if not delivery_id or not delivery_id.strip():
            raise MalformedPayload("Missing X-GitHub-Delivery header")
        if not event_type or not event_type.strip():
            raise MalformedPayload("Missing X-GitHub-Event header")

        event_type = event_type.strip().lower()
        payload = self._parse_body(raw_body)

        delivery_fields: Dict[str, Any] = {
            "delivery_id": delivery_id.strip(),
            "event_type": event_type,
            "signature_header": signature_header or "",
            "raw_body": raw_body,
        }
        if received_at is not None:
            delivery_fields["received_at"] = received_at
        delivery = WebhookDelivery(**delivery_fields)

        if event_type == PING_EVENT:
            return ClassifiedEvent(delivery=delivery)

        action = payload.get("action")
        if not isinstance(action, str) or not action:
            action = None

        if not self.is_recognized(event_type, action):
            raise UnsupportedEvent(event_type, action)

        installation = self._extract_installation(payload)
        repository = self._extract_repository(payload)

        text = None
        text_path = TEXT_FIELDS.get(event_type)
        if text_path is not None:
            value = _get_path(payload, *text_path)
            if isinstance(value, str):
                text = value

        sender = _get_path(payload, "sender", "login")
        if not isinstance(sender, str):
            sender = ""

        number, title, is_pull_request = self._extract_subject(event_type, payload)

        event = ClassifiedEvent(
            delivery=delivery,
            action=action,
            installation=installation,
            repository=repository,
            text=text,
            sender=sender,
            number=number,
            title=title,
            is_pull_request=is_pull_request,
        )

        logger.debug(
            "Classified webhook delivery",
            extra={
                "delivery_id": delivery.delivery_id,
                "event": event.event_key,
                "repository": repository.full_name,
            },
        )
        return event

    def _parse_body(self, raw_body: bytes) -> Dict[str, Any]:
        """Parse the body as a JSON object."""
        try:
            payload = json.loads(raw_body)
        except (ValueError, TypeError, RecursionError) as e:
            raise MalformedPayload(f"Body is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedPayload(
                f"Expected a JSON object, got {type(payload).__name__}"
            )
        return payload

    def _extract_installation(self, payload: Dict[str, Any]) -> Installation:
        installation_id = _get_path(payload, "installation", "id")
        if (
            not isinstance(installation_id, int)
            or isinstance(installation_id, bool)
            or installation_id <= 0
        ):
            raise MissingContext("installation.id")
        return Installation(installation_id=installation_id)

    def _extract_repository(self, payload: Dict[str, Any]) -> RepositoryRef:
        full_name = _get_path(payload, "repository", "full_name")
        if not isinstance(full_name, str) or not full_name.strip():
            raise MissingContext("repository.full_name")

        clone_url = _get_path(payload, "repository", "clone_url")
        if not isinstance(clone_url, str) or not clone_url.strip():
            raise MissingContext("repository.clone_url")

        return RepositoryRef(full_name=full_name.strip(), clone_url=clone_url.strip())

    def _extract_subject(
        self, event_type: str, payload: Dict[str, Any]
    ) -> Tuple[Optional[int], Optional[str], bool]:
        """Extract the issue or pull request number and title.

        GitHub delivers comments on pull requests as ``issue_comment``
        events whose issue carries a ``pull_request`` key.
        """
        subject = payload.get("pull_request")
        is_pull_request = event_type in PULL_REQUEST_EVENTS
        if not isinstance(subject, dict):
            subject = payload.get("issue")
            if isinstance(subject, dict) and "pull_request" in subject:
                is_pull_request = True
        if not isinstance(subject, dict):
            return None, None, is_pull_request

        number = subject.get("number")
        if not isinstance(number, int) or isinstance(number, bool):
            number = None
        title = subject.get("title")
        if not isinstance(title, str):
            title = None
        return number, title, is_pull_request
