"""GitHub webhook ingestion.

This module authenticates and interprets GitHub webhook deliveries:
- verify_signature: HMAC-SHA256 check over the raw body
- EventClassifier: raw body to typed ClassifiedEvent
- extract_command: bot mention detection with echo suppression
"""

from hookbot.webhook.classifier import EventClassifier
from hookbot.webhook.mention import extract_command, is_bot_sender, mention_token
from hookbot.webhook.models import (
    AcceptedCommand,
    BotCommand,
    ClassifiedEvent,
    Installation,
    RepositoryRef,
    SkippedCommand,
    WebhookDelivery,
)
from hookbot.webhook.signature import compute_signature, verify_signature

__all__ = [
    "AcceptedCommand",
    "BotCommand",
    "ClassifiedEvent",
    "EventClassifier",
    "Installation",
    "RepositoryRef",
    "SkippedCommand",
    "WebhookDelivery",
    "compute_signature",
    "extract_command",
    "is_bot_sender",
    "mention_token",
    "verify_signature",
]
