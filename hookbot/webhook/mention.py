"""Bot mention detection and command extraction.

A delivery is processed only when its text mentions the bot (``@{bot_name}``,
matched case-insensitively) and it was not authored by the bot itself.
Events authored by the bot are always skipped, mention or not.
"""

import logging
from typing import Any, Optional

from hookbot.webhook.models import AcceptedCommand, BotCommand, SkippedCommand

logger = logging.getLogger(__name__)


def mention_token(bot_name: str) -> str:
    """Return the lower-cased ``@handle`` token for a bot name."""
    return f"@{bot_name}".lower()


def is_bot_sender(sender: Any, bot_name: str) -> bool:
    """Check whether the sender is the bot itself.

    GitHub reports App-authored activity as ``{bot_name}[bot]``; a user
    account named after the bot is treated the same way.
    """
    if not isinstance(sender, str) or not sender:
        return False
    if not isinstance(bot_name, str) or not bot_name:
        return False
    login = sender.lower()
    name = bot_name.lower()
    return login == name or login == f"{name}[bot]"


def extract_command(
    text: Optional[str],
    sender: Optional[str],
    bot_name: str,
    delivery_id: Optional[str] = None,
) -> BotCommand:
    """Extract a bot command from event text.

    Never raises, whatever the input.

    Args:
        text: The event's text field (may be absent).
        sender: Login of the event author.
        bot_name: The bot handle, without the leading "@".
        delivery_id: Optional id of the delivery the text came from.

    Returns:
        AcceptedCommand carrying the full text when a valid mention was
        found, SkippedCommand otherwise.
    """
    sender_login = sender if isinstance(sender, str) else ""

    if not isinstance(text, str) or not text.strip():
        return SkippedCommand(
            reason="empty_text",
            sender=sender_login,
            source_delivery_id=delivery_id,
        )

    if is_bot_sender(sender_login, bot_name):
        logger.debug(
            "Skipping text authored by the bot itself",
            extra={"sender": sender_login, "delivery_id": delivery_id},
        )
        return SkippedCommand(
            reason="self_mention",
            sender=sender_login,
            source_delivery_id=delivery_id,
        )

    if not isinstance(bot_name, str) or not bot_name:
        return SkippedCommand(
            reason="no_mention",
            sender=sender_login,
            source_delivery_id=delivery_id,
        )

    if mention_token(bot_name) not in text.lower():
        return SkippedCommand(
            reason="no_mention",
            sender=sender_login,
            source_delivery_id=delivery_id,
        )

    return AcceptedCommand(
        command_text=text,
        sender=sender_login,
        source_delivery_id=delivery_id,
    )
