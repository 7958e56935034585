"""Bot configuration using pydantic-settings.

This module defines the BotSettings class that reads configuration from
environment variables with the HOOKBOT_ prefix. Settings are built once at
process start (see ``get_settings``) and passed explicitly into each
component; no component reads configuration at import time.

Configuration consumed by the ingestion pipeline:
- Bot handle used for mention matching and echo suppression
- Webhook shared secret for signature verification
- Recognized event set (``event`` or ``event.action`` keys)
- Prompt template catalog location and rendering mode
- Dispatch worker pool sizing and timeouts
"""

import re
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_RECOGNIZED_EVENTS = [
    "issues.opened",
    "issue_comment.created",
    "pull_request.opened",
    "pull_request_review_comment.created",
]

SUPPORTED_EVENT_SINKS = ("logging", "metrics")

_BOT_NAME_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


class BotSettings(BaseSettings):
    """Bot configuration from environment variables.

    All environment variables are prefixed with HOOKBOT_ (e.g.,
    HOOKBOT_GITHUB_WEBHOOK_SECRET). List values are given as JSON arrays.

    Required fields (must be set via environment variables):
    - github_webhook_secret: Shared secret GitHub signs deliveries with
    """

    model_config = SettingsConfigDict(
        env_prefix="HOOKBOT_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_webhook_secret: str

    # Handle the bot is mentioned by, without the leading "@"
    bot_name: str = "fixodev"

    # Path of the webhook route
    webhook_path: str = "/api/webhooks/github"

    # Deliveries outside this set are rejected as unsupported
    recognized_events: List[str] = list(DEFAULT_RECOGNIZED_EVENTS)

    # -------------------------------------------------------------------------
    # Prompt Templates
    # -------------------------------------------------------------------------
    # Directory of *.md templates; file stem is the template id
    templates_dir: Optional[str] = None

    # Fail rendering when a placeholder has no value
    strict_templates: bool = False

    # -------------------------------------------------------------------------
    # Dispatch Configuration
    # -------------------------------------------------------------------------
    worker_concurrency: int = 2

    job_timeout_seconds: int = 1800

    # How long shutdown waits for in-flight jobs before cancelling them
    shutdown_grace_seconds: int = 30

    # Number of delivery ids remembered for duplicate suppression
    dedupe_capacity: int = 10000

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------
    event_sinks: List[str] = ["logging", "metrics"]

    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v: str) -> str:
        """Validate that webhook secret is not empty."""
        if not v or not v.strip():
            raise ValueError("github_webhook_secret cannot be empty")
        return v

    @field_validator("bot_name")
    @classmethod
    def validate_bot_name(cls, v: str) -> str:
        """Normalize the bot handle to characters GitHub logins allow."""
        v = v.strip().lstrip("@")
        if not v:
            raise ValueError("bot_name cannot be empty")
        return _BOT_NAME_INVALID_CHARS.sub("-", v)

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        """Validate that the webhook path is absolute."""
        if not v.startswith("/"):
            raise ValueError("webhook_path must start with '/'")
        return v

    @field_validator("recognized_events")
    @classmethod
    def validate_recognized_events(cls, v: List[str]) -> List[str]:
        """Normalize event keys and reject an empty set."""
        events = [e.strip().lower() for e in v if e and e.strip()]
        if not events:
            raise ValueError("recognized_events cannot be empty")
        return events

    @field_validator("event_sinks")
    @classmethod
    def validate_event_sinks(cls, v: List[str]) -> List[str]:
        """Validate that every sink is supported."""
        sinks = [s.strip().lower() for s in v]
        unknown = [s for s in sinks if s not in SUPPORTED_EVENT_SINKS]
        if unknown:
            raise ValueError(f"unsupported event sinks: {', '.join(unknown)}")
        return sinks

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level name."""
        level = v.strip().upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"invalid log_level: {v}")
        return level

    @field_validator("worker_concurrency")
    @classmethod
    def validate_worker_concurrency(cls, v: int) -> int:
        """Validate that at least one worker runs."""
        if v < 1:
            raise ValueError("worker_concurrency must be at least 1")
        return v

    @field_validator("job_timeout_seconds")
    @classmethod
    def validate_job_timeout(cls, v: int) -> int:
        """Validate that job timeout is positive."""
        if v < 1:
            raise ValueError("job_timeout_seconds must be at least 1")
        return v

    @field_validator("shutdown_grace_seconds")
    @classmethod
    def validate_shutdown_grace(cls, v: int) -> int:
        """Validate that shutdown grace is not negative."""
        if v < 0:
            raise ValueError("shutdown_grace_seconds must not be negative")
        return v

    @field_validator("dedupe_capacity")
    @classmethod
    def validate_dedupe_capacity(cls, v: int) -> int:
        """Validate that at least one delivery id is remembered."""
        if v < 1:
            raise ValueError("dedupe_capacity must be at least 1")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v


def get_settings() -> BotSettings:
    """Create and return a BotSettings instance.

    Returns:
        BotSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return BotSettings()
