"""Tests for BotSettings loaded from the environment."""

import pytest
from pydantic import ValidationError

from hookbot.config import DEFAULT_RECOGNIZED_EVENTS, BotSettings, get_settings


class TestBotSettingsDefaults:
    """Defaults and required values."""

    def test_defaults(self, webhook_env):
        settings = get_settings()

        assert settings.github_webhook_secret == "test-secret"
        assert settings.bot_name == "reviewbot"
        assert settings.webhook_path == "/api/webhooks/github"
        assert settings.recognized_events == DEFAULT_RECOGNIZED_EVENTS
        assert settings.worker_concurrency == 2
        assert settings.job_timeout_seconds == 1800
        assert settings.shutdown_grace_seconds == 30
        assert settings.dedupe_capacity == 10000
        assert settings.event_sinks == ["logging", "metrics"]
        assert settings.strict_templates is False
        assert settings.log_level == "INFO"
        assert settings.port == 8080

    def test_secret_is_required(self):
        with pytest.raises(ValidationError):
            BotSettings()

    def test_blank_secret_rejected(self, monkeypatch):
        monkeypatch.setenv("HOOKBOT_GITHUB_WEBHOOK_SECRET", "   ")
        with pytest.raises(ValidationError):
            BotSettings()


class TestBotSettingsFromEnv:
    """Values read from HOOKBOT_ variables."""

    def test_list_values_from_json(self, webhook_env, monkeypatch):
        monkeypatch.setenv("HOOKBOT_RECOGNIZED_EVENTS", '["Issues", "ping.created"]')
        monkeypatch.setenv("HOOKBOT_EVENT_SINKS", '["logging"]')

        settings = BotSettings()

        assert settings.recognized_events == ["issues", "ping.created"]
        assert settings.event_sinks == ["logging"]

    def test_integers_and_flags(self, webhook_env, monkeypatch):
        monkeypatch.setenv("HOOKBOT_WORKER_CONCURRENCY", "4")
        monkeypatch.setenv("HOOKBOT_JOB_TIMEOUT_SECONDS", "60")
        monkeypatch.setenv("HOOKBOT_SHUTDOWN_GRACE_SECONDS", "0")
        monkeypatch.setenv("HOOKBOT_STRICT_TEMPLATES", "true")
        monkeypatch.setenv("HOOKBOT_LOG_LEVEL", "debug")

        settings = BotSettings()

        assert settings.worker_concurrency == 4
        assert settings.job_timeout_seconds == 60
        assert settings.shutdown_grace_seconds == 0
        assert settings.strict_templates is True
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("@ReviewBot", "ReviewBot"),
            ("  fixodev ", "fixodev"),
            ("my bot!", "my-bot-"),
        ],
    )
    def test_bot_name_is_normalized(self, webhook_env, monkeypatch, raw, expected):
        monkeypatch.setenv("HOOKBOT_BOT_NAME", raw)
        assert BotSettings().bot_name == expected

    @pytest.mark.parametrize(
        "name, value",
        [
            ("HOOKBOT_BOT_NAME", "@"),
            ("HOOKBOT_WEBHOOK_PATH", "api/webhooks"),
            ("HOOKBOT_RECOGNIZED_EVENTS", "[]"),
            ("HOOKBOT_EVENT_SINKS", '["kafka"]'),
            ("HOOKBOT_LOG_LEVEL", "LOUD"),
            ("HOOKBOT_WORKER_CONCURRENCY", "0"),
            ("HOOKBOT_JOB_TIMEOUT_SECONDS", "0"),
            ("HOOKBOT_SHUTDOWN_GRACE_SECONDS", "-1"),
            ("HOOKBOT_DEDUPE_CAPACITY", "0"),
            ("HOOKBOT_PORT", "70000"),
        ],
    )
    def test_invalid_values(self, webhook_env, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            BotSettings()

    def test_constructor_arguments_override_env(self, webhook_env):
        settings = BotSettings(bot_name="other", worker_concurrency=1)
        assert settings.bot_name == "other"
        assert settings.worker_concurrency == 1
