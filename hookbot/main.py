"""FastAPI application entry point for hookbot.

The app receives GitHub webhooks, turns mentions of the bot into dispatch
jobs and runs a pool of workers that hand those jobs to the LLM
collaborator. Use the ``create_app`` factory:

    uvicorn hookbot.main:create_app --factory
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from hookbot.config import BotSettings, get_settings
from hookbot.events.emitter import create_event_emitter
from hookbot.events.metrics import generate_metrics_output
from hookbot.queue.dispatch import DispatchQueue
from hookbot.queue.worker import JobProcessor, WorkerPool
from hookbot.receiver import WebhookReceiver

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: BotSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("hookbot configuration:")
    logger.info(f"  Bot Name: {settings.bot_name}")
    logger.info(
        f"  GitHub Webhook Secret: {_redact_secret(settings.github_webhook_secret)}"
    )
    logger.info(f"  Webhook Path: {settings.webhook_path}")
    logger.info(f"  Recognized Events: {', '.join(settings.recognized_events)}")
    logger.info(f"  Templates Dir: {settings.templates_dir or '(built-in)'}")
    logger.info(f"  Strict Templates: {settings.strict_templates}")
    logger.info(f"  Worker Concurrency: {settings.worker_concurrency}")
    logger.info(f"  Job Timeout Seconds: {settings.job_timeout_seconds}")
    logger.info(f"  Shutdown Grace Seconds: {settings.shutdown_grace_seconds}")
    logger.info(f"  Dedupe Capacity: {settings.dedupe_capacity}")
    logger.info(f"  Event Sinks: {', '.join(settings.event_sinks)}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def create_app(
    settings: Optional[BotSettings] = None,
    processor: Optional[JobProcessor] = None,
    registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Bot settings. Loaded from the environment when None.
        processor: Job processor for the workers. Defaults to one that only
            logs each job.
        registry: Prometheus registry. Defaults to the global registry.

    Returns:
        The configured application. The queue, receiver and workers are
        created when the application starts.
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.log_level)

    event_emitter = create_event_emitter(settings.event_sinks, registry=registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Wire the queue, receiver and workers; stop workers on shutdown."""
        logger.info("hookbot starting up...")
        _log_configuration(settings)

        queue = DispatchQueue(dedupe_capacity=settings.dedupe_capacity)
        receiver = WebhookReceiver.from_settings(
            settings, queue=queue, event_emitter=event_emitter
        )
        workers = WorkerPool(
            queue,
            processor=processor,
            concurrency=settings.worker_concurrency,
            job_timeout_seconds=settings.job_timeout_seconds,
            event_emitter=event_emitter,
        )

        app.state.queue = queue
        app.state.receiver = receiver
        app.state.workers = workers

        await workers.start()
        logger.info("hookbot started successfully")

        try:
            yield
        finally:
            logger.info("hookbot shutting down...")
            await workers.stop(grace_seconds=settings.shutdown_grace_seconds)
            await event_emitter.close()
            logger.info("hookbot shutdown complete")

    app = FastAPI(
        title="hookbot",
        description="GitHub App webhook ingestion and LLM dispatch",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    async def receive_webhook(request: Request) -> JSONResponse:
        """GitHub webhook receiver endpoint.

        The body is read as raw bytes, since the signature covers the exact
        bytes GitHub sent.
        """
        receiver: WebhookReceiver = request.app.state.receiver
        raw_body = await request.body()
        # Finish handling even if the client disconnects mid-request
        result = await asyncio.shield(receiver.handle(raw_body, request.headers))
        return JSONResponse(status_code=result.status_code, content=result.body)

    app.add_api_route(
        settings.webhook_path,
        receive_webhook,
        methods=["POST"],
        name="github_webhook",
    )

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request):
        """Readiness probe endpoint.

        Ready once the dispatch workers are running.
        """
        workers: Optional[WorkerPool] = getattr(request.app.state, "workers", None)
        queue: Optional[DispatchQueue] = getattr(request.app.state, "queue", None)
        workers_running = workers is not None and workers.running

        content = {
            "status": "ready" if workers_running else "not_ready",
            "dependencies": {
                "workers": "running" if workers_running else "stopped",
            },
            "queue_depth": queue.pending_count if queue is not None else 0,
        }
        return JSONResponse(
            status_code=200 if workers_running else 503,
            content=content,
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_metrics_output(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "hookbot.main:create_app",
        factory=True,
        host=dev_settings.host,
        port=dev_settings.port,
    )
