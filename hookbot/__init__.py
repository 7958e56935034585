"""GitHub App mention bot: webhook ingestion and command dispatch.

This package implements the ingestion side of the bot, providing:
- Webhook signature verification and event classification
- Bot mention detection and command extraction
- Prompt template rendering
- An in-memory dispatch queue drained by asynchronous workers
- Event emission and Prometheus metrics for observability
"""
