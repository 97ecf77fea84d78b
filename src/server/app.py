"""FastAPI application receiving LINE webhooks."""

from __future__ import annotations

import json
import logging
from collections import Counter

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from src.audit.logger import AuditLogger
from src.completion.client import CompletionClient
from src.config import Settings
from src.line.client import LineClient
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.webhook.dispatcher import EventDispatcher
from src.webhook.relay import CommandRelay
from src.webhook.signature import SignatureVerifier

logger = logging.getLogger(__name__)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = Settings.from_env()
    audit_logger = (
        AuditLogger.from_env(settings.audit_log_path) if settings.audit_log_path else None
    )
    return create_app(
        completion_client=CompletionClient(settings.completion),
        line_client=LineClient(settings.line),
        channel_secret=settings.line.channel_secret,
        audit_logger=audit_logger,
    )


def create_app(
    completion_client: CompletionClient,
    line_client: LineClient,
    channel_secret: str | None = None,
    audit_logger: AuditLogger | None = None,
) -> FastAPI:
    """Create the webhook app.

    Signature verification is enforced only when ``channel_secret`` is set.
    """
    app = FastAPI(docs_url=None, redoc_url=None)
    verifier = SignatureVerifier(channel_secret) if channel_secret else None
    dispatcher = EventDispatcher(
        CommandRelay(completion_client, line_client, audit_logger=audit_logger),
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/webhook")
    async def webhook(request: Request) -> Response:
        body = await request.body()

        if verifier and not verifier.verify(dict(request.headers), body):
            if audit_logger:
                audit_logger.log(AuditEvent(
                    event_type=AuditEventType.SIGNATURE_INVALID,
                    action="verify_signature",
                    result="rejected",
                    risk_level=RiskLevel.HIGH,
                    details={
                        "client": request.client.host if request.client else None,
                    },
                ))
            return JSONResponse({"error": "Invalid webhook signature"}, status_code=401)

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
        events = payload.get("events") if isinstance(payload, dict) else None
        if not isinstance(events, list):
            return JSONResponse({"error": "Missing events"}, status_code=400)

        # Replies are awaited before answering so delivery failures are
        # recorded while the request is still in flight.
        outcomes = await dispatcher.dispatch(events)

        counts = Counter(outcome.status.value for outcome in outcomes)
        logger.info("Processed %d webhook events: %s", len(outcomes), dict(counts))
        if audit_logger:
            audit_logger.log(AuditEvent(
                event_type=AuditEventType.WEBHOOK_RECEIVED,
                action="dispatch",
                result="success",
                risk_level=RiskLevel.INFO,
                details={"events": len(outcomes), **counts},
            ))
        return Response(status_code=200)

    return app
