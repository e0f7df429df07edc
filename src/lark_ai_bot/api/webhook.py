"""Lark webhook endpoint.

Registered without auth middleware; requests are checked against the
optional verification token instead. Message events are acknowledged
immediately and the workflow runs as a detached background task.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from lark_ai_bot.config.schema import BotConfig
from lark_ai_bot.core.ingress import DecisionKind, parse_webhook
from lark_ai_bot.utils.errors import VerificationError
from lark_ai_bot.utils.logging import LogEventNames

log = structlog.get_logger()

LIVENESS_TEXT = "Bot Online"
SKIPPED_TEXT = "Event skipped"

NON_POST_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]


async def liveness() -> PlainTextResponse:
    """Any non-POST request: fixed liveness text, body ignored."""
    return PlainTextResponse(LIVENESS_TEXT)


async def receive_webhook(request: Request) -> Response:
    """
    Receive a Lark event callback.

    Flow:
    1. Decode the JSON body and check the verification token
    2. Answer url_verification challenges
    3. Spawn the workflow for message events and acknowledge
    4. Acknowledge anything else without further action
    """
    config: BotConfig = request.app.state.config

    try:
        payload = await request.json()
    except ValueError as e:
        log.warning(LogEventNames.WEBHOOK_REJECTED, reason="invalid_json")
        raise HTTPException(status_code=400, detail="Request body must be JSON") from e

    if not isinstance(payload, dict):
        log.warning(LogEventNames.WEBHOOK_REJECTED, reason="not_an_object")
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    log.debug(LogEventNames.WEBHOOK_RECEIVED, event_type=payload.get("type"))

    try:
        decision = parse_webhook(payload, config.lark.verification_token)
    except VerificationError as e:
        log.warning(LogEventNames.WEBHOOK_REJECTED, reason="verification_failed")
        raise HTTPException(status_code=403, detail="Invalid verification token") from e

    if decision.kind is DecisionKind.CHALLENGE:
        log.info(LogEventNames.WEBHOOK_VERIFIED)
        return JSONResponse({"challenge": decision.challenge})

    if decision.kind is DecisionKind.MESSAGE and decision.query is not None:
        query = decision.query
        orchestrator = request.app.state.orchestrator
        request.app.state.runner.spawn(
            orchestrator.run(query),
            name=f"workflow_{query.message_id}",
        )
        log.info(
            LogEventNames.EVENT_ACCEPTED,
            message_id=query.message_id,
            event_id=query.event_id,
        )
        return JSONResponse({"code": 0, "msg": "success"})

    log.debug(LogEventNames.EVENT_SKIPPED, reason=decision.reason)
    return PlainTextResponse(SKIPPED_TEXT)


def create_webhook_router(path: str) -> APIRouter:
    """Create the router serving the webhook at ``path``."""
    router = APIRouter()
    router.add_api_route(path, receive_webhook, methods=["POST"])
    router.add_api_route(path, liveness, methods=NON_POST_METHODS)
    return router
