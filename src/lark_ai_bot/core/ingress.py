"""Inbound Lark webhook parsing.

Pure functions: decide what a webhook body asks for without doing any I/O.
The HTTP layer in ``lark_ai_bot.api`` turns the decision into a response and
spawns the workflow.
"""

from __future__ import annotations

import hmac
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from lark_ai_bot.models.message import IncomingQuery
from lark_ai_bot.utils.errors import MalformedEventError, VerificationError

log = structlog.get_logger()

URL_VERIFICATION_TYPE = "url_verification"
MESSAGE_EVENT_TYPE = "im.message.receive_v1"


class DecisionKind(Enum):
    """What the webhook handler should do with a body."""

    CHALLENGE = "challenge"
    MESSAGE = "message"
    SKIP = "skip"


@dataclass(frozen=True)
class IngressDecision:
    """Result of parsing one webhook body."""

    kind: DecisionKind
    challenge: str | None = None
    query: IncomingQuery | None = None
    reason: str | None = None


def parse_create_time(value: Any) -> datetime:
    """Convert Lark's epoch-millisecond ``create_time`` to an aware UTC datetime.

    Falls back to the current time when the value is missing or invalid.
    """
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.now(UTC)


def verify_token(payload: dict[str, Any], expected: str | None) -> None:
    """Check the verification token carried by the payload.

    Version 1 payloads (including url_verification) carry ``token`` at the top
    level; version 2 events carry it in ``header.token``.

    Raises:
        VerificationError: If a token is expected and does not match.
    """
    if not expected:
        return

    header = payload.get("header")
    received = payload.get("token")
    if received is None and isinstance(header, dict):
        received = header.get("token")

    if not isinstance(received, str) or not hmac.compare_digest(received, expected):
        raise VerificationError("Verification token mismatch")


def parse_message_event(payload: dict[str, Any]) -> IncomingQuery:
    """Build an IncomingQuery from an ``im.message.receive_v1`` event.

    Raises:
        MalformedEventError: If the message id or text cannot be extracted.
    """
    header = payload.get("header") or {}
    event = payload.get("event") or {}
    message = event.get("message") if isinstance(event, dict) else None
    if not isinstance(message, dict):
        raise MalformedEventError("Event has no message object")

    message_id = message.get("message_id")
    if not isinstance(message_id, str) or not message_id:
        raise MalformedEventError("Message has no message_id")

    raw_content = message.get("content")
    try:
        content = json.loads(raw_content) if isinstance(raw_content, str) else None
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Message content is not JSON: {e}") from e

    text = content.get("text") if isinstance(content, dict) else None
    if not isinstance(text, str):
        raise MalformedEventError(
            f"Message has no text content (message_type={message.get('message_type')})"
        )

    return IncomingQuery(
        message_id=message_id,
        text=text,
        occurred_at=parse_create_time(header.get("create_time")),
        chat_id=message.get("chat_id"),
        event_id=header.get("event_id"),
    )


def parse_webhook(
    payload: dict[str, Any],
    verification_token: str | None = None,
) -> IngressDecision:
    """Decide how to answer a webhook body.

    Args:
        payload: Decoded JSON body
        verification_token: Expected token, or None to skip verification

    Returns:
        IngressDecision

    Raises:
        VerificationError: If the verification token does not match.
    """
    verify_token(payload, verification_token)

    if payload.get("type") == URL_VERIFICATION_TYPE:
        return IngressDecision(DecisionKind.CHALLENGE, challenge=payload.get("challenge"))

    header = payload.get("header")
    event_type = header.get("event_type") if isinstance(header, dict) else None

    if event_type != MESSAGE_EVENT_TYPE:
        return IngressDecision(DecisionKind.SKIP, reason=f"unhandled event type: {event_type}")

    try:
        query = parse_message_event(payload)
    except MalformedEventError as e:
        log.warning("malformed_message_event", error=str(e))
        return IngressDecision(DecisionKind.SKIP, reason=str(e))

    return IngressDecision(DecisionKind.MESSAGE, query=query)
