"""Shared test fixtures for Lark AI Bot."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import pytest

from lark_ai_bot.config.schema import BotConfig, GeminiConfig, LarkConfig
from lark_ai_bot.models.message import Credentials, IncomingQuery

LARK_BASE = "https://lark.test/open-apis"
GEMINI_BASE = "https://gemini.test/v1beta"

# 2026-01-15 08:30:00 UTC
FIXED_CREATE_TIME_MS = "1768465800000"


@pytest.fixture
def bot_config() -> BotConfig:
    """Return a two-tier configuration pointing at test hosts."""
    return BotConfig(
        lark=LarkConfig(base_url=LARK_BASE),
        gemini=GeminiConfig(base_url=GEMINI_BASE, tiers=["tier-one", "tier-two"]),
    )


@pytest.fixture
def credentials() -> Credentials:
    """Return fake credentials."""
    return Credentials(
        app_id="cli_test_app",
        app_secret="fake-app-secret-not-real",
        api_key="fake-gemini-key-not-real",
    )


@pytest.fixture
def query() -> IncomingQuery:
    """Return a simple incoming query."""
    return IncomingQuery(
        message_id="om_test_123",
        text="hello",
        occurred_at=datetime(2026, 1, 15, 8, 30, tzinfo=UTC),
    )


def make_message_event(
    text: str = "hello",
    message_id: str = "om_test_123",
    create_time: str = FIXED_CREATE_TIME_MS,
    token: str | None = None,
) -> dict[str, Any]:
    """Build an im.message.receive_v1 webhook body."""
    header: dict[str, Any] = {
        "event_id": "ev_abc",
        "event_type": "im.message.receive_v1",
        "create_time": create_time,
        "app_id": "cli_test_app",
    }
    if token is not None:
        header["token"] = token
    return {
        "schema": "2.0",
        "header": header,
        "event": {
            "sender": {"sender_id": {"open_id": "ou_user"}},
            "message": {
                "message_id": message_id,
                "chat_id": "oc_chat",
                "message_type": "text",
                "content": json.dumps({"text": text}),
            },
        },
    }


@pytest.fixture
def message_event() -> dict[str, Any]:
    """Return a message event whose text is 'hello'."""
    return make_message_event()


def gemini_text_response(text: str, finish_reason: str = "STOP") -> dict[str, Any]:
    """Build a generateContent response body with one candidate."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": finish_reason,
            }
        ]
    }
