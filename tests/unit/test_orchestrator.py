"""Tests for the workflow orchestrator."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx
from conftest import GEMINI_BASE, LARK_BASE, gemini_text_response

from lark_ai_bot.adapters.chat.lark import LarkAdapter, SendError
from lark_ai_bot.adapters.llm.gemini import GeminiAdapter
from lark_ai_bot.config.schema import BotConfig, GeminiConfig, LarkConfig, RuntimeConfig
from lark_ai_bot.core.orchestrator import WorkflowOrchestrator
from lark_ai_bot.core.prompt import USER_MESSAGE_HEADER
from lark_ai_bot.models.generation import Retryable, SafetyBlocked, Success
from lark_ai_bot.models.message import Credentials, IncomingQuery, ReactionState, WorkflowResult
from lark_ai_bot.utils.errors import AuthenticationError, CredentialError, GenerationError

TOKEN_URL = f"{LARK_BASE}/auth/v3/tenant_access_token/internal"


def reaction_url(message_id: str) -> str:
    return f"{LARK_BASE}/im/v1/messages/{message_id}/reactions"


def reply_url(message_id: str) -> str:
    return f"{LARK_BASE}/im/v1/messages/{message_id}/reply"


def gemini_url(model: str) -> str:
    return f"{GEMINI_BASE}/models/{model}:generateContent"


def mock_chat() -> AsyncMock:
    """Create a chat provider mock whose calls all succeed."""
    chat = AsyncMock()
    chat.get_tenant_token = AsyncMock(return_value="t-test-token")
    chat.add_reaction = AsyncMock(return_value=True)
    chat.send_card_reply = AsyncMock(return_value="om_reply")
    return chat


def mock_secrets(credentials: Credentials) -> MagicMock:
    provider = MagicMock()
    provider.fetch = MagicMock(return_value=credentials)
    return provider


def reactions_of(chat: AsyncMock) -> list[str]:
    """Return the emoji types applied, in order."""
    return [c.args[1] for c in chat.add_reaction.await_args_list]


@pytest.fixture
def chat() -> AsyncMock:
    return mock_chat()


@pytest.fixture
def llm() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def orchestrator(
    bot_config: BotConfig,
    chat: AsyncMock,
    llm: AsyncMock,
    credentials: Credentials,
) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(bot_config, chat, llm, mock_secrets(credentials))


class TestWorkflowOrchestratorInit:
    """Test orchestrator construction."""

    def test_escalation_uses_configured_tiers(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test that the escalation client gets the configured tiers."""
        assert orchestrator.escalation.tiers == ("tier-one", "tier-two")

    def test_status_uses_configured_reactions(self, orchestrator: WorkflowOrchestrator) -> None:
        """Test that the status notifier uses the configured emoji types."""
        assert orchestrator.status.emoji_for(ReactionState.THINKING) == "THINKING"
        assert orchestrator.status.emoji_for(ReactionState.ERROR) == "ERROR"


class TestWorkflowOrchestratorRun:
    """Test the happy path and terminal states with mocked providers."""

    async def test_success_replies_and_marks_done(
        self,
        orchestrator: WorkflowOrchestrator,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test THINKING, reply, then DONE on success."""
        llm.generate_content.return_value = Success("tier-one", "hi there")

        result = await orchestrator.run(query)

        assert result is WorkflowResult.REPLIED
        assert reactions_of(chat) == ["THINKING", "DONE"]
        chat.send_card_reply.assert_awaited_once_with("om_test_123", "hi there", "t-test-token")

    async def test_token_requested_with_fetched_credentials(
        self,
        orchestrator: WorkflowOrchestrator,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
        credentials: Credentials,
    ) -> None:
        """Test that the token exchange uses the fetched app credentials."""
        llm.generate_content.return_value = Success("tier-one", "ok")

        await orchestrator.run(query)

        chat.get_tenant_token.assert_awaited_once_with(
            credentials.app_id, credentials.app_secret
        )

    async def test_explicit_credentials_skip_provider(
        self,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
        credentials: Credentials,
    ) -> None:
        """Test that passed credentials are used instead of fetching."""
        secrets = MagicMock()
        secrets.fetch.side_effect = AssertionError("should not fetch")
        llm.generate_content.return_value = Success("tier-one", "ok")
        orchestrator = WorkflowOrchestrator(bot_config, chat, llm, secrets)

        result = await orchestrator.run(query, credentials=credentials)

        assert result is WorkflowResult.REPLIED
        secrets.fetch.assert_not_called()

    async def test_prompt_preamble_precedes_text(
        self,
        orchestrator: WorkflowOrchestrator,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that the model sees the preamble followed by the raw text."""
        llm.generate_content.return_value = Success("tier-one", "ok")

        await orchestrator.run(query)

        prompt = llm.generate_content.await_args.args[1]
        assert prompt.startswith("[Context]")
        assert prompt.endswith(f"{USER_MESSAGE_HEADER}\nhello")

    async def test_safety_block_sends_caution_then_done(
        self,
        orchestrator: WorkflowOrchestrator,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that a safety refusal is delivered as a normal reply."""
        llm.generate_content.return_value = SafetyBlocked("tier-one", "SAFETY")

        result = await orchestrator.run(query)

        assert result is WorkflowResult.SAFETY_BLOCKED
        assert llm.generate_content.await_count == 1
        assert reactions_of(chat) == ["THINKING", "DONE"]
        chat.send_card_reply.assert_awaited_once_with(
            "om_test_123", bot_config.prompt.safety_message, "t-test-token"
        )

    async def test_exhausted_marks_error_then_replies(
        self,
        orchestrator: WorkflowOrchestrator,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test ERROR reaction and unavailability reply when every tier fails."""
        llm.generate_content.side_effect = [
            Retryable("tier-one", 429, "RESOURCE_EXHAUSTED"),
            Retryable("tier-two", 503, "UNAVAILABLE"),
        ]

        result = await orchestrator.run(query)

        assert result is WorkflowResult.EXHAUSTED
        assert reactions_of(chat) == ["THINKING", "ERROR"]
        chat.send_card_reply.assert_awaited_once_with(
            "om_test_123", bot_config.prompt.unavailable_message, "t-test-token"
        )

    async def test_rejected_reaction_does_not_stop_workflow(
        self,
        orchestrator: WorkflowOrchestrator,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that a reaction Lark refuses is ignored."""
        chat.add_reaction.return_value = False
        llm.generate_content.return_value = Success("tier-one", "ok")

        result = await orchestrator.run(query)

        assert result is WorkflowResult.REPLIED
        chat.send_card_reply.assert_awaited_once()


class TestWorkflowOrchestratorFailures:
    """Test that faults are contained and never raise."""

    async def test_missing_credentials(
        self,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that a credential fault makes no external calls."""
        secrets = MagicMock()
        secrets.fetch.side_effect = CredentialError("Environment variable LARK_APP_ID is not set")
        orchestrator = WorkflowOrchestrator(bot_config, chat, llm, secrets)

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED
        chat.get_tenant_token.assert_not_awaited()
        chat.add_reaction.assert_not_awaited()
        llm.generate_content.assert_not_awaited()

    async def test_auth_failure(
        self,
        orchestrator: WorkflowOrchestrator,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that a token failure stops before any reaction."""
        chat.get_tenant_token.side_effect = AuthenticationError("bad secret")

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED
        chat.add_reaction.assert_not_awaited()
        llm.generate_content.assert_not_awaited()

    async def test_generation_error_is_silent_by_default(
        self,
        orchestrator: WorkflowOrchestrator,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that an unclassified fault leaves THINKING in place."""
        llm.generate_content.side_effect = GenerationError("HTTP 500", 500)

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED
        assert reactions_of(chat) == ["THINKING"]
        chat.send_card_reply.assert_not_awaited()

    async def test_generation_error_notifies_when_enabled(
        self,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
        credentials: Credentials,
    ) -> None:
        """Test the opt-in ERROR reaction after an unclassified fault."""
        config = bot_config.model_copy(update={"runtime": RuntimeConfig(notify_on_failure=True)})
        llm.generate_content.side_effect = GenerationError("HTTP 500", 500)
        orchestrator = WorkflowOrchestrator(config, chat, llm, mock_secrets(credentials))

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED
        assert reactions_of(chat) == ["THINKING", "ERROR"]

    async def test_notification_skipped_after_terminal_state(
        self,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
        credentials: Credentials,
    ) -> None:
        """Test that a failed reply after ERROR does not react ERROR twice."""
        config = bot_config.model_copy(update={"runtime": RuntimeConfig(notify_on_failure=True)})
        llm.generate_content.side_effect = [
            Retryable("tier-one", 429, "quota"),
            Retryable("tier-two", 429, "quota"),
        ]
        chat.send_card_reply.side_effect = SendError("Lark rejected reply")
        orchestrator = WorkflowOrchestrator(config, chat, llm, mock_secrets(credentials))

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED
        assert reactions_of(chat) == ["THINKING", "ERROR"]

    async def test_notification_failure_is_contained(
        self,
        bot_config: BotConfig,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
        credentials: Credentials,
    ) -> None:
        """Test that the failure notification itself cannot raise."""
        config = bot_config.model_copy(update={"runtime": RuntimeConfig(notify_on_failure=True)})
        llm.generate_content.side_effect = GenerationError("HTTP 500", 500)
        chat.add_reaction.side_effect = [True, httpx.ConnectError("down")]
        orchestrator = WorkflowOrchestrator(config, chat, llm, mock_secrets(credentials))

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED

    async def test_reply_failure_on_success_never_marks_done(
        self,
        orchestrator: WorkflowOrchestrator,
        chat: AsyncMock,
        llm: AsyncMock,
        query: IncomingQuery,
    ) -> None:
        """Test that DONE is only applied after the reply was delivered."""
        llm.generate_content.return_value = Success("tier-one", "ok")
        chat.send_card_reply.side_effect = SendError("Lark rejected reply")

        result = await orchestrator.run(query)

        assert result is WorkflowResult.FAILED
        assert "DONE" not in reactions_of(chat)


class TestWorkflowEndToEnd:
    """Run the orchestrator against real adapters over mocked HTTP."""

    @pytest.fixture
    def lark_ok(self, respx_mock: respx.MockRouter) -> dict[str, respx.Route]:
        return {
            "token": respx_mock.post(TOKEN_URL).mock(
                return_value=httpx.Response(
                    200,
                    json={"code": 0, "tenant_access_token": "t-e2e-token", "expire": 7200},
                )
            ),
            "reaction": respx_mock.post(reaction_url("om_test_123")).mock(
                return_value=httpx.Response(200, json={"code": 0, "msg": "success"})
            ),
            "reply": respx_mock.post(reply_url("om_test_123")).mock(
                return_value=httpx.Response(
                    200, json={"code": 0, "data": {"message_id": "om_reply"}}
                )
            ),
        }

    @staticmethod
    def body(route: respx.Route, index: int = -1) -> dict[str, Any]:
        return json.loads(route.calls[index].request.content)

    def emojis(self, route: respx.Route) -> list[str]:
        return [
            json.loads(c.request.content)["reaction_type"]["emoji_type"] for c in route.calls
        ]

    def card_text(self, route: respx.Route) -> str:
        card = json.loads(self.body(route)["content"])
        return card["elements"][0]["content"]

    async def test_escalates_past_quota_error(
        self,
        bot_config: BotConfig,
        credentials: Credentials,
        query: IncomingQuery,
        respx_mock: respx.MockRouter,
        lark_ok: dict[str, respx.Route],
    ) -> None:
        """Test tier one over quota, tier two answers, reply and DONE."""
        tier_one = respx_mock.post(gemini_url("tier-one")).mock(
            return_value=httpx.Response(
                429,
                json={"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}},
            )
        )
        tier_two = respx_mock.post(gemini_url("tier-two")).mock(
            return_value=httpx.Response(200, json=gemini_text_response("hi there"))
        )

        lark = LarkAdapter(bot_config.lark)
        gemini = GeminiAdapter(bot_config.gemini)
        try:
            orchestrator = WorkflowOrchestrator(
                bot_config, lark, gemini, mock_secrets(credentials)
            )
            result = await orchestrator.run(query)
        finally:
            await lark.aclose()
            await gemini.aclose()

        assert result is WorkflowResult.REPLIED
        assert tier_one.call_count == 1
        assert tier_two.call_count == 1
        assert self.emojis(lark_ok["reaction"]) == ["THINKING", "DONE"]
        assert lark_ok["reply"].call_count == 1
        assert self.card_text(lark_ok["reply"]) == "hi there"
        assert lark_ok["reply"].calls[0].request.headers["Authorization"] == "Bearer t-e2e-token"

        prompt = self.body(tier_two)["contents"][0]["parts"][0]["text"]
        assert prompt.startswith("[Context]")
        assert prompt.endswith("hello")

    async def test_single_tier_safety_block(
        self,
        credentials: Credentials,
        query: IncomingQuery,
        respx_mock: respx.MockRouter,
        lark_ok: dict[str, respx.Route],
    ) -> None:
        """Test that a safety refusal gets the cautionary reply and no ERROR."""
        config = BotConfig(
            lark=LarkConfig(base_url=LARK_BASE),
            gemini=GeminiConfig(base_url=GEMINI_BASE, tiers=["only-tier"]),
        )
        only = respx_mock.post(gemini_url("only-tier")).mock(
            return_value=httpx.Response(
                200, json={"candidates": [{"finishReason": "SAFETY", "safetyRatings": []}]}
            )
        )

        orchestrator = WorkflowOrchestrator(
            config,
            LarkAdapter(config.lark),
            GeminiAdapter(config.gemini),
            mock_secrets(credentials),
        )
        result = await orchestrator.run(query)

        assert result is WorkflowResult.SAFETY_BLOCKED
        assert only.call_count == 1
        assert self.card_text(lark_ok["reply"]) == config.prompt.safety_message
        assert "ERROR" not in self.emojis(lark_ok["reaction"])

    async def test_all_tiers_exhausted(
        self,
        bot_config: BotConfig,
        credentials: Credentials,
        query: IncomingQuery,
        respx_mock: respx.MockRouter,
        lark_ok: dict[str, respx.Route],
    ) -> None:
        """Test ERROR and the unavailability reply, never DONE."""
        respx_mock.post(gemini_url("tier-one")).mock(return_value=httpx.Response(429))
        respx_mock.post(gemini_url("tier-two")).mock(
            return_value=httpx.Response(
                503, json={"error": {"code": 503, "status": "UNAVAILABLE"}}
            )
        )

        orchestrator = WorkflowOrchestrator(
            bot_config,
            LarkAdapter(bot_config.lark),
            GeminiAdapter(bot_config.gemini),
            mock_secrets(credentials),
        )
        result = await orchestrator.run(query)

        assert result is WorkflowResult.EXHAUSTED
        assert self.emojis(lark_ok["reaction"]) == ["THINKING", "ERROR"]
        assert self.card_text(lark_ok["reply"]) == bot_config.prompt.unavailable_message

    async def test_markdown_reply_is_verbatim(
        self,
        bot_config: BotConfig,
        credentials: Credentials,
        query: IncomingQuery,
        respx_mock: respx.MockRouter,
        lark_ok: dict[str, respx.Route],
    ) -> None:
        """Test that model output reaches the card without rewriting."""
        answer = "**Xin chào!**\n• một\n• hai\n`code` <b>raw</b>"
        respx_mock.post(gemini_url("tier-one")).mock(
            return_value=httpx.Response(200, json=gemini_text_response(answer))
        )

        orchestrator = WorkflowOrchestrator(
            bot_config,
            LarkAdapter(bot_config.lark),
            GeminiAdapter(bot_config.gemini),
            mock_secrets(credentials),
        )
        await orchestrator.run(query)

        assert self.card_text(lark_ok["reply"]) == answer
