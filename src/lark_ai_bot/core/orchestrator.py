"""Workflow orchestrator: status reaction, generation, card reply.

Runs as a detached background task after the webhook has already been
acknowledged, so it never raises: every failure is contained, logged and
reported only through the returned ``WorkflowResult``.

Sequence for one message:
1. Fetch credentials and exchange them for a tenant access token
2. Build the full prompt (context preamble + raw user text)
3. React THINKING
4. Escalate across model tiers
5. Reply with the answer and react DONE, or react ERROR and reply with the
   unavailability message when every tier was exhausted
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from lark_ai_bot.config.schema import BotConfig
from lark_ai_bot.core.escalation import ModelEscalationClient
from lark_ai_bot.core.prompt import build_prompt
from lark_ai_bot.core.status import StatusNotifier
from lark_ai_bot.models.generation import Exhausted, Success
from lark_ai_bot.models.message import (
    Credentials,
    IncomingQuery,
    ReactionState,
    WorkflowResult,
)
from lark_ai_bot.utils.logging import LogEventNames, bind_context, unbind_context

if TYPE_CHECKING:
    from lark_ai_bot.interfaces.chat import ChatProvider
    from lark_ai_bot.interfaces.llm import LLMProvider
    from lark_ai_bot.interfaces.secrets import CredentialProvider

log = structlog.get_logger()


class WorkflowOrchestrator:
    """Coordinates one message's round trip through Lark and the model tiers.

    Holds no per-message state, so a single instance serves any number of
    concurrent workflows.

    Example:
        orchestrator = WorkflowOrchestrator(config, lark, gemini, EnvCredentialProvider(...))
        runner.spawn(orchestrator.run(query), name=f"workflow_{query.message_id}")
    """

    def __init__(
        self,
        config: BotConfig,
        chat: ChatProvider,
        llm: LLMProvider,
        credentials: CredentialProvider,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Application configuration
            chat: Chat provider adapter
            llm: LLM provider adapter
            credentials: Secret source, consulted once per run
        """
        self._config = config
        self._chat = chat
        self._credentials = credentials

        self._status = StatusNotifier(chat, config.lark.reactions)
        self._escalation = ModelEscalationClient(llm, config.gemini.tiers)

    @property
    def escalation(self) -> ModelEscalationClient:
        """Return the model escalation client."""
        return self._escalation

    @property
    def status(self) -> StatusNotifier:
        """Return the status notifier."""
        return self._status

    async def run(
        self,
        query: IncomingQuery,
        credentials: Credentials | None = None,
    ) -> WorkflowResult:
        """Process one message end to end.

        Args:
            query: The inbound message
            credentials: Credentials to use; fetched from the provider if None

        Returns:
            WorkflowResult describing how the run ended. Never raises.
        """
        message_id = query.message_id
        bind_context(message_id=message_id)
        log.info(LogEventNames.WORKFLOW_STARTED, chars=len(query.text))

        token: str | None = None
        terminal_applied = False

        try:
            creds = credentials if credentials is not None else self._credentials.fetch()
            token = await self._chat.get_tenant_token(creds.app_id, creds.app_secret)

            prompt = build_prompt(query, self._config.prompt)

            await self._status.set_status(message_id, ReactionState.THINKING, token)

            result = await self._escalation.generate(prompt, creds)

            if isinstance(result, Exhausted):
                terminal_applied = True
                await self._status.set_status(message_id, ReactionState.ERROR, token)
                await self._chat.send_card_reply(
                    message_id, self._config.prompt.unavailable_message, token
                )
                outcome = WorkflowResult.EXHAUSTED
            else:
                if isinstance(result, Success):
                    text = result.text
                    outcome = WorkflowResult.REPLIED
                else:
                    text = self._config.prompt.safety_message
                    outcome = WorkflowResult.SAFETY_BLOCKED

                await self._chat.send_card_reply(message_id, text, token)
                terminal_applied = True
                await self._status.set_status(message_id, ReactionState.DONE, token)

            log.info(LogEventNames.WORKFLOW_COMPLETED, result=outcome.value)
            return outcome

        except Exception as e:
            log.exception(
                LogEventNames.WORKFLOW_FAILED,
                error_type=type(e).__name__,
                error=str(e),
            )
            if self._config.runtime.notify_on_failure and token and not terminal_applied:
                await self._notify_failure(message_id, token)
            return WorkflowResult.FAILED

        finally:
            unbind_context("message_id")

    async def _notify_failure(self, message_id: str, token: str) -> None:
        """Best-effort ERROR reaction after an unclassified fault."""
        try:
            await self._status.set_status(message_id, ReactionState.ERROR, token)
        except Exception as e:
            log.warning("failure_notification_failed", error_type=type(e).__name__, error=str(e))
