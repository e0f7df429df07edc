"""Core business logic components.

This module exports the main business logic classes:
- WorkflowOrchestrator: Runs one message through reaction, generation and reply
- ModelEscalationClient: Tiered model fallback
- StatusNotifier: Best-effort progress reactions
- BackgroundTaskRunner: Detached, observable workflow tasks
"""

from lark_ai_bot.core.escalation import ModelEscalationClient
from lark_ai_bot.core.ingress import DecisionKind, IngressDecision, parse_webhook
from lark_ai_bot.core.orchestrator import WorkflowOrchestrator
from lark_ai_bot.core.prompt import build_context_preamble, build_prompt
from lark_ai_bot.core.status import StatusNotifier
from lark_ai_bot.core.tasks import BackgroundTaskRunner

__all__ = [
    "BackgroundTaskRunner",
    "DecisionKind",
    "IngressDecision",
    "ModelEscalationClient",
    "StatusNotifier",
    "WorkflowOrchestrator",
    "build_context_preamble",
    "build_prompt",
    "parse_webhook",
]
