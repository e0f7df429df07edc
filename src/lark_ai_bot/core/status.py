"""Best-effort progress reactions on the user's message."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from lark_ai_bot.config.schema import ReactionsConfig
from lark_ai_bot.models.message import ReactionState

if TYPE_CHECKING:
    from lark_ai_bot.interfaces.chat import ChatProvider

log = structlog.get_logger()


class StatusNotifier:
    """Applies THINKING/DONE/ERROR reactions.

    One reaction call per ``set_status``. Nothing is retried, verified or
    rolled back; a rejected reaction is only logged by the adapter. Transport
    failures still propagate to the caller.
    """

    def __init__(self, chat: ChatProvider, reactions: ReactionsConfig | None = None) -> None:
        self._chat = chat
        self._reactions = reactions or ReactionsConfig()

    def emoji_for(self, state: ReactionState) -> str:
        """Return the configured emoji type for ``state``."""
        return {
            ReactionState.THINKING: self._reactions.thinking,
            ReactionState.DONE: self._reactions.done,
            ReactionState.ERROR: self._reactions.error,
        }[state]

    async def set_status(self, message_id: str, state: ReactionState, token: str) -> bool:
        """Apply ``state`` to the message.

        Returns:
            True if the platform accepted the reaction.
        """
        accepted = await self._chat.add_reaction(message_id, self.emoji_for(state), token)
        log.debug("status_set", message_id=message_id, state=state.value, accepted=accepted)
        return accepted
