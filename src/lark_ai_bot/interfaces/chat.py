"""Abstract interface for chat platform integrations."""

from typing import Any, Protocol


class ChatProvider(Protocol):
    """Abstract interface for chat platform integrations.

    This protocol defines the outbound calls the workflow makes against the
    chat platform. Every method is a single stateless request.
    """

    async def get_tenant_token(self, app_id: str, app_secret: str) -> str:
        """
        Exchange application credentials for a bearer token.

        Args:
            app_id: Application identifier
            app_secret: Application secret

        Returns:
            Bearer token valid for subsequent calls

        Raises:
            AuthenticationError: If the platform rejects the credentials
        """
        ...

    async def add_reaction(self, message_id: str, emoji_type: str, token: str) -> bool:
        """
        Add a reaction/emoji to a message.

        Best-effort: a rejection by the platform is reported through the
        return value rather than raised.

        Args:
            message_id: Target message identifier
            emoji_type: Platform emoji type (e.g., "THINKING")
            token: Bearer token

        Returns:
            True if the platform accepted the reaction

        Raises:
            DeliveryError: If the request could not be sent at all
        """
        ...

    async def send_card_reply(self, message_id: str, text: str, token: str) -> str | None:
        """
        Reply to a message with a markdown card.

        Args:
            message_id: Message being replied to
            text: Markdown content, delivered verbatim
            token: Bearer token

        Returns:
            Message ID of the reply, if the platform returned one

        Raises:
            SendError: If message delivery fails
        """
        ...

    def build_card(self, text: str) -> dict[str, Any]:
        """
        Build the interactive card payload wrapping ``text``.
        """
        ...
