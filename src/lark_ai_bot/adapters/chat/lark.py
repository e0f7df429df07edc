"""Lark chat adapter using the Open Platform REST API.

This module implements the ChatProvider protocol for Lark (Feishu) with a
shared httpx.AsyncClient:
- Tenant access token exchange
- Message reactions used as progress indicators
- Interactive markdown card replies
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from ...config.schema import LarkConfig
from ...utils.errors import AuthenticationError, DeliveryError
from ...utils.logging import LogEventNames

log = structlog.get_logger()

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class LarkAdapterError(DeliveryError):
    """Base exception for Lark adapter errors."""


class SendError(LarkAdapterError):
    """Raised when sending a reply fails."""


class ReactionError(LarkAdapterError):
    """Raised when a reaction request cannot be sent."""


class LarkAdapter:
    """Lark chat adapter implementing the ChatProvider protocol.

    Example:
        adapter = LarkAdapter(LarkConfig())

        token = await adapter.get_tenant_token(app_id, app_secret)
        await adapter.add_reaction("om_123", "THINKING", token)
        await adapter.send_card_reply("om_123", "**Hello**", token)
        await adapter.aclose()
    """

    def __init__(self, config: LarkConfig, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the Lark adapter.

        Args:
            config: Lark-specific configuration.
            client: Shared HTTP client. If None, one is created and owned.
        """
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def base_url(self) -> str:
        """Return the Open Platform API base URL."""
        return self._config.base_url

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": JSON_CONTENT_TYPE,
        }

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        """Decode a Lark JSON envelope, returning {} for non-object bodies."""
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def get_tenant_token(self, app_id: str, app_secret: str) -> str:
        """Exchange app credentials for a tenant access token.

        Args:
            app_id: Lark application ID.
            app_secret: Lark application secret.

        Returns:
            The tenant access token.

        Raises:
            AuthenticationError: If the request fails or Lark returns a non-zero code.
        """
        url = f"{self.base_url}/auth/v3/tenant_access_token/internal"

        try:
            response = await self._client.post(
                url,
                json={"app_id": app_id, "app_secret": app_secret},
                headers={"Content-Type": JSON_CONTENT_TYPE},
            )
        except httpx.HTTPError as e:
            log.error("tenant_token_request_failed", error=str(e))
            raise AuthenticationError(f"Tenant token request failed: {e}") from e

        data = self._decode(response)
        code = data.get("code")
        token = data.get("tenant_access_token")

        if code != 0 or not token:
            msg = data.get("msg") or f"HTTP {response.status_code}"
            log.error("tenant_token_rejected", code=code, msg=msg)
            raise AuthenticationError(f"Lark rejected app credentials: {msg}")

        log.debug(LogEventNames.TOKEN_ACQUIRED, expire=data.get("expire"))
        return str(token)

    async def add_reaction(self, message_id: str, emoji_type: str, token: str) -> bool:
        """Add a reaction to a message.

        Best-effort: a rejected reaction is logged and reported as False.

        Args:
            message_id: Target message identifier.
            emoji_type: Lark emoji type (e.g., "THINKING").
            token: Tenant access token.

        Returns:
            True if Lark accepted the reaction.

        Raises:
            ReactionError: If the request could not be sent.
        """
        url = f"{self.base_url}/im/v1/messages/{message_id}/reactions"

        try:
            response = await self._client.post(
                url,
                json={"reaction_type": {"emoji_type": emoji_type}},
                headers=self._auth_headers(token),
            )
        except httpx.HTTPError as e:
            log.error(
                "add_reaction_failed",
                message_id=message_id,
                emoji_type=emoji_type,
                error=str(e),
            )
            raise ReactionError(f"Failed to add reaction: {e}") from e

        data = self._decode(response)
        if response.is_error or data.get("code") != 0:
            log.warning(
                LogEventNames.REACTION_REJECTED,
                message_id=message_id,
                emoji_type=emoji_type,
                status_code=response.status_code,
                code=data.get("code"),
                msg=data.get("msg"),
            )
            return False

        log.debug(LogEventNames.REACTION_APPLIED, message_id=message_id, emoji_type=emoji_type)
        return True

    def build_card(self, text: str) -> dict[str, Any]:
        """Build the interactive card carrying ``text`` as markdown.

        Args:
            text: Markdown content.

        Returns:
            Card payload for the ``interactive`` message type.
        """
        return {
            "config": {"wide_screen_mode": True},
            "elements": [{"tag": "markdown", "content": text}],
        }

    async def send_card_reply(self, message_id: str, text: str, token: str) -> str | None:
        """Reply to a message with a markdown card.

        Args:
            message_id: Message being replied to.
            text: Markdown content, carried verbatim.
            token: Tenant access token.

        Returns:
            Message ID of the reply, if Lark returned one.

        Raises:
            SendError: If message delivery fails.
        """
        url = f"{self.base_url}/im/v1/messages/{message_id}/reply"
        body = {
            "msg_type": "interactive",
            "content": json.dumps(self.build_card(text), ensure_ascii=False),
        }

        try:
            response = await self._client.post(url, json=body, headers=self._auth_headers(token))
        except httpx.HTTPError as e:
            log.error("send_reply_failed", message_id=message_id, error=str(e))
            raise SendError(f"Failed to send reply: {e}") from e

        data = self._decode(response)
        if response.is_error or data.get("code") != 0:
            msg = data.get("msg") or f"HTTP {response.status_code}"
            log.error(
                "send_reply_rejected",
                message_id=message_id,
                status_code=response.status_code,
                code=data.get("code"),
                msg=msg,
            )
            raise SendError(f"Lark rejected reply: {msg}")

        reply_id = (data.get("data") or {}).get("message_id")
        log.debug(LogEventNames.REPLY_SENT, message_id=message_id, reply_id=reply_id)
        return reply_id
