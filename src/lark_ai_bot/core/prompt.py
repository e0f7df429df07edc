"""Context preamble and full prompt construction.

The preamble is configuration, not user input. It tells the model the
user's local date/time and how to format for Lark markdown cards, where a
lone ``*`` renders inconsistently.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from lark_ai_bot.config.schema import PromptConfig
from lark_ai_bot.models.message import IncomingQuery

USER_MESSAGE_HEADER = "[User message]"


def format_local_time(occurred_at: datetime, timezone: str) -> str:
    """Render ``occurred_at`` in the given IANA time zone.

    Naive datetimes are treated as UTC.
    """
    zone = ZoneInfo(timezone)
    if occurred_at.tzinfo is None:
        occurred_at = occurred_at.replace(tzinfo=ZoneInfo("UTC"))
    local = occurred_at.astimezone(zone)
    offset = local.strftime("%z")
    offset = f"{offset[:3]}:{offset[3:]}" if offset else "+00:00"
    return f"{local:%A, %d %B %Y, %H:%M} (UTC{offset}, {timezone})"


def build_context_preamble(occurred_at: datetime, config: PromptConfig) -> str:
    """Build the fixed context preamble for one message."""
    bold = config.bold_marker
    bullet = config.bullet_marker
    return (
        "[Context]\n"
        f"Current date and time for the user: {format_local_time(occurred_at, config.timezone)}.\n"
        "Instructions:\n"
        "- Reply in the same language the user writes in.\n"
        f"- For bold text write {bold}text{bold}; never use a single * for emphasis.\n"
        f'- Start bullet list items with "{bullet} "; never start a line with "*".\n'
        "\n"
        f"{USER_MESSAGE_HEADER}\n"
    )


def build_prompt(query: IncomingQuery, config: PromptConfig) -> str:
    """Return the full prompt: preamble followed verbatim by the user's text."""
    return build_context_preamble(query.occurred_at, config) + query.text
