"""
Support-message forwarding to a Telegram chat.

Delivery is best effort: every failure is logged and reported as ``False``
so the caller can record the outcome without aborting its own write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import requests

from myblog.db import SupportMessageRecord

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
REQUEST_TIMEOUT = 5  # seconds
CONNECT_TIMEOUT = 3  # seconds

_MARKDOWN_SPECIALS = ("\\", "_", "*", "`", "[")


class Notifier(Protocol):
    def send_support_message(self, message: SupportMessageRecord) -> bool:
        ...


class NullNotifier:
    """Used when no chat bot is configured; never delivers."""

    def send_support_message(self, message: SupportMessageRecord) -> bool:
        logger.info("Telegram configuration not found - message not sent")
        return False


def escape_markdown(text: str) -> str:
    for char in _MARKDOWN_SPECIALS:
        text = text.replace(char, f"\\{char}")
    return text


def format_support_message(message: SupportMessageRecord) -> str:
    submitted = message.created_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    return "\n".join(
        [
            "\U0001F514 *New Support Message*",
            "",
            f"*From:* {escape_markdown(message.name)}",
            f"*Email:* {escape_markdown(message.email)}",
            f"*Subject:* {escape_markdown(message.subject or 'No subject')}",
            "",
            "*Message:*",
            escape_markdown(message.message),
            "",
            f"*Submitted:* {submitted}",
        ]
    )


@dataclass
class TelegramNotifier:
    """Posts messages through the Telegram Bot API ``sendMessage`` method.

    ``connect_timeout_seconds`` bounds the TCP connect and ``timeout_seconds``
    bounds each wait for response bytes, not the whole exchange. The reply is
    a small JSON object, read in one or two socket reads.
    """

    bot_token: str
    chat_id: str
    timeout_seconds: float = REQUEST_TIMEOUT
    connect_timeout_seconds: float = CONNECT_TIMEOUT
    api_url: str = TELEGRAM_API_URL
    session: requests.Session = field(default_factory=requests.Session)

    def send_support_message(self, message: SupportMessageRecord) -> bool:
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": format_support_message(message),
            "parse_mode": "Markdown",
        }
        try:
            response = self.session.post(
                url,
                json=payload,
                timeout=(self.connect_timeout_seconds, self.timeout_seconds),
            )
        except requests.RequestException as exc:
            # The exception text embeds the URL, which carries the bot token.
            logger.warning("Error sending message to Telegram: %s", type(exc).__name__)
            return False

        if response.ok:
            logger.info("Message sent to Telegram successfully")
            return True
        logger.warning(
            "Failed to send message to Telegram: HTTP %s %s",
            response.status_code,
            response.text[:200],
        )
        return False
