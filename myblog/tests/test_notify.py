import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

import requests

from myblog.db import SupportMessageRecord
from myblog.notify import (
    NullNotifier,
    TelegramNotifier,
    escape_markdown,
    format_support_message,
)


def make_message(**overrides):
    values = dict(
        name="Ann_Lee",
        email="ann@example.com",
        message="Help *now*",
        subject="",
        created_at=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return SupportMessageRecord(**values)


class FormatTests(unittest.TestCase):
    def test_escape_markdown(self):
        self.assertEqual(escape_markdown("a_b*c`d[e"), "a\\_b\\*c\\`d\\[e")

    def test_format_uses_placeholder_subject(self):
        text = format_support_message(make_message())
        self.assertIn("*From:* Ann\\_Lee", text)
        self.assertIn("*Subject:* No subject", text)
        self.assertIn("Help \\*now\\*", text)
        self.assertIn("2025-01-02 03:04:05", text)


class TelegramNotifierTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.notifier = TelegramNotifier(
            bot_token="123:abc",
            chat_id="42",
            timeout_seconds=3,
            connect_timeout_seconds=2,
            session=self.session,
        )

    def test_successful_send(self):
        self.session.post.return_value = MagicMock(ok=True, status_code=200)
        self.assertTrue(self.notifier.send_support_message(make_message()))

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "https://api.telegram.org/bot123:abc/sendMessage")
        self.assertEqual(kwargs["json"]["chat_id"], "42")
        self.assertEqual(kwargs["json"]["parse_mode"], "Markdown")
        self.assertEqual(kwargs["timeout"], (2, 3))

    def test_error_response_returns_false(self):
        self.session.post.return_value = MagicMock(
            ok=False, status_code=400, text="Bad Request: chat not found"
        )
        self.assertFalse(self.notifier.send_support_message(make_message()))

    def test_network_error_returns_false(self):
        self.session.post.side_effect = requests.ConnectionError("boom")
        with self.assertLogs("myblog.notify", level="WARNING") as logs:
            self.assertFalse(self.notifier.send_support_message(make_message()))
        self.assertNotIn("123:abc", "\n".join(logs.output))

    def test_null_notifier(self):
        self.assertFalse(NullNotifier().send_support_message(make_message()))


if __name__ == "__main__":
    unittest.main()
