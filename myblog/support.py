"""
Support-message intake.

Anyone may submit a message. The message is forwarded to the chat bot
first and then persisted once, with ``telegram_sent`` recording whether the
forward succeeded.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from myblog.auth import Principal
from myblog.db import SUPPORT_LIST_LIMIT, RecordStore, SupportMessageRecord, utcnow
from myblog.notify import Notifier
from myblog.policy import Operation, Policy, enforce
from myblog.schemas import SupportMessageInput, parse_input

logger = logging.getLogger(__name__)


class SupportService:
    def __init__(
        self,
        store: RecordStore,
        policy: Policy,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy
        self.notifier = notifier
        self.clock = clock

    def create(self, payload: Any) -> SupportMessageRecord:
        enforce(self.policy.decide(Operation.CREATE_SUPPORT_MESSAGE, None))
        data = parse_input(SupportMessageInput, payload)
        record = SupportMessageRecord(
            name=data.name,
            email=data.email,
            subject=data.subject or "",
            message=data.message,
            status="new",
            telegram_sent=False,
            created_at=self.clock(),
        )
        record.telegram_sent = self._forward(record)
        saved = self.store.add_support_message(record)
        logger.info(
            "Support message %s stored (telegram_sent=%s)", saved.id, saved.telegram_sent
        )
        return saved

    def _forward(self, record: SupportMessageRecord) -> bool:
        try:
            return bool(self.notifier.send_support_message(record))
        except Exception:
            # Forwarding must never fail the submission.
            logger.exception("Support message forwarding failed")
            return False

    def list_recent(
        self, principal: Optional[Principal]
    ) -> list[SupportMessageRecord]:
        enforce(self.policy.decide(Operation.LIST_SUPPORT_MESSAGES, principal))
        return self.store.list_support_messages(limit=SUPPORT_LIST_LIMIT)
