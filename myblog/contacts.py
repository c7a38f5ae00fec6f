"""
Contact directory CRUD.

Contacts are a shared, admin-curated list. The public listing only shows
active entries; everything else needs a signed-in (admin) caller.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from myblog.auth import Principal
from myblog.db import ContactRecord, RecordStore, utcnow
from myblog.errors import NotFound
from myblog.policy import Operation, Policy, enforce
from myblog.schemas import ContactInput, parse_input

logger = logging.getLogger(__name__)


class ContactService:
    def __init__(
        self,
        store: RecordStore,
        policy: Policy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy
        self.clock = clock

    def list_public(self) -> list[ContactRecord]:
        decision = enforce(self.policy.decide(Operation.LIST_CONTACTS_PUBLIC, None))
        return self.store.list_contacts(
            active_only=decision.scope.get("active_only", False)
        )

    def list_admin(self, principal: Optional[Principal]) -> list[ContactRecord]:
        enforce(self.policy.decide(Operation.LIST_CONTACTS_ADMIN, principal))
        return self.store.list_contacts(active_only=False)

    def create(self, principal: Optional[Principal], payload: Any) -> ContactRecord:
        enforce(self.policy.decide(Operation.CREATE_CONTACT, principal))
        data = parse_input(ContactInput, payload)
        now = self.clock()
        contact = self.store.add_contact(
            ContactRecord(
                type=data.type,
                label=data.label,
                value=data.value,
                icon=data.icon or "",
                is_active=True if data.isActive is None else data.isActive,
                order=data.order or 0,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Contact %s created by %s", contact.id, principal.id)
        return contact

    def update(
        self, principal: Optional[Principal], contact_id: str, payload: Any
    ) -> ContactRecord:
        enforce(self.policy.decide(Operation.UPDATE_CONTACT, principal))
        data = parse_input(ContactInput, payload)
        existing = self.store.get_contact(contact_id)
        if existing is None:
            raise NotFound("Contact not found")

        changes = {
            "type": data.type,
            "label": data.label,
            "value": data.value,
            "updated_at": max(self.clock(), existing.created_at),
        }
        # Optional fields left out of the body keep their stored value.
        if data.icon is not None:
            changes["icon"] = data.icon
        if data.isActive is not None:
            changes["is_active"] = data.isActive
        if data.order is not None:
            changes["order"] = data.order

        self.store.update_contact(contact_id, changes)
        return replace(existing, **changes)

    def delete(self, principal: Optional[Principal], contact_id: str) -> None:
        enforce(self.policy.decide(Operation.DELETE_CONTACT, principal))
        if self.store.get_contact(contact_id) is None:
            raise NotFound("Contact not found")
        self.store.delete_contact(contact_id)
        logger.info("Contact %s deleted by %s", contact_id, principal.id)
