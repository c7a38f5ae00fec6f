"""
Authorization decisions for posts, contacts and support messages.

``Policy.decide`` is pure: it looks only at the operation, the caller and
the target record, and never touches the store. Callers load the record
first (existence is checked before ownership) and translate a ``Deny`` into
the matching error.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from myblog.auth import Principal
from myblog.errors import Forbidden, NotFound, Unauthenticated

UNAUTHENTICATED = "unauthenticated"
NOT_FOUND = "not_found"
OWNERSHIP = "ownership"
ADMIN = "admin"


class Operation(enum.Enum):
    READ_POST = "read_post"
    LIST_POSTS = "list_posts"
    LIST_POSTS_BY_AUTHOR = "list_posts_by_author"
    CREATE_POST = "create_post"
    UPDATE_POST = "update_post"
    DELETE_POST = "delete_post"
    LIST_CONTACTS_PUBLIC = "list_contacts_public"
    LIST_CONTACTS_ADMIN = "list_contacts_admin"
    CREATE_CONTACT = "create_contact"
    UPDATE_CONTACT = "update_contact"
    DELETE_CONTACT = "delete_contact"
    CREATE_SUPPORT_MESSAGE = "create_support_message"
    LIST_SUPPORT_MESSAGES = "list_support_messages"
    UPLOAD_MEDIA = "upload_media"
    DELETE_MEDIA = "delete_media"


PUBLIC_OPERATIONS = frozenset(
    {
        Operation.READ_POST,
        Operation.LIST_POSTS,
        Operation.CREATE_SUPPORT_MESSAGE,
    }
)

# Gated by "signed in", narrowed by the admin allow-list when one is set.
ADMIN_OPERATIONS = frozenset(
    {
        Operation.LIST_CONTACTS_ADMIN,
        Operation.CREATE_CONTACT,
        Operation.UPDATE_CONTACT,
        Operation.DELETE_CONTACT,
        Operation.LIST_SUPPORT_MESSAGES,
    }
)

AUTHENTICATED_OPERATIONS = frozenset(
    {
        Operation.CREATE_POST,
        Operation.UPLOAD_MEDIA,
        Operation.DELETE_MEDIA,
    }
)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    # Restriction on the visible record subset for partial-access reads.
    scope: dict = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(allowed=True)


def deny(reason: str) -> Decision:
    return Decision(allowed=False, reason=reason)


class Policy:
    """Ownership-scoped access rules.

    ``admin_ids`` is the optional allow-list for admin endpoints. When it is
    empty any authenticated principal is treated as an admin.
    """

    def __init__(self, admin_ids: Iterable[str] = ()):
        self.admin_ids = frozenset(admin_ids)

    def is_admin(self, principal: Principal) -> bool:
        return not self.admin_ids or principal.id in self.admin_ids

    def decide(
        self,
        operation: Operation,
        principal: Optional[Principal],
        record: Any = None,
        *,
        target_user_id: Optional[str] = None,
    ) -> Decision:
        if operation in PUBLIC_OPERATIONS:
            return ALLOW

        if operation is Operation.LIST_CONTACTS_PUBLIC:
            return Decision(allowed=True, scope={"active_only": True})

        if principal is None:
            return deny(UNAUTHENTICATED)

        if operation is Operation.LIST_POSTS_BY_AUTHOR:
            if principal.id != target_user_id:
                return deny(OWNERSHIP)
            return ALLOW

        if operation in (Operation.UPDATE_POST, Operation.DELETE_POST):
            if record is None:
                return deny(NOT_FOUND)
            if getattr(record, "author_id", None) != principal.id:
                return deny(OWNERSHIP)
            return ALLOW

        if operation in ADMIN_OPERATIONS:
            return ALLOW if self.is_admin(principal) else deny(ADMIN)

        if operation in AUTHENTICATED_OPERATIONS:
            return ALLOW

        return deny(ADMIN)


_DENIAL_ERRORS = {
    UNAUTHENTICATED: (Unauthenticated, "Authentication required"),
    NOT_FOUND: (NotFound, "Not found"),
    OWNERSHIP: (Forbidden, "Access denied"),
    ADMIN: (Forbidden, "Access denied: admin only"),
}


def enforce(decision: Decision, messages: Optional[dict] = None) -> Decision:
    """Raise the error matching a ``Deny``; return the decision otherwise.

    ``messages`` overrides the default error text per denial reason.
    """
    if decision.allowed:
        return decision
    error_cls, message = _DENIAL_ERRORS[decision.reason]
    raise error_cls((messages or {}).get(decision.reason, message))
