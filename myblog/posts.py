"""
Post CRUD with ownership checks.

Anyone may read posts. Only the author may edit or delete one, and the
author is always the caller that created it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from myblog.auth import Principal
from myblog.db import PostRecord, RecordStore, utcnow
from myblog.errors import NotFound
from myblog.policy import NOT_FOUND, OWNERSHIP, Operation, Policy, enforce
from myblog.schemas import PostInput, parse_input

logger = logging.getLogger(__name__)


class PostService:
    def __init__(
        self,
        store: RecordStore,
        policy: Policy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy
        self.clock = clock

    def list_public(self) -> list[PostRecord]:
        enforce(self.policy.decide(Operation.LIST_POSTS, None))
        return self.store.list_posts()

    def get_by_id(self, post_id: str) -> PostRecord:
        enforce(self.policy.decide(Operation.READ_POST, None))
        post = self.store.get_post(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    def list_by_author(
        self, author_id: str, principal: Optional[Principal]
    ) -> list[PostRecord]:
        enforce(
            self.policy.decide(
                Operation.LIST_POSTS_BY_AUTHOR, principal, target_user_id=author_id
            ),
            {OWNERSHIP: "Access denied: Can only fetch your own posts"},
        )
        return self.store.list_posts(author_id=author_id)

    def create(self, principal: Optional[Principal], payload: Any) -> PostRecord:
        enforce(self.policy.decide(Operation.CREATE_POST, principal))
        data = parse_input(PostInput, payload)
        now = self.clock()
        post = self.store.add_post(
            PostRecord(
                title=data.title,
                content=data.content,
                author_id=principal.id,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Post %s created by %s", post.id, principal.id)
        return post

    def update(
        self, principal: Optional[Principal], post_id: str, payload: Any
    ) -> PostRecord:
        data = parse_input(PostInput, payload)
        existing = self.store.get_post(post_id)
        enforce(
            self.policy.decide(Operation.UPDATE_POST, principal, existing),
            {
                NOT_FOUND: "Post not found",
                OWNERSHIP: "Access denied: You can only edit your own posts",
            },
        )
        changes = {
            "title": data.title,
            "content": data.content,
            # A clock behind the stored createdAt must not break the ordering.
            "updated_at": max(self.clock(), existing.created_at),
        }
        self.store.update_post(post_id, changes)
        return replace(existing, **changes)

    def delete(self, principal: Optional[Principal], post_id: str) -> str:
        existing = self.store.get_post(post_id)
        enforce(
            self.policy.decide(Operation.DELETE_POST, principal, existing),
            {
                NOT_FOUND: "Post not found",
                OWNERSHIP: "Access denied: You can only delete your own posts",
            },
        )
        self.store.delete_post(post_id)
        logger.info("Post %s deleted by %s", post_id, principal.id)
        return post_id
