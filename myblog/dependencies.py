"""
Dependency wiring for the FastAPI app.

Capabilities (store, media storage, verifier, notifier) are built once from
settings and cached. Tests swap them through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Header

from myblog.auth import (
    FirebaseIdentityVerifier,
    IdentityVerifier,
    Principal,
    StaticTokenVerifier,
    parse_bearer,
)
from myblog.config import get_settings
from myblog.contacts import ContactService
from myblog.db import FirestoreRecordStore, InMemoryRecordStore, RecordStore, SqlRecordStore, utcnow
from myblog.errors import Unauthenticated
from myblog.firebase_app import get_firebase_app
from myblog.media import MediaService
from myblog.notify import Notifier, NullNotifier, TelegramNotifier
from myblog.policy import Policy
from myblog.posts import PostService
from myblog.storage import InMemoryMediaStorage, LocalMediaStorage, MediaStorage, S3MediaStorage
from myblog.support import SupportService

logger = logging.getLogger(__name__)

_record_store: RecordStore | None = None
_media_storage: MediaStorage | None = None
_identity_verifier: IdentityVerifier | None = None
_notifier: Notifier | None = None


def get_record_store() -> RecordStore:
    """
    Return a singleton record store so in-memory data persists across requests.
    """
    global _record_store
    if _record_store:
        return _record_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _record_store = InMemoryRecordStore()
    elif settings.database_url:
        _record_store = SqlRecordStore(
            settings.database_url, timeout_seconds=settings.store_timeout_seconds
        )
    elif settings.firebase_configured:
        _record_store = FirestoreRecordStore.from_app(
            get_firebase_app(settings),
            timeout_seconds=settings.store_timeout_seconds,
        )
    else:
        logger.warning("No record store configured; using in-memory store")
        _record_store = InMemoryRecordStore()
    logger.info("Record store: %s", type(_record_store).__name__)
    return _record_store


def get_media_storage() -> MediaStorage:
    global _media_storage
    if _media_storage:
        return _media_storage

    settings = get_settings()
    if settings.media_bucket:
        _media_storage = S3MediaStorage(
            bucket=settings.media_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            timeout_seconds=settings.store_timeout_seconds,
        )
    elif settings.use_in_memory_backends:
        _media_storage = InMemoryMediaStorage()
    else:
        _media_storage = LocalMediaStorage(settings.media_dir)
    return _media_storage


def get_identity_verifier() -> IdentityVerifier:
    global _identity_verifier
    if _identity_verifier:
        return _identity_verifier

    settings = get_settings()
    if settings.firebase_configured and not settings.use_in_memory_backends:
        _identity_verifier = FirebaseIdentityVerifier(get_firebase_app(settings))
    else:
        _identity_verifier = StaticTokenVerifier.from_uids(settings.dev_tokens)
    return _identity_verifier


def get_notifier() -> Notifier:
    global _notifier
    if _notifier:
        return _notifier

    settings = get_settings()
    if settings.telegram_bot_token and settings.telegram_chat_id:
        _notifier = TelegramNotifier(
            bot_token=settings.telegram_bot_token,
            chat_id=settings.telegram_chat_id,
            timeout_seconds=settings.telegram_timeout_seconds,
        )
    else:
        _notifier = NullNotifier()
    return _notifier


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_policy() -> Policy:
    return Policy(admin_ids=get_settings().admin_uids)


def get_principal(
    authorization: Optional[str] = Header(None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Principal:
    """Require a valid bearer token and return the caller's identity."""
    try:
        return verifier.verify(parse_bearer(authorization))
    except Unauthenticated as exc:
        logger.warning("Authentication failed: %s", exc.message)
        raise


def get_post_service(
    store: RecordStore = Depends(get_record_store),
    policy: Policy = Depends(get_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> PostService:
    return PostService(store, policy, clock=clock)


def get_contact_service(
    store: RecordStore = Depends(get_record_store),
    policy: Policy = Depends(get_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ContactService:
    return ContactService(store, policy, clock=clock)


def get_support_service(
    store: RecordStore = Depends(get_record_store),
    policy: Policy = Depends(get_policy),
    notifier: Notifier = Depends(get_notifier),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SupportService:
    return SupportService(store, policy, notifier, clock=clock)


def get_media_service(
    storage: MediaStorage = Depends(get_media_storage),
    policy: Policy = Depends(get_policy),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> MediaService:
    settings = get_settings()
    return MediaService(
        storage,
        policy,
        path_prefix=f"{settings.api_prefix}/media/file",
        max_files=settings.media_max_files,
        max_file_bytes=settings.media_max_file_bytes,
        clock=clock,
    )
