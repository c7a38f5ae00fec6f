"""
Record store abstraction for posts, contacts and support messages.

Three implementations share the ``RecordStore`` protocol: an in-memory store
for development and tests, a SQLAlchemy store (Postgres expected, SQLite for
tests) and a Firestore store matching the collections the web client reads.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from firebase_admin import firestore
from sqlalchemy import Boolean, Column, Float, Integer, String, Text, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from myblog.errors import ServiceUnavailable

logger = logging.getLogger(__name__)

POSTS_COLLECTION = "posts"
CONTACTS_COLLECTION = "contacts"
SUPPORT_MESSAGES_COLLECTION = "supportMessages"

SUPPORT_LIST_LIMIT = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render a timestamp the way JavaScript's ``toISOString`` does."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


@dataclass
class PostRecord:
    title: str
    content: str
    author_id: str
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "authorId": self.author_id,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass
class ContactRecord:
    type: str
    label: str
    value: str
    icon: str = ""
    is_active: bool = True
    order: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "value": self.value,
            "icon": self.icon,
            "isActive": self.is_active,
            "order": self.order,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


@dataclass
class SupportMessageRecord:
    name: str
    email: str
    message: str
    subject: str = ""
    status: str = "new"
    telegram_sent: bool = False
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "telegramSent": self.telegram_sent,
            "createdAt": to_iso(self.created_at),
        }


class RecordStore(Protocol):
    """Interface for record persistence.

    ``update_*`` methods take a mapping of record attribute names to new
    values and write them without any version check, so concurrent updates
    to the same record are last-writer-wins.
    """

    def add_post(self, post: PostRecord) -> PostRecord:
        ...

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        ...

    def list_posts(self, author_id: Optional[str] = None) -> list[PostRecord]:
        ...

    def update_post(self, post_id: str, changes: dict) -> None:
        ...

    def delete_post(self, post_id: str) -> None:
        ...

    def add_contact(self, contact: ContactRecord) -> ContactRecord:
        ...

    def get_contact(self, contact_id: str) -> Optional[ContactRecord]:
        ...

    def list_contacts(self, active_only: bool = False) -> list[ContactRecord]:
        ...

    def update_contact(self, contact_id: str, changes: dict) -> None:
        ...

    def delete_contact(self, contact_id: str) -> None:
        ...

    def add_support_message(
        self, message: SupportMessageRecord
    ) -> SupportMessageRecord:
        ...

    def list_support_messages(
        self, limit: int = SUPPORT_LIST_LIMIT
    ) -> list[SupportMessageRecord]:
        ...


def _contact_sort_key(contact: ContactRecord) -> tuple:
    return (contact.order, contact.created_at)


class InMemoryRecordStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.posts: Dict[str, PostRecord] = {}
        self.contacts: Dict[str, ContactRecord] = {}
        self.support_messages: Dict[str, SupportMessageRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.posts.clear()
        self.contacts.clear()
        self.support_messages.clear()

    def add_post(self, post: PostRecord) -> PostRecord:
        stored = replace(post, id=uuid.uuid4().hex)
        self.posts[stored.id] = stored
        return replace(stored)

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        post = self.posts.get(post_id)
        return replace(post) if post else None

    def list_posts(self, author_id: Optional[str] = None) -> list[PostRecord]:
        posts = [
            replace(post)
            for post in self.posts.values()
            if author_id is None or post.author_id == author_id
        ]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    def update_post(self, post_id: str, changes: dict) -> None:
        post = self.posts.get(post_id)
        if post:
            self.posts[post_id] = replace(post, **changes)

    def delete_post(self, post_id: str) -> None:
        self.posts.pop(post_id, None)

    def add_contact(self, contact: ContactRecord) -> ContactRecord:
        stored = replace(contact, id=uuid.uuid4().hex)
        self.contacts[stored.id] = stored
        return replace(stored)

    def get_contact(self, contact_id: str) -> Optional[ContactRecord]:
        contact = self.contacts.get(contact_id)
        return replace(contact) if contact else None

    def list_contacts(self, active_only: bool = False) -> list[ContactRecord]:
        contacts = [
            replace(contact)
            for contact in self.contacts.values()
            if contact.is_active or not active_only
        ]
        return sorted(contacts, key=_contact_sort_key)

    def update_contact(self, contact_id: str, changes: dict) -> None:
        contact = self.contacts.get(contact_id)
        if contact:
            self.contacts[contact_id] = replace(contact, **changes)

    def delete_contact(self, contact_id: str) -> None:
        self.contacts.pop(contact_id, None)

    def add_support_message(
        self, message: SupportMessageRecord
    ) -> SupportMessageRecord:
        stored = replace(message, id=uuid.uuid4().hex)
        self.support_messages[stored.id] = stored
        return replace(stored)

    def list_support_messages(
        self, limit: int = SUPPORT_LIST_LIMIT
    ) -> list[SupportMessageRecord]:
        messages = sorted(
            self.support_messages.values(),
            key=lambda m: m.created_at,
            reverse=True,
        )
        return [replace(message) for message in messages[:limit]]


class SqlRecordStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, timeout_seconds: float = 5.0):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlRecordStore")
        engine_kwargs = {"future": True, "pool_pre_ping": True, "pool_recycle": 1800}
        backend = make_url(database_url).get_backend_name()
        if backend != "sqlite":
            engine_kwargs["pool_timeout"] = timeout_seconds
        if backend == "postgresql":
            engine_kwargs["connect_args"] = {
                "connect_timeout": max(1, int(timeout_seconds))
            }
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Record store query failed")
            raise ServiceUnavailable("Record store unavailable") from exc

    @staticmethod
    def _to_post(row: "PostRow") -> PostRecord:
        return PostRecord(
            id=row.id,
            title=row.title,
            content=row.content,
            author_id=row.author_id,
            created_at=_from_epoch(row.created_at),
            updated_at=_from_epoch(row.updated_at),
        )

    @staticmethod
    def _to_contact(row: "ContactRow") -> ContactRecord:
        return ContactRecord(
            id=row.id,
            type=row.type,
            label=row.label,
            value=row.value,
            icon=row.icon,
            is_active=row.is_active,
            order=row.sort_order,
            created_at=_from_epoch(row.created_at),
            updated_at=_from_epoch(row.updated_at),
        )

    @staticmethod
    def _to_support_message(row: "SupportMessageRow") -> SupportMessageRecord:
        return SupportMessageRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            subject=row.subject,
            message=row.message,
            status=row.status,
            telegram_sent=row.telegram_sent,
            created_at=_from_epoch(row.created_at),
        )

    @staticmethod
    def _column_values(changes: dict, renames: dict) -> dict:
        values = {}
        for key, value in changes.items():
            if isinstance(value, datetime):
                value = value.timestamp()
            values[renames.get(key, key)] = value
        return values

    def add_post(self, post: PostRecord) -> PostRecord:
        with self._session() as session:
            row = PostRow(
                id=uuid.uuid4().hex,
                title=post.title,
                content=post.content,
                author_id=post.author_id,
                created_at=post.created_at.timestamp(),
                updated_at=post.updated_at.timestamp(),
            )
            session.add(row)
            session.commit()
            return self._to_post(row)

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        with self._session() as session:
            row = session.get(PostRow, post_id)
            return self._to_post(row) if row else None

    def list_posts(self, author_id: Optional[str] = None) -> list[PostRecord]:
        with self._session() as session:
            stmt = select(PostRow)
            if author_id is not None:
                stmt = stmt.where(PostRow.author_id == author_id)
            stmt = stmt.order_by(PostRow.created_at.desc())
            return [self._to_post(row) for row in session.execute(stmt).scalars()]

    def update_post(self, post_id: str, changes: dict) -> None:
        with self._session() as session:
            row = session.get(PostRow, post_id)
            if not row:
                return
            for key, value in self._column_values(changes, {}).items():
                setattr(row, key, value)
            session.commit()

    def delete_post(self, post_id: str) -> None:
        with self._session() as session:
            row = session.get(PostRow, post_id)
            if row:
                session.delete(row)
                session.commit()

    def add_contact(self, contact: ContactRecord) -> ContactRecord:
        with self._session() as session:
            row = ContactRow(
                id=uuid.uuid4().hex,
                type=contact.type,
                label=contact.label,
                value=contact.value,
                icon=contact.icon,
                is_active=contact.is_active,
                sort_order=contact.order,
                created_at=contact.created_at.timestamp(),
                updated_at=contact.updated_at.timestamp(),
            )
            session.add(row)
            session.commit()
            return self._to_contact(row)

    def get_contact(self, contact_id: str) -> Optional[ContactRecord]:
        with self._session() as session:
            row = session.get(ContactRow, contact_id)
            return self._to_contact(row) if row else None

    def list_contacts(self, active_only: bool = False) -> list[ContactRecord]:
        with self._session() as session:
            stmt = select(ContactRow)
            if active_only:
                stmt = stmt.where(ContactRow.is_active.is_(True))
            stmt = stmt.order_by(
                ContactRow.sort_order.asc(), ContactRow.created_at.asc()
            )
            return [
                self._to_contact(row) for row in session.execute(stmt).scalars()
            ]

    def update_contact(self, contact_id: str, changes: dict) -> None:
        with self._session() as session:
            row = session.get(ContactRow, contact_id)
            if not row:
                return
            values = self._column_values(changes, {"order": "sort_order"})
            for key, value in values.items():
                setattr(row, key, value)
            session.commit()

    def delete_contact(self, contact_id: str) -> None:
        with self._session() as session:
            row = session.get(ContactRow, contact_id)
            if row:
                session.delete(row)
                session.commit()

    def add_support_message(
        self, message: SupportMessageRecord
    ) -> SupportMessageRecord:
        with self._session() as session:
            row = SupportMessageRow(
                id=uuid.uuid4().hex,
                name=message.name,
                email=message.email,
                subject=message.subject,
                message=message.message,
                status=message.status,
                telegram_sent=message.telegram_sent,
                created_at=message.created_at.timestamp(),
            )
            session.add(row)
            session.commit()
            return self._to_support_message(row)

    def list_support_messages(
        self, limit: int = SUPPORT_LIST_LIMIT
    ) -> list[SupportMessageRecord]:
        with self._session() as session:
            stmt = (
                select(SupportMessageRow)
                .order_by(SupportMessageRow.created_at.desc())
                .limit(limit)
            )
            return [
                self._to_support_message(row)
                for row in session.execute(stmt).scalars()
            ]


Base = declarative_base()


class PostRow(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)


class ContactRow(Base):
    __tablename__ = "contacts"

    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    label = Column(String, nullable=False)
    value = Column(String, nullable=False)
    icon = Column(String, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    sort_order = Column("order", Integer, nullable=False, default=0)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class SupportMessageRow(Base):
    __tablename__ = "support_messages"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    subject = Column(String, nullable=False, default="")
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="new")
    telegram_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False, index=True)


# Record attribute -> Firestore field, matching what the web client writes.
_POST_FIELDS = {
    "title": "title",
    "content": "content",
    "author_id": "authorId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}
_CONTACT_FIELDS = {
    "type": "type",
    "label": "label",
    "value": "value",
    "icon": "icon",
    "is_active": "isActive",
    "order": "order",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}
_SUPPORT_FIELDS = {
    "name": "name",
    "email": "email",
    "subject": "subject",
    "message": "message",
    "status": "status",
    "telegram_sent": "telegramSent",
    "created_at": "createdAt",
}


def _to_document(record, fields: dict) -> dict:
    return {doc_key: getattr(record, attr) for attr, doc_key in fields.items()}


def _from_document(cls, doc_id: str, data: dict, fields: dict):
    values = {attr: data[doc_key] for attr, doc_key in fields.items() if doc_key in data}
    return cls(id=doc_id, **values)


class FirestoreRecordStore:
    """Firestore-backed implementation using the Firebase Admin client."""

    def __init__(self, client, timeout_seconds: float = 5.0):
        self.client = client
        self.timeout = timeout_seconds

    @classmethod
    def from_app(cls, app, timeout_seconds: float = 5.0) -> "FirestoreRecordStore":
        return cls(firestore.client(app), timeout_seconds=timeout_seconds)

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except google_exceptions.GoogleAPIError as exc:
            logger.exception("Firestore call failed")
            raise ServiceUnavailable("Record store unavailable") from exc

    def _add(self, collection: str, record, fields: dict):
        with self._guard():
            _, doc_ref = self.client.collection(collection).add(
                _to_document(record, fields), timeout=self.timeout
            )
        return replace(record, id=doc_ref.id)

    def _get(self, collection: str, doc_id: str, cls, fields: dict):
        with self._guard():
            snapshot = (
                self.client.collection(collection)
                .document(doc_id)
                .get(timeout=self.timeout)
            )
        if not snapshot.exists:
            return None
        return _from_document(cls, snapshot.id, snapshot.to_dict() or {}, fields)

    def _stream(self, query, cls, fields: dict) -> list:
        with self._guard():
            return [
                _from_document(cls, snapshot.id, snapshot.to_dict() or {}, fields)
                for snapshot in query.stream(timeout=self.timeout)
            ]

    def _update(self, collection: str, doc_id: str, changes: dict, fields: dict):
        data = {fields[key]: value for key, value in changes.items()}
        with self._guard():
            try:
                self.client.collection(collection).document(doc_id).update(
                    data, timeout=self.timeout
                )
            except google_exceptions.NotFound:
                return

    def _delete(self, collection: str, doc_id: str) -> None:
        with self._guard():
            self.client.collection(collection).document(doc_id).delete(
                timeout=self.timeout
            )

    def add_post(self, post: PostRecord) -> PostRecord:
        return self._add(POSTS_COLLECTION, post, _POST_FIELDS)

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        return self._get(POSTS_COLLECTION, post_id, PostRecord, _POST_FIELDS)

    def list_posts(self, author_id: Optional[str] = None) -> list[PostRecord]:
        query = self.client.collection(POSTS_COLLECTION)
        if author_id is not None:
            query = query.where(filter=FieldFilter("authorId", "==", author_id))
        query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)
        return self._stream(query, PostRecord, _POST_FIELDS)

    def update_post(self, post_id: str, changes: dict) -> None:
        self._update(POSTS_COLLECTION, post_id, changes, _POST_FIELDS)

    def delete_post(self, post_id: str) -> None:
        self._delete(POSTS_COLLECTION, post_id)

    def add_contact(self, contact: ContactRecord) -> ContactRecord:
        return self._add(CONTACTS_COLLECTION, contact, _CONTACT_FIELDS)

    def get_contact(self, contact_id: str) -> Optional[ContactRecord]:
        return self._get(
            CONTACTS_COLLECTION, contact_id, ContactRecord, _CONTACT_FIELDS
        )

    def list_contacts(self, active_only: bool = False) -> list[ContactRecord]:
        query = self.client.collection(CONTACTS_COLLECTION)
        if active_only:
            query = query.where(filter=FieldFilter("isActive", "==", True))
        query = query.order_by("order", direction=firestore.Query.ASCENDING)
        return self._stream(query, ContactRecord, _CONTACT_FIELDS)

    def update_contact(self, contact_id: str, changes: dict) -> None:
        self._update(CONTACTS_COLLECTION, contact_id, changes, _CONTACT_FIELDS)

    def delete_contact(self, contact_id: str) -> None:
        self._delete(CONTACTS_COLLECTION, contact_id)

    def add_support_message(
        self, message: SupportMessageRecord
    ) -> SupportMessageRecord:
        return self._add(SUPPORT_MESSAGES_COLLECTION, message, _SUPPORT_FIELDS)

    def list_support_messages(
        self, limit: int = SUPPORT_LIST_LIMIT
    ) -> list[SupportMessageRecord]:
        query = (
            self.client.collection(SUPPORT_MESSAGES_COLLECTION)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        return self._stream(query, SupportMessageRecord, _SUPPORT_FIELDS)
