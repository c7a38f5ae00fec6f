import unittest
from datetime import datetime, timedelta, timezone

from myblog.db import ContactRecord, PostRecord, SqlRecordStore, SupportMessageRecord, to_iso
from myblog.schemas import coerce_order

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


class SqlRecordStoreTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def setUp(self):
        self.db = SqlRecordStore("sqlite+pysqlite:///:memory:")

    def test_post_roundtrip_and_author_filter(self):
        first = self.db.add_post(
            PostRecord(title="a", content="x", author_id="u1", created_at=T0, updated_at=T0)
        )
        later = T0 + timedelta(minutes=1)
        self.db.add_post(
            PostRecord(title="b", content="y", author_id="u2", created_at=later, updated_at=later)
        )

        fetched = self.db.get_post(first.id)
        self.assertEqual(fetched.title, "a")
        self.assertEqual(fetched.created_at, T0)
        self.assertEqual([p.title for p in self.db.list_posts()], ["b", "a"])
        self.assertEqual([p.title for p in self.db.list_posts(author_id="u1")], ["a"])
        self.assertIsNone(self.db.get_post("missing"))

    def test_post_update_and_delete(self):
        post = self.db.add_post(
            PostRecord(title="a", content="x", author_id="u1", created_at=T0, updated_at=T0)
        )
        updated_at = T0 + timedelta(hours=1)
        self.db.update_post(post.id, {"title": "new", "updated_at": updated_at})

        fetched = self.db.get_post(post.id)
        self.assertEqual(fetched.title, "new")
        self.assertEqual(fetched.content, "x")
        self.assertEqual(to_iso(fetched.updated_at), "2025-01-01T01:00:00.000Z")

        self.db.delete_post(post.id)
        self.assertIsNone(self.db.get_post(post.id))
        # Missing ids are a no-op.
        self.db.update_post(post.id, {"title": "gone"})
        self.db.delete_post(post.id)

    def test_contacts_sorted_by_order_then_creation(self):
        def add(label, order, offset, active=True):
            created = T0 + timedelta(seconds=offset)
            return self.db.add_contact(
                ContactRecord(
                    type="email",
                    label=label,
                    value=label,
                    order=order,
                    is_active=active,
                    created_at=created,
                    updated_at=created,
                )
            )

        add("late", 1, 10)
        add("early", 1, 5)
        hidden = add("hidden", 0, 0, active=False)

        self.assertEqual(
            [c.label for c in self.db.list_contacts()], ["hidden", "early", "late"]
        )
        self.assertEqual(
            [c.label for c in self.db.list_contacts(active_only=True)],
            ["early", "late"],
        )

        self.db.update_contact(hidden.id, {"is_active": True, "order": 7})
        contact = self.db.get_contact(hidden.id)
        self.assertTrue(contact.is_active)
        self.assertEqual(contact.order, 7)

        self.db.delete_contact(hidden.id)
        self.assertIsNone(self.db.get_contact(hidden.id))

    def test_extreme_order_values_fit_the_column(self):
        contact = self.db.add_contact(
            ContactRecord(
                type="email",
                label="max",
                value="v",
                order=coerce_order("99999999999999999999"),
                created_at=T0,
                updated_at=T0,
            )
        )
        self.assertEqual(self.db.get_contact(contact.id).order, 2**31 - 1)

    def test_support_messages_newest_first_with_limit(self):
        for i in range(3):
            self.db.add_support_message(
                SupportMessageRecord(
                    name=f"n{i}",
                    email="a@b.io",
                    message="m",
                    telegram_sent=i == 2,
                    created_at=T0 + timedelta(seconds=i),
                )
            )
        messages = self.db.list_support_messages(limit=2)
        self.assertEqual([m.name for m in messages], ["n2", "n1"])
        self.assertTrue(messages[0].telegram_sent)
        self.assertEqual(messages[0].status, "new")
        self.assertEqual(messages[0].subject, "")


if __name__ == "__main__":
    unittest.main()
