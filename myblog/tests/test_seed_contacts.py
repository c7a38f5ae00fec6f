import importlib.util
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from myblog.contacts import ContactService
from myblog.db import InMemoryRecordStore
from myblog.policy import Policy

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "seed_contacts.py"


def load_script():
    spec = importlib.util.spec_from_file_location("seed_contacts", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class SeedContactsTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.script = load_script()

    def setUp(self):
        self.store = InMemoryRecordStore()
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.service = ContactService(self.store, Policy(), clock=self.tick)

    def tick(self):
        self.now += timedelta(seconds=1)
        return self.now

    def test_seed_uses_service_defaults(self):
        self.assertEqual(self.script.seed(self.service), 2)

        contacts = self.service.list_public()
        self.assertEqual(
            [c.label for c in contacts], ["Customer Support", "WhatsApp Support"]
        )
        email = contacts[0]
        self.assertEqual(email.type, "email")
        self.assertEqual(email.order, 0)
        self.assertTrue(email.is_active)
        self.assertEqual(email.created_at, email.updated_at)

    def test_seed_is_idempotent(self):
        self.script.seed(self.service)
        self.assertEqual(self.script.seed(self.service), 0)
        self.assertEqual(len(self.store.contacts), 2)

    def test_dry_run_writes_nothing(self):
        self.assertEqual(self.script.seed(self.service, dry_run=True), 0)
        self.assertEqual(self.store.contacts, {})


if __name__ == "__main__":
    unittest.main()
