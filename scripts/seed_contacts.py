"""
Seed the contact directory with the default support entries.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from myblog.auth import Principal
from myblog.contacts import ContactService
from myblog.dependencies import get_record_store
from myblog.policy import Policy
from myblog.schemas import ContactInput, parse_input

logger = logging.getLogger(__name__)

SEED_PRINCIPAL = Principal(id="seed-contacts")

DEFAULT_CONTACTS = [
    {
        "type": "email",
        "label": "Customer Support",
        "value": "support@example.com",
        "icon": "✉️",
        "isActive": True,
        "order": 0,
    },
    {
        "type": "whatsapp",
        "label": "WhatsApp Support",
        "value": "+1234567890",
        "icon": "\U0001F4F1",
        "isActive": True,
        "order": 1,
    },
]


def seed(service: ContactService, dry_run: bool = False) -> int:
    """Create the default contacts whose labels are missing; return the count."""
    existing = {contact.label for contact in service.list_admin(SEED_PRINCIPAL)}

    created = 0
    for payload in DEFAULT_CONTACTS:
        data = parse_input(ContactInput, payload)
        if data.label in existing:
            logger.info("Skipping %r, already present", data.label)
            continue
        if dry_run:
            logger.info("Would create %r (%s)", data.label, data.type)
            continue
        contact = service.create(SEED_PRINCIPAL, data)
        created += 1
        logger.info("Created contact %s (%s)", contact.id, contact.label)
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default contacts")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log what would be written without touching the store",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    service = ContactService(get_record_store(), Policy())
    created = seed(service, dry_run=args.dry_run)
    logger.info("Seeding complete, created %d contacts", created)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
